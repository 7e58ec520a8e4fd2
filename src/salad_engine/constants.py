"""Game constants and utilities"""

from typing import Dict, List

SUITS: List[str] = ['H', 'D', 'C', 'S']
RANKS: List[str] = ['2', '3', '4', '5', '6', '7', '8', '9', '10', 'J', 'Q', 'K', 'A']

RANK_VALUES: Dict[str, int] = {rank: value for value, rank in enumerate(RANKS, start=2)}

# Display order only, never used for trick resolution
SUIT_ORDER: Dict[str, int] = {'C': 0, 'D': 1, 'H': 2, 'S': 3}

HEARTS = 'H'
QUEEN = 'Q'
KING_OF_SPADES = 'SK'
# Removed from the deck so three players get 17 cards each
THREE_PLAYER_DISCARD = 'D2'

# Room codes skip I, O, 0 and 1
ROOM_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ23456789'
ROOM_CODE_LENGTH = 4

MIN_PLAYERS = 3
MAX_PLAYERS = 4
TOTAL_ROUNDS = 6

# Room status
STATUS_WAITING = 'WAITING'
STATUS_PLAYING = 'PLAYING'
STATUS_ROUND_END = 'ROUND_END'
STATUS_FINISHED = 'FINISHED'

# Timing (seconds)
ROOM_EXPIRY = 4 * 60 * 60
DISCONNECT_GRACE_PERIOD = 5 * 60
CLEANUP_INTERVAL = 10 * 60
SNAPSHOT_INTERVAL = 30

# Error codes
ERROR_ROOM_NOT_FOUND = 'ROOM_NOT_FOUND'
ERROR_ROOM_FULL = 'ROOM_FULL'
ERROR_GAME_ALREADY_STARTED = 'GAME_ALREADY_STARTED'
ERROR_WRONG_PLAYER_COUNT = 'WRONG_PLAYER_COUNT'
ERROR_NOT_HOST = 'NOT_HOST'
ERROR_ROUND_NOT_ENDED = 'ROUND_NOT_ENDED'
ERROR_GAME_NOT_IN_PROGRESS = 'GAME_NOT_IN_PROGRESS'
ERROR_PLAYER_NOT_FOUND = 'PLAYER_NOT_FOUND'
ERROR_SEAT_TAKEN = 'SEAT_TAKEN'
ERROR_NOT_YOUR_TURN = 'NOT_YOUR_TURN'
ERROR_CARD_NOT_HELD = 'CARD_NOT_HELD'
ERROR_MUST_FOLLOW_SUIT = 'MUST_FOLLOW_SUIT'
ERROR_INVALID_CARD = 'INVALID_CARD'
ERROR_UNKNOWN_RULE = 'UNKNOWN_RULE'
