"""
Applying card plays to a room: turn order, trick resolution and round end.

Callers are expected to hold the room's lock (see SaladEngine.play_card).
"""

import logging
import time

from .comparator import get_suit, get_trick_winner
from .constants import STATUS_ROUND_END
from .errors import ActionResult
from .models import RoomState, TrickCard
from .rounds import score_trick
from .validate import validate_play

logger = logging.getLogger(__name__)


def apply_play(room: RoomState, player_id: str, card_id: str) -> ActionResult:
    """
    Play one card for a player.

    The room is left untouched when the play is rejected. On success the card
    moves from the hand to the current trick and either the turn passes to the
    next seat or the completed trick is resolved.
    """
    result = validate_play(room, player_id, card_id)
    if not result.success:
        logger.debug(f"Rejected play {card_id} by {player_id} in room {room.id}: {result.error_message}")
        return result

    player = result.state
    player.hand.remove(card_id)
    player.hand_count = len(player.hand)

    room.current_trick.append(TrickCard(player_id=player_id, card=card_id))
    if len(room.current_trick) == 1:
        room.lead_suit = get_suit(card_id)

    if len(room.current_trick) == len(room.players):
        _resolve_trick(room)
    else:
        room.active_player_index = (room.active_player_index + 1) % len(room.players)

    room.last_activity = time.time()
    return ActionResult.ok(room)


def _resolve_trick(room: RoomState):
    """Award the completed trick, score it, then start the next trick or end the round."""
    winner_entry = room.current_trick[get_trick_winner(room.current_trick, room.lead_suit)]
    winner_index = room.player_index(winner_entry.player_id)
    winner = room.players[winner_index]

    trick_cards = [trick_card.card for trick_card in room.current_trick]
    winner.tricks_taken.append(trick_cards)

    is_last_trick = room.trick_number == room.total_tricks
    points = score_trick(trick_cards, room.round_info.rule_name, is_last_trick)
    winner.round_score += points
    logger.debug(f"Room {room.id}: trick {room.trick_number} to {winner.name} for {points} points")

    room.current_trick = []
    room.lead_suit = None

    if all(not p.hand for p in room.players):
        _end_round(room)
    else:
        room.active_player_index = winner_index
        room.trick_number += 1


def _end_round(room: RoomState):
    for player in room.players:
        player.score += player.round_score

    room.status = STATUS_ROUND_END
    room.active_player_index = None
    room.last_activity = time.time()
    logger.info(
        f"Room {room.id}: round {room.round_info.round_number} ({room.round_info.rule_name}) ended, "
        f"scores {[(p.name, p.score) for p in room.players]}"
    )
