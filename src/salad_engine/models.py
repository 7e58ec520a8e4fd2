"""Game models and data structures"""

import secrets
import time
from dataclasses import dataclass, field
from typing import List, Optional

from .constants import STATUS_WAITING
from .rounds import ROUNDS, RoundInfo


@dataclass
class Player:
    id: str  # stable for the life of the room
    name: str
    connection_id: Optional[str] = None  # rebound on reconnect
    hand: List[str] = field(default_factory=list)  # card ids, private to this player
    hand_count: int = 0
    score: int = 0  # cumulative across completed rounds
    round_score: int = 0
    tricks_taken: List[List[str]] = field(default_factory=list)
    connected: bool = True
    last_seen: float = field(default_factory=time.time)
    reconnect_token: str = field(default_factory=lambda: secrets.token_urlsafe(16))  # never in player views


@dataclass
class TrickCard:
    player_id: str
    card: str


@dataclass
class RoomState:
    id: str
    status: str = STATUS_WAITING  # WAITING|PLAYING|ROUND_END|FINISHED
    round_info: RoundInfo = ROUNDS[0]
    players: List[Player] = field(default_factory=list)  # seat order, host at 0
    current_trick: List[TrickCard] = field(default_factory=list)
    active_player_index: Optional[int] = 0
    lead_suit: Optional[str] = None
    host_id: Optional[str] = None
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    trick_number: int = 0
    total_tricks: int = 0

    def get_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def find_by_connection(self, connection_id: str) -> Optional[Player]:
        for player in self.players:
            if player.connection_id == connection_id:
                return player
        return None

    def player_index(self, player_id: str) -> Optional[int]:
        for index, player in enumerate(self.players):
            if player.id == player_id:
                return index
        return None

    @property
    def active_player(self) -> Optional[Player]:
        if self.active_player_index is None or not 0 <= self.active_player_index < len(self.players):
            return None
        return self.players[self.active_player_index]
