"""Room registry: room lifecycle, dealing and connection bookkeeping"""

import logging
import secrets
import threading
import time
import uuid
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from .constants import (
    ERROR_GAME_ALREADY_STARTED, ERROR_NOT_HOST, ERROR_PLAYER_NOT_FOUND,
    ERROR_ROOM_FULL, ERROR_ROOM_NOT_FOUND, ERROR_ROUND_NOT_ENDED,
    ERROR_SEAT_TAKEN, ERROR_WRONG_PLAYER_COUNT, ROOM_CODE_ALPHABET,
    STATUS_FINISHED, STATUS_PLAYING, STATUS_ROUND_END, STATUS_WAITING,
)
from .errors import ActionResult
from .game_state import apply_play
from .models import Player, RoomState
from .rounds import get_round, is_game_over
from .rules import RuleConfig, default_rules
from .shuffle import deal_cards, sort_hand

logger = logging.getLogger(__name__)


def normalize_room_code(room_code: Optional[str]) -> str:
    return (room_code or '').strip().upper()


class SaladEngine:
    def __init__(self, rules: RuleConfig = default_rules):
        self.rules = rules
        self.rooms: Dict[str, RoomState] = {}
        self.room_locks = defaultdict(threading.Lock)
        self._registry_lock = threading.Lock()

    # Room lookup

    def get_room(self, room_code: str) -> Optional[RoomState]:
        return self.rooms.get(normalize_room_code(room_code))

    def all_rooms(self) -> List[RoomState]:
        with self._registry_lock:
            return list(self.rooms.values())

    def room_count(self) -> int:
        return len(self.rooms)

    def delete_room(self, room_code: str) -> bool:
        room_code = normalize_room_code(room_code)
        with self.room_locks[room_code]:
            with self._registry_lock:
                removed = self.rooms.pop(room_code, None)
        # Lock entry is kept so waiters and any later room with this code share it
        if removed:
            logger.info(f"Deleted room {room_code}")
        return removed is not None

    def _generate_room_code(self) -> str:
        while True:
            code = ''.join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(self.rules.room_code_length))
            if code not in self.rooms:
                return code

    @staticmethod
    def _new_player(connection_id: str, name: str) -> Player:
        return Player(id=uuid.uuid4().hex[:8], name=name, connection_id=connection_id)

    # Lobby

    def create_room(self, host_connection_id: str, host_name: str) -> RoomState:
        host = self._new_player(host_connection_id, host_name)
        with self._registry_lock:
            room_code = self._generate_room_code()
            room = RoomState(id=room_code, players=[host], host_id=host.id)
            self.rooms[room_code] = room
        logger.info(f"Room {room_code} created by {host_name} ({host.id})")
        return room

    def join_room(self, room_code: str, connection_id: str, player_name: str) -> ActionResult:
        room_code = normalize_room_code(room_code)
        with self.room_locks[room_code]:
            room = self.get_room(room_code)
            if not room:
                return ActionResult.error(ERROR_ROOM_NOT_FOUND, "Room not found")

            # Duplicate join from the same connection
            if room.find_by_connection(connection_id):
                return ActionResult.ok(room)

            if room.status != STATUS_WAITING:
                return ActionResult.error(ERROR_GAME_ALREADY_STARTED, "Game already started")
            if len(room.players) >= self.rules.max_players:
                return ActionResult.error(ERROR_ROOM_FULL, "Room is full")

            player = self._new_player(connection_id, player_name)
            room.players.append(player)
            room.last_activity = time.time()
            logger.info(f"{player_name} ({player.id}) joined room {room_code}")
            return ActionResult.ok(room)

    # Dealing

    def _deal_round(self, room: RoomState, round_number: int, seed: Optional[int] = None):
        hands = deal_cards(len(room.players), seed)
        for player, hand in zip(room.players, hands):
            player.hand = sort_hand(hand)
            player.hand_count = len(player.hand)
            player.round_score = 0
            player.tricks_taken = []

        room.round_info = get_round(round_number)
        room.status = STATUS_PLAYING
        room.active_player_index = 0
        room.current_trick = []
        room.lead_suit = None
        room.trick_number = 1
        room.total_tricks = len(hands[0])
        room.last_activity = time.time()

    def start_game(self, room_code: str, requested_by: Optional[str] = None,
                   seed: Optional[int] = None) -> ActionResult:
        room_code = normalize_room_code(room_code)
        with self.room_locks[room_code]:
            room = self.get_room(room_code)
            if not room:
                return ActionResult.error(ERROR_ROOM_NOT_FOUND, "Room not found")
            if requested_by is not None and requested_by != room.host_id:
                return ActionResult.error(ERROR_NOT_HOST, "Only the host can start the game")
            if room.status != STATUS_WAITING:
                return ActionResult.error(ERROR_GAME_ALREADY_STARTED, "Game already started")
            if not self.rules.validate_player_count(len(room.players)):
                return ActionResult.error(
                    ERROR_WRONG_PLAYER_COUNT,
                    f"Need {self.rules.min_players}-{self.rules.max_players} players to start"
                )

            for player in room.players:
                player.score = 0
            self._deal_round(room, 1, seed)
            logger.info(f"Room {room_code}: game started with {len(room.players)} players")
            return ActionResult.ok(room)

    def advance_round(self, room_code: str, seed: Optional[int] = None) -> ActionResult:
        room_code = normalize_room_code(room_code)
        with self.room_locks[room_code]:
            room = self.get_room(room_code)
            if not room:
                return ActionResult.error(ERROR_ROOM_NOT_FOUND, "Room not found")
            if room.status != STATUS_ROUND_END:
                return ActionResult.error(ERROR_ROUND_NOT_ENDED, "Round has not ended")

            next_round = room.round_info.round_number + 1
            if is_game_over(next_round):
                room.status = STATUS_FINISHED
                room.last_activity = time.time()
                logger.info(f"Room {room_code}: game finished")
                return ActionResult.ok(room)

            self._deal_round(room, next_round, seed)
            logger.info(f"Room {room_code}: round {next_round} ({room.round_info.rule_name}) started")
            return ActionResult.ok(room)

    # Play

    def play_card(self, room_code: str, player_id: str, card_id: str) -> ActionResult:
        room_code = normalize_room_code(room_code)
        with self.room_locks[room_code]:
            room = self.get_room(room_code)
            if not room:
                return ActionResult.error(ERROR_ROOM_NOT_FOUND, "Room not found")
            return apply_play(room, player_id, card_id)

    # Connections

    def connection_changed(self, room_code: str, player_id: str, connected: bool) -> Optional[Player]:
        room_code = normalize_room_code(room_code)
        with self.room_locks[room_code]:
            room = self.get_room(room_code)
            if not room:
                return None
            player = room.get_player(player_id)
            if player:
                player.connected = connected
                player.last_seen = time.time()
            return player

    def reconnect(self, room_code: str, old_id: str, new_connection_id: str,
                  reconnect_token: Optional[str]) -> ActionResult:
        """
        Bind a seated player to a new connection.

        old_id may be the stable player id or the previous connection id; the
        reconnect token handed out on joining must match. A seat whose player
        is still connected cannot be taken over. Hand, scores, tricks and seat
        are untouched, so the turn stays with the player.
        """
        room_code = normalize_room_code(room_code)
        with self.room_locks[room_code]:
            room = self.get_room(room_code)
            if not room:
                return ActionResult.error(ERROR_ROOM_NOT_FOUND, "Room not found")
            player = room.get_player(old_id) or room.find_by_connection(old_id)
            token = (reconnect_token or '').encode()
            if not player or not secrets.compare_digest(player.reconnect_token.encode(), token):
                logger.warning(f"Rejected reconnect to room {room_code} as {old_id}")
                return ActionResult.error(ERROR_PLAYER_NOT_FOUND, "No such seat in that room")
            if player.connected:
                return ActionResult.error(ERROR_SEAT_TAKEN, "That seat is still connected")

            player.connection_id = new_connection_id
            player.connected = True
            player.last_seen = time.time()
            logger.info(f"{player.name} ({player.id}) reconnected to room {room_code}")
            return ActionResult.ok(room)

    def expire_disconnected(self, room_code: str, now: Optional[float] = None) -> List[str]:
        """
        Remove players disconnected past the grace period; returns their ids.

        A removed player's hand leaves play. If the game goes on, a trick in
        progress is called off: surviving players take their cards back and
        the trick is led again by its leader, or by the next remaining seat
        after the leader.
        """
        room_code = normalize_room_code(room_code)
        now = time.time() if now is None else now
        with self.room_locks[room_code]:
            room = self.get_room(room_code)
            if not room:
                return []

            expired = [
                p for p in room.players
                if not p.connected and now - p.last_seen > self.rules.disconnect_grace
            ]
            if not expired:
                return []

            removed_ids = [p.id for p in expired]
            seat_order = [p.id for p in room.players]
            active = room.active_player
            room.players = [p for p in room.players if p.id not in removed_ids]

            if room.host_id in removed_ids:
                room.host_id = room.players[0].id if room.players else None

            if room.status == STATUS_PLAYING and len(room.players) < self.rules.min_players:
                room.status = STATUS_FINISHED
                room.active_player_index = None
                room.current_trick = []
                room.lead_suit = None
                logger.info(f"Room {room_code}: too few players left, game finished")
            elif not room.players:
                room.active_player_index = None
            elif room.status == STATUS_PLAYING and room.current_trick:
                self._call_off_trick(room, seat_order)
            elif active is not None:
                if active.id in removed_ids:
                    room.active_player_index %= len(room.players)
                else:
                    room.active_player_index = room.player_index(active.id)

            logger.info(f"Room {room_code}: removed disconnected players {removed_ids}")
            return removed_ids

    @staticmethod
    def _call_off_trick(room: RoomState, seat_order: List[str]):
        for trick_card in room.current_trick:
            player = room.get_player(trick_card.player_id)
            if player:
                player.hand = sort_hand(player.hand + [trick_card.card])
                player.hand_count = len(player.hand)

        leader_seat = seat_order.index(room.current_trick[0].player_id)
        room.current_trick = []
        room.lead_suit = None
        for offset in range(len(seat_order)):
            index = room.player_index(seat_order[(leader_seat + offset) % len(seat_order)])
            if index is not None:
                room.active_player_index = index
                break
        logger.info(f"Room {room.id}: trick {room.trick_number} called off, {room.active_player.name} leads")

    # Housekeeping

    def sweep_expired_rooms(self, now: Optional[float] = None) -> List[str]:
        """Delete rooms idle for longer than the room expiry, whatever their status."""
        now = time.time() if now is None else now
        stale = [
            room.id for room in self.all_rooms()
            if now - room.last_activity > self.rules.room_expiry
        ]
        for room_code in stale:
            logger.info(f"Cleaning up expired room: {room_code}")
            self.delete_room(room_code)
        return stale

    def restore_rooms(self, rooms: Iterable[RoomState]) -> int:
        """Load rooms from a snapshot, leaving live rooms with the same code alone."""
        restored = 0
        with self._registry_lock:
            for room in rooms:
                if room.id in self.rooms:
                    continue
                self.rooms[room.id] = room
                restored += 1
        logger.info(f"Restored {restored} rooms from snapshot")
        return restored
