"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError, field_validator

from ..comparator import is_valid_card
from ..engine import normalize_room_code


class EventType(str, Enum):
    """Inbound event types."""
    JOIN = "join"
    START = "start"
    PLAY = "play"
    NEXT_ROUND = "next_round"
    REQUEST_STATE = "request_state"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    JOIN_SUCCESS = "join_success"
    STATE_FULL = "state_full"
    GAME_OVER = "game_over"
    PLAYERS_REMOVED = "players_removed"
    ERROR = "error"


class ErrorCode(str, Enum):
    """Error codes for client events."""
    INVALID_EVENT = "INVALID_EVENT"
    NOT_IN_ROOM = "NOT_IN_ROOM"
    ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
    ROOM_FULL = "ROOM_FULL"
    GAME_ALREADY_STARTED = "GAME_ALREADY_STARTED"
    WRONG_PLAYER_COUNT = "WRONG_PLAYER_COUNT"
    NOT_HOST = "NOT_HOST"
    ROUND_NOT_ENDED = "ROUND_NOT_ENDED"
    GAME_NOT_IN_PROGRESS = "GAME_NOT_IN_PROGRESS"
    PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
    SEAT_TAKEN = "SEAT_TAKEN"
    NOT_YOUR_TURN = "NOT_YOUR_TURN"
    CARD_NOT_HELD = "CARD_NOT_HELD"
    MUST_FOLLOW_SUIT = "MUST_FOLLOW_SUIT"
    INVALID_CARD = "INVALID_CARD"
    INTERNAL = "INTERNAL"


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class JoinEvent(BaseEvent):
    """Create a room (no code) or join one; player_id and reconnect_token with a code rejoin a seat."""
    type: EventType = EventType.JOIN
    name: str = Field(..., min_length=1, max_length=30)
    room_code: Optional[str] = Field(default=None, max_length=8)
    player_id: Optional[str] = Field(default=None, max_length=64)
    reconnect_token: Optional[str] = Field(default=None, max_length=64)

    @field_validator('room_code')
    @classmethod
    def canonical_room_code(cls, v):
        if v is None:
            return None
        return normalize_room_code(v) or None


class StartEvent(BaseEvent):
    """Start game event (host only)."""
    type: EventType = EventType.START


class PlayEvent(BaseEvent):
    """Play one card."""
    type: EventType = EventType.PLAY
    card: str = Field(..., min_length=2, max_length=3)

    @field_validator('card')
    @classmethod
    def known_card(cls, v):
        v = v.upper()
        if not is_valid_card(v):
            raise ValueError(f"Unknown card: {v}")
        return v


class NextRoundEvent(BaseEvent):
    """Advance to the next round once the current one has ended."""
    type: EventType = EventType.NEXT_ROUND


class RequestStateEvent(BaseEvent):
    """Request full state event."""
    type: EventType = EventType.REQUEST_STATE


# Union type for all inbound events
InboundEvent = Union[
    JoinEvent,
    StartEvent,
    PlayEvent,
    NextRoundEvent,
    RequestStateEvent,
]


# Outbound event models
class JoinSuccessEvent(BaseModel):
    """Join success confirmation event."""
    type: OutboundEventType = OutboundEventType.JOIN_SUCCESS
    room_code: str
    player_id: str
    reconnect_token: str  # only ever sent to the seat's own connection
    timestamp: float


class StateFullEvent(BaseModel):
    """Full per-player state event."""
    type: OutboundEventType = OutboundEventType.STATE_FULL
    state: Dict[str, Any]
    timestamp: float


class GameOverEvent(BaseModel):
    """Final standings, sent once when a game finishes."""
    type: OutboundEventType = OutboundEventType.GAME_OVER
    winner: Optional[Dict[str, Any]]
    final_scores: List[Dict[str, Any]]
    timestamp: float


class PlayersRemovedEvent(BaseModel):
    """Players dropped after the disconnect grace period."""
    type: OutboundEventType = OutboundEventType.PLAYERS_REMOVED
    player_ids: List[str]
    message: str
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: ErrorCode
    message: str
    timestamp: float


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    event_type = data.get("type") if isinstance(data, dict) else None

    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    event_map = {
        EventType.JOIN: JoinEvent,
        EventType.START: StartEvent,
        EventType.PLAY: PlayEvent,
        EventType.NEXT_ROUND: NextRoundEvent,
        EventType.REQUEST_STATE: RequestStateEvent,
    }

    try:
        return event_map[event_type](**data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def create_error_event(code: ErrorCode, message: str) -> ErrorEvent:
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_join_success_event(room_code: str, player_id: str, reconnect_token: str) -> JoinSuccessEvent:
    return JoinSuccessEvent(
        room_code=room_code,
        player_id=player_id,
        reconnect_token=reconnect_token,
        timestamp=time.time()
    )


def create_state_full_event(state: Dict[str, Any]) -> StateFullEvent:
    return StateFullEvent(state=state, timestamp=time.time())


def create_game_over_event(payload: Dict[str, Any]) -> GameOverEvent:
    return GameOverEvent(
        winner=payload["winner"],
        final_scores=payload["final_scores"],
        timestamp=time.time()
    )


def create_players_removed_event(player_ids: List[str]) -> PlayersRemovedEvent:
    return PlayersRemovedEvent(
        player_ids=player_ids,
        message=f"{len(player_ids)} player(s) removed due to disconnect",
        timestamp=time.time()
    )
