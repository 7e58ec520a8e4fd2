"""
State serialization and sanitization utilities.

view_for is the only projection of a room handed to players; it never
includes another player's hand.
"""

from dataclasses import asdict
from typing import Any, Dict, List, Optional

from .models import Player, RoomState, TrickCard
from .rounds import RoundInfo
from .shuffle import sort_hand
from .validate import get_valid_cards


def _round_info(round_info: RoundInfo) -> Dict[str, Any]:
    return {
        "round_number": round_info.round_number,
        "rule_name": round_info.rule_name,
        "description": round_info.description,
    }


def serialize_public_player(player: Player) -> Dict[str, Any]:
    """Public fields of a player, safe to show to anyone at the table."""
    return {
        "id": player.id,
        "name": player.name,
        "hand_count": player.hand_count,
        "score": player.score,
        "round_score": player.round_score,
        "trick_count": len(player.tricks_taken),
        "connected": player.connected,
    }


def view_for(state: RoomState, viewer_id: Optional[str]) -> Dict[str, Any]:
    """
    Project room state for one player.

    Args:
        state: Room state to project
        viewer_id: Player the view is built for; their own hand is revealed

    Returns:
        Dictionary safe for JSON transmission to that player
    """
    viewer = state.get_player(viewer_id) if viewer_id else None
    my_hand = sort_hand(viewer.hand) if viewer else []

    is_my_turn = viewer is not None and state.active_player is viewer
    playable = sort_hand(get_valid_cards(viewer.hand, state.lead_suit)) if is_my_turn else []

    return {
        "room_id": state.id,
        "status": state.status,
        "round_info": _round_info(state.round_info),
        "players": [serialize_public_player(p) for p in state.players],
        "host_id": state.host_id,
        "current_trick": [
            {"player_id": tc.player_id, "card": tc.card} for tc in state.current_trick
        ],
        "active_player_index": state.active_player_index,
        "lead_suit": state.lead_suit,
        "my_player_id": viewer_id,
        "my_hand": my_hand,
        "playable_cards": playable,
        "trick_number": state.trick_number,
        "total_tricks": state.total_tricks,
    }


def game_over_view(state: RoomState) -> Dict[str, Any]:
    """Final standings, lowest cumulative score first."""
    standings = sorted(state.players, key=lambda p: p.score)
    final_scores = [
        {
            "id": p.id,
            "name": p.name,
            "score": p.score,
            "connected": p.connected,
        }
        for p in standings
    ]
    return {
        "winner": final_scores[0] if final_scores else None,
        "final_scores": final_scores,
    }


def serialize_room(state: RoomState) -> Dict[str, Any]:
    """Full room state including hands, for snapshots only."""
    return asdict(state)


def room_from_dict(data: Dict[str, Any]) -> RoomState:
    """Rebuild a RoomState from serialize_room output."""
    players: List[Player] = [
        Player(**{**p, "tricks_taken": [list(t) for t in p.get("tricks_taken", [])]})
        for p in data.get("players", [])
    ]
    fields = {k: v for k, v in data.items() if k not in ("players", "current_trick", "round_info")}
    return RoomState(
        **fields,
        round_info=RoundInfo(**data["round_info"]),
        players=players,
        current_trick=[TrickCard(**tc) for tc in data.get("current_trick", [])],
    )
