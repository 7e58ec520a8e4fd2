"""
Play validation for tricks.
"""

from typing import List, Optional

from .comparator import get_suit
from .constants import (
    ERROR_CARD_NOT_HELD, ERROR_GAME_NOT_IN_PROGRESS, ERROR_MUST_FOLLOW_SUIT,
    ERROR_NOT_YOUR_TURN, ERROR_PLAYER_NOT_FOUND, STATUS_PLAYING,
)
from .errors import ActionResult
from .models import Player, RoomState


def has_suit(hand: List[str], suit: str) -> bool:
    return any(get_suit(card) == suit for card in hand)


def can_play_card(card_id: str, hand: List[str], lead_suit: Optional[str]) -> bool:
    """
    Follow suit if able.

    A card is playable when it is held and either no suit has been led yet, it
    matches the lead suit, or the hand holds no card of the lead suit.
    """
    if card_id not in hand:
        return False
    if lead_suit is None:
        return True
    if get_suit(card_id) == lead_suit:
        return True
    return not has_suit(hand, lead_suit)


def get_valid_cards(hand: List[str], lead_suit: Optional[str]) -> List[str]:
    """Subset of the hand that may be played; a display hint only."""
    if lead_suit is None:
        return list(hand)

    cards_of_lead_suit = [card for card in hand if get_suit(card) == lead_suit]
    if cards_of_lead_suit:
        return cards_of_lead_suit

    return list(hand)


def validate_play(state: RoomState, player_id: str, card_id: str) -> ActionResult:
    """
    Validate a card play attempt.

    Args:
        state: Current room state
        player_id: ID of player attempting the play
        card_id: Card being played

    Returns:
        ActionResult carrying the acting Player on success
    """
    if state.status != STATUS_PLAYING:
        return ActionResult.error(
            ERROR_GAME_NOT_IN_PROGRESS,
            f"Game is not in progress (current: {state.status})"
        )

    player: Optional[Player] = state.get_player(player_id)
    if player is None:
        return ActionResult.error(ERROR_PLAYER_NOT_FOUND, "Player not found")

    if state.active_player is None or state.active_player.id != player_id:
        return ActionResult.error(ERROR_NOT_YOUR_TURN, "Not your turn")

    if card_id not in player.hand:
        return ActionResult.error(ERROR_CARD_NOT_HELD, "You do not have that card")

    if not can_play_card(card_id, player.hand, state.lead_suit):
        return ActionResult.error(ERROR_MUST_FOLLOW_SUIT, "You must follow suit")

    return ActionResult.ok(player)
