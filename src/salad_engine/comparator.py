"""
Card parsing and rank comparison logic.
"""

import logging
from typing import List, Optional, Sequence, Tuple

from .constants import ERROR_INVALID_CARD, RANK_VALUES, SUITS
from .errors import raise_error
from .models import TrickCard

logger = logging.getLogger(__name__)


def parse_card(card_id: str) -> Tuple[str, str]:
    """
    Split a card id into suit and rank.

    Args:
        card_id: Card id such as "H2", "SK" or "D10"

    Returns:
        Tuple of (suit, rank)

    Raises:
        GameError: If the card id is not one of the 52 standard cards
    """
    if not isinstance(card_id, str) or len(card_id) < 2:
        raise_error(ERROR_INVALID_CARD, f"Invalid card: {card_id!r}")
    suit, rank = card_id[0], card_id[1:]
    if suit not in SUITS or rank not in RANK_VALUES:
        raise_error(ERROR_INVALID_CARD, f"Invalid card: {card_id!r}")
    return suit, rank


def is_valid_card(card_id: str) -> bool:
    return isinstance(card_id, str) and len(card_id) >= 2 and card_id[0] in SUITS and card_id[1:] in RANK_VALUES


def get_suit(card_id: str) -> str:
    return parse_card(card_id)[0]


def get_rank_value(card_id: str) -> int:
    """Numeric rank of a card: 2..10, J=11, Q=12, K=13, A=14."""
    return RANK_VALUES[parse_card(card_id)[1]]


def get_highest_card(cards: List[str], suit: str) -> Optional[str]:
    """Highest card of the given suit, or None if no card matches."""
    matching = [card for card in cards if get_suit(card) == suit]
    if not matching:
        return None
    return max(matching, key=get_rank_value)


def get_trick_winner(trick: Sequence[TrickCard], lead_suit: str) -> int:
    """
    Index of the winning entry in a completed trick.

    Only cards of the lead suit can win; the highest rank among them takes the
    trick. A trick without any lead-suit card cannot arise from a legal deal,
    so it falls back to the first entry.
    """
    winner_index = None
    highest_value = -1

    for index, trick_card in enumerate(trick):
        suit, rank = parse_card(trick_card.card)
        if suit == lead_suit and RANK_VALUES[rank] > highest_value:
            highest_value = RANK_VALUES[rank]
            winner_index = index

    if winner_index is None:
        logger.warning(f"No card of lead suit {lead_suit} in trick {[tc.card for tc in trick]}, defaulting to first card")
        return 0
    return winner_index
