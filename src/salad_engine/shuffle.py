"""
Card shuffling and dealing utilities.
"""

import random
from typing import List, Optional

from .comparator import parse_card
from .constants import (
    MAX_PLAYERS, MIN_PLAYERS, RANK_VALUES, RANKS, SUIT_ORDER, SUITS,
    THREE_PLAYER_DISCARD,
)
from .models import RoomState


def create_deck() -> List[str]:
    """Create a standard 52-card deck."""
    deck = []
    for suit in SUITS:
        for rank in RANKS:
            deck.append(f"{suit}{rank}")
    return deck


def shuffle_deck(deck: List[str], seed: Optional[int] = None) -> List[str]:
    """
    Shuffle a deck deterministically if seed is provided.

    Args:
        deck: List of card IDs to shuffle
        seed: Optional seed for deterministic shuffling

    Returns:
        Shuffled copy of the deck
    """
    deck_copy = deck.copy()

    if seed is not None:
        rng = random.Random(seed)
        rng.shuffle(deck_copy)
    else:
        random.shuffle(deck_copy)

    return deck_copy


def build_deck_for(player_count: int) -> List[str]:
    """The unshuffled deck for a table size; three players play without the two of diamonds."""
    deck = create_deck()
    if player_count == 3:
        deck.remove(THREE_PLAYER_DISCARD)
    return deck


def deal_cards(player_count: int, seed: Optional[int] = None) -> List[List[str]]:
    """
    Shuffle a fresh deck and split it into equal contiguous hands.

    Args:
        player_count: Number of seats at the table (3 or 4)
        seed: Optional seed for deterministic shuffling

    Returns:
        One hand per seat, in seat order
    """
    if not MIN_PLAYERS <= player_count <= MAX_PLAYERS:
        raise ValueError(f"Unsupported player count: {player_count}")

    deck = shuffle_deck(build_deck_for(player_count), seed)
    cards_per_player = len(deck) // player_count

    return [
        deck[i * cards_per_player:(i + 1) * cards_per_player]
        for i in range(player_count)
    ]


def sort_hand(hand: List[str]) -> List[str]:
    """Sort a hand for display: clubs, diamonds, hearts, spades, then rank ascending."""
    def sort_key(card_id: str):
        suit, rank = parse_card(card_id)
        return SUIT_ORDER[suit], RANK_VALUES[rank]

    return sorted(hand, key=sort_key)


def validate_deck_integrity(state: RoomState) -> bool:
    """
    Check that no card was lost or duplicated during the current round.

    Cards still held plus cards captured in completed tricks plus the trick in
    progress must be exactly the deck dealt for this table size.
    """
    all_cards = []
    for player in state.players:
        all_cards.extend(player.hand)
        for trick in player.tricks_taken:
            all_cards.extend(trick)
    all_cards.extend(trick_card.card for trick_card in state.current_trick)

    if len(all_cards) != len(set(all_cards)):
        return False

    return sorted(all_cards) == sorted(build_deck_for(len(state.players)))
