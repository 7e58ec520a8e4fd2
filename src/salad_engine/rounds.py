"""
The six fixed rounds and their penalty scoring.

Each round is scored by a pure function of (trick cards, is last trick). The
Salad is not an independent rule: it is the sum of the other five applied to
the same trick.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Tuple

from .constants import (
    ERROR_UNKNOWN_RULE, HEARTS, KING_OF_SPADES, QUEEN, TOTAL_ROUNDS,
)
from .errors import raise_error

RULE_NO_TRICKS = 'No Tricks'
RULE_NO_HEARTS = 'No Hearts'
RULE_NO_QUEENS = 'No Queens'
RULE_NO_KING_OF_SPADES = 'No King of Spades'
RULE_LAST_TRICK = 'Last Trick'
RULE_THE_SALAD = 'The Salad'

POINTS_PER_CARD = 10
POINTS_PER_HEART = 10
POINTS_PER_QUEEN = 25
POINTS_KING_OF_SPADES = 100
POINTS_LAST_TRICK = 100


@dataclass(frozen=True)
class RoundInfo:
    round_number: int
    rule_name: str
    description: str


def score_no_tricks(cards: List[str], is_last_trick: bool) -> int:
    return POINTS_PER_CARD * len(cards)


def score_no_hearts(cards: List[str], is_last_trick: bool) -> int:
    return POINTS_PER_HEART * sum(1 for card in cards if card[0] == HEARTS)


def score_no_queens(cards: List[str], is_last_trick: bool) -> int:
    return POINTS_PER_QUEEN * sum(1 for card in cards if card[1:] == QUEEN)


def score_no_king_of_spades(cards: List[str], is_last_trick: bool) -> int:
    return POINTS_KING_OF_SPADES if KING_OF_SPADES in cards else 0


def score_last_trick(cards: List[str], is_last_trick: bool) -> int:
    return POINTS_LAST_TRICK if is_last_trick else 0


BASE_SCORERS: Tuple[Callable[[List[str], bool], int], ...] = (
    score_no_tricks,
    score_no_hearts,
    score_no_queens,
    score_no_king_of_spades,
    score_last_trick,
)


def score_the_salad(cards: List[str], is_last_trick: bool) -> int:
    return sum(scorer(cards, is_last_trick) for scorer in BASE_SCORERS)


SCORERS: Dict[str, Callable[[List[str], bool], int]] = {
    RULE_NO_TRICKS: score_no_tricks,
    RULE_NO_HEARTS: score_no_hearts,
    RULE_NO_QUEENS: score_no_queens,
    RULE_NO_KING_OF_SPADES: score_no_king_of_spades,
    RULE_LAST_TRICK: score_last_trick,
    RULE_THE_SALAD: score_the_salad,
}

ROUNDS: List[RoundInfo] = [
    RoundInfo(1, RULE_NO_TRICKS, '10 points per card in every trick taken'),
    RoundInfo(2, RULE_NO_HEARTS, '10 points per Heart taken'),
    RoundInfo(3, RULE_NO_QUEENS, '25 points per Queen taken'),
    RoundInfo(4, RULE_NO_KING_OF_SPADES, '100 points for taking the King of Spades'),
    RoundInfo(5, RULE_LAST_TRICK, '100 points for taking the last trick'),
    RoundInfo(6, RULE_THE_SALAD, 'All previous rules combined!'),
]


def get_round(round_number: int) -> RoundInfo:
    """Round descriptor for round 1..6."""
    if not 1 <= round_number <= TOTAL_ROUNDS:
        raise ValueError(f"Round number must be between 1 and {TOTAL_ROUNDS}, got {round_number}")
    return ROUNDS[round_number - 1]


def is_game_over(round_number: int) -> bool:
    return round_number > TOTAL_ROUNDS


def score_trick(cards: List[str], rule_name: str, is_last_trick: bool) -> int:
    """
    Penalty points awarded to the winner of a trick.

    Args:
        cards: Every card captured in the trick
        rule_name: Rule of the round being played
        is_last_trick: Whether this is the final trick of the round

    Returns:
        Non-negative penalty score
    """
    scorer = SCORERS.get(rule_name)
    if scorer is None:
        raise_error(ERROR_UNKNOWN_RULE, f"Unknown round rule: {rule_name}")
    return scorer(cards, is_last_trick)
