import pytest

from salad_engine.constants import STATUS_PLAYING
from salad_engine.engine import SaladEngine
from salad_engine.models import Player, RoomState
from salad_engine.validate import get_valid_cards


def seat_players(engine, count):
    """Create a room and fill it to count players; returns the room."""
    room = engine.create_room("conn0", "Alice")
    names = ["Bob", "Charlie", "Dana"]
    for i in range(1, count):
        result = engine.join_room(room.id, f"conn{i}", names[i - 1])
        assert result.success
    return room


def play_round(engine, room):
    """Play the current round to its end, each seat playing its first legal card."""
    while room.status == STATUS_PLAYING:
        player = room.active_player
        card = get_valid_cards(player.hand, room.lead_suit)[0]
        result = engine.play_card(room.id, player.id, card)
        assert result.success, result.error_message


def make_room(hands, rule_round=None):
    """A PLAYING room with hand-picked hands; seat i gets player id p<i>."""
    players = [
        Player(id=f"p{i}", name=f"Player {i}", connection_id=f"c{i}", hand=list(hand), hand_count=len(hand))
        for i, hand in enumerate(hands)
    ]
    room = RoomState(
        id="TEST",
        status=STATUS_PLAYING,
        players=players,
        host_id="p0",
        active_player_index=0,
        trick_number=1,
        total_tricks=len(hands[0]),
    )
    if rule_round is not None:
        room.round_info = rule_round
    return room


@pytest.fixture
def engine():
    return SaladEngine()


@pytest.fixture
def four_player_room(engine):
    room = seat_players(engine, 4)
    result = engine.start_game(room.id, seed=42)
    assert result.success
    return room


@pytest.fixture
def three_player_room(engine):
    room = seat_players(engine, 3)
    result = engine.start_game(room.id, seed=7)
    assert result.success
    return room
