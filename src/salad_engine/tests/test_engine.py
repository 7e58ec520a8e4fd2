"""
Room registry tests: lobby, dealing, rounds, connections and housekeeping.
"""

import time

from salad_engine.constants import (
    ERROR_GAME_ALREADY_STARTED, ERROR_NOT_HOST, ERROR_PLAYER_NOT_FOUND,
    ERROR_ROOM_FULL, ERROR_ROOM_NOT_FOUND, ERROR_ROUND_NOT_ENDED,
    ERROR_SEAT_TAKEN, ERROR_WRONG_PLAYER_COUNT,
    ROOM_CODE_ALPHABET, ROOM_EXPIRY, STATUS_FINISHED, STATUS_PLAYING,
    STATUS_ROUND_END, STATUS_WAITING,
)
from salad_engine.comparator import get_highest_card, get_suit
from salad_engine.engine import SaladEngine
from salad_engine.rounds import RULE_NO_HEARTS, RULE_NO_TRICKS, RULE_THE_SALAD
from salad_engine.rules import create_rules
from salad_engine.shuffle import validate_deck_integrity
from salad_engine.validate import get_valid_cards

from conftest import play_round, seat_players


def test_create_room(engine):
    """New rooms wait with the host in seat 0."""
    room = engine.create_room("conn0", "Alice")
    assert len(room.id) == 4
    assert all(ch in ROOM_CODE_ALPHABET for ch in room.id)
    assert room.status == STATUS_WAITING
    assert len(room.players) == 1
    assert room.players[0].name == "Alice"
    assert room.host_id == room.players[0].id
    assert engine.get_room(room.id) is room


def test_room_code_alphabet_skips_ambiguous_characters():
    for ch in "IO01":
        assert ch not in ROOM_CODE_ALPHABET


def test_room_code_regenerated_on_collision(engine, monkeypatch):
    taken = engine.create_room("conn0", "Alice")
    codes = iter(taken.id + "ZZZZ")
    monkeypatch.setattr("salad_engine.engine.secrets.choice", lambda alphabet: next(codes))
    room = engine.create_room("conn1", "Bob")
    assert room.id == "ZZZZ"
    assert engine.get_room(taken.id) is taken


def test_join_room(engine):
    room = engine.create_room("conn0", "Alice")
    result = engine.join_room(room.id, "conn1", "Bob")
    assert result.success
    assert result.state is room
    assert [p.name for p in room.players] == ["Alice", "Bob"]
    assert room.players[1].connection_id == "conn1"


def test_join_room_code_is_case_insensitive(engine):
    room = engine.create_room("conn0", "Alice")
    result = engine.join_room(room.id.lower(), "conn1", "Bob")
    assert result.success
    assert engine.get_room(room.id.lower()) is room


def test_join_unknown_room(engine):
    result = engine.join_room("QQQQ", "conn1", "Bob")
    assert not result.success
    assert result.state is None
    assert result.error_code == ERROR_ROOM_NOT_FOUND


def test_join_is_idempotent_for_same_connection(engine):
    room = engine.create_room("conn0", "Alice")
    engine.join_room(room.id, "conn1", "Bob")
    result = engine.join_room(room.id, "conn1", "Bob")
    assert result.success
    assert len(room.players) == 2


def test_room_full(engine):
    room = seat_players(engine, 4)
    result = engine.join_room(room.id, "conn9", "Eve")
    assert not result.success
    assert result.error_code == ERROR_ROOM_FULL
    assert len(room.players) == 4


def test_join_after_start(engine, three_player_room):
    result = engine.join_room(three_player_room.id, "conn9", "Eve")
    assert not result.success
    assert result.error_code == ERROR_GAME_ALREADY_STARTED


def test_start_game_four_players(engine, four_player_room):
    room = four_player_room
    assert room.status == STATUS_PLAYING
    assert room.round_info.rule_name == RULE_NO_TRICKS
    assert room.active_player_index == 0
    assert room.trick_number == 1
    assert room.total_tricks == 13
    assert room.lead_suit is None
    assert room.current_trick == []
    for player in room.players:
        assert len(player.hand) == 13
        assert player.hand_count == 13
        assert player.score == 0
        assert player.round_score == 0
        assert player.tricks_taken == []
    assert validate_deck_integrity(room)


def test_start_game_three_players(three_player_room):
    assert three_player_room.total_tricks == 17
    assert all(len(p.hand) == 17 for p in three_player_room.players)
    assert validate_deck_integrity(three_player_room)


def test_start_game_needs_three_players(engine):
    room = seat_players(engine, 2)
    result = engine.start_game(room.id)
    assert not result.success
    assert result.error_code == ERROR_WRONG_PLAYER_COUNT
    assert room.status == STATUS_WAITING


def test_start_game_host_only(engine):
    room = seat_players(engine, 3)
    result = engine.start_game(room.id, requested_by=room.players[1].id)
    assert not result.success
    assert result.error_code == ERROR_NOT_HOST
    assert engine.start_game(room.id, requested_by=room.host_id).success


def test_start_game_twice(engine, three_player_room):
    result = engine.start_game(three_player_room.id)
    assert not result.success
    assert result.error_code == ERROR_GAME_ALREADY_STARTED


def test_start_unknown_room(engine):
    assert engine.start_game("QQQQ").error_code == ERROR_ROOM_NOT_FOUND


def test_advance_round_before_round_end(engine, four_player_room):
    result = engine.advance_round(four_player_room.id)
    assert not result.success
    assert result.error_code == ERROR_ROUND_NOT_ENDED
    assert four_player_room.round_info.round_number == 1


def test_advance_round_keeps_cumulative_score(engine, four_player_room):
    room = four_player_room
    play_round(engine, room)
    assert room.status == STATUS_ROUND_END
    scores = [p.score for p in room.players]
    assert sum(scores) == 10 * 52

    result = engine.advance_round(room.id, seed=3)
    assert result.success
    assert room.status == STATUS_PLAYING
    assert room.round_info.rule_name == RULE_NO_HEARTS
    assert [p.score for p in room.players] == scores
    assert all(p.round_score == 0 and p.tricks_taken == [] for p in room.players)
    assert all(len(p.hand) == 13 for p in room.players)
    assert room.trick_number == 1
    assert room.active_player_index == 0


def test_full_game_four_players(engine, four_player_room):
    """Six rounds, monotone scores, then FINISHED without a new deal."""
    room = four_player_room
    previous = [0] * 4
    for round_number in range(1, 7):
        assert room.round_info.round_number == round_number
        play_round(engine, room)
        assert room.status == STATUS_ROUND_END
        assert sum(len(p.tricks_taken) for p in room.players) == 13
        assert room.active_player_index is None
        scores = [p.score for p in room.players]
        assert all(now >= before for now, before in zip(scores, previous))
        previous = scores
        assert engine.advance_round(room.id).success

    assert room.status == STATUS_FINISHED
    assert room.round_info.rule_name == RULE_THE_SALAD
    assert all(p.hand == [] for p in room.players)
    assert [p.score for p in room.players] == previous

    # Finished games stay finished
    assert not engine.advance_round(room.id).success


def test_full_round_three_players(engine, three_player_room):
    room = three_player_room
    play_round(engine, room)
    assert sum(len(p.tricks_taken) for p in room.players) == 17
    assert sum(p.score for p in room.players) == 10 * 51


def test_full_game_three_players(engine, three_player_room):
    """Six 17-trick rounds with the two of diamonds out of the deck."""
    room = three_player_room
    round_totals = []
    previous = 0
    for round_number in range(1, 7):
        assert room.round_info.round_number == round_number
        assert all(len(p.hand) == 17 for p in room.players)
        play_round(engine, room)
        assert room.status == STATUS_ROUND_END
        assert sum(len(p.tricks_taken) for p in room.players) == 17
        total = sum(p.score for p in room.players)
        round_totals.append(total - previous)
        previous = total
        assert engine.advance_round(room.id).success

    assert room.status == STATUS_FINISHED
    assert round_totals == [510, 130, 100, 100, 100, 510 + 130 + 100 + 100 + 100]


def test_connection_changed(engine, four_player_room):
    player = four_player_room.players[2]
    before = player.last_seen
    changed = engine.connection_changed(four_player_room.id, player.id, False)
    assert changed is player
    assert not player.connected
    assert player.last_seen >= before
    assert len(four_player_room.players) == 4
    assert engine.connection_changed(four_player_room.id, "nobody", False) is None
    assert engine.connection_changed("QQQQ", player.id, False) is None


def test_reconnect_keeps_seat_and_turn(engine, four_player_room):
    room = four_player_room
    active = room.active_player
    hand = list(active.hand)
    engine.connection_changed(room.id, active.id, False)

    result = engine.reconnect(room.id, active.id, "fresh-conn", active.reconnect_token)
    assert result.success
    assert result.state is room
    assert active.connection_id == "fresh-conn"
    assert active.connected
    assert active.hand == hand
    assert room.active_player is active


def test_reconnect_by_old_connection_id(engine, four_player_room):
    player = four_player_room.players[1]
    old = player.connection_id
    engine.connection_changed(four_player_room.id, player.id, False)
    assert engine.reconnect(four_player_room.id, old, "new-conn", player.reconnect_token).success
    assert player.connection_id == "new-conn"
    assert four_player_room.find_by_connection(old) is None


def test_reconnect_unknown(engine, four_player_room):
    result = engine.reconnect(four_player_room.id, "nobody", "x", "token")
    assert result.error_code == ERROR_PLAYER_NOT_FOUND
    assert engine.reconnect("QQQQ", "nobody", "x", "token").error_code == ERROR_ROOM_NOT_FOUND


def test_reconnect_requires_matching_token(engine, four_player_room):
    player = four_player_room.players[2]
    engine.connection_changed(four_player_room.id, player.id, False)
    for token in (None, "", "guess", four_player_room.players[1].reconnect_token):
        result = engine.reconnect(four_player_room.id, player.id, "intruder", token)
        assert result.error_code == ERROR_PLAYER_NOT_FOUND
    assert player.connection_id == "conn2"
    assert not player.connected


def test_reconnect_refuses_connected_seat(engine, four_player_room):
    player = four_player_room.players[2]
    result = engine.reconnect(four_player_room.id, player.id, "intruder", player.reconnect_token)
    assert result.error_code == ERROR_SEAT_TAKEN
    assert player.connection_id == "conn2"


def test_reconnect_tokens_are_distinct(four_player_room):
    tokens = {p.reconnect_token for p in four_player_room.players}
    assert len(tokens) == 4
    assert all(len(token) >= 16 for token in tokens)


def test_expire_disconnected_respects_grace_period(engine, four_player_room):
    room = four_player_room
    player = room.players[3]
    engine.connection_changed(room.id, player.id, False)
    assert engine.expire_disconnected(room.id) == []

    later = time.time() + engine.rules.disconnect_grace + 1
    assert engine.expire_disconnected(room.id, now=later) == [player.id]
    assert len(room.players) == 3
    assert room.status == STATUS_PLAYING


def test_expire_disconnected_finishes_short_game(engine, three_player_room):
    room = three_player_room
    player = room.players[1]
    engine.connection_changed(room.id, player.id, False)
    player.last_seen = time.time() - engine.rules.disconnect_grace - 10

    assert engine.expire_disconnected(room.id) == [player.id]
    assert room.status == STATUS_FINISHED
    assert room.get_player(player.id) is None


def test_expire_disconnected_moves_host(engine):
    room = seat_players(engine, 3)
    host = room.players[0]
    engine.connection_changed(room.id, host.id, False)
    host.last_seen = 0
    assert engine.expire_disconnected(room.id) == [host.id]
    assert room.host_id == room.players[0].id
    assert room.status == STATUS_WAITING


def test_expire_keeps_turn_with_active_player(engine, four_player_room):
    room = four_player_room
    room.active_player_index = 2
    active = room.active_player
    leaving = room.players[0]
    engine.connection_changed(room.id, leaving.id, False)
    leaving.last_seen = 0
    engine.expire_disconnected(room.id)
    assert room.active_player is active


def expire(engine, room, player):
    engine.connection_changed(room.id, player.id, False)
    player.last_seen = 0
    return engine.expire_disconnected(room.id)


def assert_no_duplicate_cards(room):
    cards = [card for p in room.players for card in p.hand]
    cards += [card for p in room.players for trick in p.tricks_taken for card in trick]
    cards += [tc.card for tc in room.current_trick]
    assert len(cards) == len(set(cards))


def test_expire_leader_mid_trick(engine, four_player_room):
    """The trick is called off; the next seat leads and survivors get their cards back."""
    room = four_player_room
    leader, follower = room.players[0], room.players[1]
    lead_card = get_highest_card(leader.hand, get_suit(leader.hand[0]))
    assert engine.play_card(room.id, leader.id, lead_card).success
    follow_card = get_valid_cards(follower.hand, room.lead_suit)[0]
    assert engine.play_card(room.id, follower.id, follow_card).success

    assert expire(engine, room, leader) == [leader.id]
    assert room.status == STATUS_PLAYING
    assert room.current_trick == []
    assert room.lead_suit is None
    assert follow_card in follower.hand
    assert all(p.hand_count == len(p.hand) == 13 for p in room.players)
    assert room.active_player is follower
    assert room.trick_number == 1
    assert_no_duplicate_cards(room)

    play_round(engine, room)
    assert room.status == STATUS_ROUND_END
    assert sum(len(p.tricks_taken) for p in room.players) == 13
    assert sum(p.score for p in room.players) == 10 * 39


def test_expire_active_player_mid_trick(engine, four_player_room):
    room = four_player_room
    leader, second, third = room.players[0], room.players[1], room.players[2]
    lead_card = leader.hand[0]
    assert engine.play_card(room.id, leader.id, lead_card).success
    second_card = get_valid_cards(second.hand, room.lead_suit)[0]
    assert engine.play_card(room.id, second.id, second_card).success
    assert room.active_player is third

    assert expire(engine, room, third) == [third.id]
    assert room.current_trick == []
    assert lead_card in leader.hand and second_card in second.hand
    assert room.active_player is leader
    assert_no_duplicate_cards(room)

    # Play resumes normally with the three remaining seats
    assert engine.play_card(room.id, leader.id, lead_card).success
    assert room.active_player is second
    play_round(engine, room)
    assert room.status == STATUS_ROUND_END


def test_expire_mid_trick_finishing_game_clears_trick(engine, three_player_room):
    room = three_player_room
    leader = room.players[0]
    assert engine.play_card(room.id, leader.id, leader.hand[0]).success

    leaving = room.players[1]
    assert expire(engine, room, leaving) == [leaving.id]
    assert room.status == STATUS_FINISHED
    assert room.current_trick == []
    assert room.active_player_index is None


def test_sweep_expired_rooms(engine):
    stale = engine.create_room("conn0", "Alice")
    fresh = engine.create_room("conn1", "Bob")
    stale.last_activity = time.time() - ROOM_EXPIRY - 1

    assert engine.sweep_expired_rooms() == [stale.id]
    assert engine.get_room(stale.id) is None
    assert engine.get_room(fresh.id) is fresh
    assert engine.room_count() == 1


def test_sweep_ignores_status(engine, four_player_room):
    four_player_room.last_activity = 0
    assert engine.sweep_expired_rooms() == [four_player_room.id]


def test_delete_room(engine):
    room = engine.create_room("conn0", "Alice")
    assert engine.delete_room(room.id)
    assert engine.get_room(room.id) is None
    assert not engine.delete_room(room.id)


def test_custom_rules():
    engine = SaladEngine(create_rules(room_code_length=6, disconnect_grace=0))
    room = engine.create_room("conn0", "Alice")
    assert len(room.id) == 6


def test_restore_rooms_skips_live_codes(engine):
    live = engine.create_room("conn0", "Alice")
    other = SaladEngine().create_room("x", "Zed")
    clash = SaladEngine().create_room("y", "Yan")
    clash.id = live.id

    assert engine.restore_rooms([other, clash]) == 1
    assert engine.get_room(live.id) is live
    assert engine.get_room(other.id) is other


def test_deleted_room_code_keeps_its_lock(engine):
    room = engine.create_room("conn0", "Alice")
    lock = engine.room_locks[room.id]
    assert engine.delete_room(room.id)
    assert engine.room_locks[room.id] is lock
