"""
Tests for the live match session (campo_match.session, clock, record).

Usage:
    pytest test_session.py -v
"""

import json

import pytest

from campo_match import (
    POSSESSION_LABEL,
    ActionKind,
    ActionNotFoundError,
    ChangeType,
    InvalidSelectionError,
    InvalidTeamReferenceError,
    MatchClock,
    MatchSession,
    load_match_record,
    save_match_record,
)
from campo_match.models import is_selected
from campo_zone import CENTRE_ZONE, Zone


def test_initial_state(session):
    assert session.current_time == 0
    assert not session.is_playing
    assert session.current_possession is None
    assert session.last_zone == CENTRE_ZONE
    assert session.formatted_time == "00:00"
    assert len(session.ledger) == 0


def test_play_pause_and_clock_tick(session):
    clock = MatchClock(session)
    assert clock.tick() is False
    assert session.current_time == 0

    assert session.toggle_play_pause() is True
    assert clock.tick() is True
    assert clock.tick() is True
    assert session.current_time == 2

    assert session.toggle_play_pause() is False
    assert clock.tick() is False
    assert session.current_time == 2


def test_timer_update_and_reset(session):
    session.record_action("Passe", "fla", Zone(2, 2))
    session.update_timer(125)
    assert session.formatted_time == "02:05"
    with pytest.raises(ValueError):
        session.update_timer(-1)

    session.toggle_play_pause()
    session.reset_timer()
    assert session.current_time == 0
    assert session.is_playing
    assert len(session.ledger) == 1


def test_change_possession_records_entry(session):
    session.update_timer(30)
    action = session.change_possession("flu", Zone(3, 1))

    assert session.current_possession == "flu"
    assert action.kind == ActionKind.POSSESSION
    assert action.display_label == POSSESSION_LABEL
    assert action.timestamp == 30
    assert session.last_zone == Zone(3, 1)


def test_possession_defaults_to_last_zone(session):
    session.record_action("Chute", "fla", Zone(0, 4), player_ids=["fla_9"])
    action = session.change_possession("flu")
    assert action.zone == Zone(0, 4)


def test_possession_rejects_unknown_team(session):
    with pytest.raises(InvalidTeamReferenceError):
        session.change_possession("vasco")
    assert session.current_possession is None
    assert len(session.ledger) == 0


def test_record_action_players(session):
    action = session.record_action("Chute", "fla", [1, 4], player_ids=["fla_9"], timestamp=77)
    assert action.player_id == "fla_9"
    assert action.other_player_ids == ()
    assert action.timestamp == 77
    assert session.player_label("fla", action.player_id) == "9 - Pedro"
    assert session.player_label("fla", None) == "N/A"
    assert session.player_label("fla", "flu_7") == "N/A"


def test_substitution_needs_two_players(session):
    with pytest.raises(InvalidSelectionError):
        session.record_action("Substituição", "fla", Zone(2, 2), player_ids=["fla_9"])
    with pytest.raises(InvalidSelectionError):
        session.record_action("Substituição", "fla", Zone(2, 2), player_ids=["fla_9", "fla_9"])

    action = session.record_action("Substituição", "fla", Zone(2, 2),
                                   player_ids=["fla_9", "fla_20"])
    assert action.player_ids == ("fla_9", "fla_20")


def test_single_player_actions_reject_two(session):
    with pytest.raises(InvalidSelectionError):
        session.record_action("Chute", "fla", Zone(2, 2), player_ids=["fla_9", "fla_10"])
    assert len(session.ledger) == 0


def test_update_and_remove(session):
    action = session.record_action("Falta", "flu", Zone(1, 1))
    updated = session.update_action(action.id, {'zone': Zone(1, 2)})
    assert updated.zone == Zone(1, 2)

    session.remove_action(action.id)
    with pytest.raises(ActionNotFoundError):
        session.remove_action(action.id)
    with pytest.raises(KeyError):
        session.update_action(action.id, {'timestamp': 1})


def test_heat_grid_and_display_filter(session):
    session.change_possession("fla", Zone(2, 2))
    session.record_action("Chute", "fla", Zone(0, 4))
    session.record_action("Chute", "flu", Zone(0, 4))
    session.record_action("Falta", "flu", Zone(3, 3))

    assert session.heat_grid().total == 4

    session.set_display_filter(["Chute"])
    grid = session.heat_grid()
    assert grid.total == 2
    assert grid.at(Zone(0, 4)).total == 2
    assert grid.max_total == 2

    assert session.heat_grid([POSSESSION_LABEL]).total == 1

    session.set_display_filter(None)
    assert session.heat_grid().total == 4


def test_recent_actions_and_summary(session):
    first = session.record_action("Passe", "fla", Zone(0, 0), timestamp=10)
    second = session.record_action("Passe", "flu", Zone(0, 0), timestamp=50)
    assert session.recent_actions(limit=1) == (second,)
    assert session.actions()[0] == first
    assert session.team_summary() == {"fla": 1, "flu": 1}

    rows = session.zone_detail([0, 0])
    assert [r.team_label for r in rows] == ["Flamengo", "Fluminense"]


def test_listeners_receive_changes(session):
    changes = []
    unsubscribe = session.subscribe(changes.append)

    action = session.record_action("Passe", "fla", Zone(0, 0))
    session.remove_action(action.id)
    session.toggle_play_pause()

    assert [c.change_type for c in changes] == [
        ChangeType.ACTION_CREATED,
        ChangeType.ACTION_REMOVED,
        ChangeType.CLOCK,
    ]
    assert changes[0].affects_heat_map
    assert not changes[2].affects_heat_map

    unsubscribe()
    session.record_action("Passe", "fla", Zone(0, 0))
    assert len(changes) == 3


def test_record_round_trip(session, tmp_path):
    session.update_timer(300)
    session.change_possession("fla", Zone(2, 1))
    session.record_action("Substituição", "flu", Zone(4, 4), player_ids=["flu_7", "flu_17"])

    path = save_match_record(tmp_path / "records" / "match.json", session)
    restored = load_match_record(path)

    assert restored.match_id == session.match_id
    assert restored.current_time == 300
    assert not restored.is_playing
    assert restored.snapshot() == session.snapshot()
    assert restored.heat_grid() == session.heat_grid()

    # ids stay reserved after restore
    fresh = restored.record_action("Passe", "fla", Zone(0, 0))
    assert fresh.id not in {a.id for a in session.snapshot()}


def test_load_record_errors(tmp_path):
    with pytest.raises(FileNotFoundError):
        load_match_record(tmp_path / "missing.json")

    bad = tmp_path / "bad.json"
    bad.write_text("{not json")
    with pytest.raises(ValueError):
        load_match_record(bad)

    future = tmp_path / "future.json"
    future.write_text(json.dumps({'schema_version': "2.0", 'match_id': "x"}))
    with pytest.raises(ValueError):
        load_match_record(future)


def test_session_requires_distinct_teams(team_a):
    with pytest.raises(ValueError):
        MatchSession("same", team_a, team_a)


def test_filter_predicate_comes_from_models(session):
    import campo_match.session as session_module

    assert session_module.is_selected is is_selected
    assert not hasattr(session_module, "HeatMapExportJob")

    possession = session.change_possession("fla", Zone(2, 2))
    shot = session.record_action("Chute", "fla", Zone(0, 4))
    assert is_selected(possession, {POSSESSION_LABEL})
    assert not is_selected(shot, {POSSESSION_LABEL})
    assert is_selected(shot, {"Chute"})
