"""
Tests for the control plane and the match session service.

The broker is never contacted: the service is driven through a fake control
plane that records published statuses, and MQTTControlPlane._on_message is
fed hand-built messages.

Usage:
    pytest test_control.py -v
"""

import json
import threading
from types import SimpleNamespace

import pytest

from campo_control import (
    CommandNotAvailableError,
    CommandRegistry,
    InvalidCommandPayload,
    MQTTControlPlane,
    decode_command,
)
from campo_match import MatchConfig, MatchSession
from campo_match.service import MatchSessionService


class FakeControlPlane:
    """Records statuses instead of publishing them."""

    def __init__(self):
        self.command_registry = CommandRegistry()
        self.statuses = []
        self.status_event = threading.Condition()

    def connect(self, timeout=5.0):
        return True

    def disconnect(self):
        pass

    def publish_status(self, status, data=None):
        with self.status_event:
            self.statuses.append((status, data))
            self.status_event.notify_all()

    def send(self, command, **payload):
        return self.command_registry.execute(command, {'command': command, **payload})

    def last(self):
        return self.statuses[-1]

    def wait_for(self, status, timeout=10.0):
        with self.status_event:
            found = self.status_event.wait_for(
                lambda: any(s == status for s, _ in self.statuses), timeout=timeout
            )
        assert found, f"status '{status}' not published: {[s for s, _ in self.statuses]}"
        return next(d for s, d in self.statuses if s == status)


class FakeHeatMapPublisher:
    def __init__(self):
        self.messages = []

    def connect(self):
        return True

    def disconnect(self):
        pass

    def publish_heat_map(self, message):
        self.messages.append(message)
        return True


class FakeActionEventPublisher:
    def __init__(self):
        self.messages = []

    def connect(self):
        return True

    def disconnect(self):
        pass

    def publish_action_event(self, message):
        self.messages.append(message)
        return True


@pytest.fixture
def config(tmp_path, team_a, team_b):
    return MatchConfig.from_dict({
        'match_id': "fla_flu",
        'team_a': {**team_a.to_dict()},
        'team_b': {**team_b.to_dict()},
        'export': {'output_dir': str(tmp_path / "exports"), 'scale': 1},
        'record_path': str(tmp_path / "records" / "fla_flu.json"),
    })


@pytest.fixture
def service(config):
    team_a, team_b = config.teams()
    session = MatchSession(config.match_id, team_a, team_b,
                           action_types=config.resolved_action_types())
    service = MatchSessionService(
        config=config,
        session=session,
        control_plane=FakeControlPlane(),
        heat_map_publisher=FakeHeatMapPublisher(),
        action_event_publisher=FakeActionEventPublisher(),
    )
    service.setup()
    return service


# ─────────────────────────────────────────────────────────────────────────────
# CommandRegistry
# ─────────────────────────────────────────────────────────────────────────────

def test_registry_register_and_execute():
    registry = CommandRegistry()
    registry.register("status", lambda data: data.get('x', 1), "Report status")

    assert registry.is_available("status")
    assert registry.execute("status", {'x': 5}) == 5
    assert registry.execute("status") == 1
    assert registry.get_help() == {"status": "Report status"}
    assert registry.count() == 1


def test_registry_rejects_duplicates_and_unknown():
    registry = CommandRegistry()
    registry.register("status", lambda data: None, "Report status")

    with pytest.raises(ValueError):
        registry.register("status", lambda data: None, "Again")
    with pytest.raises(ValueError):
        registry.register("Bad Name", lambda data: None, "Invalid")
    with pytest.raises(CommandNotAvailableError):
        registry.execute("missing")


def test_decode_command():
    assert decode_command(b'{"command": " STATUS "}') == {'command': "status"}
    for payload in (b"not json", b"[1, 2]", b'{"team_id": "fla"}', b"\xff\xfe"):
        with pytest.raises(InvalidCommandPayload):
            decode_command(payload)


def test_control_plane_dispatch(monkeypatch):
    plane = MQTTControlPlane(
        broker_host="localhost",
        broker_port=1883,
        command_topic="campo/control/test/commands",
        status_topic="campo/control/test/status",
        client_id="test_plane",
    )
    published = []
    monkeypatch.setattr(plane, "publish_status", lambda status, data=None: published.append((status, data)))

    received = []
    plane.command_registry.register("status", received.append, "Report status")

    def boom(data):
        raise RuntimeError("kaput")

    plane.command_registry.register("explode", boom, "Always fails")

    plane._on_message(None, None, SimpleNamespace(payload=json.dumps({'command': "STATUS"}).encode()))
    assert received == [{'command': "status"}]

    plane._on_message(None, None, SimpleNamespace(payload=json.dumps({'command': "fly"}).encode()))
    assert published[-1] == ("unknown_command", {'command': "fly", 'available': ["explode", "status"]})

    plane._on_message(None, None, SimpleNamespace(payload=json.dumps({'command': "explode"}).encode()))
    assert published[-1] == ("command_failed", {'command': "explode", 'error': "kaput"})

    plane._on_message(None, None, SimpleNamespace(payload=b"[1, 2]"))
    assert published[-1][0] == "invalid_command"
    assert len(received) == 1


# ─────────────────────────────────────────────────────────────────────────────
# MatchSessionService
# ─────────────────────────────────────────────────────────────────────────────

def test_service_registers_match_commands(service):
    assert service.control_plane.command_registry.available_commands == {
        "toggle_play_pause", "reset_timer", "set_possession", "record_action",
        "update_action", "remove_action", "list_actions", "get_heat_map",
        "set_display_filter", "export_heat_map", "cancel_export", "status",
    }


def test_record_action_publishes(service):
    plane = service.control_plane
    plane.send("record_action", action_name="Chute", team_id="fla", zone=[0, 4], player_ids=["fla_9"])

    status, data = plane.last()
    assert status == "action_recorded"
    assert data['action_name'] == "Chute"
    assert data['zone'] == {'row': 0, 'col': 4}

    event = service.action_event_publisher.messages[-1]
    assert event.change_type.value == "created"
    assert event.ledger_size == 1
    assert service.heat_map_publisher.messages[-1].grid.total == 1


def test_invalid_references_are_reported(service):
    plane = service.control_plane

    plane.send("record_action", action_name="Chute", team_id="vasco", zone=[0, 0])
    assert plane.last()[0] == "invalid_team"

    plane.send("record_action", action_name="Chute", team_id="fla", zone=[0, 0], player_ids=["flu_7"])
    assert plane.last()[0] == "invalid_player"

    plane.send("record_action", action_name="Substituição", team_id="fla", zone=[0, 0], player_ids=["fla_9"])
    assert plane.last()[0] == "invalid_selection"

    plane.send("record_action", team_id="fla", zone=[0, 0])
    assert plane.last()[0] == "invalid_command"

    assert len(service.session.ledger) == 0


def test_string_payloads_where_lists_expected_are_rejected(service):
    plane = service.control_plane

    plane.send("record_action", action_name="Chute", team_id="fla", zone=[0, 4], player_ids="fla_9")
    assert plane.last()[0] == "invalid_command"
    assert len(service.session.ledger) == 0

    plane.send("set_display_filter", names="Chute")
    assert plane.last()[0] == "invalid_command"
    assert service.session.display_filter is None

    plane.send("get_heat_map", selected_names="Chute")
    assert plane.last()[0] == "invalid_command"

    plane.send("export_heat_map", selected_names="Chute")
    assert plane.last()[0] == "invalid_command"


def test_remove_unknown_action_reports_not_found(service):
    plane = service.control_plane
    plane.send("record_action", action_name="Falta", team_id="flu", zone=[2, 2])
    action_id = plane.last()[1]['id']

    plane.send("remove_action", action_id=action_id)
    assert plane.last() == ("action_removed", {'action_id': action_id})

    plane.send("remove_action", action_id=action_id)
    status, data = plane.last()
    assert status == "action_not_found"
    assert action_id in data['error']


def test_update_and_list_actions(service):
    plane = service.control_plane
    service.session.update_timer(65)
    plane.send("record_action", action_name="Passe", team_id="fla", zone=[1, 1])
    action_id = plane.last()[1]['id']

    plane.send("update_action", action_id=action_id, patch={'zone': [3, 3], 'player_id': "fla_10"})
    assert plane.last()[0] == "action_updated"

    plane.send("list_actions", order="timestamp_desc", limit=5)
    status, data = plane.last()
    assert status == "actions_list"
    assert data['count'] == 1
    row = data['actions'][0]
    assert row['time'] == "01:05"
    assert row['player_label'] == "10 - Arrascaeta"
    assert row['zone'] == {'row': 3, 'col': 3}

    plane.send("list_actions", order="sideways")
    assert plane.last()[0] == "invalid_command"


def test_possession_and_clock_commands(service):
    plane = service.control_plane

    plane.send("toggle_play_pause")
    assert plane.last()[0] == "playing"

    plane.send("set_possession", team_id="flu", zone=[4, 2])
    status, data = plane.last()
    assert status == "possession_changed"
    assert data['action']['kind'] == "possession"
    assert service.session.current_possession == "flu"

    plane.send("set_possession", team_id="fla", record=False)
    assert service.session.current_possession == "fla"
    assert len(service.session.ledger) == 1

    plane.send("reset_timer")
    assert plane.last() == ("timer_reset", {'current_time': 0})

    plane.send("status")
    status, data = plane.last()
    assert status == "status"
    assert data['is_playing'] is True
    assert "export_heat_map" in data['commands']


def test_display_filter_command(service):
    plane = service.control_plane
    plane.send("record_action", action_name="Chute", team_id="fla", zone=[0, 4])
    plane.send("record_action", action_name="Falta", team_id="flu", zone=[2, 2])

    plane.send("set_display_filter", names=["Falta"])
    assert service.heat_map_publisher.messages[-1].grid.total == 1
    assert service.heat_map_publisher.messages[-1].selected_names == ["Falta"]

    plane.send("get_heat_map", selected_names=["Chute", "Falta"])
    status, data = plane.last()
    assert status == "heat_map"
    assert data['grid']['max_total'] == 1


def test_export_command_writes_png(service, config):
    plane = service.control_plane
    plane.send("record_action", action_name="Chute", team_id="fla", zone=[0, 4])

    plane.send("export_heat_map", selected_names=["Chute"])
    assert plane.last()[0] == "export_started"

    data = plane.wait_for("export_completed")
    assert data['action_count'] == 1
    assert data['path'].startswith(str(config.export.output_dir))


def test_export_with_empty_selection_is_rejected(service):
    plane = service.control_plane
    plane.send("export_heat_map", selected_names=[])
    assert plane.last()[0] == "invalid_command"


def test_cancel_without_export(service):
    service.control_plane.send("cancel_export")
    assert service.control_plane.last()[0] == "no_export_running"


def test_start_stop_saves_record(service, config):
    service.clock.tick_seconds = 60  # keep the clock thread idle
    service.start()
    service.control_plane.send("record_action", action_name="Gol", team_id="fla", zone=[0, 4])
    service.stop()

    assert config.record_path.exists()
    saved = json.loads(config.record_path.read_text(encoding="utf-8"))
    assert [a['action_name'] for a in saved['actions']] == ["Gol"]
    assert service.control_plane.last()[0] == "stopped"
