"""
Tests for match configuration loading (campo_match.config).

Usage:
    pytest test_config.py -v
"""

from pathlib import Path

import pytest
import yaml

from campo_match import DEFAULT_ACTION_TYPES, MatchConfig
from campo_match.config import ActionTypeConfig, ExportConfig, MQTTConfig, PlayerConfig, TeamConfig

MINIMAL = {
    'match_id': "final",
    'team_a': {'id': "fla", 'name': "Flamengo", 'color': "#dc2626",
               'players': [{'id': "fla_9", 'number': 9, 'name': "Pedro"}]},
    'team_b': {'id': "flu", 'name': "Fluminense"},
}


def test_from_yaml(tmp_path):
    path = tmp_path / "match.yaml"
    path.write_text(yaml.safe_dump({
        **MINIMAL,
        'action_types': [
            {'name': "Chute", 'icon': "🎯"},
            {'name': "Substituição", 'min_players': 2, 'max_players': 2},
        ],
        'clock': {'tick_seconds': 0.5, 'autostart': True},
        'mqtt_config': {'broker': "mqtt.local", 'port': 1884, 'qos': 1},
        'export': {'output_dir': "out", 'scale': 1},
        'record_path': "records/final.json",
    }, allow_unicode=True), encoding="utf-8")

    config = MatchConfig.from_yaml(path)

    assert config.match_id == "final"
    assert config.clock.tick_seconds == 0.5
    assert config.clock.autostart
    assert config.mqtt_config.broker == "mqtt.local"
    assert config.export.output_dir == Path("out")
    assert config.record_path == Path("records/final.json")
    assert config.topic(config.mqtt_config.heat_map_topic) == "campo/data/heat_map/final"

    types = config.resolved_action_types()
    assert [t.name for t in types] == ["Chute", "Substituição"]
    assert types[1].accepts(["a", "b"])

    team_a, team_b = config.teams()
    assert team_a.find_player("fla_9").label == "9 - Pedro"
    assert team_b.players == ()


def test_defaults():
    config = MatchConfig.from_dict(MINIMAL)
    assert config.resolved_action_types() == DEFAULT_ACTION_TYPES
    assert config.mqtt_config.command_topic == "campo/control/{match_id}/commands"
    assert config.export.width == 800
    assert config.record_path is None


def test_bundled_config_loads():
    config = MatchConfig.from_yaml(Path(__file__).parent / "config" / "match_config.yaml")
    team_a, team_b = config.teams()
    assert team_a.id != team_b.id
    assert any(t.name == "Substituição" for t in config.resolved_action_types())


def test_missing_team_raises():
    data = dict(MINIMAL)
    del data['team_b']
    with pytest.raises(ValueError, match="team_b"):
        MatchConfig.from_dict(data)


def test_unknown_field_raises():
    with pytest.raises(ValueError):
        MatchConfig.from_dict({**MINIMAL, 'clock': {'speed': 2}})


def test_same_team_ids_rejected():
    with pytest.raises(ValueError):
        MatchConfig.from_dict({**MINIMAL, 'team_b': {'id': "fla", 'name': "Other"}})


@pytest.mark.parametrize("factory", [
    lambda: PlayerConfig(id="x", number=100, name="Too big"),
    lambda: TeamConfig(id="t", name="Team", color="red"),
    lambda: TeamConfig(id="t", name="Team", players=(
        PlayerConfig("a", 7, "A"), PlayerConfig("b", 7, "B"))),
    lambda: ActionTypeConfig(name="Bad", min_players=2, max_players=1),
    lambda: MQTTConfig(port=0),
    lambda: MQTTConfig(qos=3),
    lambda: ExportConfig(width=100),
    lambda: ExportConfig(scale=5),
])
def test_validation_errors(factory):
    with pytest.raises(ValueError):
        factory()


def test_duplicate_action_types_rejected():
    with pytest.raises(ValueError):
        MatchConfig.from_dict({**MINIMAL, 'action_types': [{'name': "Chute"}, {'name': "Chute"}]})
