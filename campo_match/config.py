"""
Configuration schema for the match session service.

This module defines the configuration structure for a live match: the two
teams and their rosters, the action buttons, the clock, MQTT topics and
export settings.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Tuple

import yaml

from .models import DEFAULT_ACTION_TYPES, ActionType, Player, Team


@dataclass(frozen=True)
class PlayerConfig:
    """Roster entry."""

    id: str
    number: int
    name: str
    is_starter: bool = True

    def __post_init__(self):
        if not 0 <= self.number <= 99:
            raise ValueError(
                f"Player '{self.id}' number must be in [0, 99], got {self.number}"
            )

    def to_player(self) -> Player:
        return Player(id=self.id, number=self.number, name=self.name, is_starter=self.is_starter)


@dataclass(frozen=True)
class TeamConfig:
    """Team configuration (one side of the match)."""

    id: str
    name: str
    color: str = "#3b82f6"
    logo_url: Optional[str] = None
    players: Tuple[PlayerConfig, ...] = ()

    def __post_init__(self):
        """Validate team configuration."""
        if not self.id:
            raise ValueError("Team id cannot be empty")
        if not self.name:
            raise ValueError(f"Team '{self.id}' name cannot be empty")
        if not (self.color.startswith("#") and len(self.color) in (4, 7)):
            raise ValueError(
                f"Invalid color for team '{self.id}': {self.color}. "
                f"Must be a hex string like '#1d4ed8'"
            )
        numbers = [p.number for p in self.players]
        if len(numbers) != len(set(numbers)):
            raise ValueError(f"Duplicate jersey numbers in team '{self.id}'")

    def to_team(self) -> Team:
        return Team(
            id=self.id,
            name=self.name,
            color=self.color,
            players=tuple(p.to_player() for p in self.players),
            logo_url=self.logo_url,
        )


@dataclass(frozen=True)
class ActionTypeConfig:
    """Action button configuration."""

    name: str
    icon: str = ""
    min_players: int = 0
    max_players: int = 1

    def __post_init__(self):
        if not self.name:
            raise ValueError("Action type name cannot be empty")
        if self.min_players < 0 or self.max_players < self.min_players:
            raise ValueError(
                f"Invalid player range for action '{self.name}': "
                f"min={self.min_players}, max={self.max_players}"
            )

    def to_action_type(self) -> ActionType:
        return ActionType(
            name=self.name,
            icon=self.icon,
            min_players=self.min_players,
            max_players=self.max_players,
        )


@dataclass(frozen=True)
class ClockConfig:
    """Match clock configuration."""

    tick_seconds: float = 1.0
    autostart: bool = False  # Start Playing as soon as the service is up

    def __post_init__(self):
        if not 0 < self.tick_seconds <= 60:
            raise ValueError(
                f"tick_seconds must be in (0, 60], got {self.tick_seconds}"
            )


@dataclass(frozen=True)
class MQTTConfig:
    """MQTT broker configuration."""

    broker: str = "localhost"
    port: int = 1883
    username: Optional[str] = None
    password: Optional[str] = None
    qos: int = 0  # Data plane QoS (fire-and-forget)

    command_topic: str = "campo/control/{match_id}/commands"
    status_topic: str = "campo/control/{match_id}/status"
    heat_map_topic: str = "campo/data/heat_map/{match_id}"
    action_event_topic: str = "campo/data/actions/{match_id}"

    def __post_init__(self):
        """Validate MQTT configuration."""
        if not 1 <= self.port <= 65535:
            raise ValueError(
                f"MQTT port must be in [1, 65535], got {self.port}"
            )

        if self.qos not in {0, 1, 2}:
            raise ValueError(
                f"MQTT QoS must be 0, 1, or 2, got {self.qos}"
            )


@dataclass(frozen=True)
class ExportConfig:
    """Heat-map export configuration."""

    output_dir: Path = Path("./exports")
    width: int = 800
    height: int = 600
    scale: int = 2
    show_counts: bool = True
    timeout_seconds: float = 30.0

    def __post_init__(self):
        """Validate export configuration."""
        if self.width < 200 or self.height < 200:
            raise ValueError(
                f"Export canvas too small (min 200x200), got {self.width}x{self.height}"
            )
        if not 1 <= self.scale <= 4:
            raise ValueError(f"Export scale must be in [1, 4], got {self.scale}")
        if self.timeout_seconds <= 0:
            raise ValueError(
                f"timeout_seconds must be > 0, got {self.timeout_seconds}"
            )


@dataclass(frozen=True)
class MatchConfig:
    """
    Main configuration for a match session.

    This configuration is loaded from YAML and validated at startup.
    Immutable after construction (frozen dataclass).
    """

    match_id: str
    team_a: TeamConfig
    team_b: TeamConfig
    action_types: List[ActionTypeConfig] = field(default_factory=list)
    clock: ClockConfig = field(default_factory=ClockConfig)
    mqtt_config: MQTTConfig = field(default_factory=MQTTConfig)
    export: ExportConfig = field(default_factory=ExportConfig)
    record_path: Optional[Path] = None

    def __post_init__(self):
        """Validate match configuration."""
        if not self.match_id:
            raise ValueError("match_id cannot be empty")

        if self.team_a.id == self.team_b.id:
            raise ValueError(
                f"team_a and team_b must have different ids, got '{self.team_a.id}'"
            )

        names = [a.name for a in self.action_types]
        if len(names) != len(set(names)):
            raise ValueError("Duplicate action type names in configuration")

    def teams(self) -> Tuple[Team, Team]:
        return self.team_a.to_team(), self.team_b.to_team()

    def resolved_action_types(self) -> Tuple[ActionType, ...]:
        """Configured action types, or the built-in set when none are configured."""
        if not self.action_types:
            return DEFAULT_ACTION_TYPES
        return tuple(a.to_action_type() for a in self.action_types)

    def topic(self, template: str) -> str:
        return template.format(match_id=self.match_id)

    @classmethod
    def from_yaml(cls, yaml_path: Path) -> "MatchConfig":
        """
        Load configuration from YAML file.

        Example YAML:
            match_id: "fla_flu_2025"

            team_a:
              id: "fla"
              name: "Flamengo"
              color: "#dc2626"
              players:
                - {id: "fla_1", number: 1, name: "Rossi"}
                - {id: "fla_9", number: 9, name: "Pedro"}

            team_b:
              id: "flu"
              name: "Fluminense"
              color: "#16a34a"

            action_types:
              - {name: "Chute", icon: "🎯"}
              - {name: "Substituição", icon: "🔄", min_players: 2, max_players: 2}

            clock:
              tick_seconds: 1.0

            mqtt_config:
              broker: "localhost"
              port: 1883

            export:
              output_dir: "./exports"
        """
        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict) -> "MatchConfig":
        try:
            team_a = _team_config(data["team_a"])
            team_b = _team_config(data["team_b"])

            action_types = [
                ActionTypeConfig(**a) for a in data.get("action_types", [])
            ]

            clock = ClockConfig(**data.get("clock", {}))
            mqtt_config = MQTTConfig(**data.get("mqtt_config", {}))

            export_data = dict(data.get("export", {}))
            if "output_dir" in export_data:
                export_data["output_dir"] = Path(export_data["output_dir"])
            export = ExportConfig(**export_data)

            record_path = data.get("record_path")

            return cls(
                match_id=str(data["match_id"]),
                team_a=team_a,
                team_b=team_b,
                action_types=action_types,
                clock=clock,
                mqtt_config=mqtt_config,
                export=export,
                record_path=Path(record_path) if record_path else None,
            )
        except KeyError as e:
            raise ValueError(f"Missing required config field: {e}")
        except TypeError as e:
            raise ValueError(f"Invalid config field: {e}")


def _team_config(data: dict) -> TeamConfig:
    players = tuple(
        PlayerConfig(
            id=str(p["id"]),
            number=int(p["number"]),
            name=str(p["name"]),
            is_starter=bool(p.get("is_starter", True)),
        )
        for p in data.get("players", [])
    )
    return TeamConfig(
        id=str(data["id"]),
        name=str(data["name"]),
        color=str(data.get("color", "#3b82f6")),
        logo_url=data.get("logo_url"),
        players=players,
    )
