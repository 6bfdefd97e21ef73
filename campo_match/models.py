"""
Match Domain Models
===================

Bounded Context: Match participants and recorded actions.

Design:
- Immutable value objects (frozen dataclasses)
- Validation in __post_init__ (ValueError)
- to_dict()/from_dict() for the persisted record and MQTT payloads
- Edits never mutate a GameAction; the ledger swaps in a replacement
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Collection, Dict, List, Optional, Sequence, Tuple

from campo_zone.geometry.grid import Zone

POSSESSION_LABEL = "Posse de Bola"
FALLBACK_ACTION_LABEL = "Ação"


class ActionKind(str, Enum):
    """Kind of ledger entry."""
    POSSESSION = "possession"  # Implicit, emitted on possession change
    ACTION = "action"          # Explicit, named action type


@dataclass(frozen=True)
class Player:
    """
    Roster entry.

    Attributes:
        id: Unique within the team
        number: Jersey number
        name: Display name
        is_starter: Starting eleven (True) or reserve (False)
    """
    id: str
    number: int
    name: str
    is_starter: bool = True

    @property
    def label(self) -> str:
        return f"{self.number} - {self.name}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'number': self.number,
            'name': self.name,
            'is_starter': self.is_starter,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Player':
        try:
            return cls(
                id=str(data['id']),
                number=int(data['number']),
                name=str(data['name']),
                is_starter=bool(data.get('is_starter', True)),
            )
        except KeyError as e:
            raise ValueError(f"Missing required Player field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid Player data: {e}")


@dataclass(frozen=True)
class Team:
    """
    One side of the match. Immutable for the duration of a session.

    Attributes:
        id: Team identifier referenced by GameAction.team_id
        name: Display name
        color: Primary colour as hex ("#1d4ed8")
        players: Roster
        logo_url: Optional crest image
    """
    id: str
    name: str
    color: str = "#3b82f6"
    players: Tuple[Player, ...] = ()
    logo_url: Optional[str] = None

    def __post_init__(self):
        """Validate invariants."""
        if not self.id:
            raise ValueError("Team id cannot be empty")
        if not self.color.startswith("#"):
            raise ValueError(f"Team color must be a hex string, got {self.color!r}")
        ids = [p.id for p in self.players]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate player ids in team '{self.id}'")
        # Accept lists from callers, store a tuple
        object.__setattr__(self, 'players', tuple(self.players))

    def find_player(self, player_id: str) -> Optional[Player]:
        for player in self.players:
            if player.id == player_id:
                return player
        return None

    def has_player(self, player_id: str) -> bool:
        return self.find_player(player_id) is not None

    def starters(self) -> List[Player]:
        """Starting players sorted by jersey number."""
        return sorted((p for p in self.players if p.is_starter), key=lambda p: p.number)

    def reserves(self) -> List[Player]:
        """Reserve players sorted by jersey number."""
        return sorted((p for p in self.players if not p.is_starter), key=lambda p: p.number)

    def to_dict(self) -> Dict[str, Any]:
        result = {
            'id': self.id,
            'name': self.name,
            'color': self.color,
            'players': [p.to_dict() for p in self.players],
        }
        if self.logo_url is not None:
            result['logo_url'] = self.logo_url
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Team':
        try:
            return cls(
                id=str(data['id']),
                name=str(data['name']),
                color=str(data.get('color', "#3b82f6")),
                players=tuple(Player.from_dict(p) for p in data.get('players', [])),
                logo_url=data.get('logo_url'),
            )
        except KeyError as e:
            raise ValueError(f"Missing required Team field: {e}")


@dataclass(frozen=True)
class GameAction:
    """
    One ledger entry.

    Attributes:
        id: Unique, never reused within a session
        kind: POSSESSION or ACTION
        team_id: Acting team
        zone: Cell of the 5x5 grid (may be out of bounds for legacy data)
        timestamp: Match seconds (>= 0, not necessarily monotonic)
        action_name: Action type name (present iff kind == ACTION)
        player_id: Primary player involved
        other_player_ids: Further players involved (e.g. incoming substitute)

    Example:
        >>> GameAction(id="a1", kind=ActionKind.ACTION, team_id="fla",
        ...            zone=Zone(2, 3), timestamp=95, action_name="Chute")
    """
    id: str
    kind: ActionKind
    team_id: str
    zone: Zone
    timestamp: int
    action_name: Optional[str] = None
    player_id: Optional[str] = None
    other_player_ids: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        """Validate invariants."""
        if self.timestamp < 0:
            raise ValueError(f"timestamp must be >= 0, got {self.timestamp}")
        if self.kind == ActionKind.ACTION and not self.action_name:
            raise ValueError("Actions of kind 'action' require an action_name")
        if self.kind == ActionKind.POSSESSION and self.action_name is not None:
            raise ValueError("Possession entries carry no action_name")
        object.__setattr__(self, 'other_player_ids', tuple(self.other_player_ids))

    @property
    def display_label(self) -> str:
        if self.action_name:
            return self.action_name
        if self.kind == ActionKind.POSSESSION:
            return POSSESSION_LABEL
        return FALLBACK_ACTION_LABEL

    @property
    def player_ids(self) -> Tuple[str, ...]:
        """Every player involved, primary first."""
        if self.player_id is None:
            return self.other_player_ids
        return (self.player_id,) + self.other_player_ids

    def with_changes(self, **changes: Any) -> 'GameAction':
        """Replacement record with the given fields changed (id is kept)."""
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'kind': self.kind.value,
            'action_name': self.action_name,
            'team_id': self.team_id,
            'player_id': self.player_id,
            'other_player_ids': list(self.other_player_ids),
            'zone': self.zone.to_dict(),
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GameAction':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields are missing or invalid
        """
        try:
            return cls(
                id=str(data['id']),
                kind=ActionKind(data['kind']),
                team_id=str(data['team_id']),
                zone=Zone.coerce(data['zone']),
                timestamp=int(data['timestamp']),
                action_name=data.get('action_name'),
                player_id=data.get('player_id'),
                other_player_ids=tuple(data.get('other_player_ids', ())),
            )
        except KeyError as e:
            raise ValueError(f"Missing required GameAction field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid GameAction data: {e}")


def is_selected(action: GameAction, selected_names: Collection[str]) -> bool:
    """Export/display filter predicate for one action."""
    if action.kind == ActionKind.POSSESSION and POSSESSION_LABEL in selected_names:
        return True
    return action.action_name is not None and action.action_name in selected_names


@dataclass(frozen=True)
class ActionType:
    """
    Configured action button ("Chute", "Falta", "Substituição", ...).

    Attributes:
        name: Stable display name stored on GameAction.action_name
        icon: Emoji shown next to the name
        min_players: Fewest players that may be selected
        max_players: Most players that may be selected
    """
    name: str
    icon: str = ""
    min_players: int = 0
    max_players: int = 1

    def __post_init__(self):
        if not self.name:
            raise ValueError("ActionType name cannot be empty")
        if self.min_players < 0 or self.max_players < self.min_players:
            raise ValueError(
                f"Invalid player range for '{self.name}': "
                f"[{self.min_players}, {self.max_players}]"
            )

    def accepts(self, player_ids: Sequence[str]) -> bool:
        """True if the selection satisfies this type's player rule."""
        count = len(player_ids)
        if len(set(player_ids)) != count:
            return False
        return self.min_players <= count <= self.max_players

    @property
    def instructions(self) -> str:
        if self.min_players == self.max_players == 2:
            return "Selecione o jogador que sai e o que entra (2 jogadores)"
        return "Selecione os jogadores envolvidos na ação"


DEFAULT_ACTION_TYPES: Tuple[ActionType, ...] = (
    ActionType(name="Passe", icon="⚽"),
    ActionType(name="Chute", icon="🎯"),
    ActionType(name="Desarme", icon="🛡️"),
    ActionType(name="Falta", icon="⚠️"),
    ActionType(name="Escanteio", icon="🚩"),
    ActionType(name="Gol", icon="🥅"),
    ActionType(name="Substituição", icon="🔄", min_players=2, max_players=2),
)
