"""
Match Session
=============

Bounded Context: Live match state (clock, possession, ledger, display filter).

States:
    Paused (initial) <-> Playing      toggle_play_pause()

Design:
- Single owner of the ActionLedger (no global store; pass the session around)
- Heat maps are recomputed from the ledger on every read
- Mutations serialized by an RLock (clock thread + control-plane thread)
- Listeners notified with a SessionChange after the lock is released
"""

import threading
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence

from campo_zone.analytics.aggregation import (
    ZoneActionDetail,
    aggregate,
    format_clock,
    team_action_counts,
    zone_actions,
)
from campo_zone.analytics.counter import HeatGrid
from campo_zone.geometry.grid import CENTRE_ZONE, Zone

from .errors import InvalidSelectionError, InvalidTeamReferenceError
from .ledger import ActionLedger, LedgerOrder
from .logging import LogEvent, create_logger
from .models import (
    DEFAULT_ACTION_TYPES,
    ActionKind,
    ActionType,
    GameAction,
    Team,
    is_selected,
)

RECORD_SCHEMA_VERSION = "1.0"
UNKNOWN_PLAYER_LABEL = "N/A"


class ChangeType(str, Enum):
    """What a SessionChange describes."""
    ACTION_CREATED = "created"
    ACTION_UPDATED = "updated"
    ACTION_REMOVED = "removed"
    POSSESSION = "possession"
    CLOCK = "clock"
    FILTER = "filter"


@dataclass(frozen=True)
class SessionChange:
    """Notification delivered to session listeners."""
    change_type: ChangeType
    action: Optional[GameAction] = None
    details: Dict[str, Any] = field(default_factory=dict)

    @property
    def affects_heat_map(self) -> bool:
        return self.change_type in (
            ChangeType.ACTION_CREATED,
            ChangeType.ACTION_UPDATED,
            ChangeType.ACTION_REMOVED,
            ChangeType.FILTER,
        )


Listener = Callable[[SessionChange], None]


class MatchSession:
    """
    Live state of one match between two teams.

    Usage:
        session = MatchSession("final", team_a, team_b)
        session.toggle_play_pause()
        session.change_possession("fla", Zone(2, 1))
        session.record_action("Chute", "fla", Zone(1, 4), player_ids=["p9"])
        grid = session.heat_grid()
    """

    def __init__(
        self,
        match_id: str,
        team_a: Team,
        team_b: Team,
        action_types: Iterable[ActionType] = DEFAULT_ACTION_TYPES,
        current_time: int = 0,
    ):
        if current_time < 0:
            raise ValueError(f"current_time must be >= 0, got {current_time}")

        self.match_id = match_id
        self.team_a = team_a
        self.team_b = team_b
        self.action_types: Dict[str, ActionType] = {t.name: t for t in action_types}

        self.ledger = ActionLedger(team_a, team_b, clock=lambda: self._current_time)

        self._current_time = current_time
        self._is_playing = False
        self._current_possession: Optional[str] = None
        self._last_zone: Zone = CENTRE_ZONE
        self._display_filter: Optional[FrozenSet[str]] = None

        self._lock = threading.RLock()
        self._listeners: List[Listener] = []
        self.logger = create_logger("session", match_id=match_id)

    # ─────────────────────────────────────────────────────────────────────
    # Observers
    # ─────────────────────────────────────────────────────────────────────

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a change listener. Returns an unsubscribe callable."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, change: SessionChange) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(change)

    # ─────────────────────────────────────────────────────────────────────
    # State accessors
    # ─────────────────────────────────────────────────────────────────────

    @property
    def current_time(self) -> int:
        return self._current_time

    @property
    def is_playing(self) -> bool:
        return self._is_playing

    @property
    def current_possession(self) -> Optional[str]:
        return self._current_possession

    @property
    def last_zone(self) -> Zone:
        return self._last_zone

    @property
    def display_filter(self) -> Optional[FrozenSet[str]]:
        return self._display_filter

    @property
    def formatted_time(self) -> str:
        return format_clock(self._current_time)

    @property
    def team_ids(self) -> tuple:
        return (self.team_a.id, self.team_b.id)

    def team(self, team_id: str) -> Team:
        if team_id == self.team_a.id:
            return self.team_a
        if team_id == self.team_b.id:
            return self.team_b
        raise InvalidTeamReferenceError(team_id, self.team_ids)

    # ─────────────────────────────────────────────────────────────────────
    # Clock
    # ─────────────────────────────────────────────────────────────────────

    def toggle_play_pause(self) -> bool:
        """Flip Paused <-> Playing. Returns the new is_playing value."""
        with self._lock:
            self._is_playing = not self._is_playing
            playing = self._is_playing

        self.logger.info(
            event=LogEvent.CLOCK_STARTED if playing else LogEvent.CLOCK_PAUSED,
            message="Match clock running" if playing else "Match clock paused",
            metadata={'match_id': self.match_id, 'current_time': self._current_time},
        )
        self._notify(SessionChange(ChangeType.CLOCK, details={'is_playing': playing}))
        return playing

    def update_timer(self, seconds: int) -> None:
        """Set the match clock directly (used by the ticking clock)."""
        seconds = int(seconds)
        if seconds < 0:
            raise ValueError(f"Match time must be >= 0, got {seconds}")
        with self._lock:
            self._current_time = seconds

    def advance_timer(self, seconds: int = 1) -> bool:
        """Add seconds to the clock, only while Playing. Returns True if it moved."""
        with self._lock:
            if not self._is_playing:
                return False
            self.update_timer(self._current_time + seconds)
        return True

    def reset_timer(self) -> None:
        """Clock back to 00:00 regardless of state. The ledger is untouched."""
        with self._lock:
            self._current_time = 0

        self.logger.info(
            event=LogEvent.CLOCK_RESET,
            message="Match clock reset",
            metadata={'match_id': self.match_id},
        )
        self._notify(SessionChange(ChangeType.CLOCK, details={'current_time': 0}))

    # ─────────────────────────────────────────────────────────────────────
    # Possession
    # ─────────────────────────────────────────────────────────────────────

    def set_possession(self, team_id: str) -> None:
        """Change the possession holder without recording anything."""
        if team_id not in self.team_ids:
            self.logger.warning(
                event=LogEvent.INVALID_REFERENCE,
                message="Possession rejected for unknown team",
                metadata={'team_id': team_id},
            )
            raise InvalidTeamReferenceError(team_id, self.team_ids)

        with self._lock:
            self._current_possession = team_id

        self.logger.info(
            event=LogEvent.POSSESSION_CHANGED,
            message=f"Possession to {team_id}",
            metadata={'match_id': self.match_id, 'team_id': team_id},
        )
        self._notify(SessionChange(ChangeType.POSSESSION, details={'team_id': team_id}))

    def record_possession_change(self, team_id: str, zone: Any = None) -> GameAction:
        """Append the implicit possession entry at the current match time."""
        with self._lock:
            target = self._last_zone if zone is None else Zone.coerce(zone)
            action = self.ledger.append(ActionKind.POSSESSION, team_id, target)
            self._last_zone = target

        self._log_recorded(action)
        self._notify(SessionChange(ChangeType.ACTION_CREATED, action=action))
        return action

    def change_possession(self, team_id: str, zone: Any = None) -> GameAction:
        """set_possession() + record_possession_change()."""
        self.set_possession(team_id)
        return self.record_possession_change(team_id, zone)

    # ─────────────────────────────────────────────────────────────────────
    # Ledger operations
    # ─────────────────────────────────────────────────────────────────────

    def record_action(
        self,
        action_name: str,
        team_id: str,
        zone: Any,
        player_ids: Sequence[str] = (),
        timestamp: Optional[int] = None,
    ) -> GameAction:
        """
        Record a named action.

        player_ids[0] becomes the primary player, the rest go to
        other_player_ids (for a substitution: outgoing, incoming).

        Raises:
            InvalidSelectionError: Selection breaks the action type's rule
            InvalidTeamReferenceError / InvalidPlayerReferenceError
        """
        player_ids = list(player_ids)
        action_type = self.action_types.get(action_name)
        if action_type is not None and not action_type.accepts(player_ids):
            raise InvalidSelectionError(
                f"'{action_name}' needs between {action_type.min_players} and "
                f"{action_type.max_players} distinct players, got {len(player_ids)}"
            )

        with self._lock:
            target = Zone.coerce(zone)
            action = self.ledger.append(
                ActionKind.ACTION,
                team_id,
                target,
                action_name=action_name,
                player_id=player_ids[0] if player_ids else None,
                other_player_ids=player_ids[1:],
                timestamp=timestamp,
            )
            self._last_zone = target

        self._log_recorded(action)
        self._notify(SessionChange(ChangeType.ACTION_CREATED, action=action))
        return action

    def update_action(self, action_id: str, patch: Mapping[str, Any]) -> GameAction:
        """Edit a recorded action in place (position is kept)."""
        try:
            with self._lock:
                action = self.ledger.update(action_id, patch)
        except KeyError:
            self._log_not_found(action_id, "update")
            raise

        self.logger.info(
            event=LogEvent.ACTION_UPDATED,
            message=f"Updated {action.display_label}",
            metadata={'action_id': action_id, 'fields': sorted(patch)},
        )
        self._notify(SessionChange(ChangeType.ACTION_UPDATED, action=action))
        return action

    def remove_action(self, action_id: str) -> GameAction:
        try:
            with self._lock:
                action = self.ledger.remove(action_id)
        except KeyError:
            self._log_not_found(action_id, "remove")
            raise

        self.logger.info(
            event=LogEvent.ACTION_REMOVED,
            message=f"Removed {action.display_label}",
            metadata={'action_id': action_id},
        )
        self._notify(SessionChange(ChangeType.ACTION_REMOVED, action=action))
        return action

    def actions(self, order: LedgerOrder = LedgerOrder.INSERTION) -> tuple:
        with self._lock:
            return self.ledger.list(order)

    def recent_actions(self, limit: Optional[int] = None) -> tuple:
        """Most recent first, as shown in the recent-actions panel."""
        ordered = self.actions(LedgerOrder.TIMESTAMP_DESC)
        return ordered if limit is None else ordered[:limit]

    def snapshot(self) -> tuple:
        with self._lock:
            return self.ledger.snapshot()

    def _log_recorded(self, action: GameAction) -> None:
        self.logger.info(
            event=LogEvent.ACTION_RECORDED,
            message=f"Recorded {action.display_label}",
            metadata={
                'action_id': action.id,
                'kind': action.kind.value,
                'team_id': action.team_id,
                'zone': [action.zone.row, action.zone.col],
                'timestamp': action.timestamp,
            },
        )

    def _log_not_found(self, action_id: str, operation: str) -> None:
        self.logger.warning(
            event=LogEvent.ACTION_NOT_FOUND,
            message=f"Cannot {operation} unknown action",
            metadata={'action_id': action_id},
        )

    # ─────────────────────────────────────────────────────────────────────
    # Render-consumer reads
    # ─────────────────────────────────────────────────────────────────────

    def set_display_filter(self, names: Optional[Iterable[str]]) -> None:
        """Restrict the live heat map to these action names (None = everything)."""
        with self._lock:
            self._display_filter = None if names is None else frozenset(names)
            current = self._display_filter

        self._notify(SessionChange(
            ChangeType.FILTER,
            details={'names': None if current is None else sorted(current)},
        ))

    def heat_grid(self, selected_names: Optional[Iterable[str]] = None) -> HeatGrid:
        """
        Aggregate the ledger into a 5x5 heat grid.

        Args:
            selected_names: Action names to include (the possession label
                selects possession entries). Defaults to the display filter.
        """
        with self._lock:
            actions = self.ledger.snapshot()
            names = self._display_filter if selected_names is None else frozenset(selected_names)

        if names is not None:
            actions = [a for a in actions if is_selected(a, names)]
        grid = aggregate(actions, self.team_a.id, self.team_b.id)

        self.logger.debug(
            event=LogEvent.HEAT_MAP_COMPUTED,
            message="Heat map computed",
            metadata={'actions': len(actions), 'max_total': grid.max_total},
        )
        return grid

    def zone_detail(self, zone: Any) -> List[ZoneActionDetail]:
        """Tooltip rows for one cell."""
        team_names = {self.team_a.id: self.team_a.name, self.team_b.id: self.team_b.name}
        return zone_actions(self.snapshot(), Zone.coerce(zone), team_names)

    def team_summary(self) -> Dict[str, int]:
        return team_action_counts(self.snapshot(), self.team_a.id, self.team_b.id)

    def player_label(self, team_id: str, player_id: Optional[str]) -> str:
        """"<number> - <name>", or UNKNOWN_PLAYER_LABEL when there is no such player."""
        if player_id is None:
            return UNKNOWN_PLAYER_LABEL
        player = self.team(team_id).find_player(player_id)
        return player.label if player else UNKNOWN_PLAYER_LABEL

    def status(self) -> Dict[str, Any]:
        return {
            'match_id': self.match_id,
            'current_time': self._current_time,
            'formatted_time': self.formatted_time,
            'is_playing': self._is_playing,
            'current_possession': self._current_possession,
            'last_zone': self._last_zone.to_dict(),
            'action_count': len(self.ledger),
            'team_summary': self.team_summary(),
        }

    # ─────────────────────────────────────────────────────────────────────
    # Persistence
    # ─────────────────────────────────────────────────────────────────────

    def to_record(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'schema_version': RECORD_SCHEMA_VERSION,
                'match_id': self.match_id,
                'team_a': self.team_a.to_dict(),
                'team_b': self.team_b.to_dict(),
                'actions': [a.to_dict() for a in self.ledger.snapshot()],
                'current_time': self._current_time,
            }

    @classmethod
    def from_record(
        cls,
        data: Dict[str, Any],
        action_types: Iterable[ActionType] = DEFAULT_ACTION_TYPES,
    ) -> 'MatchSession':
        """
        Rebuild a session from a persisted record (restored Paused).

        Raises:
            ValueError: If required fields are missing or invalid
        """
        try:
            session = cls(
                match_id=str(data['match_id']),
                team_a=Team.from_dict(data['team_a']),
                team_b=Team.from_dict(data['team_b']),
                action_types=action_types,
                current_time=int(data.get('current_time', 0)),
            )
            session.ledger.restore(GameAction.from_dict(a) for a in data.get('actions', []))
        except KeyError as e:
            raise ValueError(f"Missing required match record field: {e}")
        return session

    def __repr__(self) -> str:
        state = "Playing" if self._is_playing else "Paused"
        return (
            f"MatchSession({self.match_id!r}, {self.team_a.id} vs {self.team_b.id}, "
            f"{state} {self.formatted_time}, actions={len(self.ledger)})"
        )

