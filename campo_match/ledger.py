"""
Action Ledger
=============

Bounded Context: Ordered record of everything logged during a match.

Design:
- Insertion order is the canonical order
- Records are immutable; update() swaps in a replacement at the same position
- Ids come from uuid4 and are never reused
- Referential integrity: team and player ids must resolve against the two teams
- Zones are NOT validated (out-of-bounds entries are stored, then skipped
  by aggregation)

Not thread-safe on its own: MatchSession serializes access.
"""

import uuid
from enum import Enum
from typing import Any, Callable, Dict, Iterable, Iterator, List, Mapping, Optional, Tuple

from campo_zone.geometry.grid import Zone

from .errors import ActionNotFoundError, InvalidPlayerReferenceError, InvalidTeamReferenceError
from .models import ActionKind, GameAction, Team

PATCHABLE_FIELDS = frozenset({
    'action_name',
    'team_id',
    'player_id',
    'other_player_ids',
    'zone',
    'timestamp',
})


class LedgerOrder(str, Enum):
    """Read order for ActionLedger.list()."""
    INSERTION = "insertion"
    TIMESTAMP_DESC = "timestamp_desc"  # Most recent first, stable for ties


class ActionLedger:
    """
    Ordered, id-addressable collection of GameAction records.

    Usage:
        ledger = ActionLedger(team_a, team_b, clock=lambda: session.current_time)
        action = ledger.append(ActionKind.ACTION, "fla", Zone(1, 3), action_name="Chute")
        ledger.update(action.id, {'zone': Zone(1, 4)})
        ledger.remove(action.id)
    """

    def __init__(
        self,
        team_a: Team,
        team_b: Team,
        clock: Optional[Callable[[], int]] = None,
        id_factory: Optional[Callable[[], str]] = None,
    ):
        """
        Args:
            team_a: First team (ids are validated against both teams)
            team_b: Second team
            clock: Supplies the default timestamp for append()
            id_factory: Generates fresh action ids (default: uuid4 hex)
        """
        if team_a.id == team_b.id:
            raise ValueError(f"Teams must have distinct ids, got '{team_a.id}' twice")
        self._teams: Dict[str, Team] = {team_a.id: team_a, team_b.id: team_b}
        self._clock = clock or (lambda: 0)
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._actions: List[GameAction] = []
        self._index: Dict[str, int] = {}
        self._issued: set = set()

    # ─────────────────────────────────────────────────────────────────────
    # Validation
    # ─────────────────────────────────────────────────────────────────────

    def _check_refs(self, team_id: str, player_ids: Iterable[Optional[str]]) -> None:
        team = self._teams.get(team_id)
        if team is None:
            raise InvalidTeamReferenceError(team_id, tuple(self._teams))
        for player_id in player_ids:
            if player_id is not None and not team.has_player(player_id):
                raise InvalidPlayerReferenceError(player_id, team_id)

    def _new_id(self) -> str:
        action_id = self._id_factory()
        while action_id in self._issued:
            action_id = self._id_factory()
        self._issued.add(action_id)
        return action_id

    # ─────────────────────────────────────────────────────────────────────
    # Mutations
    # ─────────────────────────────────────────────────────────────────────

    def append(
        self,
        kind: ActionKind,
        team_id: str,
        zone: Any,
        action_name: Optional[str] = None,
        player_id: Optional[str] = None,
        other_player_ids: Iterable[str] = (),
        timestamp: Optional[int] = None,
    ) -> GameAction:
        """
        Record a new action at the end of the ledger.

        Raises:
            InvalidTeamReferenceError: team_id is not one of the two teams
            InvalidPlayerReferenceError: a player is not in that team's roster
            ValueError: Invalid record (negative timestamp, missing name, ...)
        """
        others = tuple(other_player_ids)
        self._check_refs(team_id, (player_id,) + others)

        action = GameAction(
            id=self._new_id(),
            kind=ActionKind(kind),
            team_id=team_id,
            zone=Zone.coerce(zone),
            timestamp=int(self._clock() if timestamp is None else timestamp),
            action_name=action_name,
            player_id=player_id,
            other_player_ids=others,
        )
        self._index[action.id] = len(self._actions)
        self._actions.append(action)
        return action

    def update(self, action_id: str, patch: Mapping[str, Any]) -> GameAction:
        """
        Merge a partial set of fields into an existing record.

        The replacement keeps its id and its position in the ledger.

        Raises:
            ActionNotFoundError: No record with that id
            ValueError: Unknown or invalid fields
            InvalidTeamReferenceError / InvalidPlayerReferenceError
        """
        position = self._index.get(action_id)
        if position is None:
            raise ActionNotFoundError(action_id)

        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValueError(f"Fields cannot be patched: {', '.join(sorted(unknown))}")

        changes = dict(patch)
        if 'zone' in changes:
            changes['zone'] = Zone.coerce(changes['zone'])
        if 'other_player_ids' in changes:
            changes['other_player_ids'] = tuple(changes['other_player_ids'] or ())
        if 'timestamp' in changes:
            changes['timestamp'] = int(changes['timestamp'])

        updated = self._actions[position].with_changes(**changes)
        self._check_refs(updated.team_id, updated.player_ids)

        self._actions[position] = updated
        return updated

    def remove(self, action_id: str) -> GameAction:
        """
        Delete a record.

        Raises:
            ActionNotFoundError: No record with that id (including a second
                removal of the same id)
        """
        position = self._index.pop(action_id, None)
        if position is None:
            raise ActionNotFoundError(action_id)

        removed = self._actions.pop(position)
        for action in self._actions[position:]:
            self._index[action.id] -= 1
        return removed

    def clear(self) -> None:
        """Drop every record. Issued ids stay reserved."""
        self._actions.clear()
        self._index.clear()

    def restore(self, actions: Iterable[GameAction]) -> None:
        """Load previously persisted records in their stored order."""
        for action in actions:
            if action.id in self._issued:
                raise ValueError(f"Duplicate action id: {action.id}")
            self._check_refs(action.team_id, action.player_ids)
            self._issued.add(action.id)
            self._index[action.id] = len(self._actions)
            self._actions.append(action)

    # ─────────────────────────────────────────────────────────────────────
    # Reads
    # ─────────────────────────────────────────────────────────────────────

    def get(self, action_id: str) -> GameAction:
        position = self._index.get(action_id)
        if position is None:
            raise ActionNotFoundError(action_id)
        return self._actions[position]

    def list(self, order: LedgerOrder = LedgerOrder.INSERTION) -> Tuple[GameAction, ...]:
        """Read-only view of the ledger in the requested order."""
        if LedgerOrder(order) == LedgerOrder.TIMESTAMP_DESC:
            # sorted() is stable: ties keep insertion order
            return tuple(sorted(self._actions, key=lambda a: -a.timestamp))
        return tuple(self._actions)

    def snapshot(self) -> Tuple[GameAction, ...]:
        """Copy of the current records (safe to hand to another thread)."""
        return tuple(self._actions)

    def __len__(self) -> int:
        return len(self._actions)

    def __iter__(self) -> Iterator[GameAction]:
        return iter(self.snapshot())

    def __contains__(self, action_id: object) -> bool:
        return action_id in self._index

    def __repr__(self) -> str:
        return f"ActionLedger(actions={len(self._actions)}, teams={list(self._teams)})"
