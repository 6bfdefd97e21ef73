"""
Zone Grid Counter Module
========================

Stateful accumulator for per-zone, per-team action counts.

Design:
- Mutable state (numpy counters, one 5x5 array per team)
- Immutable snapshots (ZoneStats, HeatGrid)
- total is derived (team_a + team_b), never stored separately
- Out-of-bounds zones and unknown teams are skipped silently
"""

from dataclasses import dataclass
from typing import Any, Dict, List, Protocol, Tuple

import numpy as np

from campo_zone.geometry.grid import GRID_COLS, GRID_ROWS, GRID_SHAPE, Zone


class ZoneTagged(Protocol):
    """Anything that carries a zone and a team id (interface)."""

    zone: Zone
    team_id: str


@dataclass(frozen=True)
class ZoneStats:
    """
    Immutable statistics snapshot for one zone.

    Design:
    - Frozen dataclass (thread-safe read)
    - Value object (no identity)
    - total derived so total == team_a + team_b always holds
    """

    team_a: int = 0
    team_b: int = 0

    @property
    def total(self) -> int:
        return self.team_a + self.team_b

    def to_dict(self) -> Dict[str, int]:
        return {'team_a': self.team_a, 'team_b': self.team_b, 'total': self.total}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ZoneStats':
        stats = cls(team_a=int(data.get('team_a', 0)), team_b=int(data.get('team_b', 0)))
        if 'total' in data and int(data['total']) != stats.total:
            raise ValueError(
                f"Inconsistent ZoneStats: total={data['total']} but "
                f"team_a + team_b = {stats.total}"
            )
        return stats

    def __str__(self) -> str:
        return f"A={self.team_a}, B={self.team_b}, Total={self.total}"


@dataclass(frozen=True)
class HeatGrid:
    """
    Immutable 5x5 grid of ZoneStats plus the maximum cell total.

    Fully derived from a set of actions; never updated in place.

    Attributes:
        cells: Row-major tuple of rows, each a tuple of ZoneStats
        max_total: Maximum total over all 25 cells (0 when empty)
    """

    cells: Tuple[Tuple[ZoneStats, ...], ...]
    max_total: int = 0

    def __post_init__(self):
        """Validate invariants."""
        if len(self.cells) != GRID_ROWS or any(len(r) != GRID_COLS for r in self.cells):
            raise ValueError(f"HeatGrid must be {GRID_ROWS}x{GRID_COLS}")
        expected = max(cell.total for row in self.cells for cell in row)
        if self.max_total != expected:
            raise ValueError(
                f"HeatGrid max_total={self.max_total} does not match cells ({expected})"
            )

    @classmethod
    def empty(cls) -> 'HeatGrid':
        row = tuple(ZoneStats() for _ in range(GRID_COLS))
        return cls(cells=tuple(row for _ in range(GRID_ROWS)), max_total=0)

    def cell(self, row: int, col: int) -> ZoneStats:
        return self.cells[row][col]

    def at(self, zone: Zone) -> ZoneStats:
        return self.cells[zone.row][zone.col]

    @property
    def total(self) -> int:
        """Number of in-bounds, attributed actions behind this grid."""
        return sum(cell.total for row in self.cells for cell in row)

    def totals(self) -> np.ndarray:
        """5x5 integer array of cell totals."""
        return np.array([[cell.total for cell in row] for row in self.cells], dtype=np.int64)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cells': [[cell.to_dict() for cell in row] for row in self.cells],
            'max_total': self.max_total,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HeatGrid':
        try:
            cells = tuple(
                tuple(ZoneStats.from_dict(cell) for cell in row)
                for row in data['cells']
            )
            return cls(cells=cells, max_total=int(data['max_total']))
        except KeyError as e:
            raise ValueError(f"Missing required HeatGrid field: {e}")


class ZoneGrid:
    """
    Mutable per-team counters over the 5x5 grid.

    Usage:
        grid = new_grid()
        for action in actions:
            accumulate(grid, action, team_a_id, team_b_id)
        heat = finalize(grid)  # Immutable
    """

    def __init__(self):
        self.team_a = np.zeros(GRID_SHAPE, dtype=np.int64)
        self.team_b = np.zeros(GRID_SHAPE, dtype=np.int64)
        self.skipped = 0

    def reset(self) -> None:
        """Reset all counters to zero."""
        self.team_a[:] = 0
        self.team_b[:] = 0
        self.skipped = 0

    def __repr__(self) -> str:
        return f"ZoneGrid(total={int(self.team_a.sum() + self.team_b.sum())}, skipped={self.skipped})"


def new_grid() -> ZoneGrid:
    """Create a zero-valued 5x5 accumulator."""
    return ZoneGrid()


def accumulate(grid: ZoneGrid, action: ZoneTagged, team_a_id: str, team_b_id: str) -> bool:
    """
    Count one action into its zone.

    The action is skipped (no error) when its zone is outside the grid or its
    team id matches neither team; "not team A" only counts as team B when it
    really is team B.

    Returns:
        True if the action was counted
    """
    zone = action.zone
    if not zone.in_bounds():
        grid.skipped += 1
        return False

    if action.team_id == team_a_id:
        grid.team_a[zone.row, zone.col] += 1
    elif action.team_id == team_b_id:
        grid.team_b[zone.row, zone.col] += 1
    else:
        grid.skipped += 1
        return False
    return True


def finalize(grid: ZoneGrid) -> HeatGrid:
    """Snapshot the accumulator into an immutable HeatGrid."""
    cells: List[Tuple[ZoneStats, ...]] = []
    for row in range(GRID_ROWS):
        cells.append(tuple(
            ZoneStats(team_a=int(grid.team_a[row, col]), team_b=int(grid.team_b[row, col]))
            for col in range(GRID_COLS)
        ))
    max_total = int((grid.team_a + grid.team_b).max())
    return HeatGrid(cells=tuple(cells), max_total=max_total)
