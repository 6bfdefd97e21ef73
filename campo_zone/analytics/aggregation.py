"""
Aggregation Engine
==================

Pure functions that project a sequence of recorded actions onto the 5x5 grid.

Design:
- No side effects: safe to call on every ledger mutation
- Order independent: counting is commutative
- Shared by live display and export (single mechanism)
- Intensity is banded (5 discrete bands), not a continuous gradient

Dependencies:
- campo_zone.analytics.counter (accumulator + snapshots)
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Protocol, Tuple

from campo_zone.analytics.counter import HeatGrid, accumulate, finalize, new_grid
from campo_zone.geometry.grid import Zone


class LabelledAction(Protocol):
    """Action shape needed for per-zone detail (interface)."""

    zone: Zone
    team_id: str
    timestamp: int

    @property
    def display_label(self) -> str:
        ...


class IntensityBand(str, Enum):
    """
    Heat intensity bands.

    Thresholds are inclusive upper bounds on total / max_total:
    LOW <= 0.25 < MEDIUM <= 0.50 < HIGH <= 0.75 < PEAK.
    MINIMUM is reserved for empty cells or an empty grid.
    """

    MINIMUM = "minimum"
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    PEAK = "peak"

    @property
    def rgba(self) -> Tuple[int, int, int, float]:
        """Fill colour as (r, g, b, alpha)."""
        return BAND_COLORS[self]


BAND_COLORS: Dict[IntensityBand, Tuple[int, int, int, float]] = {
    IntensityBand.MINIMUM: (255, 255, 0, 0.1),
    IntensityBand.LOW: (255, 255, 0, 0.4),
    IntensityBand.MEDIUM: (255, 200, 0, 0.6),
    IntensityBand.HIGH: (255, 100, 0, 0.8),
    IntensityBand.PEAK: (255, 0, 0, 0.9),
}

# (upper bound inclusive, band), checked in order
BAND_THRESHOLDS: Tuple[Tuple[float, IntensityBand], ...] = (
    (0.25, IntensityBand.LOW),
    (0.50, IntensityBand.MEDIUM),
    (0.75, IntensityBand.HIGH),
)


@dataclass(frozen=True)
class ZoneActionDetail:
    """One row of a cell's tooltip: what happened, who, when."""

    action_label: str
    team_label: str
    timestamp: int

    @property
    def time_label(self) -> str:
        return format_clock(self.timestamp)

    def to_dict(self) -> Dict[str, object]:
        return {
            'action_label': self.action_label,
            'team_label': self.team_label,
            'timestamp': self.timestamp,
        }


def aggregate(actions: Iterable, team_a_id: str, team_b_id: str) -> HeatGrid:
    """
    Count actions per zone and team.

    Args:
        actions: Any iterable of zone-tagged actions (ledger or a filtered subset)
        team_a_id: Id counted into the team_a bucket
        team_b_id: Id counted into the team_b bucket

    Returns:
        Immutable HeatGrid; identical for any permutation of actions
    """
    grid = new_grid()
    for action in actions:
        accumulate(grid, action, team_a_id, team_b_id)
    return finalize(grid)


def intensity_band(total: int, max_total: int) -> IntensityBand:
    """
    Map a cell total to its heat band relative to the grid maximum.

    Example:
        >>> intensity_band(3, 10)
        <IntensityBand.MEDIUM: 'medium'>
        >>> intensity_band(0, 10)
        <IntensityBand.MINIMUM: 'minimum'>
    """
    if max_total <= 0 or total <= 0:
        return IntensityBand.MINIMUM

    normalized = total / max_total
    for upper, band in BAND_THRESHOLDS:
        if normalized <= upper:
            return band
    return IntensityBand.PEAK


def band_grid(grid: HeatGrid) -> List[List[IntensityBand]]:
    """Band every cell of a grid (row-major)."""
    return [
        [intensity_band(cell.total, grid.max_total) for cell in row]
        for row in grid.cells
    ]


def zone_actions(
    actions: Iterable[LabelledAction],
    zone: Zone,
    team_names: Mapping[str, str],
) -> List[ZoneActionDetail]:
    """
    Detail rows for one cell, in the order the actions were given.

    Args:
        actions: Ledger entries
        zone: Cell to inspect
        team_names: {team_id: display name}; unknown ids are shown verbatim
    """
    return [
        ZoneActionDetail(
            action_label=action.display_label,
            team_label=team_names.get(action.team_id, action.team_id),
            timestamp=action.timestamp,
        )
        for action in actions
        if action.zone == zone
    ]


def team_action_counts(actions: Iterable, team_a_id: str, team_b_id: str) -> Dict[str, int]:
    """Per-team number of recorded actions, regardless of zone."""
    counts = {team_a_id: 0, team_b_id: 0}
    for action in actions:
        if action.team_id in counts:
            counts[action.team_id] += 1
    return counts


def format_clock(seconds: int) -> str:
    """Format elapsed match seconds as MM:SS."""
    seconds = max(int(seconds), 0)
    mins, secs = divmod(seconds, 60)
    return f"{mins:02d}:{secs:02d}"
