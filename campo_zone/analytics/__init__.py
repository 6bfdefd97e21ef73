"""
Analytics Layer
===============

Bounded Context: Counting and heat-map statistics.

Responsibilities:
- Accumulate action counts per zone and team (mutable ZoneGrid)
- Produce immutable snapshots (ZoneStats, HeatGrid)
- Band cell totals into heat intensities
- Per-cell detail and per-team summaries

Design Philosophy:
- Mutable accumulators, immutable outputs
- Pure aggregation functions (no hidden state, no caching)
"""

from campo_zone.analytics.counter import (
    HeatGrid,
    ZoneGrid,
    ZoneStats,
    ZoneTagged,
    accumulate,
    finalize,
    new_grid,
)
from campo_zone.analytics.aggregation import (
    BAND_COLORS,
    IntensityBand,
    ZoneActionDetail,
    aggregate,
    band_grid,
    format_clock,
    intensity_band,
    team_action_counts,
    zone_actions,
)

__all__ = [
    "ZoneStats",
    "HeatGrid",
    "ZoneGrid",
    "ZoneTagged",
    "new_grid",
    "accumulate",
    "finalize",
    "aggregate",
    "IntensityBand",
    "BAND_COLORS",
    "intensity_band",
    "band_grid",
    "ZoneActionDetail",
    "zone_actions",
    "team_action_counts",
    "format_clock",
]
