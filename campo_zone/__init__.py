"""
Campo Zone Heat Map
===================

Bounded Context: Spatial statistics for recorded match actions.

Design Philosophy:
- Separation of Concerns: Geometry, Analytics, Rendering separated
- Pure aggregation: the grid is always recomputed from the actions
- Pragmatismo > Purismo: numpy counters, supervision drawing

Architecture:

    campo_zone/
    ├── geometry/          # Pure geometry (immutable, stateless)
    │   └── grid.py        # Zone, 5x5 partition
    │
    ├── analytics/         # Counting & statistics
    │   ├── counter.py     # ZoneGrid (mutable), ZoneStats/HeatGrid (immutable)
    │   └── aggregation.py # aggregate(), intensity bands, per-cell detail
    │
    └── rendering/         # Visualization (stateless drawing)
        └── visualizer.py  # HeatMapVisualizer

Usage:

    from campo_zone import Zone, aggregate, intensity_band

    grid = aggregate(actions, team_a_id="fla", team_b_id="flu")
    grid.cell(2, 2).total
    intensity_band(grid.cell(2, 2).total, grid.max_total)

    from campo_zone import HeatMapVisualizer, TeamLegend

    visualizer = HeatMapVisualizer(scale=2)
    canvas = visualizer.render(grid, "Mapa de Calor", team_a_legend, team_b_legend)
    visualizer.rasterize(canvas, Path("heat.png"))
"""

# Geometry Layer (immutable, stateless)
from campo_zone.geometry import CENTRE_ZONE, GRID_COLS, GRID_ROWS, Zone, iter_zones

# Analytics Layer
from campo_zone.analytics import (
    HeatGrid,
    IntensityBand,
    ZoneActionDetail,
    ZoneGrid,
    ZoneStats,
    accumulate,
    aggregate,
    band_grid,
    finalize,
    format_clock,
    intensity_band,
    new_grid,
    team_action_counts,
    zone_actions,
)

# Rendering Layer (stateless)
from campo_zone.rendering import HeatMapVisualizer, RasterizationError, TeamLegend

__all__ = [
    # Geometry
    "Zone",
    "GRID_ROWS",
    "GRID_COLS",
    "CENTRE_ZONE",
    "iter_zones",
    # Analytics
    "ZoneStats",
    "HeatGrid",
    "ZoneGrid",
    "new_grid",
    "accumulate",
    "finalize",
    "aggregate",
    "IntensityBand",
    "intensity_band",
    "band_grid",
    "ZoneActionDetail",
    "zone_actions",
    "team_action_counts",
    "format_clock",
    # Rendering
    "HeatMapVisualizer",
    "RasterizationError",
    "TeamLegend",
]

__version__ = "1.0.0"
