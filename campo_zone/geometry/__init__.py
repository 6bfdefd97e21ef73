"""
Geometry Layer
==============

Bounded Context: Pure spatial partition of the pitch (immutable, stateless).
"""

from campo_zone.geometry.grid import (
    CENTRE_ZONE,
    GRID_COLS,
    GRID_ROWS,
    GRID_SHAPE,
    Zone,
    iter_zones,
)

__all__ = [
    "Zone",
    "GRID_ROWS",
    "GRID_COLS",
    "GRID_SHAPE",
    "CENTRE_ZONE",
    "iter_zones",
]
