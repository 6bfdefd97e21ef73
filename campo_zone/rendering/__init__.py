"""
Rendering Layer
===============

Bounded Context: Heat-map visualization (stateless drawing).

Responsibilities:
- Draw pitch markings and banded zone cells
- Legend and team summary
- PNG rasterization for exports
"""

from campo_zone.rendering.visualizer import (
    HeatMapVisualizer,
    RasterizationError,
    TeamLegend,
)

__all__ = [
    "HeatMapVisualizer",
    "RasterizationError",
    "TeamLegend",
]
