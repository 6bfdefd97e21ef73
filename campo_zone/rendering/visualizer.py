"""
Heat Map Visualizer Module
==========================

Pure visualization layer for the 5x5 heat map.

Design:
- Stateless rendering (pure functions of a HeatGrid)
- No business logic: banding comes from the analytics layer
- Configurable canvas size and scale
- Uses supervision drawing utilities, OpenCV for rasterization

Dependencies:
- supervision (draw utilities, Color, Point, Rect)
- numpy (canvas)
- cv2 (circle primitive, PNG encoding)
"""

import unicodedata
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence

import cv2
import numpy as np
import supervision as sv

from campo_zone.analytics.aggregation import IntensityBand, intensity_band
from campo_zone.analytics.counter import HeatGrid
from campo_zone.geometry.grid import GRID_COLS, GRID_ROWS


class RasterizationError(OSError):
    """Raised when a rendered canvas cannot be written as an image."""


@dataclass(frozen=True)
class TeamLegend:
    """Summary box content for one team."""

    name: str
    color_hex: str
    action_count: int


LEGEND_BANDS = (
    (IntensityBand.LOW, "Baixa atividade"),
    (IntensityBand.HIGH, "Media atividade"),
    (IntensityBand.PEAK, "Alta atividade"),
)


def _ascii(text: str) -> str:
    """Hershey fonts only cover ASCII; strip accents."""
    normalized = unicodedata.normalize("NFKD", text)
    return normalized.encode("ascii", "ignore").decode("ascii")


def _band_color(band: IntensityBand) -> sv.Color:
    r, g, b, _ = band.rgba
    return sv.Color(r=r, g=g, b=b)


class HeatMapVisualizer:
    """
    Stateless renderer for heat-map snapshots.

    Design Philosophy:
    - SRP: Only draws, doesn't count
    - Same layout for live snapshots and exports

    Usage:
        visualizer = HeatMapVisualizer(scale=2, show_counts=True)
        canvas = visualizer.render(
            grid,
            title="Mapa de Calor - A vs B",
            team_a=TeamLegend("A", "#1d4ed8", 12),
            team_b=TeamLegend("B", "#dc2626", 9),
            included=["Posse de Bola", "Shot"],
        )
        visualizer.rasterize(canvas, Path("heat.png"))
    """

    def __init__(
        self,
        width: int = 800,
        height: int = 600,
        scale: int = 2,
        show_counts: bool = True,
        background_color: sv.Color = sv.Color(r=255, g=255, b=255),
        pitch_color: sv.Color = sv.Color(r=74, g=222, b=128),
        line_color: sv.Color = sv.Color(r=255, g=255, b=255),
        text_color: sv.Color = sv.Color(r=51, g=51, b=51),
    ):
        """
        Args:
            width: Logical canvas width (before scaling)
            height: Logical canvas height (before scaling)
            scale: Pixel multiplier applied to the whole layout
            show_counts: Draw each non-empty cell's total
            background_color: Canvas background
            pitch_color: Pitch fill
            line_color: Pitch markings
            text_color: Title, legend and summary text
        """
        if scale < 1:
            raise ValueError(f"scale must be >= 1, got {scale}")
        self.width = width
        self.height = height
        self.scale = scale
        self.show_counts = show_counts
        self.background_color = background_color
        self.pitch_color = pitch_color
        self.line_color = line_color
        self.text_color = text_color

        # Pitch box in logical coordinates
        self.pitch_x = 20
        self.pitch_y = 55
        self.pitch_w = width - 40
        self.pitch_h = int(height * 0.55)

    def _s(self, value: float) -> int:
        return int(round(value * self.scale))

    def _point(self, x: float, y: float) -> sv.Point:
        return sv.Point(x=self._s(x), y=self._s(y))

    def _rect(self, x: float, y: float, w: float, h: float) -> sv.Rect:
        return sv.Rect(x=self._s(x), y=self._s(y), width=self._s(w), height=self._s(h))

    def _text(self, scene: np.ndarray, text: str, x: float, y: float,
              scale: float = 0.5, color: Optional[sv.Color] = None,
              thickness: int = 1) -> np.ndarray:
        return sv.draw_text(
            scene=scene,
            text=_ascii(text),
            text_anchor=self._point(x, y),
            text_color=color or self.text_color,
            text_scale=scale * self.scale,
            text_thickness=max(1, thickness * self.scale // 2),
            text_padding=0,
        )

    def blank_canvas(self) -> np.ndarray:
        canvas = np.zeros((self._s(self.height), self._s(self.width), 3), dtype=np.uint8)
        canvas[:] = self.background_color.as_bgr()
        return canvas

    def draw_pitch(self, scene: np.ndarray) -> np.ndarray:
        """Draw pitch fill and markings (border, halfway line, centre circle, boxes)."""
        x, y, w, h = self.pitch_x, self.pitch_y, self.pitch_w, self.pitch_h
        thickness = max(1, self.scale)

        scene = sv.draw_filled_rectangle(scene=scene, rect=self._rect(x, y, w, h), color=self.pitch_color)
        scene = sv.draw_rectangle(scene=scene, rect=self._rect(x, y, w, h),
                                  color=self.line_color, thickness=thickness)
        scene = sv.draw_line(scene=scene, start=self._point(x + w / 2, y),
                             end=self._point(x + w / 2, y + h),
                             color=self.line_color, thickness=thickness)
        cv2.circle(scene, (self._s(x + w / 2), self._s(y + h / 2)), self._s(40),
                   self.line_color.as_bgr(), thickness)

        box_w, box_h = 48, min(128, h * 0.6)
        box_y = y + (h - box_h) / 2
        scene = sv.draw_rectangle(scene=scene, rect=self._rect(x, box_y, box_w, box_h),
                                  color=self.line_color, thickness=thickness)
        scene = sv.draw_rectangle(scene=scene, rect=self._rect(x + w - box_w, box_y, box_w, box_h),
                                  color=self.line_color, thickness=thickness)
        return scene

    def draw_cells(self, scene: np.ndarray, grid: HeatGrid) -> np.ndarray:
        """Overlay the banded 5x5 cells (and optionally their totals) on the pitch."""
        cell_w = self.pitch_w / GRID_COLS
        cell_h = self.pitch_h / GRID_ROWS

        for row in range(GRID_ROWS):
            for col in range(GRID_COLS):
                stats = grid.cell(row, col)
                band = intensity_band(stats.total, grid.max_total)
                x0 = self.pitch_x + col * cell_w
                y0 = self.pitch_y + row * cell_h
                polygon = np.array([
                    [self._s(x0), self._s(y0)],
                    [self._s(x0 + cell_w), self._s(y0)],
                    [self._s(x0 + cell_w), self._s(y0 + cell_h)],
                    [self._s(x0), self._s(y0 + cell_h)],
                ], dtype=np.int32)
                scene = sv.draw_filled_polygon(
                    scene=scene,
                    polygon=polygon,
                    color=_band_color(band),
                    opacity=band.rgba[3],
                )

                if self.show_counts and stats.total > 0:
                    scene = self._text(
                        scene, str(stats.total), x0 + cell_w / 2, y0 + cell_h / 2,
                        scale=0.5, color=sv.Color(r=255, g=255, b=255), thickness=2,
                    )
        return scene

    def draw_legend(self, scene: np.ndarray, top: float) -> np.ndarray:
        slot = self.width / len(LEGEND_BANDS)
        for idx, (band, label) in enumerate(LEGEND_BANDS):
            x = slot * idx + 40
            scene = sv.draw_filled_rectangle(scene=scene, rect=self._rect(x, top, 16, 16),
                                             color=_band_color(band))
            scene = self._text(scene, label, x + 16 + 70, top + 8, scale=0.45)
        return scene

    def draw_summary(self, scene: np.ndarray, top: float,
                     team_a: TeamLegend, team_b: TeamLegend) -> np.ndarray:
        half = (self.width - 60) / 2
        for idx, team in enumerate((team_a, team_b)):
            x = 20 + idx * (half + 20)
            scene = sv.draw_filled_rectangle(scene=scene, rect=self._rect(x, top, half, 50),
                                             color=sv.Color(r=243, g=244, b=246))
            scene = self._text(scene, team.name, x + half / 2, top + 16,
                               scale=0.55, color=sv.Color.from_hex(team.color_hex), thickness=2)
            scene = self._text(scene, f"{team.action_count} acoes", x + half / 2, top + 36,
                               scale=0.4, color=sv.Color(r=102, g=102, b=102))
        return scene

    def render(
        self,
        grid: HeatGrid,
        title: str,
        team_a: TeamLegend,
        team_b: TeamLegend,
        included: Sequence[str] = (),
    ) -> np.ndarray:
        """
        Render a complete heat-map image.

        Args:
            grid: Snapshot to draw
            title: Heading text
            team_a: Summary box for team A
            team_b: Summary box for team B
            included: Action names listed under "Acoes incluidas"

        Returns:
            BGR uint8 canvas of shape (height*scale, width*scale, 3)
        """
        scene = self.blank_canvas()
        scene = self._text(scene, title, self.width / 2, 28, scale=0.7, thickness=2)
        scene = self.draw_pitch(scene)
        scene = self.draw_cells(scene, grid)

        below = self.pitch_y + self.pitch_h
        scene = self.draw_legend(scene, below + 15)
        scene = self.draw_summary(scene, below + 45, team_a, team_b)

        if included:
            scene = self._text(scene, "Acoes incluidas: " + ", ".join(included),
                               self.width / 2, below + 120, scale=0.4)
        return scene

    def rasterize(self, canvas: np.ndarray, output_path: Path) -> Path:
        """
        Encode the canvas as PNG.

        Raises:
            RasterizationError: If OpenCV cannot write the file
        """
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        if not cv2.imwrite(str(output_path), canvas):
            raise RasterizationError(f"Failed to write image: {output_path}")
        return output_path
