"""
Zone Grid Geometry
==================

Pure geometry for the fixed 5x5 partition of the playing surface.

Design:
- Immutable value object (Zone)
- No validation at construction: out-of-bounds zones are storable
  (legacy/malformed data), they are only excluded from aggregation
- Stateless helpers
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterator, Tuple

GRID_ROWS = 5
GRID_COLS = 5
GRID_SHAPE: Tuple[int, int] = (GRID_ROWS, GRID_COLS)


@dataclass(frozen=True)
class Zone:
    """
    One cell of the 5x5 pitch partition.

    Attributes:
        row: Row index (0 = top of the pitch drawing)
        col: Column index (0 = left goal)

    Example:
        >>> Zone(2, 2).in_bounds()
        True
        >>> Zone(-1, 0).in_bounds()
        False
    """

    row: int
    col: int

    def in_bounds(self) -> bool:
        """True if the zone falls inside the 5x5 grid."""
        return 0 <= self.row < GRID_ROWS and 0 <= self.col < GRID_COLS

    @property
    def label(self) -> str:
        """1-based display label ("Zona 3-3")."""
        return f"Zona {self.row + 1}-{self.col + 1}"

    def to_dict(self) -> Dict[str, int]:
        return {'row': self.row, 'col': self.col}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Zone':
        """Deserialize from {'row': r, 'col': c}.

        Raises:
            ValueError: If keys are missing or not integers
        """
        try:
            return cls(row=int(data['row']), col=int(data['col']))
        except KeyError as e:
            raise ValueError(f"Missing required Zone field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid Zone data: {e}")

    @classmethod
    def coerce(cls, value: Any) -> 'Zone':
        """Accept a Zone, a (row, col) pair or a {'row', 'col'} mapping."""
        if isinstance(value, Zone):
            return value
        if isinstance(value, dict):
            return cls.from_dict(value)
        try:
            row, col = value
        except (TypeError, ValueError):
            raise ValueError(f"Cannot interpret {value!r} as a zone")
        return cls(row=int(row), col=int(col))


CENTRE_ZONE = Zone(GRID_ROWS // 2, GRID_COLS // 2)


def iter_zones() -> Iterator[Zone]:
    """Yield every in-bounds zone in row-major order."""
    for row in range(GRID_ROWS):
        for col in range(GRID_COLS):
            yield Zone(row, col)
