"""
Heat Map Message Schema
=======================

Bounded Context: Live heat-map snapshots for remote render consumers.

Message Flow:
    MatchSession → HeatGrid → HeatMapPublisher → MQTT → Subscriber → Display
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from campo_zone.analytics.aggregation import band_grid
from campo_zone.analytics.counter import HeatGrid

from .common import Timestamp


@dataclass(frozen=True)
class HeatMapMessage:
    """
    One heat-map snapshot.

    Attributes:
        schema_version: Message schema version (for evolution)
        timestamp: Wall-clock creation time
        match_id: Match identifier
        match_time: Match clock in seconds
        team_a_id: Id counted in ZoneStats.team_a
        team_b_id: Id counted in ZoneStats.team_b
        grid: 5x5 snapshot
        selected_names: Display filter in effect (None = everything)

    Example:
        >>> msg = HeatMapMessage(
        ...     schema_version="1.0",
        ...     timestamp=Timestamp.now(),
        ...     match_id="final",
        ...     match_time=754,
        ...     team_a_id="fla",
        ...     team_b_id="flu",
        ...     grid=session.heat_grid(),
        ... )
    """
    schema_version: str
    timestamp: Timestamp
    match_id: str
    match_time: int
    team_a_id: str
    team_b_id: str
    grid: HeatGrid
    selected_names: Optional[List[str]] = field(default=None)

    def __post_init__(self):
        """Validate invariants."""
        if self.match_time < 0:
            raise ValueError(f"match_time must be >= 0, got {self.match_time}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize to JSON-compatible dict (bands included for thin clients)."""
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'match_id': self.match_id,
            'match_time': self.match_time,
            'team_a_id': self.team_a_id,
            'team_b_id': self.team_b_id,
            'grid': self.grid.to_dict(),
            'bands': [[band.value for band in row] for row in band_grid(self.grid)],
            'selected_names': self.selected_names,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'HeatMapMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            selected = data.get('selected_names')
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                match_id=str(data['match_id']),
                match_time=int(data['match_time']),
                team_a_id=str(data['team_a_id']),
                team_b_id=str(data['team_b_id']),
                grid=HeatGrid.from_dict(data['grid']),
                selected_names=list(selected) if selected is not None else None,
            )
        except KeyError as e:
            raise ValueError(f"Missing required HeatMapMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid HeatMapMessage data: {e}")

    @property
    def total_actions(self) -> int:
        return self.grid.total
