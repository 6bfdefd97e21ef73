"""
Shared message types.

Two clocks travel in every data-plane message and must not be confused:
- Timestamp: wall-clock creation time (ISO 8601, UTC)
- match_time: seconds on the match clock, a plain int
"""

from dataclasses import dataclass
from datetime import datetime, timezone

SCHEMA_VERSION = "1.0"


@dataclass(frozen=True)
class Timestamp:
    """
    ISO 8601 wall-clock timestamp, validated on construction.

    Example:
        >>> Timestamp.now().value
        '2025-10-24T15:30:45.123456+00:00'
    """
    value: str

    def __post_init__(self):
        try:
            datetime.fromisoformat(self.value)
        except (TypeError, ValueError):
            raise ValueError(f"Invalid ISO timestamp: {self.value!r}")

    @classmethod
    def now(cls) -> 'Timestamp':
        return cls(datetime.now(timezone.utc).isoformat())

    def to_datetime(self) -> datetime:
        return datetime.fromisoformat(self.value)

    def to_dict(self) -> str:
        """Timestamps serialize as bare strings."""
        return self.value
