"""
Action Event Message Schema
===========================

Bounded Context: Ledger change feed.

One message per ledger mutation, so remote consumers can mirror the
recent-actions list without polling.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from campo_match.models import GameAction

from .common import Timestamp


class ChangeType(str, Enum):
    """Ledger change enumeration."""
    CREATED = "created"
    UPDATED = "updated"
    REMOVED = "removed"


@dataclass(frozen=True)
class ActionEventMessage:
    """
    Ledger change notification.

    Attributes:
        schema_version: Message schema version
        timestamp: Wall-clock creation time
        match_id: Match identifier
        change_type: created / updated / removed
        action: Record after the change (before it, for removals)
        ledger_size: Number of records after the change
    """
    schema_version: str
    timestamp: Timestamp
    match_id: str
    change_type: ChangeType
    action: GameAction
    ledger_size: int

    def __post_init__(self):
        if self.ledger_size < 0:
            raise ValueError(f"ledger_size must be >= 0, got {self.ledger_size}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema_version': self.schema_version,
            'timestamp': self.timestamp.to_dict(),
            'match_id': self.match_id,
            'change_type': self.change_type.value,
            'action': self.action.to_dict(),
            'ledger_size': self.ledger_size,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ActionEventMessage':
        """Deserialize from dict.

        Raises:
            ValueError: If required fields missing or invalid
        """
        try:
            return cls(
                schema_version=str(data['schema_version']),
                timestamp=Timestamp(value=data['timestamp']),
                match_id=str(data['match_id']),
                change_type=ChangeType(data['change_type']),
                action=GameAction.from_dict(data['action']),
                ledger_size=int(data['ledger_size']),
            )
        except KeyError as e:
            raise ValueError(f"Missing required ActionEventMessage field: {e}")
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid ActionEventMessage data: {e}")
