"""
MQTT Message Schemas
====================

Typed, immutable message definitions for the Campo data plane.

Messages:
- HeatMapMessage: 5x5 heat-map snapshot for a match
- ActionEventMessage: Ledger change (created / updated / removed)
"""

from .common import SCHEMA_VERSION, Timestamp
from .heat_map import HeatMapMessage
from .action_event import ActionEventMessage, ChangeType

__all__ = [
    'SCHEMA_VERSION',
    'Timestamp',
    'HeatMapMessage',
    'ActionEventMessage',
    'ChangeType',
]
