"""
Structured Logging for Campo
============================

Bounded Context: Observability

JSON-structured logging with typed events, shared by the match session,
export jobs and the MQTT data plane.

Public API
----------
    LogEvent: Typed event names (enum)
    event_category: ledger / session / error grouping of an event
    StructuredLogger: JSON logger implementation
    create_logger: Factory function

Example:
    >>> from campo_match.logging import create_logger, LogEvent
    >>> logger = create_logger("session")
    >>> logger.info(
    ...     event=LogEvent.ACTION_RECORDED,
    ...     message="Recorded Shot",
    ...     metadata={'team_id': 'fla', 'zone': [2, 3]}
    ... )
"""

from .events import LogEvent, event_category
from .structured import StructuredLogger, create_logger

__all__ = [
    'LogEvent',
    'event_category',
    'StructuredLogger',
    'create_logger',
]
