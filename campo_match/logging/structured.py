"""
Structured JSON Logger
======================

Bounded Context: Observability Infrastructure

One JSON object per line on top of the standard logging module:

    {
        "timestamp": "2025-10-24T15:30:45.123456+00:00",
        "level": "INFO",
        "component": "session",
        "event": "action.recorded",
        "message": "Recorded Chute",
        "context": {"match_id": "fla_flu"},
        "metadata": {"action_id": "3f2a...", "team_id": "fla"}
    }

"context" holds fields bound once per logger (bind()), "metadata" the
per-call fields.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .events import LogEvent, event_category


class StructuredLogger:
    """
    Emits LogEvent records as JSON lines.

    Example:
        >>> logger = StructuredLogger("session").bind(match_id="fla_flu")
        >>> logger.info(
        ...     event=LogEvent.POSSESSION_CHANGED,
        ...     message="Possession to fla",
        ...     metadata={'team_id': 'fla'}
        ... )
    """

    def __init__(
        self,
        component: str,
        level: int = logging.INFO,
        logger_name: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None
    ):
        """
        Args:
            component: Emitting component ("session", "export", "mqtt_publisher")
            level: Threshold for this logger
            logger_name: stdlib logger name (default: campo.<component>)
            context: Fields attached to every record
        """
        self.component = component
        self.logger_name = logger_name or f"campo.{component}"
        self.context: Dict[str, Any] = dict(context or {})
        self.logger = logging.getLogger(self.logger_name)
        self.logger.setLevel(level)

        # One handler per stdlib logger, even when several StructuredLoggers share it
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(JSONFormatter())
            self.logger.addHandler(handler)
            self.logger.propagate = False

    def bind(self, **context: Any) -> 'StructuredLogger':
        """Child logger whose records also carry these context fields."""
        return StructuredLogger(
            component=self.component,
            level=self.logger.level,
            logger_name=self.logger_name,
            context={**self.context, **context},
        )

    def _emit(
        self,
        level: int,
        event: LogEvent,
        message: str,
        metadata: Optional[Dict[str, Any]],
        exc_info: Optional[BaseException] = None
    ) -> None:
        if not self.logger.isEnabledFor(level):
            return

        record: Dict[str, Any] = {
            'timestamp': datetime.now(timezone.utc).isoformat(),
            'level': logging.getLevelName(level),
            'component': self.component,
            'event': LogEvent(event).value,
            'message': message,
        }
        category = event_category(LogEvent(event))
        if category:
            record['category'] = category
        if self.context:
            record['context'] = self.context
        if metadata:
            record['metadata'] = metadata
        if exc_info is not None:
            record['exception'] = {'type': type(exc_info).__name__, 'message': str(exc_info)}

        self.logger.log(level, json.dumps(record, ensure_ascii=False, default=str))

    def debug(self, event: LogEvent, message: str,
              metadata: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.DEBUG, event, message, metadata)

    def info(self, event: LogEvent, message: str,
             metadata: Optional[Dict[str, Any]] = None) -> None:
        self._emit(logging.INFO, event, message, metadata)

    def warning(self, event: LogEvent, message: str,
                metadata: Optional[Dict[str, Any]] = None,
                exc_info: Optional[BaseException] = None) -> None:
        self._emit(logging.WARNING, event, message, metadata, exc_info)

    def error(self, event: LogEvent, message: str,
              metadata: Optional[Dict[str, Any]] = None,
              exc_info: Optional[BaseException] = None) -> None:
        """
        Log an error; exc_info is summarized as {"type", "message"}.

        Example:
            >>> logger.error(
            ...     event=LogEvent.EXPORT_FAILED,
            ...     message="Heat map export failed",
            ...     exc_info=e,
            ... )
        """
        self._emit(logging.ERROR, event, message, metadata, exc_info)

    def set_level(self, level: int) -> None:
        self.logger.setLevel(level)


class JSONFormatter(logging.Formatter):
    """Records are already JSON; print them unchanged."""

    def format(self, record: logging.LogRecord) -> str:
        return record.getMessage()


def create_logger(component: str, level: int = logging.INFO, **context: Any) -> StructuredLogger:
    """
    Example:
        >>> logger = create_logger("session", match_id="fla_flu")
    """
    return StructuredLogger(component=component, level=level, context=context)
