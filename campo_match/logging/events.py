"""
Structured Log Event Types
==========================

Bounded Context: Observability Event Taxonomy

Typed event names for structured logging.

Event Naming Convention:
    <area>.<action>

    area: action, possession, clock, heat_map, export, mqtt, command, error

Example Log Query (CloudWatch Insights):
    fields @timestamp, event, message, metadata.action_id
    | filter event = "action.recorded"
    | stats count() by metadata.team_id
"""

from enum import Enum
from typing import Optional


class LogEvent(str, Enum):
    """
    Typed log event names for structured logging.

    Categories:
    - action.*: Ledger mutations
    - possession.* / clock.*: Session state transitions
    - heat_map.* / export.*: Aggregation and export
    - mqtt.*: Broker interactions
    - error.*: Error conditions
    """

    # ========== Ledger Events ==========
    ACTION_RECORDED = "action.recorded"
    """Action appended to the ledger."""

    ACTION_UPDATED = "action.updated"
    """Action edited in place."""

    ACTION_REMOVED = "action.removed"
    """Action deleted from the ledger."""

    ACTION_NOT_FOUND = "action.not_found"
    """Edit/delete referenced an unknown action id."""

    # ========== Session Events ==========
    POSSESSION_CHANGED = "possession.changed"
    """Ball possession holder set."""

    CLOCK_STARTED = "clock.started"
    """Session switched to Playing."""

    CLOCK_PAUSED = "clock.paused"
    """Session switched to Paused."""

    CLOCK_RESET = "clock.reset"
    """Match clock reset to 00:00."""

    # ========== Heat Map / Export Events ==========
    HEAT_MAP_COMPUTED = "heat_map.computed"
    """Grid re-aggregated from the ledger."""

    HEAT_MAP_SERIALIZED = "heat_map.serialized"
    """Heat map message serialized to JSON."""

    HEAT_MAP_RECEIVED = "heat_map.received"
    """Heat map message received by subscriber."""

    ACTION_EVENT_RECEIVED = "action.event.received"
    """Ledger change message received by subscriber."""

    EXPORT_STARTED = "export.started"
    """Export job started on a snapshot."""

    EXPORT_COMPLETED = "export.completed"
    """Export image written."""

    EXPORT_CANCELLED = "export.cancelled"
    """Export discarded before completion."""

    # ========== MQTT Events ==========
    MQTT_CONNECTED = "mqtt.connected"
    """MQTT broker connection established."""

    MQTT_DISCONNECTED = "mqtt.disconnected"
    """MQTT broker connection lost."""

    MQTT_PUBLISH_SUCCESS = "mqtt.publish.success"
    """Message successfully published to broker."""

    MQTT_PUBLISH_FAILED = "mqtt.publish.failed"
    """Message publication failed."""

    # ========== Error Events ==========
    EXPORT_FAILED = "error.export"
    """Rendering or rasterization failed."""

    INVALID_REFERENCE = "error.invalid_reference"
    """Team or player id rejected."""

    SERIALIZATION_ERROR = "error.serialization"
    """Failed to serialize message to JSON."""

    DESERIALIZATION_ERROR = "error.deserialization"
    """Failed to deserialize message from JSON."""

    MQTT_CONNECTION_ERROR = "error.mqtt_connection"
    """Failed to connect to MQTT broker."""

    MQTT_PUBLISH_ERROR = "error.mqtt_publish"
    """Error during message publication."""


# Event categories for filtering
LEDGER_EVENTS = {
    LogEvent.ACTION_RECORDED,
    LogEvent.ACTION_UPDATED,
    LogEvent.ACTION_REMOVED,
    LogEvent.ACTION_NOT_FOUND,
}

SESSION_EVENTS = {
    LogEvent.POSSESSION_CHANGED,
    LogEvent.CLOCK_STARTED,
    LogEvent.CLOCK_PAUSED,
    LogEvent.CLOCK_RESET,
}

ERROR_EVENTS = {
    LogEvent.EXPORT_FAILED,
    LogEvent.INVALID_REFERENCE,
    LogEvent.SERIALIZATION_ERROR,
    LogEvent.DESERIALIZATION_ERROR,
    LogEvent.MQTT_CONNECTION_ERROR,
    LogEvent.MQTT_PUBLISH_ERROR,
}


def event_category(event: LogEvent) -> Optional[str]:
    """"error", "ledger" or "session"; None for uncategorized events."""
    if event in ERROR_EVENTS:
        return "error"
    if event in LEDGER_EVENTS:
        return "ledger"
    if event in SESSION_EVENTS:
        return "session"
    return None
