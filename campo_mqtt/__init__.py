"""
Campo MQTT Communication Package
================================

Bounded Context: Data plane for live match heat maps

This package publishes heat-map snapshots and ledger changes so that
remote displays (scoreboards, tablets on the bench) can follow a match
without talking to the session directly.

Architecture:
- schemas/: Immutable message DTOs (HeatMapMessage, ActionEventMessage)
- publishers/: Message producers (HeatMapPublisher, ActionEventPublisher)
- subscriber.py: Typed consumer for both topics

Logging lives in campo_match.logging (shared with the session and exports).

Example:
    >>> from campo_mqtt import HeatMapPublisher, HeatMapMessage, Timestamp
    >>> from campo_match.logging import create_logger
    >>>
    >>> publisher = HeatMapPublisher(
    ...     broker_host="localhost",
    ...     topic="campo/data/heat_map/final",
    ...     logger=create_logger("mqtt_publisher")
    ... )
    >>> publisher.connect()
    >>> publisher.publish_heat_map(HeatMapMessage(
    ...     schema_version="1.0",
    ...     timestamp=Timestamp.now(),
    ...     match_id="final",
    ...     match_time=session.current_time,
    ...     team_a_id="fla",
    ...     team_b_id="flu",
    ...     grid=session.heat_grid(),
    ... ))
"""

__version__ = "1.0.0"

from .schemas import (
    SCHEMA_VERSION,
    ActionEventMessage,
    ChangeType,
    HeatMapMessage,
    Timestamp,
)

from .publishers import (
    ActionEventPublisher,
    BasePublisher,
    HeatMapPublisher,
)

from .subscriber import MessageSubscriber

__all__ = [
    '__version__',
    # Schemas
    'SCHEMA_VERSION',
    'Timestamp',
    'HeatMapMessage',
    'ActionEventMessage',
    'ChangeType',
    # Publishers
    'BasePublisher',
    'HeatMapPublisher',
    'ActionEventPublisher',
    # Subscriber
    'MessageSubscriber',
]
