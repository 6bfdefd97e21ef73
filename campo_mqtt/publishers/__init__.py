"""
MQTT Publishers
===============

Connection-managed publishers for the Campo data plane.
"""

from .base import BasePublisher
from .heat_map import HeatMapPublisher
from .action_event import ActionEventPublisher

__all__ = [
    'BasePublisher',
    'HeatMapPublisher',
    'ActionEventPublisher',
]
