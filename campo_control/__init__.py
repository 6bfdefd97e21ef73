"""
campo_control - match commands over MQTT

    CommandRegistry   name -> handler table, filled by MatchSessionService
    MQTTControlPlane  broker connection: commands in (QoS 1), status out
                      (QoS 1, retained, "offline" last-will)
"""

from .plane import InvalidCommandPayload, MQTTControlPlane, decode_command
from .registry import CommandNotAvailableError, CommandRegistry

__all__ = [
    "CommandRegistry",
    "CommandNotAvailableError",
    "InvalidCommandPayload",
    "MQTTControlPlane",
    "decode_command",
]
