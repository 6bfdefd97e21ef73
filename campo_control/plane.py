"""
MQTTControlPlane - Command reception for a live match session

Bounded Context: MQTT connection management + command reception

One broker connection carries both directions:
  - commands arrive on the command topic (QoS 1) and are dispatched through
    the CommandRegistry
  - every answer, error and lifecycle change goes out on the status topic
    (QoS 1, retained, so a late CLI or scoreboard sees the last state)

A retained "offline" last-will is registered on the status topic, so a crashed
service does not leave "running" behind.

Handlers run on the paho network thread.
"""

import json
import logging
from datetime import datetime, timezone
from threading import Event
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from .registry import CommandNotAvailableError, CommandRegistry

logger = logging.getLogger(__name__)


class InvalidCommandPayload(ValueError):
    """Raised when a command message is not a JSON object with a command name."""


def decode_command(payload: bytes) -> Dict[str, Any]:
    """
    bytes -> command dict with a lowercase 'command' key.

    Raises:
        InvalidCommandPayload: Not UTF-8 JSON, not an object, or no command name
    """
    try:
        data = json.loads(payload.decode('utf-8'))
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise InvalidCommandPayload(f"Command is not valid JSON: {e}")

    if not isinstance(data, dict):
        raise InvalidCommandPayload(f"Command must be a JSON object, got {type(data).__name__}")

    name = str(data.get('command') or '').strip().lower()
    if not name:
        raise InvalidCommandPayload("Command object has no 'command' field")

    data['command'] = name
    return data


class MQTTControlPlane:
    """
    Receives match commands and publishes status replies.

    Example:
        control_plane = MQTTControlPlane(
            broker_host="localhost",
            broker_port=1883,
            command_topic="campo/control/final/commands",
            status_topic="campo/control/final/status",
            client_id="match_final",
        )
        control_plane.command_registry.register("status", service.handle_status, "Session status")

        if control_plane.connect(timeout=5.0):
            ...
        control_plane.disconnect()
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        command_topic: str,
        status_topic: str,
        client_id: str,
        username: Optional[str] = None,
        password: Optional[str] = None,
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.command_topic = command_topic
        self.status_topic = status_topic
        self.client_id = client_id

        self.command_registry = CommandRegistry()

        self.client = mqtt.Client(
            mqtt.CallbackAPIVersion.VERSION2,
            client_id=client_id,
            protocol=mqtt.MQTTv311,
        )
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.will_set(
            status_topic,
            json.dumps(self._envelope("offline")),
            qos=1,
            retain=True,
        )

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = Event()
        self._loop_running = False

    # ─────────────────────────────────────────────────────────────────────
    # Connection
    # ─────────────────────────────────────────────────────────────────────

    def connect(self, timeout: float = 5.0) -> bool:
        """Open the connection and wait for the subscription. False on failure."""
        logger.info(f"🔌 Control plane connecting to {self.broker_host}:{self.broker_port}")
        try:
            self.client.connect(self.broker_host, self.broker_port, keepalive=60)
        except OSError as e:
            logger.error(f"❌ Control plane cannot reach broker: {e}")
            return False

        self.client.loop_start()
        self._loop_running = True

        if not self._connected.wait(timeout=timeout):
            logger.error(f"❌ Control plane not connected after {timeout}s")
            return False
        return True

    def disconnect(self) -> None:
        """Publish 'disconnected' and close. Calling it twice is harmless."""
        if not self._loop_running:
            return
        self.publish_status("disconnected")
        self.client.disconnect()
        self.client.loop_stop()
        self._loop_running = False
        self._connected.clear()
        logger.info("🔌 Control plane disconnected")

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ─────────────────────────────────────────────────────────────────────
    # Status
    # ─────────────────────────────────────────────────────────────────────

    def _envelope(self, status: str, data: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        message = {
            "status": status,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "client_id": self.client_id,
        }
        if data is not None:
            message["data"] = data
        return message

    def publish_status(self, status: str, data: Optional[Dict[str, Any]] = None) -> None:
        """
        Publish {status, timestamp, client_id, data?} on the status topic.

        Args:
            status: e.g. "running", "action_recorded", "action_not_found"
            data: Optional JSON-compatible payload
        """
        payload = json.dumps(self._envelope(status, data), ensure_ascii=False, default=str)
        info = self.client.publish(self.status_topic, payload, qos=1, retain=True)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            logger.warning(f"⚠️ Status '{status}' not published ({mqtt.error_string(info.rc)})")
        else:
            logger.debug(f"📤 Status: {status}")

    # ─────────────────────────────────────────────────────────────────────
    # paho callbacks (network thread)
    # ─────────────────────────────────────────────────────────────────────

    def _on_connect(self, client, userdata, flags, reason_code, properties):
        if reason_code.is_failure:
            logger.error(f"❌ Control plane connection refused: {reason_code}")
            self._connected.clear()
            return

        client.subscribe(self.command_topic, qos=1)
        logger.info(f"📥 Listening for commands on {self.command_topic}")
        self.publish_status("connected")
        self._connected.set()

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        self._connected.clear()
        if reason_code.is_failure:
            logger.warning(f"⚠️ Control plane lost the broker: {reason_code}")

    def _on_message(self, client, userdata, msg):
        try:
            command_data = decode_command(msg.payload)
        except InvalidCommandPayload as e:
            logger.warning(f"⚠️ {e}")
            self.publish_status("invalid_command", {"error": str(e)})
            return

        command = command_data['command']
        logger.info(f"🎯 Command: {command}")
        try:
            self.command_registry.execute(command, command_data)
        except CommandNotAvailableError as e:
            logger.warning(f"⚠️ {e}")
            self.publish_status("unknown_command", {
                "command": command,
                "available": sorted(self.command_registry.available_commands),
            })
        except Exception as e:
            logger.error(f"❌ Command '{command}' crashed: {e}", exc_info=True)
            self.publish_status("command_failed", {"command": command, "error": str(e)})
