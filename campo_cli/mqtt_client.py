"""
One-shot MQTT client used by campo-cli.

send_command() fires a command and returns once the broker has it (QoS 1).
request() additionally waits for the service's next status message, so the
CLI can print "action_recorded", "action_not_found" and so on.
"""

import json
import threading
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt


class MQTTCommandClient:
    """Short-lived connection to the match service's control topics."""

    def __init__(
        self,
        broker: str = "localhost",
        port: int = 1883,
        username: Optional[str] = None,
        password: Optional[str] = None
    ):
        self.broker = broker
        self.port = port

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2)
        if username and password:
            self.client.username_pw_set(username, password)

        self._reply: Optional[Dict[str, Any]] = None
        self._replied = threading.Event()
        self._subscribed = threading.Event()

    def _open(self) -> None:
        try:
            self.client.connect(self.broker, self.port, keepalive=30)
        except OSError:
            raise ConnectionError(
                f"Unable to connect to MQTT broker at {self.broker}:{self.port}. "
                "Is mosquitto running?"
            )
        self.client.loop_start()

    def _close(self) -> None:
        self.client.disconnect()
        self.client.loop_stop()

    def _publish(self, topic: str, command: Dict[str, Any], qos: int, timeout: float) -> None:
        try:
            payload = json.dumps(command, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise ValueError(f"Invalid command data: {e}")

        info = self.client.publish(topic, payload, qos=qos)
        info.wait_for_publish(timeout=timeout)
        if not info.is_published():
            raise TimeoutError(f"Broker did not acknowledge the command within {timeout}s")

    def send_command(
        self,
        topic: str,
        command: Dict[str, Any],
        qos: int = 1,
        timeout: float = 5.0
    ) -> None:
        """
        Publish one command and disconnect.

        Raises:
            ConnectionError: Broker unreachable
            ValueError: Command not JSON-serializable
            TimeoutError: No PUBACK within timeout
        """
        self._open()
        try:
            self._publish(topic, command, qos, timeout)
        finally:
            self._close()

    def request(
        self,
        command_topic: str,
        status_topic: str,
        command: Dict[str, Any],
        timeout: float = 5.0
    ) -> Dict[str, Any]:
        """
        Publish a command and return the next live status message.

        The retained status (whatever was last published before this call) is
        skipped.

        Raises:
            TimeoutError: No reply within timeout
        """
        def on_subscribe(client, userdata, mid, reason_codes, properties):
            self._subscribed.set()

        def on_message(client, userdata, msg):
            if msg.retain:
                return
            self._reply = json.loads(msg.payload.decode('utf-8'))
            self._replied.set()

        self.client.on_subscribe = on_subscribe
        self.client.on_message = on_message

        self._open()
        try:
            self.client.subscribe(status_topic, qos=1)
            if not self._subscribed.wait(timeout):
                raise TimeoutError(f"Could not subscribe to {status_topic}")
            self._publish(command_topic, command, 1, timeout)
            if not self._replied.wait(timeout):
                raise TimeoutError(f"No reply on {status_topic} within {timeout}s")
            return self._reply
        finally:
            self._close()
