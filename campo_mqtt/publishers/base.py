"""
Base MQTT Publisher
===================

Bounded Context: Data-plane transport for match messages

One publisher = one broker connection + one topic. Subclasses turn a typed
message (HeatMapMessage, ActionEventMessage) into a dict via format_message();
this class owns the connection, JSON encoding and delivery bookkeeping.

Delivery policy:
- QoS 0 by default: a scoreboard that misses a heat map gets the next one
- Publishing while offline is not an error; the message is counted as dropped
  and publish() returns False
"""

import json
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import paho.mqtt.client as mqtt

from campo_match.logging import LogEvent, StructuredLogger


class BasePublisher(ABC):
    """
    Connection + JSON delivery shared by the concrete publishers.

    Subclasses implement format_message().
    """

    def __init__(
        self,
        broker_host: str,
        broker_port: int,
        topic: str,
        client_id: str,
        logger: StructuredLogger,
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.topic = topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)
        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect

        self._connected = threading.Event()
        self._stats_lock = threading.Lock()
        self._published = 0
        self._dropped = 0
        self._last_published_at: Optional[str] = None

    @property
    def broker(self) -> str:
        return f"{self.broker_host}:{self.broker_port}"

    # ─────────────────────────────────────────────────────────────────────
    # Connection
    # ─────────────────────────────────────────────────────────────────────

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        if reason_code.is_failure:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Broker refused connection ({reason_code})",
                metadata={'broker': self.broker, 'client_id': self.client_id}
            )
            return

        self._connected.set()
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message=f"Publishing to {self.topic}",
            metadata={'broker': self.broker, 'client_id': self.client_id}
        )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        log = self.logger.warning if reason_code.is_failure else self.logger.info
        log(
            event=LogEvent.MQTT_DISCONNECTED,
            message=f"Publisher for {self.topic} disconnected",
            metadata={'broker': self.broker, 'reason_code': str(reason_code)}
        )

    def connect(self, timeout: float = 10.0) -> bool:
        """Connect and start the network loop. False when the broker is unreachable."""
        try:
            self.client.connect(self.broker_host, self.broker_port)
        except OSError as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Broker unreachable",
                exc_info=e,
                metadata={'broker': self.broker}
            )
            return False

        self.client.loop_start()
        if self._connected.wait(timeout=timeout):
            return True

        self.logger.error(
            event=LogEvent.MQTT_CONNECTION_ERROR,
            message=f"No CONNACK within {timeout}s",
            metadata={'broker': self.broker}
        )
        return False

    def disconnect(self) -> None:
        self.client.disconnect()
        self.client.loop_stop()
        self._connected.clear()
        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message=f"Publisher for {self.topic} closed",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    # ─────────────────────────────────────────────────────────────────────
    # Publishing
    # ─────────────────────────────────────────────────────────────────────

    @abstractmethod
    def format_message(self, *args, **kwargs) -> Dict[str, Any]:
        """Typed message -> JSON-compatible dict."""

    def _count_drop(self, reason: str) -> bool:
        with self._stats_lock:
            self._dropped += 1
        self.logger.warning(
            event=LogEvent.MQTT_PUBLISH_FAILED,
            message=f"Message dropped: {reason}",
            metadata={'topic': self.topic}
        )
        return False

    def publish(self, message_data: Dict[str, Any], retain: bool = False) -> bool:
        """
        Encode and send one message.

        Returns:
            True if the client accepted the message, False if it was dropped
        """
        if not self._connected.is_set():
            return self._count_drop("not connected")

        payload = json.dumps(message_data, ensure_ascii=False)
        info = self.client.publish(self.topic, payload, qos=self.qos, retain=retain)
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            return self._count_drop(mqtt.error_string(info.rc))

        with self._stats_lock:
            self._published += 1
            self._last_published_at = datetime.now(timezone.utc).isoformat()
            published = self._published

        self.logger.debug(
            event=LogEvent.MQTT_PUBLISH_SUCCESS,
            message="Message published",
            metadata={'topic': self.topic, 'published': published, 'bytes': len(payload)}
        )
        return True

    def get_stats(self) -> Dict[str, Any]:
        with self._stats_lock:
            return {
                'published': self._published,
                'dropped': self._dropped,
                'last_published_at': self._last_published_at,
                'connected': self._connected.is_set(),
                'topic': self.topic,
                'broker': self.broker,
            }
