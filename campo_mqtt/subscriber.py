"""
MQTT Subscriber
===============

Bounded Context: Message Consumption

Receives heat-map snapshots and ledger changes for remote displays.

Design:
- Callback-based architecture (async message handling)
- Automatic deserialization with error handling
- Callbacks run in the paho-mqtt network thread

Message Flow:
    1. Subscriber receives JSON from MQTT
    2. Deserializes to typed schemas (HeatMapMessage, ActionEventMessage)
    3. Invokes user callback with typed message

Example (scoreboard display):
    >>> def on_heat_map(msg: HeatMapMessage):
    ...     print(f"{msg.match_id} @ {msg.match_time}s: max {msg.grid.max_total}")
    >>>
    >>> subscriber = MessageSubscriber(
    ...     broker_host="localhost",
    ...     heat_map_topic="campo/data/heat_map/final",
    ...     action_event_topic="campo/data/actions/final",
    ...     on_heat_map=on_heat_map,
    ...     on_action_event=lambda msg: None,
    ...     logger=create_logger("display")
    ... )
    >>> subscriber.connect()
    >>> subscriber.start()
    >>> subscriber.stop()
"""

import json
import threading
from typing import Any, Callable, Optional

import paho.mqtt.client as mqtt

from campo_match.logging import LogEvent, StructuredLogger

from .schemas import ActionEventMessage, HeatMapMessage


class MessageSubscriber:
    """
    MQTT subscriber for heat-map and action event messages.

    Thread Safety:
        Thread-safe via paho-mqtt's loop_start() and threading.Event
    """

    def __init__(
        self,
        broker_host: str,
        heat_map_topic: str,
        action_event_topic: str,
        on_heat_map: Callable[[HeatMapMessage], None],
        on_action_event: Callable[[ActionEventMessage], None],
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "campo_subscriber",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        """
        Args:
            broker_host: MQTT broker hostname
            heat_map_topic: Topic to subscribe for heat-map snapshots
            action_event_topic: Topic to subscribe for ledger changes
            on_heat_map: Callback for heat-map messages
            on_action_event: Callback for action event messages
            logger: Structured logger instance
            broker_port: MQTT broker port (default: 1883)
            client_id: MQTT client ID
            username: MQTT auth username (optional)
            password: MQTT auth password (optional)
            qos: Quality of Service (default: 0)
        """
        self.broker_host = broker_host
        self.broker_port = broker_port
        self.heat_map_topic = heat_map_topic
        self.action_event_topic = action_event_topic
        self.client_id = client_id
        self.logger = logger
        self.qos = qos

        self.on_heat_map = on_heat_map
        self.on_action_event = on_action_event

        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=client_id)
        if username and password:
            self.client.username_pw_set(username, password)

        self.client.on_connect = self._on_connect
        self.client.on_disconnect = self._on_disconnect
        self.client.on_message = self._on_message

        self._connected = threading.Event()
        self._running = False
        self._stats_lock = threading.Lock()
        self._message_count = {'heat_maps': 0, 'action_events': 0}

    def _on_connect(self, client, userdata, flags, reason_code, properties) -> None:
        """Subscribe to both topics once connected."""
        if not reason_code.is_failure:
            self._connected.set()

            client.subscribe(self.heat_map_topic, qos=self.qos)
            client.subscribe(self.action_event_topic, qos=self.qos)

            self.logger.info(
                event=LogEvent.MQTT_CONNECTED,
                message="Connected to MQTT broker and subscribed to topics",
                metadata={
                    'broker': f"{self.broker_host}:{self.broker_port}",
                    'heat_map_topic': self.heat_map_topic,
                    'action_event_topic': self.action_event_topic
                }
            )
        else:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message=f"Failed to connect to broker ({reason_code})",
                metadata={'broker': f"{self.broker_host}:{self.broker_port}"}
            )

    def _on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties) -> None:
        self._connected.clear()
        self.logger.warning(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Disconnected from MQTT broker",
            metadata={
                'broker': f"{self.broker_host}:{self.broker_port}",
                'reason_code': str(reason_code)
            }
        )

    def _on_message(self, client, userdata, msg: mqtt.MQTTMessage) -> None:
        """Decode JSON and route by topic."""
        try:
            data = json.loads(msg.payload.decode('utf-8'))

            if msg.topic == self.heat_map_topic:
                self._handle_heat_map_message(data)
            elif msg.topic == self.action_event_topic:
                self._handle_action_event_message(data)
            else:
                self.logger.warning(
                    event=LogEvent.DESERIALIZATION_ERROR,
                    message=f"Received message from unknown topic: {msg.topic}"
                )

        except json.JSONDecodeError as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Failed to decode JSON message",
                exc_info=e,
                metadata={'topic': msg.topic}
            )

    def _handle_heat_map_message(self, data: dict) -> None:
        try:
            heat_map_msg = HeatMapMessage.from_dict(data)
        except ValueError as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Heat map message failed schema validation",
                exc_info=e,
                metadata={'data': data}
            )
            return

        with self._stats_lock:
            self._message_count['heat_maps'] += 1

        self.logger.debug(
            event=LogEvent.HEAT_MAP_RECEIVED,
            message="Received heat map message",
            metadata={
                'match_id': heat_map_msg.match_id,
                'match_time': heat_map_msg.match_time,
                'max_total': heat_map_msg.grid.max_total
            }
        )
        self.on_heat_map(heat_map_msg)

    def _handle_action_event_message(self, data: dict) -> None:
        try:
            event_msg = ActionEventMessage.from_dict(data)
        except ValueError as e:
            self.logger.error(
                event=LogEvent.DESERIALIZATION_ERROR,
                message="Action event message failed schema validation",
                exc_info=e,
                metadata={'data': data}
            )
            return

        with self._stats_lock:
            self._message_count['action_events'] += 1

        self.logger.debug(
            event=LogEvent.ACTION_EVENT_RECEIVED,
            message="Received action event message",
            metadata={
                'match_id': event_msg.match_id,
                'change_type': event_msg.change_type.value,
                'action_id': event_msg.action.id
            }
        )
        self.on_action_event(event_msg)

    def connect(self, timeout: float = 10.0) -> bool:
        """
        Connect to MQTT broker (starts the network loop).

        Returns:
            True if connected successfully, False otherwise
        """
        try:
            self.client.connect(self.broker_host, self.broker_port)
            self.client.loop_start()

            if self._connected.wait(timeout=timeout):
                return True

            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Connection timeout",
                metadata={'timeout': timeout}
            )
            return False

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Failed to connect to broker",
                exc_info=e,
                metadata={'broker': f"{self.broker_host}:{self.broker_port}"}
            )
            return False

    def start(self) -> None:
        """Mark the subscriber as listening. Callbacks run in the MQTT thread."""
        if not self._connected.is_set():
            self.logger.warning(
                event=LogEvent.MQTT_CONNECTION_ERROR,
                message="Cannot start: not connected to broker"
            )
            return

        self._running = True
        self.logger.info(
            event=LogEvent.MQTT_CONNECTED,
            message="Subscriber started (listening for messages)",
            metadata={
                'heat_map_topic': self.heat_map_topic,
                'action_event_topic': self.action_event_topic
            }
        )

    def stop(self) -> None:
        """Stop the network loop and disconnect."""
        self._running = False
        self.client.loop_stop()
        self.client.disconnect()

        self.logger.info(
            event=LogEvent.MQTT_DISCONNECTED,
            message="Subscriber stopped",
            metadata=self.get_stats()
        )

    def is_connected(self) -> bool:
        return self._connected.is_set()

    def is_running(self) -> bool:
        return self._running

    def get_stats(self) -> dict:
        with self._stats_lock:
            return {
                'heat_maps_received': self._message_count['heat_maps'],
                'action_events_received': self._message_count['action_events'],
                'connected': self._connected.is_set(),
                'running': self._running,
                'heat_map_topic': self.heat_map_topic,
                'action_event_topic': self.action_event_topic,
                'broker': f"{self.broker_host}:{self.broker_port}"
            }
