"""
Heat Map Publisher
==================

Bounded Context: Heat-map snapshot production

Message Flow:
    MatchSession → HeatMapMessage → HeatMapPublisher → MQTT Broker

Snapshots are published retained, so a display that connects mid-match
gets the current map immediately.
"""

from typing import Any, Dict, Optional

from campo_match.logging import LogEvent, StructuredLogger

from ..schemas import HeatMapMessage
from .base import BasePublisher


class HeatMapPublisher(BasePublisher):
    """
    Publisher for HeatMapMessage snapshots.

    Example:
        >>> publisher = HeatMapPublisher(
        ...     broker_host="localhost",
        ...     topic="campo/data/heat_map/final",
        ...     logger=logger
        ... )
        >>> publisher.connect()
        >>> publisher.publish_heat_map(msg)
    """

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "campo_heat_map_publisher",
        username: Optional[str] = None,
        password: Optional[str] = None,
        qos: int = 0
    ):
        super().__init__(
            broker_host=broker_host,
            broker_port=broker_port,
            topic=topic,
            client_id=client_id,
            logger=logger,
            username=username,
            password=password,
            qos=qos
        )

    def format_message(self, heat_map_msg: HeatMapMessage) -> Dict[str, Any]:
        """
        Format HeatMapMessage to JSON-compatible dict.

        Raises:
            ValueError: If the message cannot be serialized
        """
        try:
            formatted = heat_map_msg.to_dict()

            self.logger.debug(
                event=LogEvent.HEAT_MAP_SERIALIZED,
                message="Serialized heat map message",
                metadata={
                    'match_id': heat_map_msg.match_id,
                    'match_time': heat_map_msg.match_time,
                    'max_total': heat_map_msg.grid.max_total
                }
            )
            return formatted

        except Exception as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize heat map message",
                exc_info=e,
                metadata={'match_id': getattr(heat_map_msg, 'match_id', None)}
            )
            raise ValueError(f"Failed to format heat map message: {e}")

    def publish_heat_map(self, heat_map_msg: HeatMapMessage) -> bool:
        """
        Publish a heat-map snapshot (retained).

        Returns:
            True if published successfully, False otherwise
        """
        try:
            message_data = self.format_message(heat_map_msg)
            return self.publish(message_data, retain=True)

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing heat map message",
                exc_info=e,
                metadata={'match_id': heat_map_msg.match_id, 'topic': self.topic}
            )
            return False
