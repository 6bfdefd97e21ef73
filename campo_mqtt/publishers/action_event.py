"""
Action Event Publisher
======================

Bounded Context: Ledger change feed production

Message Flow:
    MatchSession → SessionChange → ActionEventMessage → ActionEventPublisher → MQTT
"""

from typing import Any, Dict, Optional

from campo_match.logging import LogEvent, StructuredLogger

from ..schemas import ActionEventMessage
from .base import BasePublisher


class ActionEventPublisher(BasePublisher):
    """Publisher for ActionEventMessage instances."""

    def __init__(
        self,
        broker_host: str,
        topic: str,
        logger: StructuredLogger,
        broker_port: int = 1883,
        client_id: str = "campo_action_publisher",
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

    def format_message(self, event_msg: ActionEventMessage) -> Dict[str, Any]:
        try:
            return event_msg.to_dict()
        except Exception as e:
            self.logger.error(
                event=LogEvent.SERIALIZATION_ERROR,
                message="Failed to serialize action event message",
                exc_info=e,
            )
            raise ValueError(f"Failed to format action event message: {e}")

    def publish_action_event(self, event_msg: ActionEventMessage) -> bool:
        """
        Publish one ledger change.

        Returns:
            True if published successfully, False otherwise
        """
        try:
            message_data = self.format_message(event_msg)
            return self.publish(message_data)

        except Exception as e:
            self.logger.error(
                event=LogEvent.MQTT_PUBLISH_ERROR,
                message="Error publishing action event message",
                exc_info=e,
                metadata={
                    'action_id': event_msg.action.id,
                    'change_type': event_msg.change_type.value,
                    'topic': self.topic
                }
            )
            return False
