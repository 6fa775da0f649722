import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional
import pika
from .config import rabbitmq_config
from .setup import RabbitMQSetup

logger = logging.getLogger(__name__)


def settlement_event_payload(settlement) -> Dict[str, Any]:
    """Serialize a settlement row into the settlement.settled event body"""
    return {
        "event": "settlement.settled",
        "id": settlement.id,
        "trip_id": settlement.trip_id,
        "from_user_id": settlement.from_user_id,
        "to_user_id": settlement.to_user_id,
        "amount": settlement.amount,
        "currency": settlement.currency,
        "status": getattr(settlement.status, "value", settlement.status),
        "settled_at": settlement.settled_at.isoformat() if settlement.settled_at else None,
        "settled_by": settlement.settled_by,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


class RabbitMQProducer:
    """Handles publishing messages to RabbitMQ"""

    def __init__(self):
        self.connection: Optional[pika.BlockingConnection] = None
        self.channel = None
        self.setup = RabbitMQSetup()

    def connect(self) -> None:
        """Establish connection to RabbitMQ"""
        try:
            self.connection = self.setup.create_connection()
            self.channel = self.connection.channel()
            self.setup.declare_exchanges(self.channel)
            logger.info("RabbitMQ producer connected successfully")
        except Exception as e:
            logger.error(f"Failed to connect RabbitMQ producer: {e}")
            raise

    def disconnect(self) -> None:
        """Close RabbitMQ connection"""
        if self.channel and not self.channel.is_closed:
            self.channel.close()
        if self.connection and not self.connection.is_closed:
            self.connection.close()
        logger.info("RabbitMQ producer disconnected")

    def publish_settlement_settled(self, settlement) -> bool:
        """
        Publish a settlement.settled event

        Args:
            settlement: Settlement row that just moved from pending to settled

        Returns:
            bool: True if message published successfully, False otherwise
        """
        try:
            if not self.connection or self.connection.is_closed:
                self.connect()

            self.channel.basic_publish(
                exchange=rabbitmq_config.settlement_exchange,
                routing_key=rabbitmq_config.settlement_settled_key,
                body=json.dumps(settlement_event_payload(settlement)),
                properties=pika.BasicProperties(
                    delivery_mode=2,  # Make message persistent
                    content_type='application/json',
                    correlation_id=settlement.id
                )
            )

            logger.info(f"Published settlement.settled for settlement {settlement.id}")
            return True

        except Exception as e:
            logger.error(f"Failed to publish settlement.settled for {settlement.id}: {e}")
            return False


# Global producer instance
_rabbitmq_producer: Optional[RabbitMQProducer] = None


def get_rabbitmq_producer() -> RabbitMQProducer:
    """Get or create RabbitMQ producer instance"""
    global _rabbitmq_producer
    if _rabbitmq_producer is None:
        _rabbitmq_producer = RabbitMQProducer()
    return _rabbitmq_producer


def close_rabbitmq_producer() -> None:
    """Close RabbitMQ producer connection"""
    global _rabbitmq_producer
    if _rabbitmq_producer:
        _rabbitmq_producer.disconnect()
        _rabbitmq_producer = None


def publish_settlement_settled(settlement) -> bool:
    """Best-effort notification; never raises so callers' writes are unaffected"""
    if not rabbitmq_config.enabled:
        logger.debug(f"RabbitMQ disabled, skipping settlement.settled for {settlement.id}")
        return False
    return get_rabbitmq_producer().publish_settlement_settled(settlement)
