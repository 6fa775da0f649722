import logging
import pika
from .config import rabbitmq_config

logger = logging.getLogger(__name__)


class RabbitMQSetup:
    """Creates connections and declares the exchanges this service publishes to"""

    def __init__(self, config=rabbitmq_config):
        self.config = config

    def connection_parameters(self) -> pika.ConnectionParameters:
        credentials = pika.PlainCredentials(self.config.username, self.config.password)
        return pika.ConnectionParameters(
            host=self.config.host,
            port=self.config.port,
            virtual_host=self.config.virtual_host,
            credentials=credentials,
            heartbeat=self.config.heartbeat,
            connection_attempts=self.config.connection_attempts,
        )

    def create_connection(self) -> pika.BlockingConnection:
        return pika.BlockingConnection(self.connection_parameters())

    def declare_exchanges(self, channel) -> None:
        channel.exchange_declare(
            exchange=self.config.settlement_exchange,
            exchange_type="topic",
            durable=True,
        )
        logger.info(f"Declared exchange {self.config.settlement_exchange}")


def init_rabbitmq() -> bool:
    """Declare exchanges once at startup. Returns False when disabled or unreachable."""
    if not rabbitmq_config.enabled:
        logger.info("RabbitMQ disabled, settlement events will not be published")
        return False

    setup = RabbitMQSetup()
    try:
        connection = setup.create_connection()
        try:
            setup.declare_exchanges(connection.channel())
        finally:
            connection.close()
        return True
    except Exception as e:
        logger.error(f"Failed to initialize RabbitMQ: {e}")
        return False
