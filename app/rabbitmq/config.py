from pydantic_settings import BaseSettings, SettingsConfigDict


class RabbitMQConfig(BaseSettings):
    """RabbitMQ connection and routing settings, read from RABBITMQ_* variables"""

    model_config = SettingsConfigDict(env_prefix="RABBITMQ_", env_file=".env", extra="ignore")

    enabled: bool = False
    host: str = "localhost"
    port: int = 5672
    username: str = "guest"
    password: str = "guest"
    virtual_host: str = "/"
    heartbeat: int = 600
    connection_attempts: int = 3

    settlement_exchange: str = "settlement_events"
    settlement_settled_key: str = "settlement.settled"


rabbitmq_config = RabbitMQConfig()
