"""
Unit tests for settlement event publishing.
"""
import json
import pytest
from datetime import datetime
from types import SimpleNamespace
from unittest.mock import MagicMock, patch
from app.models.settlements import SettlementStatus
from app.rabbitmq import producer
from app.rabbitmq.producer import RabbitMQProducer, publish_settlement_settled, settlement_event_payload


@pytest.fixture
def settlement():
    return SimpleNamespace(
        id="s-1",
        trip_id="trip-1",
        from_user_id="bob",
        to_user_id="alice",
        amount=3000,
        currency="EUR",
        status=SettlementStatus.settled,
        settled_at=datetime(2025, 2, 8, 12, 0, 0),
        settled_by="bob",
    )


@pytest.mark.unit
class TestSettlementEvent:

    def test_payload(self, settlement):
        payload = settlement_event_payload(settlement)
        assert payload["event"] == "settlement.settled"
        assert payload["status"] == "settled"
        assert payload["amount"] == 3000
        assert payload["settled_at"] == "2025-02-08T12:00:00"
        json.dumps(payload)

    def test_disabled_publisher_skips(self, settlement):
        with patch.object(producer.rabbitmq_config, "enabled", False):
            with patch("app.rabbitmq.producer.get_rabbitmq_producer") as get_producer:
                assert publish_settlement_settled(settlement) is False
        get_producer.assert_not_called()

    def test_publish_uses_configured_exchange(self, settlement):
        rabbit = RabbitMQProducer()
        rabbit.connection = MagicMock(is_closed=False)
        rabbit.channel = MagicMock()

        assert rabbit.publish_settlement_settled(settlement) is True

        kwargs = rabbit.channel.basic_publish.call_args.kwargs
        assert kwargs["exchange"] == "settlement_events"
        assert kwargs["routing_key"] == "settlement.settled"
        assert json.loads(kwargs["body"])["id"] == "s-1"

    def test_publish_failure_returns_false(self, settlement):
        rabbit = RabbitMQProducer()
        rabbit.connection = MagicMock(is_closed=False)
        rabbit.channel = MagicMock()
        rabbit.channel.basic_publish.side_effect = RuntimeError("channel closed")

        assert rabbit.publish_settlement_settled(settlement) is False
