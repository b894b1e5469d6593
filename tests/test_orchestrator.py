"""
Tests for component wiring
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest

from signal_trader.config import Settings
from signal_trader.core.exceptions import ConfigurationError
from signal_trader.orchestrator import SignalTraderOrchestrator


@pytest.fixture
def bus():
    with patch("signal_trader.orchestrator.RedisStreamBus") as cls:
        yield cls.from_url.return_value


def orchestrator(**values):
    values.setdefault("DATABASE_URL", "sqlite://")
    return SignalTraderOrchestrator(Settings(env_file=None, environ=values))


class TestOrchestrator:
    """Test cases for SignalTraderOrchestrator."""

    def test_signal_evaluator_wiring(self, bus):
        o = orchestrator(ALPHAVANTAGE_API_KEY="key", POTENTIAL_SECURITIES="AAPL")

        evaluator = o.build_signal_evaluator()

        assert evaluator.store is o.store
        assert evaluator.indicator_client.api_key == "key"
        assert evaluator.publisher.bus is bus

    def test_signal_evaluator_requires_settings(self, bus):
        with pytest.raises(ConfigurationError):
            orchestrator().build_signal_evaluator()

    def test_signal_consumer_wiring(self, bus):
        o = orchestrator(
            ROBINHOOD_TOKEN="token",
            SIGNAL_PARTITIONS="4",
            CONSUMER_PARTITIONS="1,3",
            CONSUMER_NAME="executor-1",
            MAX_SIGNAL_AGE_HOURS="12",
            TEST_CASH="500",
        )

        consumer = o.build_signal_consumer()

        assert consumer.partitions == [1, 3]
        assert consumer.consumer_name == "executor-1"
        assert consumer.max_age == timedelta(hours=12)
        assert consumer.executor.allocation == Decimal("0.3")
        assert consumer.executor.brokerage.dry_run

    def test_run_sweep_creates_schema(self, bus):
        bus.publish.return_value = "1-0"
        o = orchestrator(ALPHAVANTAGE_API_KEY="key", POTENTIAL_SECURITIES="AAPL,MSFT")

        with patch("signal_trader.orchestrator.AlphaVantageClient") as client_cls:
            client_cls.return_value.get_macd.return_value = MagicMock(success=False)
            summary = o.run_sweep()

        assert summary["evaluated"] == 2
        assert summary["failed"] == 2
        assert [e.symbol for e in o.store.list_equities()] == ["AAPL", "MSFT"]

    def test_signal_consumer_idle_claim_threshold(self, bus):
        o = orchestrator(ROBINHOOD_TOKEN="token", CLAIM_IDLE_SECONDS="60")
        assert o.build_signal_consumer().claim_idle_ms == 60000

        o = orchestrator(ROBINHOOD_TOKEN="token", CLAIM_IDLE_SECONDS="0")
        assert o.build_signal_consumer().claim_idle_ms is None

    def test_run_sweep_explicit_symbols_without_configured_list(self, bus):
        bus.publish.return_value = "1-0"
        o = orchestrator(ALPHAVANTAGE_API_KEY="key")

        with patch("signal_trader.orchestrator.AlphaVantageClient") as client_cls:
            client_cls.return_value.get_macd.return_value = MagicMock(success=False)
            summary = o.run_sweep(["AAPL"])

        assert summary["evaluated"] == 1
        assert [e.symbol for e in o.store.list_equities()] == ["AAPL"]

    def test_run_sweep_configured_list_required(self, bus):
        with pytest.raises(ConfigurationError) as exc:
            orchestrator(ALPHAVANTAGE_API_KEY="key").run_sweep()
        assert "POTENTIAL_SECURITIES" in str(exc.value)
