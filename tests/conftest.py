"""
Shared fixtures for signal-trader tests.
"""

import os

os.environ.setdefault("LOG_TO_FILE", "false")

from datetime import datetime
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import pytz
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from signal_trader.api.models import Account, IndicatorReading, Instrument, Position
from signal_trader.core.result import Result
from signal_trader.data.equity_store import SQLEquityStore
from signal_trader.events.stream_bus import StreamMessage

FIXED_NOW = datetime(2017, 12, 4, 15, 0, 0, tzinfo=pytz.utc)


@pytest.fixture
def engine():
    """In-memory SQLite engine shared across connections."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    store = SQLEquityStore(engine)
    store.create_tables()
    return store


@pytest.fixture
def indicator_client():
    """Indicator client whose get_macd returns a bullish reading by default."""
    client = MagicMock()
    client.get_macd.return_value = Result.ok(IndicatorReading(1.5, 1.0, "2017-12-01"))
    return client


@pytest.fixture
def publisher():
    publisher = MagicMock()
    publisher.publish.return_value = Result.ok("1512399600000-0")
    return publisher


@pytest.fixture
def brokerage():
    """Brokerage client with 1000 buying power, AAPL at 50 and no position."""
    client = MagicMock()
    client.get_account.return_value = Result.ok(Account(
        account_number="5RY82436",
        buying_power=Decimal("1000"),
        url="https://api.robinhood.com/accounts/5RY82436/",
    ))
    client.get_last_trade_price.return_value = Result.ok(Decimal("50"))
    client.get_instrument.return_value = Result.ok(Instrument(
        id="450dfc6d-5510-4d40-abfb-f633b7d9be3e",
        url="https://api.robinhood.com/instruments/450dfc6d-5510-4d40-abfb-f633b7d9be3e/",
        symbol="AAPL",
    ))
    client.get_position.return_value = Result.ok(Position(
        instrument_url="https://api.robinhood.com/instruments/450dfc6d-5510-4d40-abfb-f633b7d9be3e/",
        quantity=Decimal("0"),
    ))
    client.submit_order.return_value = Result.ok({"id": "order-1", "state": "queued"})
    return client


def make_message(key="AAPL", value='{"signal":"buy","at":"2017-12-04T14:00:00+00:00"}',
                 message_id="1512396000000-0", stream="equity_signals:0"):
    return StreamMessage(stream=stream, message_id=message_id, key=key, value=value)


def make_response(status_code=200, payload=None, text=""):
    """requests.Response stand-in."""
    response = MagicMock()
    response.status_code = status_code
    response.text = text
    if isinstance(payload, Exception):
        response.json.side_effect = payload
    else:
        response.json.return_value = payload
    return response
