"""
Tests for the Robinhood brokerage client
"""

from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests

from signal_trader.api.models import Account, Instrument, Order, OrderSide
from signal_trader.api.robinhood_client import RobinhoodClient
from signal_trader.core.exceptions import AuthenticationError, BrokerageError, ConfigurationError

from tests.conftest import make_response

ACCOUNT_URL = "https://api.robinhood.com/accounts/5RY82436/"
INSTRUMENT = Instrument(
    id="450dfc6d",
    url="https://api.robinhood.com/instruments/450dfc6d/",
    symbol="AAPL",
)


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return RobinhoodClient("secret-token", session=session)


class TestRobinhoodClient:
    """Test cases for RobinhoodClient."""

    def test_session_setup(self, client, session):
        assert session.max_redirects == 10
        assert not client.dry_run

    def test_get_account(self, client, session):
        session.request.return_value = make_response(200, {"results": [{
            "account_number": "5RY82436",
            "buying_power": "1000.5000",
            "url": ACCOUNT_URL,
        }]})

        account = client.get_account().unwrap()

        assert account.buying_power == Decimal("1000.5000")
        assert account.url == ACCOUNT_URL
        method, url = session.request.call_args.args
        assert (method, url) == ("GET", "https://api.robinhood.com/accounts/")
        assert session.request.call_args.kwargs["headers"] == {"Authorization": "Token secret-token"}

    def test_get_account_without_accounts(self, client, session):
        session.request.return_value = make_response(200, {"results": []})
        assert isinstance(client.get_account().error, BrokerageError)

    def test_rejected_token(self, client, session):
        session.request.return_value = make_response(401, {"detail": "Invalid token."})

        result = client.get_account()

        assert isinstance(result.error, AuthenticationError)

    def test_network_failure(self, client, session):
        session.request.side_effect = requests.exceptions.Timeout("read timed out")
        assert isinstance(client.get_last_trade_price("AAPL").error, BrokerageError)

    def test_get_instrument_is_unsecured(self, client, session):
        session.request.return_value = make_response(200, {"results": [{
            "id": "450dfc6d", "url": INSTRUMENT.url, "symbol": "AAPL",
        }]})

        instrument = client.get_instrument("AAPL").unwrap()

        assert instrument == INSTRUMENT
        assert session.request.call_args.kwargs["params"] == {"symbol": "AAPL"}
        assert session.request.call_args.kwargs["headers"] == {}

    def test_get_position(self, client, session):
        session.request.return_value = make_response(200, {
            "quantity": "10.0000", "instrument": INSTRUMENT.url,
        })

        position = client.get_position("5RY82436", INSTRUMENT).unwrap()

        assert position.quantity == Decimal("10")
        assert position.is_open
        assert session.request.call_args.args[1] == (
            "https://api.robinhood.com/positions/5RY82436/450dfc6d/"
        )

    def test_missing_position_reads_as_zero(self, client, session):
        session.request.return_value = make_response(404, ValueError("not json"))

        position = client.get_position("5RY82436", INSTRUMENT).unwrap()

        assert position.quantity == 0
        assert position.instrument_url == INSTRUMENT.url
        assert not position.is_open

    def test_last_trade_price(self, client, session):
        session.request.return_value = make_response(200, {"last_trade_price": "171.0500"})
        assert client.get_last_trade_price("AAPL").unwrap() == Decimal("171.0500")

    @pytest.mark.parametrize("price", ["0", "-1", "abc", None])
    def test_invalid_price(self, client, session, price):
        session.request.return_value = make_response(200, {"last_trade_price": price})
        assert not client.get_last_trade_price("AAPL").success

    def test_submit_order(self, client, session):
        session.request.return_value = make_response(201, {"id": "order-1"})
        account = Account("5RY82436", Decimal("1000"), ACCOUNT_URL)
        order = Order("AAPL", INSTRUMENT.url, 6, OrderSide.BUY, price=Decimal("50.00"))

        result = client.submit_order(account, order)

        assert result.unwrap() == {"id": "order-1"}
        body = session.request.call_args.kwargs["json"]
        assert body == {
            "account": ACCOUNT_URL,
            "instrument": INSTRUMENT.url,
            "symbol": "AAPL",
            "type": "market",
            "trigger": "immediate",
            "quantity": "6",
            "side": "buy",
            "time_in_force": "gtc",
            "price": "50.00",
        }

    def test_submit_order_requires_created(self, client, session):
        session.request.return_value = make_response(200, {"id": "order-1"})
        account = Account("5RY82436", Decimal("1000"), ACCOUNT_URL)
        order = Order("AAPL", INSTRUMENT.url, 10, OrderSide.SELL)

        result = client.submit_order(account, order)

        assert not result.success
        assert result.error.status_code == 200


class TestDryRun:
    """Test cases for the TEST_CASH dry-run mode."""

    @pytest.fixture
    def client(self, session):
        return RobinhoodClient("secret-token", session=session, test_cash="2500")

    def test_test_cash_overrides_buying_power(self, client, session):
        session.request.return_value = make_response(200, {"results": [{
            "account_number": "5RY82436", "buying_power": "1.00", "url": ACCOUNT_URL,
        }]})

        assert client.dry_run
        assert client.get_account().unwrap().buying_power == Decimal("2500")

    def test_orders_not_sent(self, client, session):
        account = Account("5RY82436", Decimal("2500"), ACCOUNT_URL)
        order = Order("AAPL", INSTRUMENT.url, 6, OrderSide.BUY, price=Decimal("50.00"))

        result = client.submit_order(account, order)

        assert result.value["dry_run"] is True
        session.request.assert_not_called()

    def test_invalid_test_cash(self, session):
        with pytest.raises(ConfigurationError):
            RobinhoodClient("secret-token", session=session, test_cash="lots")
