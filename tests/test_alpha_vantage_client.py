"""
Tests for the Alpha Vantage indicator client
"""

from unittest.mock import MagicMock

import pytest
import requests

from signal_trader.api.alpha_vantage_client import AlphaVantageClient
from signal_trader.core.exceptions import AuthenticationError, IndicatorError

from tests.conftest import make_response

MACD_PAYLOAD = {
    "Meta Data": {"1: Symbol": "AAPL", "2: Indicator": "Moving Average Convergence/Divergence (MACD)"},
    "Technical Analysis: MACD": {
        "2017-11-30": {"MACD_Signal": "2.1000", "MACD_Hist": "-0.1", "MACD": "2.0000"},
        "2017-12-01": {"MACD_Signal": "1.0000", "MACD_Hist": "0.5", "MACD": "1.5000"},
        "2017-11-29": {"MACD_Signal": "2.5000", "MACD_Hist": "-0.5", "MACD": "2.0000"},
    },
}


@pytest.fixture
def session():
    session = MagicMock()
    session.headers = {}
    return session


@pytest.fixture
def client(session):
    return AlphaVantageClient("demo-key", session=session)


class TestAlphaVantageClient:
    """Test cases for AlphaVantageClient."""

    def test_latest_period_is_used(self, client, session):
        session.get.return_value = make_response(200, MACD_PAYLOAD)

        result = client.get_macd("aapl")

        assert result.success
        assert result.value.period == "2017-12-01"
        assert result.value.fast_value == 1.5
        assert result.value.baseline_value == 1.0

    def test_request_parameters(self, client, session):
        session.get.return_value = make_response(200, MACD_PAYLOAD)

        client.get_macd("aapl")

        url = session.get.call_args.args[0]
        params = session.get.call_args.kwargs["params"]
        assert url == "https://www.alphavantage.co/query"
        assert params == {
            "function": "MACD",
            "symbol": "AAPL",
            "interval": "daily",
            "series_type": "close",
            "apikey": "demo-key",
        }

    def test_network_failure(self, client, session):
        session.get.side_effect = requests.exceptions.ConnectionError("no route")

        result = client.get_macd("AAPL")

        assert not result.success
        assert isinstance(result.error, IndicatorError)
        assert result.error.transient

    def test_rejected_key(self, client, session):
        session.get.return_value = make_response(403, {})

        result = client.get_macd("AAPL")

        assert isinstance(result.error, AuthenticationError)
        assert not result.error.transient

    def test_server_error(self, client, session):
        session.get.return_value = make_response(503, text="Service Unavailable")

        result = client.get_macd("AAPL")

        assert result.error.status_code == 503
        assert result.error.transient

    def test_unknown_symbol(self, client, session):
        session.get.return_value = make_response(200, {"Error Message": "Invalid API call."})

        result = client.get_macd("NOPE")

        assert not result.success
        assert not result.error.transient

    def test_throttled(self, client, session):
        session.get.return_value = make_response(200, {"Note": "Thank you for using Alpha Vantage!"})

        result = client.get_macd("AAPL")

        assert not result.success
        assert result.error.transient

    def test_malformed_values(self, client, session):
        session.get.return_value = make_response(200, {
            "Technical Analysis: MACD": {"2017-12-01": {"MACD": "n/a"}}
        })

        assert not client.get_macd("AAPL").success

    def test_invalid_json(self, client, session):
        session.get.return_value = make_response(200, ValueError("Expecting value"))

        assert isinstance(client.get_macd("AAPL").error, IndicatorError)
