"""
Alpha Vantage indicator client.
Fetches the latest daily MACD and MACD signal values for a symbol.
"""

from typing import Any, Dict, Optional

import requests

from .models import IndicatorReading
from ..core.exceptions import AuthenticationError, IndicatorError
from ..core.result import Result
from ..utils.logger_setup import setup_logger

logger = setup_logger("alpha_vantage_client")

MACD_SERIES_KEY = "Technical Analysis: MACD"


class AlphaVantageClient:
    """
    Indicator client for the Alpha Vantage technical indicator API.

    Every call returns a Result; network, authentication and throttling
    failures are reported as IndicatorError and never raised.
    """

    BASE_URL = "https://www.alphavantage.co"

    def __init__(self, api_key: str, session: Optional[requests.Session] = None,
                 base_url: str = BASE_URL, timeout: float = 30):
        """
        Args:
            api_key: Alpha Vantage API key
            session: HTTP session, a new one by default
            base_url: API root
            timeout: Request timeout in seconds
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'signal-trader/1.0'
        })

    def get_macd(self, symbol: str, interval: str = "daily",
                 series_type: str = "close") -> Result[IndicatorReading]:
        """
        Fetch the most recent MACD reading.

        Args:
            symbol: Ticker symbol
            interval: Indicator interval
            series_type: Price series the indicator is computed on

        Returns:
            Result with IndicatorReading(fast_value=MACD, baseline_value=MACD_Signal)
        """
        params = {
            "function": "MACD",
            "symbol": symbol.upper(),
            "interval": interval,
            "series_type": series_type,
            "apikey": self.api_key,
        }

        payload = self._get("/query", params)
        if not payload.success:
            return payload

        return self._parse_macd(symbol.upper(), payload.value)

    def _get(self, path: str, params: Dict[str, Any]) -> Result[Dict[str, Any]]:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            return Result.fail(IndicatorError(f"Request to {path} failed: {e}"))

        if response.status_code in (401, 403):
            return Result.fail(AuthenticationError(
                "API key rejected", provider="alpha_vantage", status_code=response.status_code
            ))
        if response.status_code != 200:
            return Result.fail(IndicatorError(
                response.text[:200], status_code=response.status_code,
                transient=response.status_code >= 500 or response.status_code == 429
            ))

        try:
            data = response.json()
        except ValueError as e:
            return Result.fail(IndicatorError(f"Response is not JSON: {e}"))

        if not isinstance(data, dict):
            return Result.fail(IndicatorError("Unexpected response shape"))

        if "Error Message" in data:
            return Result.fail(IndicatorError(data["Error Message"], transient=False))

        # Throttling answers come back as 200 with an informational note
        for notice_key in ("Note", "Information"):
            if notice_key in data and MACD_SERIES_KEY not in data:
                return Result.fail(IndicatorError(data[notice_key], transient=True))

        return Result.ok(data)

    @staticmethod
    def _parse_macd(symbol: str, data: Dict[str, Any]) -> Result[IndicatorReading]:
        series = data.get(MACD_SERIES_KEY)
        if not series:
            return Result.fail(IndicatorError(f"No MACD series for {symbol}", transient=False))

        # Period keys are ISO dates (optionally with a time), so max() is the latest
        period = max(series.keys())
        values = series[period]

        try:
            reading = IndicatorReading(
                fast_value=float(values["MACD"]),
                baseline_value=float(values["MACD_Signal"]),
                period=period,
            )
        except (KeyError, TypeError, ValueError) as e:
            return Result.fail(IndicatorError(f"Malformed MACD values for {symbol} on {period}: {e}"))

        logger.debug(
            f"{symbol} {period}: MACD={reading.fast_value:.4f} signal={reading.baseline_value:.4f}"
        )
        return Result.ok(reading)
