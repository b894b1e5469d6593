"""
Robinhood brokerage client.

Reads account buying power, instruments, positions and quotes, and submits
market orders. Every call returns a Result.

Dry-run mode: when ``test_cash`` is set the client reports it as buying power
and logs orders instead of submitting them.
"""

from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Optional

import requests

from .models import Account, Instrument, Order, Position
from ..core.exceptions import AuthenticationError, BrokerageError, ConfigurationError
from ..core.result import Result
from ..utils.logger_setup import setup_logger

logger = setup_logger("robinhood_client")


def _to_decimal(value: Any, field_name: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, TypeError, ValueError):
        raise BrokerageError(f"Invalid {field_name}: {value!r}", transient=False)


class RobinhoodClient:
    """
    Brokerage client for the Robinhood REST API.
    """

    BASE_URL = "https://api.robinhood.com"

    def __init__(self, token: str, session: Optional[requests.Session] = None,
                 base_url: str = BASE_URL, timeout: float = 30,
                 test_cash: Optional[str] = None):
        """
        Args:
            token: API token sent as ``Authorization: Token <token>``
            session: HTTP session, a new one by default
            base_url: API root
            timeout: Request timeout in seconds
            test_cash: Dry-run buying power; disables order submission
        """
        self.token = token
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        try:
            self.test_cash = Decimal(str(test_cash)) if test_cash else None
        except InvalidOperation:
            raise ConfigurationError(f"TEST_CASH must be a number, got {test_cash!r}")

        self.session = session or requests.Session()
        self.session.max_redirects = 10
        self.session.headers.update({
            'Accept': 'application/json',
            'User-Agent': 'signal-trader/1.0'
        })

    @property
    def dry_run(self) -> bool:
        return self.test_cash is not None

    def _url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _request(self, method: str, path: str, params: Optional[Dict[str, Any]] = None,
                 body: Optional[Dict[str, Any]] = None, secured: bool = True,
                 expected: Iterable[int] = (200,)) -> Result[Dict[str, Any]]:
        """
        Make an HTTP request and decode the JSON answer.

        Args:
            method: HTTP method
            path: Path below the API root
            params: Query parameters
            body: JSON body
            secured: Send the Authorization header
            expected: Accepted status codes

        Returns:
            Result with the decoded JSON object
        """
        headers = {'Authorization': f"Token {self.token}"} if secured else {}

        try:
            response = self.session.request(
                method,
                self._url(path),
                params=params,
                json=body,
                headers=headers,
                timeout=self.timeout
            )
        except requests.exceptions.RequestException as e:
            return Result.fail(BrokerageError(f"{method} {path} failed: {e}"))

        if response.status_code in (401, 403):
            return Result.fail(AuthenticationError(
                "Token rejected", provider="robinhood", status_code=response.status_code
            ))
        if response.status_code not in expected:
            return Result.fail(BrokerageError(
                f"{method} {path}: {response.text[:200]}",
                status_code=response.status_code,
                transient=response.status_code >= 500 or response.status_code == 429
            ))

        if response.status_code == 404:
            return Result.ok({})

        try:
            return Result.ok(response.json())
        except ValueError as e:
            return Result.fail(BrokerageError(f"{method} {path} returned invalid JSON: {e}"))

    def get_account(self) -> Result[Account]:
        """Primary account and its buying power (test cash in dry-run mode)."""
        result = self._request("GET", "accounts/")
        if not result.success:
            return result

        accounts = result.value.get("results") or []
        if not accounts:
            return Result.fail(BrokerageError("No brokerage account found", transient=False))

        account = accounts[0]
        try:
            account_number = account["account_number"]
            buying_power = (self.test_cash if self.dry_run
                            else _to_decimal(account.get("buying_power"), "buying power"))
        except KeyError as e:
            return Result.fail(BrokerageError(f"Account is missing {e}", transient=False))
        except BrokerageError as e:
            return Result.fail(e)

        return Result.ok(Account(
            account_number=account_number,
            buying_power=buying_power,
            url=account.get("url") or self._url(f"accounts/{account_number}/"),
        ))

    def get_instrument(self, symbol: str) -> Result[Instrument]:
        result = self._request("GET", "instruments/", params={"symbol": symbol}, secured=False)
        if not result.success:
            return result

        instruments = result.value.get("results") or []
        if not instruments:
            return Result.fail(BrokerageError(f"Unknown instrument {symbol}", transient=False))

        instrument = instruments[0]
        try:
            return Result.ok(Instrument(
                id=instrument["id"],
                url=instrument.get("url") or self._url(f"instruments/{instrument['id']}/"),
                symbol=instrument.get("symbol", symbol),
            ))
        except KeyError as e:
            return Result.fail(BrokerageError(f"Instrument is missing {e}", transient=False))

    def get_position(self, account_number: str, instrument: Instrument) -> Result[Position]:
        """
        Current position of the account in an instrument.

        A 404 means the account never held the instrument and reads as a
        zero position.
        """
        result = self._request(
            "GET", f"positions/{account_number}/{instrument.id}/", expected=(200, 404)
        )
        if not result.success:
            return result

        data = result.value or {}
        if "quantity" not in data:
            return Result.ok(Position(instrument_url=instrument.url, quantity=Decimal("0")))

        try:
            quantity = _to_decimal(data["quantity"], "quantity")
        except BrokerageError as e:
            return Result.fail(e)

        return Result.ok(Position(
            instrument_url=data.get("instrument") or instrument.url,
            quantity=quantity,
        ))

    def get_last_trade_price(self, symbol: str) -> Result[Decimal]:
        result = self._request("GET", f"quotes/{symbol}/", secured=False)
        if not result.success:
            return result

        try:
            price = _to_decimal(result.value.get("last_trade_price"), "last trade price")
        except BrokerageError as e:
            return Result.fail(e)

        if price <= 0:
            return Result.fail(BrokerageError(f"Non-positive price {price} for {symbol}", transient=False))
        return Result.ok(price)

    def submit_order(self, account: Account, order: Order) -> Result[Dict[str, Any]]:
        """
        Submit a market order (expects HTTP 201).

        Args:
            account: Account placing the order
            order: Order to submit

        Returns:
            Result with the created order as returned by the brokerage
        """
        payload = order.to_payload(account.url)

        if self.dry_run:
            logger.warning(f"🧪 Dry run, not submitting: {order}")
            return Result.ok({"dry_run": True, **payload})

        result = self._request("POST", "orders/", body=payload, expected=(201,))
        if result.success:
            logger.info(f"✅ Order accepted: {order} (id={result.value.get('id')})")
        return result
