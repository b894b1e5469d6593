"""
Error taxonomy for signal-trader.

- ProviderError and subclasses: indicator / brokerage request failures. They
  travel inside a Result and the caller decides to log and move on.
- PersistenceError: the equity state could not be read or written.
- BrokerConnectionError: the message broker is unreachable.
- ConfigurationError: missing or invalid settings, raised at start-up only.
"""

from typing import Optional


class SignalTraderError(Exception):
    """Base class for all signal-trader errors."""


class ConfigurationError(SignalTraderError):
    """Required configuration is missing or malformed."""


class ProviderError(SignalTraderError):
    """
    A request to an external provider failed.

    Attributes:
        provider: Provider name, e.g. 'alpha_vantage' or 'robinhood'
        status_code: HTTP status code when the provider answered, else None
        transient: True for network failures and throttling that may
            succeed on a later cycle
    """

    def __init__(self, message: str, provider: str = "unknown",
                 status_code: Optional[int] = None, transient: bool = True):
        super().__init__(message)
        self.message = message
        self.provider = provider
        self.status_code = status_code
        self.transient = transient

    def __str__(self):
        if self.status_code is not None:
            return f"[{self.provider}] HTTP {self.status_code}: {self.message}"
        return f"[{self.provider}] {self.message}"


class IndicatorError(ProviderError):
    """The indicator provider returned no usable reading."""

    def __init__(self, message: str, status_code: Optional[int] = None, transient: bool = True):
        super().__init__(message, provider="alpha_vantage", status_code=status_code, transient=transient)


class BrokerageError(ProviderError):
    """A brokerage read or order submission failed."""

    def __init__(self, message: str, status_code: Optional[int] = None, transient: bool = True):
        super().__init__(message, provider="robinhood", status_code=status_code, transient=transient)


class AuthenticationError(ProviderError):
    """The provider rejected the configured credentials."""

    def __init__(self, message: str, provider: str = "unknown", status_code: Optional[int] = None):
        super().__init__(message, provider=provider, status_code=status_code, transient=False)


class PersistenceError(SignalTraderError):
    """Reading or writing persisted equity state failed."""


class BrokerConnectionError(SignalTraderError):
    """The message broker could not be reached."""
