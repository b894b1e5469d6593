"""
Core types shared by every component: error taxonomy and Result.
"""

from .exceptions import (
    SignalTraderError,
    ConfigurationError,
    ProviderError,
    IndicatorError,
    BrokerageError,
    AuthenticationError,
    PersistenceError,
    BrokerConnectionError,
)
from .result import Result

__all__ = [
    'SignalTraderError',
    'ConfigurationError',
    'ProviderError',
    'IndicatorError',
    'BrokerageError',
    'AuthenticationError',
    'PersistenceError',
    'BrokerConnectionError',
    'Result',
]
