"""
Abstract equity store interface for signal-trader.
Defines the contract for persisting the per-symbol buy/sell state.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from .models import Equity, Signal, SIGNAL_CODES, DEFAULT_SIGNAL


class EquityStoreInterface(ABC):
    """
    Abstract interface for equity state storage.

    Implementations must guarantee one row per symbol (unique key) and an
    atomic conditional update, so overlapping sweeps cannot create duplicate
    rows or emit two events for one transition.
    """

    @abstractmethod
    def create_tables(self):
        """Create the equities relation if it does not exist."""
        pass

    @abstractmethod
    def get_or_create(self, symbol: str) -> Equity:
        """
        Insert the symbol with the default signal if absent, then read it.

        Args:
            symbol: Uppercased ticker symbol

        Returns:
            Equity: The stored row

        Raises:
            PersistenceError: If the database cannot be reached
        """
        pass

    @abstractmethod
    def get(self, symbol: str) -> Optional[Equity]:
        """Read one equity, None if unknown."""
        pass

    @abstractmethod
    def update_signal(self, symbol: str, expected: Signal, new: Signal) -> bool:
        """
        Atomically change the signal from ``expected`` to ``new``.

        Args:
            symbol: Ticker symbol
            expected: Signal the caller last read
            new: Signal to store

        Returns:
            bool: True if exactly one row changed, False if the row no longer
            holds ``expected``

        Raises:
            PersistenceError: If the write fails
        """
        pass

    @abstractmethod
    def list_equities(self) -> List[Equity]:
        """All stored equities ordered by symbol."""
        pass


__all__ = [
    'EquityStoreInterface',
    'Equity',
    'Signal',
    'SIGNAL_CODES',
    'DEFAULT_SIGNAL',
]
