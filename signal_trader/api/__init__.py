"""
Provider clients: indicator data and brokerage.
"""

from .models import IndicatorReading, Account, Instrument, Position, Order, OrderSide
from .alpha_vantage_client import AlphaVantageClient
from .robinhood_client import RobinhoodClient

__all__ = [
    'IndicatorReading',
    'Account',
    'Instrument',
    'Position',
    'Order',
    'OrderSide',
    'AlphaVantageClient',
    'RobinhoodClient',
]
