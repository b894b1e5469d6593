"""
Signal evaluation and trade execution.
"""

from .signal_evaluator import SignalEvaluator, decide_signal
from .trade_executor import TradeExecutor, ExecutionResult, ExecutionStatus, size_buy
from .signal_consumer import SignalConsumer

__all__ = [
    'SignalEvaluator',
    'decide_signal',
    'TradeExecutor',
    'ExecutionResult',
    'ExecutionStatus',
    'size_buy',
    'SignalConsumer',
]
