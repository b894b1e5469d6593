"""
signal-trader
Moving-average crossover signals, published as keyed events and traded
by a long-running executor.
"""

__version__ = "1.0.0"
