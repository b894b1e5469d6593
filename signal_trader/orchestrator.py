"""
signal-trader orchestrator
Builds the components from settings and runs the two halves of the system:
the signal sweep and the trade executor loop.
"""

import signal
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from .api.alpha_vantage_client import AlphaVantageClient
from .api.robinhood_client import RobinhoodClient
from .config import Settings
from .data.equity_store import SQLEquityStore, create_database_engine
from .events.signal_publisher import SignalEventPublisher
from .events.stream_bus import RedisStreamBus
from .trading.signal_consumer import SignalConsumer
from .trading.signal_evaluator import SignalEvaluator
from .trading.trade_executor import TradeExecutor
from .utils.logger_setup import setup_logger

logger = setup_logger("orchestrator")


class SignalTraderOrchestrator:
    """
    Wires clients, store, transport and trading components together.

    Every component gets explicit client instances built from the settings;
    nothing is shared through module-level singletons.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._store: Optional[SQLEquityStore] = None
        self._bus: Optional[RedisStreamBus] = None
        self.consumer: Optional[SignalConsumer] = None

    @property
    def store(self) -> SQLEquityStore:
        if self._store is None:
            engine = create_database_engine(self.settings.database_url)
            self._store = SQLEquityStore(engine)
        return self._store

    @property
    def bus(self) -> RedisStreamBus:
        if self._bus is None:
            self._bus = RedisStreamBus.from_url(
                self.settings.redis_url,
                self.settings.topic,
                self.settings.partition_count
            )
        return self._bus

    def init_db(self):
        self.store.create_tables()

    def build_signal_evaluator(self, require_symbols: bool = True) -> SignalEvaluator:
        self.settings.require_signaler(require_symbols)
        return SignalEvaluator(
            store=self.store,
            indicator_client=AlphaVantageClient(self.settings.alpha_vantage_api_key),
            publisher=SignalEventPublisher(self.bus),
        )

    def build_trade_executor(self) -> TradeExecutor:
        brokerage = RobinhoodClient(
            self.settings.robinhood_token,
            test_cash=self.settings.test_cash
        )
        if brokerage.dry_run:
            logger.warning(f"🧪 Dry-run mode: buying power fixed at {brokerage.test_cash}, no orders sent")
        return TradeExecutor(brokerage, allocation=Decimal(str(self.settings.allocation_fraction)))

    def build_signal_consumer(self) -> SignalConsumer:
        self.settings.require_executor()
        return SignalConsumer(
            bus=self.bus,
            executor=self.build_trade_executor(),
            group=self.settings.consumer_group,
            consumer_name=self.settings.consumer_name,
            partitions=self.settings.consumer_partitions,
            max_age=timedelta(hours=self.settings.max_signal_age_hours),
            retry_delay=self.settings.subscribe_retry_seconds,
            claim_idle_ms=self.settings.claim_idle_seconds * 1000 or None,
        )

    def run_sweep(self, symbols: Optional[List[str]] = None) -> Dict[str, int]:
        """
        Evaluate every configured symbol once.

        Args:
            symbols: Override of the configured symbol list

        Returns:
            Sweep summary
        """
        evaluator = self.build_signal_evaluator(require_symbols=not symbols)
        self.init_db()
        return evaluator.evaluate_all(symbols or self.settings.symbols)

    def run_consumer(self) -> Dict[str, int]:
        """Run the trade executor loop until SIGINT/SIGTERM."""
        self.consumer = self.build_signal_consumer()
        self.install_signal_handlers()

        logger.info("🚀 Trade executor starting")
        stats = self.consumer.run()
        logger.info(f"Executor statistics: {dict(self.consumer.executor.stats)}")
        return stats

    def install_signal_handlers(self):
        def handle(signum, frame):
            logger.info(f"Received signal {signum}, shutting down after current message")
            if self.consumer:
                self.consumer.stop()

        signal.signal(signal.SIGINT, handle)
        signal.signal(signal.SIGTERM, handle)

    def close(self):
        if self._bus is not None:
            self._bus.close()
        if self._store is not None:
            self._store.engine.dispose()
