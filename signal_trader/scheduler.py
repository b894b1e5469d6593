"""
Periodic signal sweep.

Runs the signal generator on a timetable:
- daily at SWEEP_TIME (exchange time, e.g. "16:30" after the close), or
- every SWEEP_INTERVAL_MINUTES minutes.
Weekend runs are skipped.
"""

import time
from datetime import datetime
from typing import Callable, Dict, Optional

import schedule

from .utils.logger_setup import setup_logger
from .utils.timezone_utils import is_trading_day, market_time_to_local

logger = setup_logger("scheduler")

DEFAULT_SWEEP_TIME = "16:30"


class SignalScheduler:
    """
    Drives a sweep callable with the ``schedule`` library.
    """

    def __init__(self, sweep: Callable[[], Dict[str, int]], sweep_time: Optional[str] = None,
                 interval_minutes: int = 0, scheduler: Optional[schedule.Scheduler] = None,
                 trading_day_check: Callable[[], bool] = is_trading_day):
        """
        Args:
            sweep: Callable running one sweep
            sweep_time: Daily exchange-time ``HH:MM``; ignored when an interval is set
            interval_minutes: Minutes between sweeps, 0 for a daily sweep
            scheduler: schedule.Scheduler instance, a private one by default
            trading_day_check: Returns False on days to skip
        """
        self.sweep = sweep
        self.sweep_time = sweep_time or DEFAULT_SWEEP_TIME
        self.interval_minutes = interval_minutes
        self.scheduler = scheduler or schedule.Scheduler()
        self.trading_day_check = trading_day_check
        self._running = False

    def run_sweep(self) -> Optional[Dict[str, int]]:
        """Scheduled job: one sweep, errors logged, never raised."""
        if not self.trading_day_check():
            logger.info("Not a trading day, sweep skipped")
            return None

        logger.info("🔄 Starting signal sweep")
        try:
            return self.sweep()
        except Exception as e:
            logger.error(f"❌ Signal sweep failed: {e}", exc_info=True)
            return None

    def setup_schedule(self):
        """Register the sweep job."""
        self.scheduler.clear()

        if self.interval_minutes > 0:
            self.scheduler.every(self.interval_minutes).minutes.do(self.run_sweep)
            logger.info(f"📅 Sweep every {self.interval_minutes} minute(s)")
            return

        market_clock = datetime.strptime(self.sweep_time, "%H:%M").time()
        local_time = market_time_to_local(market_clock)
        self.scheduler.every().day.at(local_time).do(self.run_sweep)
        logger.info(f"📅 Daily sweep at {self.sweep_time} exchange time ({local_time} local)")

    def run(self, poll_seconds: float = 30):
        """Run until stop() or Ctrl+C."""
        self.setup_schedule()
        self._running = True
        logger.info("🎯 Signal scheduler started")

        try:
            while self._running:
                self.scheduler.run_pending()
                time.sleep(poll_seconds)
        except KeyboardInterrupt:
            logger.info("🛑 Scheduler stopped by user")

    def stop(self):
        self._running = False
