"""
Settings for signal-trader.
Loads configuration and credentials from a dotenv file and the process environment.
"""

import os
import socket
from pathlib import Path
from typing import Dict, List, Optional
from urllib.parse import urlsplit, urlunsplit

from dotenv import dotenv_values

from .core.exceptions import ConfigurationError
from .utils.logger_setup import setup_logger

logger = setup_logger("config")

DEFAULT_TOPIC = "equity_signals"
DEFAULT_CONSUMER_GROUP = "trade-executor"

# Only these keys are taken from the dotenv file and the environment
KNOWN_KEYS = frozenset([
    "ALPHAVANTAGE_API_KEY", "ROBINHOOD_TOKEN", "POTENTIAL_SECURITIES",
    "REDIS_URL", "SIGNAL_TOPIC", "SIGNAL_PARTITIONS",
    "CONSUMER_GROUP", "CONSUMER_NAME", "CONSUMER_PARTITIONS", "CLAIM_IDLE_SECONDS",
    "DATABASE_URL", "DB_HOST", "DB_PORT", "DB_NAME", "DB_USERNAME", "DB_PASSWORD",
    "ALLOCATION_FRACTION", "MAX_SIGNAL_AGE_HOURS", "SUBSCRIBE_RETRY_SECONDS", "TEST_CASH",
    "SWEEP_TIME", "SWEEP_INTERVAL_MINUTES",
    "LOG_LEVEL", "LOG_DIR", "LOG_TO_FILE",
])

SECRET_MARKERS = ("KEY", "TOKEN", "PASSWORD", "SECRET")


def mask_url_credentials(value: str) -> str:
    """Replace the password in a URL's userinfo with asterisks."""
    if "://" not in value:
        return value

    parts = urlsplit(value)
    if parts.password is None:
        return value

    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"{parts.username or ''}:****@{host}"))


class Settings:
    """
    Typed access to configuration values.

    Values from the dotenv file are loaded first and then overridden by the
    process environment, so deployments can inject secrets without a file.
    """

    def __init__(self, env_file: Optional[str] = ".env", environ: Optional[Dict[str, str]] = None):
        """
        Initialize settings.

        Args:
            env_file: Path to the dotenv file, None to skip file loading
            environ: Environment mapping, defaults to os.environ
        """
        self.env_file = env_file
        self.values: Dict[str, str] = {}

        if env_file and Path(env_file).exists():
            self.values.update({k: v for k, v in dotenv_values(env_file).items()
                                if v and k in KNOWN_KEYS})
            logger.info(f"Loaded settings from {env_file}")

        source = os.environ if environ is None else environ
        self.values.update({k: v for k, v in source.items() if v and k in KNOWN_KEYS})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a raw string value.

        Args:
            key: Setting name
            default: Returned when the key is absent or empty

        Returns:
            Setting value or default
        """
        return self.values.get(key, default)

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return value.strip().lower() in ('true', '1', 'yes', 'on')

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be an integer, got {value!r}")

    def get_float(self, key: str, default: float = 0.0) -> float:
        value = self.get(key)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigurationError(f"{key} must be a number, got {value!r}")

    def get_list(self, key: str) -> List[str]:
        """Comma separated list, blanks dropped."""
        return [item.strip() for item in (self.get(key) or "").split(",") if item.strip()]

    # Domain accessors

    @property
    def alpha_vantage_api_key(self) -> Optional[str]:
        return self.get("ALPHAVANTAGE_API_KEY")

    @property
    def robinhood_token(self) -> Optional[str]:
        return self.get("ROBINHOOD_TOKEN")

    @property
    def redis_url(self) -> str:
        return self.get("REDIS_URL", "redis://localhost:6379/0")

    @property
    def topic(self) -> str:
        return self.get("SIGNAL_TOPIC", DEFAULT_TOPIC)

    @property
    def partition_count(self) -> int:
        count = self.get_int("SIGNAL_PARTITIONS", 4)
        if count < 1:
            raise ConfigurationError("SIGNAL_PARTITIONS must be at least 1")
        return count

    @property
    def consumer_group(self) -> str:
        return self.get("CONSUMER_GROUP", DEFAULT_CONSUMER_GROUP)

    @property
    def consumer_name(self) -> str:
        # Stable across restarts so pending entries are picked up again
        return self.get("CONSUMER_NAME", socket.gethostname())

    @property
    def consumer_partitions(self) -> List[int]:
        """Partitions owned by this executor instance, all of them by default."""
        raw = self.get_list("CONSUMER_PARTITIONS")
        if not raw:
            return list(range(self.partition_count))

        try:
            partitions = sorted({int(p) for p in raw})
        except ValueError:
            raise ConfigurationError(f"CONSUMER_PARTITIONS must list integers, got {raw}")

        invalid = [p for p in partitions if p < 0 or p >= self.partition_count]
        if invalid:
            raise ConfigurationError(
                f"CONSUMER_PARTITIONS {invalid} outside 0..{self.partition_count - 1}"
            )
        return partitions

    @property
    def database_url(self) -> str:
        url = self.get("DATABASE_URL")
        if url:
            return url

        username = self.get("DB_USERNAME", "postgres")
        password = self.get("DB_PASSWORD", "")
        host = self.get("DB_HOST", "localhost")
        port = self.get_int("DB_PORT", 5432)
        database = self.get("DB_NAME", "signal_trader")
        return f"postgresql+psycopg2://{username}:{password}@{host}:{port}/{database}"

    @property
    def symbols(self) -> List[str]:
        return [symbol.upper() for symbol in self.get_list("POTENTIAL_SECURITIES")]

    @property
    def allocation_fraction(self) -> float:
        fraction = self.get_float("ALLOCATION_FRACTION", 0.30)
        if not 0 < fraction <= 1:
            raise ConfigurationError("ALLOCATION_FRACTION must be in (0, 1]")
        return fraction

    @property
    def max_signal_age_hours(self) -> float:
        return self.get_float("MAX_SIGNAL_AGE_HOURS", 24.0)

    @property
    def subscribe_retry_seconds(self) -> float:
        return self.get_float("SUBSCRIBE_RETRY_SECONDS", 5.0)

    @property
    def claim_idle_seconds(self) -> int:
        """Pending records idle this long are claimed at startup, 0 disables claiming."""
        seconds = self.get_int("CLAIM_IDLE_SECONDS", 300)
        if seconds < 0:
            raise ConfigurationError("CLAIM_IDLE_SECONDS must not be negative")
        return seconds

    @property
    def test_cash(self) -> Optional[str]:
        """Dry-run buying power; when set no orders leave the process."""
        return self.get("TEST_CASH")

    @property
    def sweep_time(self) -> Optional[str]:
        return self.get("SWEEP_TIME")

    @property
    def sweep_interval_minutes(self) -> int:
        return self.get_int("SWEEP_INTERVAL_MINUTES", 0)

    # Validation

    def _require(self, keys: List[str], role: str):
        missing = [key for key in keys if not self.get(key)]
        if missing:
            raise ConfigurationError(f"Missing required settings for {role}: {', '.join(missing)}")

    def require_signaler(self, require_symbols: bool = True):
        """
        Fail fast when the signal generator cannot run.

        Args:
            require_symbols: Also require POTENTIAL_SECURITIES; off when the
                caller names the symbols itself
        """
        keys = ["ALPHAVANTAGE_API_KEY"]
        if require_symbols:
            keys.append("POTENTIAL_SECURITIES")
        self._require(keys, "signal generator")
        logger.debug(f"Signal generator settings: {self.get_masked()}")

    def require_executor(self):
        """Fail fast when the trade executor cannot run."""
        self._require(["ROBINHOOD_TOKEN"], "trade executor")
        partitions = self.consumer_partitions

        if not self.get("CONSUMER_NAME"):
            logger.warning(
                f"⚠️ CONSUMER_NAME not set, using host name {self.consumer_name}; "
                f"records pending under an earlier name are only recovered by idle claiming"
            )
        if not self.get("CONSUMER_PARTITIONS"):
            logger.warning(
                f"⚠️ CONSUMER_PARTITIONS not set, this executor reads all {self.partition_count} "
                f"partitions; give each replica its own list when running more than one"
            )

        logger.info(f"Trade executor owns partitions {partitions} of {self.topic}")
        logger.debug(f"Trade executor settings: {self.get_masked()}")

    def get_masked(self) -> Dict[str, str]:
        """Secrets masked for safe logging."""
        masked = {}
        for key, value in self.values.items():
            if not any(marker in key for marker in SECRET_MARKERS):
                masked[key] = mask_url_credentials(value)
            elif len(value) > 4:
                masked[key] = value[:4] + '*' * (len(value) - 4)
            else:
                masked[key] = '*' * len(value)
        return masked
