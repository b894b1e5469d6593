"""
SQL equity store for signal-trader.

SQLAlchemy Core implementation of EquityStoreInterface. Production runs on
PostgreSQL (psycopg2); the same statements run on SQLite for tests.
"""

from typing import List, Optional

import sqlalchemy as sa
from sqlalchemy import create_engine
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from . import EquityStoreInterface
from .models import Equity, Signal, DEFAULT_SIGNAL
from ..core.exceptions import PersistenceError
from ..utils.logger_setup import setup_logger
from ..utils.timezone_utils import utc_now, to_utc

metadata = sa.MetaData()

equities = sa.Table(
    "equities",
    metadata,
    sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
    sa.Column("symbol", sa.String(16), nullable=False, unique=True, index=True),
    sa.Column("signal", sa.SmallInteger, nullable=False, default=DEFAULT_SIGNAL.code,
              server_default=sa.text(str(DEFAULT_SIGNAL.code))),
    sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
    sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
)


def create_database_engine(url: str, pool_size: int = 5, max_overflow: int = 10) -> Engine:
    """
    Build the SQLAlchemy engine for the equity store.

    Args:
        url: SQLAlchemy database URL
        pool_size: Connection pool size (server databases only)
        max_overflow: Maximum pool overflow (server databases only)

    Returns:
        Engine
    """
    if url.startswith("sqlite"):
        return create_engine(url)

    return create_engine(
        url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_pre_ping=True,
        pool_recycle=3600
    )


class SQLEquityStore(EquityStoreInterface):
    """
    Equity store over a SQLAlchemy engine.

    get-or-create is an explicit insert-if-absent followed by a read; the
    unique constraint on ``symbol`` resolves racing inserts. Signal changes
    are compare-and-set updates keyed on the previously read signal.
    """

    def __init__(self, engine: Engine):
        self.engine = engine
        self.logger = setup_logger("equity_store")

    def create_tables(self):
        try:
            metadata.create_all(self.engine, checkfirst=True)
            self.logger.info("Equities table ready")
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not create equities table: {e}") from e

    def _insert_if_absent(self, conn, symbol: str):
        now = utc_now()
        values = {
            "symbol": symbol,
            "signal": DEFAULT_SIGNAL.code,
            "created_at": now,
            "updated_at": now,
        }
        dialect = self.engine.dialect.name

        if dialect == "postgresql":
            conn.execute(postgresql.insert(equities).values(**values)
                         .on_conflict_do_nothing(index_elements=["symbol"]))
        elif dialect == "sqlite":
            conn.execute(sqlite.insert(equities).values(**values)
                         .on_conflict_do_nothing(index_elements=["symbol"]))
        else:
            try:
                with conn.begin_nested():
                    conn.execute(sa.insert(equities).values(**values))
            except IntegrityError:
                self.logger.debug(f"{symbol} already stored")

    def get_or_create(self, symbol: str) -> Equity:
        try:
            with self.engine.begin() as conn:
                self._insert_if_absent(conn, symbol)
                row = conn.execute(
                    sa.select(equities).where(equities.c.symbol == symbol)
                ).fetchone()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not load equity {symbol}: {e}") from e

        if row is None:
            raise PersistenceError(f"Equity {symbol} missing right after insert")

        return self._row_to_equity(row)

    def get(self, symbol: str) -> Optional[Equity]:
        try:
            with self.engine.connect() as conn:
                row = conn.execute(
                    sa.select(equities).where(equities.c.symbol == symbol)
                ).fetchone()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not read equity {symbol}: {e}") from e

        return self._row_to_equity(row) if row else None

    def update_signal(self, symbol: str, expected: Signal, new: Signal) -> bool:
        try:
            with self.engine.begin() as conn:
                result = conn.execute(
                    sa.update(equities)
                    .where(equities.c.symbol == symbol)
                    .where(equities.c.signal == expected.code)
                    .values(signal=new.code, updated_at=utc_now())
                )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not update signal of {symbol}: {e}") from e

        changed = result.rowcount == 1
        if changed:
            self.logger.info(f"db write {symbol}: {expected.value} -> {new.value}")
        else:
            self.logger.warning(
                f"{symbol} no longer holds {expected.value}, skipped update to {new.value}"
            )
        return changed

    def list_equities(self) -> List[Equity]:
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(
                    sa.select(equities).order_by(equities.c.symbol)
                ).fetchall()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Could not list equities: {e}") from e

        return [self._row_to_equity(row) for row in rows]

    @staticmethod
    def _row_to_equity(row) -> Equity:
        mapping = row._mapping
        return Equity(
            id=mapping["id"],
            symbol=mapping["symbol"],
            signal=Signal.from_code(mapping["signal"]),
            created_at=to_utc(mapping["created_at"]),
            updated_at=to_utc(mapping["updated_at"]),
        )
