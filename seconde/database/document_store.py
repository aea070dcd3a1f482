"""Transactional document store backed by SQLAlchemy.

Holds the item, search index, moment, swap and user collections. Writes
that must land together go through ``run_transaction``, which retries
transient failures a bounded number of times.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Callable, Iterable, Iterator, List, Optional, TypeVar

from sqlalchemy import create_engine, event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from seconde.utils import get_logger
from seconde.utils.config import DatabaseConfig
from seconde.utils.exceptions import CollectionError, TransactionError

from .models import Base

logger = get_logger(__name__)

T = TypeVar("T")

# Execution option asking SQLite to take the write lock when the transaction begins
WRITE_LOCK = "seconde_write_lock"


def _take_over_sqlite_transactions(engine) -> None:
    """Let SQLAlchemy emit BEGIN itself on SQLite connections.

    pysqlite only sends BEGIN before the first write, so the read half of a
    read-modify-write would run outside the transaction. Write transactions
    start with BEGIN IMMEDIATE and hold the lock from their first read.
    """

    @event.listens_for(engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin(connection):
        if connection.get_execution_options().get(WRITE_LOCK):
            connection.exec_driver_sql("BEGIN IMMEDIATE")
        else:
            connection.exec_driver_sql("BEGIN")


def chunked(values: List[T], size: int) -> Iterator[List[T]]:
    """Yield consecutive slices of at most ``size`` elements."""
    if size < 1:
        raise ValueError(f"Chunk size must be positive, got {size}")
    for start in range(0, len(values), size):
        yield values[start:start + size]


class DocumentStore:
    """Keyed document collections with all-or-nothing transactions."""

    def __init__(self, config: DatabaseConfig):
        """Create the engine and make sure every collection exists.

        Args:
            config: Database configuration
        """
        self.config = config

        engine_kwargs = {"echo": config.echo, "future": True}
        if config.url.startswith("sqlite"):
            engine_kwargs["connect_args"] = {"check_same_thread": False}
            if ":memory:" in config.url or config.url.rstrip("/") == "sqlite:":
                # One shared connection, otherwise every checkout sees an empty database
                engine_kwargs["poolclass"] = StaticPool

        try:
            self.engine = create_engine(config.url, **engine_kwargs)
            if self.engine.url.get_backend_name() == "sqlite":
                _take_over_sqlite_transactions(self.engine)
            database = self.engine.url.database
            if self.engine.url.get_backend_name() == "sqlite" and database and database != ":memory:":
                Path(database).parent.mkdir(parents=True, exist_ok=True)
            Base.metadata.create_all(self.engine)
        except Exception as e:
            raise CollectionError(f"Failed to initialize document store: {e}") from e

        self.session_factory = sessionmaker(bind=self.engine, expire_on_commit=False)
        logger.info(f"Document store ready at {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Read-only session; nothing is committed."""
        session = self.session_factory()
        try:
            yield session
        finally:
            session.close()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Session whose writes commit together on exit or roll back on error.

        Rows read inside it cannot be changed by another writer before commit.
        """
        with self.session_factory.begin() as session:
            session.connection(execution_options={WRITE_LOCK: True})
            yield session

    def run_transaction(
        self,
        work: Callable[[Session], T],
        retries: Optional[int] = None,
    ) -> T:
        """Run ``work`` inside a transaction, retrying transient failures.

        Domain exceptions raised by ``work`` abort the transaction and
        propagate unchanged. Only ``OperationalError`` (locks, dropped
        connections) is retried.

        Args:
            work: Callable receiving the transactional session
            retries: Attempt budget (defaults to config.transaction_retries)

        Returns:
            Whatever ``work`` returns

        Raises:
            TransactionError: If every attempt failed transiently
        """
        attempts = retries or self.config.transaction_retries
        last_error: Optional[Exception] = None

        for attempt in range(1, attempts + 1):
            try:
                with self.transaction() as session:
                    return work(session)
            except OperationalError as e:
                last_error = e
                logger.warning(f"Transaction attempt {attempt}/{attempts} failed: {e.orig}")

        raise TransactionError(
            f"Transaction failed after {attempts} attempts: {last_error}",
            attempts=attempts,
        ) from last_error

    def add_all(self, rows: Iterable[Base]) -> None:
        """Insert or replace rows in a single transaction."""
        with self.transaction() as session:
            for row in rows:
                session.merge(row)

    def dispose(self) -> None:
        """Release pooled connections."""
        self.engine.dispose()
