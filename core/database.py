"""
core/database.py -- The storage client shared by every repository.

One Database instance is constructed in the FastAPI lifespan (api/main.py),
stored on app.state.db, handed to UserStore and BookStore, and disposed on
shutdown. Nothing in the codebase holds a module-level engine.

Tables register themselves on the shared `metadata` when their store module is
imported; create_schema() runs create_all() once all stores are imported.

Transactions:
    with db.transaction() as conn:        # commit on success, rollback on error
        ...
    db.with_transaction(lambda conn: ...) # same thing, callable form

Store methods accept an optional `conn` so several repository calls can share
one transaction (see catalog/service.purchase_book).

Layer rule: no imports from api/, auth/, or catalog/.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import TypeVar

from sqlalchemy import MetaData, create_engine, event
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.pool import Pool

logger = logging.getLogger("bookstore.db")

metadata = MetaData()

T = TypeVar("T")


def _set_sqlite_pragmas(dbapi_conn, connection_record) -> None:
    """Enable WAL journal mode for concurrent read safety.

    Set per-connection because SQLite PRAGMAs are not inherited by new
    connections from the pool.
    """
    dbapi_conn.execute("PRAGMA journal_mode=WAL")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class Database:
    """Owns the SQLAlchemy engine and hands out transactional connections.

    In-memory SQLite needs one connection for the whole process, so tests pass
    poolclass=StaticPool.

    Usage:
        db = Database("sqlite:///:memory:", poolclass=StaticPool)
        db.create_schema()
        users = UserStore(db)
        db.close()
    """

    def __init__(self, db_url: str, poolclass: type[Pool] | None = None) -> None:
        connect_args: dict = {}
        if db_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        engine_kwargs: dict = {"connect_args": connect_args}
        if poolclass is not None:
            engine_kwargs["poolclass"] = poolclass
        self.url = db_url
        self.engine: Engine = create_engine(db_url, **engine_kwargs)
        if db_url.startswith("sqlite"):
            event.listen(self.engine, "connect", _set_sqlite_pragmas)

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    @contextmanager
    def transaction(self, conn: Connection | None = None) -> Iterator[Connection]:
        """Yield a connection inside a transaction.

        If `conn` is given the caller already owns a transaction: it is yielded
        unchanged and commit/rollback stay with the caller.
        """
        if conn is not None:
            yield conn
            return
        with self.engine.begin() as new_conn:
            yield new_conn

    def with_transaction(self, fn: Callable[[Connection], T]) -> T:
        """Run fn(conn) in a single transaction and return its result.

        Any exception raised by fn rolls back every write it made.
        """
        with self.transaction() as conn:
            return fn(conn)

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.exec_driver_sql("SELECT 1")
        except Exception:
            logger.exception("Database ping failed")
            return False
        return True

    def close(self) -> None:
        self.engine.dispose()
