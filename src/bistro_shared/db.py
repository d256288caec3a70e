"""
Database helpers shared by the bistro services.

A :class:`Store` owns one engine and one session factory. It is built once at
startup and handed to every service call, so tests can run against an
in-memory sqlite store without touching global state.
"""

from __future__ import annotations

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import AppConfig
from .errors import PosError, TransactionError
from .logging_config import get_logger

logger = get_logger(__name__)

SLOW_QUERY_SECONDS = 1.0


class Store:
    """Handle over the relational store used by every domain operation."""

    def __init__(self, engine: Engine):
        self.engine = engine
        self._session_factory = sessionmaker(
            bind=engine, autoflush=False, expire_on_commit=False
        )

    @classmethod
    def from_url(cls, database_url: str, *, echo: bool = False) -> Store:
        engine_kwargs: dict[str, Any] = {
            "pool_pre_ping": True,
            "echo": echo,
        }

        if database_url.startswith("sqlite"):
            engine_kwargs.update(
                {
                    "connect_args": {"check_same_thread": False},
                    "poolclass": StaticPool,
                    "pool_pre_ping": False,
                }
            )
        else:
            engine_kwargs.update({"pool_size": 5, "max_overflow": 10, "pool_recycle": 3600})

        engine = create_engine(database_url, **engine_kwargs)
        _install_listeners(engine)
        return cls(engine)

    @classmethod
    def from_config(cls, config: AppConfig) -> Store:
        return cls.from_url(config.database_url, echo=config.debug_mode)

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    def create_schema(self) -> None:
        """Create every table declared on the model metadata that does not exist yet."""
        from .models import Base

        Base.metadata.create_all(self.engine)
        logger.info("Database schema ensured", extra={"dialect": self.dialect})

    def drop_schema(self) -> None:
        from .models import Base

        Base.metadata.drop_all(self.engine)
        logger.warning("Database schema dropped", extra={"dialect": self.dialect})

    def dispose(self) -> None:
        self.engine.dispose()

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """
        Provide a transactional scope around a series of operations.

        Commits when the block exits normally. Any exception rolls the whole
        unit back; domain errors propagate unchanged while driver failures are
        re-raised as :class:`TransactionError`.
        """
        session: Session = self._session_factory()
        try:
            yield session
            session.commit()
        except PosError:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.error("Transaction rolled back: %s", exc, exc_info=True)
            raise TransactionError("The operation could not be completed and was rolled back") from exc
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def _install_listeners(engine: Engine) -> None:
    if engine.dialect.name == "sqlite":

        @event.listens_for(engine, "connect")
        def enable_sqlite_foreign_keys(dbapi_connection, connection_record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    @event.listens_for(engine, "before_cursor_execute")
    def before_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_start_time", []).append(time.perf_counter())

    @event.listens_for(engine, "after_cursor_execute")
    def after_cursor_execute(conn, cursor, statement, parameters, context, executemany):
        total = time.perf_counter() - conn.info["query_start_time"].pop(-1)
        if total > SLOW_QUERY_SECONDS:
            logger.warning("Slow query detected (%.2fs): %s...", total, statement[:200])
