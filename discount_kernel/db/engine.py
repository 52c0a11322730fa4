"""
Module: discount_kernel.db.engine
Responsibility: Process-wide engine and sessionmaker for the discount tables.
Architecture position: Kernel > DB.  ``create_tables`` imports the model
    package to populate Base.metadata; nothing else here reaches above db/.

Invariants enforced:
    - One engine per process; a second ``init_engine_from_url`` disposes
      the first.
    - PostgreSQL: pooled, pre-pinged, READ COMMITTED.  The allocation
      sequence relies on row locks, not serializable isolation.
    - SQLite: one shared connection (StaticPool) with SQLAlchemy-emitted
      BEGIN, so savepoints nest and discovery threads see the same
      in-memory database.
    - ``session_scope`` commits on clean exit and rolls back otherwise.

Failure modes:
    - RuntimeError from any accessor used before ``init_engine_from_url``.
"""

from contextlib import contextmanager
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from discount_kernel.logging_config import configure_logging, get_logger

logger = get_logger("db.engine")

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None


def _sqlite_engine(database_url: str, echo: bool) -> Engine:
    engine = create_engine(
        database_url,
        echo=echo,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


def init_engine_from_url(
    database_url: str,
    echo: bool = False,
    pool_size: int = 20,
    max_overflow: int = 10,
    pool_timeout: int = 30,
) -> Engine:
    """
    Create the process engine and sessionmaker.

    Args:
        database_url: ``postgresql://...`` in deployment, ``sqlite://`` in tests.
        echo: Log emitted SQL.
        pool_size, max_overflow, pool_timeout: PostgreSQL pool sizing.
    """
    global _engine, _session_factory

    reset_engine()
    dialect = make_url(database_url).get_backend_name()
    if dialect == "sqlite":
        _engine = _sqlite_engine(database_url, echo)
    else:
        _engine = create_engine(
            database_url,
            echo=echo,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_timeout=pool_timeout,
            pool_pre_ping=True,
            isolation_level="READ COMMITTED",
        )
    _session_factory = sessionmaker(bind=_engine, expire_on_commit=False)

    configure_logging()
    logger.info("engine_initialized", extra={"dialect": dialect})
    return _engine


def _require_initialized() -> tuple[Engine, sessionmaker[Session]]:
    if _engine is None or _session_factory is None:
        raise RuntimeError("Database engine not initialized; call init_engine_from_url() first")
    return _engine, _session_factory


def get_engine() -> Engine:
    return _require_initialized()[0]


def get_session_factory() -> sessionmaker[Session]:
    """Sessionmaker for SqlSourceStore, which opens one session per lookup."""
    return _require_initialized()[1]


def get_session() -> Session:
    return get_session_factory()()


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """
    One unit of work: commit on success, roll back and re-raise on error.

    Usage:
        with session_scope() as session:
            AllocationService(session).create_allocation(draft)
    """
    session = get_session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        logger.warning("transaction_rolled_back", exc_info=True)
        raise
    finally:
        session.close()


def create_tables() -> None:
    """Create every discount_kernel table that does not exist yet."""
    from discount_kernel.db.base import Base
    import discount_kernel.models  # noqa: F401

    Base.metadata.create_all(get_engine())


def reset_engine() -> None:
    """Dispose the engine and forget the sessionmaker."""
    global _engine, _session_factory

    if _engine is not None:
        _engine.dispose()
    _engine = None
    _session_factory = None
