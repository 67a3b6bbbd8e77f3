"""Database engine and session management."""

import logging
from typing import Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from scoped_settings.config import config

logger = logging.getLogger(__name__)


def enable_sqlite_savepoints(target_engine) -> None:
    """
    Make SAVEPOINTs nest inside a real transaction on pysqlite.

    pysqlite only emits BEGIN before DML, so a SAVEPOINT issued first opens the
    transaction itself and releasing it commits everything. The driver's own
    transaction handling is switched off and BEGIN is emitted explicitly.
    """

    @event.listens_for(target_engine, "connect")
    def _disable_pysqlite_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(target_engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")


engine_kwargs = {
    "echo": config.database_echo,
}

# SQLite connections may be shared across the API's worker threads
if config.database_url.startswith("sqlite"):
    engine_kwargs["connect_args"] = {"check_same_thread": False}
else:
    engine_kwargs.update({
        "pool_pre_ping": True,
        "pool_recycle": 3600,
    })

engine = create_engine(config.database_url, **engine_kwargs)
if engine.dialect.name == "sqlite":
    enable_sqlite_savepoints(engine)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """
    Dependency for FastAPI endpoints to get a database session.

    The session is committed when the request succeeds and rolled back otherwise.
    """
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind=None) -> None:
    """Create the settings tables."""
    # Register models on Base.metadata
    from scoped_settings import models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)
    logger.info("Settings tables created")
