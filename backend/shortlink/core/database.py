"""Database configuration and session management"""

from contextlib import contextmanager
from typing import Generator, Iterator

from fastapi import Request
from sqlalchemy import create_engine, event, text, inspect
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
import logging

logger = logging.getLogger(__name__)

# Create base class for models
Base = declarative_base()


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # pragma: no cover
    """SQLite ignores ON DELETE clauses unless this is set per connection."""
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


def build_engine(
    database_url: str,
    *,
    pool_size: int = 20,
    max_overflow: int = 10,
    echo: bool = False,
) -> Engine:
    """
    Create the SQLAlchemy engine for the configured database.

    SQLite is accepted for local runs and tests; connection pooling options
    only apply to server databases.
    """
    if database_url.startswith("sqlite"):
        engine_kwargs: dict = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in database_url:
            engine_kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, echo=echo, **engine_kwargs)
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
        return engine

    return create_engine(
        database_url,
        pool_size=pool_size,
        max_overflow=max_overflow,
        pool_timeout=30,
        pool_recycle=3600,
        pool_pre_ping=True,
        echo=echo,
    )


UNIQUE_VIOLATION = "23505"


def is_unique_violation(exc: IntegrityError) -> bool:
    """True for duplicate-key errors; foreign-key and NOT NULL failures are not conflicts"""
    pgcode = getattr(exc.orig, "pgcode", None)
    if pgcode is not None:
        return pgcode == UNIQUE_VIOLATION
    return "UNIQUE constraint failed" in str(exc.orig)


def build_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db(request: Request) -> Generator[Session, None, None]:
    """
    Dependency for getting database session

    Yields:
        Session: Database session bound to the application's engine
    """
    db = request.app.state.session_factory()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    Unit of work: commit on success, roll back everything on any error.

    The yielded session is the transaction handle that store methods take
    as their first argument.
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def init_db(engine: Engine, mode: str, require_head: bool = True) -> None:
    """
    Initialize database according to configured strategy.

    DB_INIT_MODE:
      - migrate: require alembic_version table (migration-first discipline)
      - create_all: create tables from metadata, for local/dev bootstrap
      - off: skip initialization check
    """
    from shortlink import models  # noqa: F401  populate metadata

    mode = mode.lower().strip()
    if mode == "off":
        logger.info("DB initialization check skipped (DB_INIT_MODE=off)")
        return

    if mode == "create_all":
        Base.metadata.create_all(bind=engine)
        logger.warning("Using create_all database initialization (recommended only for local development).")
        return

    if mode == "migrate":
        with engine.connect() as conn:
            if engine.dialect.name == "postgresql":
                version_table_exists = conn.execute(
                    text("SELECT to_regclass('public.alembic_version')")
                ).scalar()
                exists = bool(version_table_exists)
            else:
                exists = "alembic_version" in inspect(conn).get_table_names()
            if require_head and not exists:
                raise RuntimeError(
                    "Migration table missing. Run Alembic migrations before starting the API."
                )
        logger.info("Migration metadata detected.")
        return

    raise RuntimeError(f"Unknown DB_INIT_MODE: {mode}")
