"""Engine, session factory and schema management for the planning store."""
import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

from hybridcoach.config import get_settings


logger = logging.getLogger(__name__)

settings = get_settings()

PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _redacted(url: str) -> str:
    return make_url(url).render_as_string(hide_password=True)


def _engine_for(url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if url.startswith("sqlite"):
        # Request handlers and the scheduler sweep run on worker threads.
        connect_args["check_same_thread"] = False
    return create_engine(url, echo=echo, future=True, connect_args=connect_args)


engine = _engine_for(settings.database_url, echo=settings.debug)


@event.listens_for(Engine, "connect")
def enforce_sqlite_foreign_keys(dbapi_conn, connection_record):
    """Plan -> week -> workout cascades rely on SQLite enforcing foreign keys."""
    if not isinstance(dbapi_conn, sqlite3.Connection):
        return
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class Base(DeclarativeBase):
    """Declarative base for the planning models."""


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)


def get_db():
    """FastAPI dependency: one request, one transaction.

    Services and repositories only flush; the commit (or rollback) happens here
    so a plan rewrite and its audit record land together.
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


@contextmanager
def session_scope(factory: sessionmaker = SessionLocal) -> Iterator[Session]:
    """Unit of work for scripts running outside a request."""
    db = factory()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db(bind: Engine | None = None) -> None:
    """Create every table straight from the ORM metadata (tests and local tooling)."""

    # Registers the mapped classes on Base.metadata.
    from hybridcoach.models import database_models  # noqa: F401

    Base.metadata.create_all(bind=bind or engine)


def _alembic_config(database_url: str) -> Config:
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", database_url)
    return cfg


def run_migrations(target_revision: str = "head", database_url: str | None = None) -> None:
    """Upgrade the schema to ``target_revision`` (the configured database by default)."""

    url = database_url or settings.database_url
    if url.startswith("sqlite:///"):
        # File-backed SQLite needs its parent directory before the first connect.
        Path(make_url(url).database).parent.mkdir(parents=True, exist_ok=True)
    logger.info("Upgrading %s to revision %s", _redacted(url), target_revision)
    command.upgrade(_alembic_config(url), target_revision)
