import logging
import threading
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import settings

logger = logging.getLogger(__name__)

Base = declarative_base()

# Process-scoped pool: created on first use, reused until dispose_engine().
_engine: Optional[Engine] = None
_SessionLocal: Optional[sessionmaker] = None
_lock = threading.Lock()


def _engine_options(url: str) -> dict:
    options = {"pool_pre_ping": True, "echo": settings.DB_ECHO}
    if settings.DB_ISOLATION_LEVEL:
        options["isolation_level"] = settings.DB_ISOLATION_LEVEL

    backend = make_url(url).get_backend_name()
    if backend == "sqlite":
        options["connect_args"] = {"check_same_thread": False}
        return options

    options["pool_timeout"] = settings.DB_POOL_TIMEOUT
    if backend == "mssql":
        options["connect_args"] = {"timeout": settings.DB_CONNECT_TIMEOUT}
    else:
        options["connect_args"] = {"connect_timeout": settings.DB_CONNECT_TIMEOUT}
    return options


def _pool():
    """The (engine, sessionmaker) pair, built together on first use."""
    global _engine, _SessionLocal
    with _lock:
        if _engine is None:
            url = settings.DATABASE_URL
            _engine = create_engine(url, **_engine_options(url))
            _SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=_engine)
            logger.info("Created database pool for %s", make_url(url).render_as_string(hide_password=True))
        return _engine, _SessionLocal


def get_engine() -> Engine:
    return _pool()[0]


def get_sessionmaker() -> sessionmaker:
    return _pool()[1]


def dispose_engine() -> None:
    """Drain the pool; the next get_engine() call builds a fresh one."""
    global _engine, _SessionLocal
    with _lock:
        if _engine is not None:
            _engine.dispose()
            logger.info("Disposed database pool")
        _engine = None
        _SessionLocal = None


def create_tables() -> None:
    from . import models  # noqa: F401  registers the tables on Base.metadata

    Base.metadata.create_all(bind=get_engine())


def get_db() -> Iterator[Session]:
    db = get_sessionmaker()()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit once when the block finishes, roll back on any exception."""
    try:
        yield db
        db.commit()
    except Exception as exc:
        db.rollback()
        logger.warning("Rolled back transaction: %s", exc)
        raise
