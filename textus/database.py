from contextlib import contextmanager
from typing import Callable, Generator

import structlog
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from textus.models import Base

logger = structlog.get_logger()


def build_engine(url: str) -> Engine:
    """Create SQLAlchemy engine with sensible defaults."""
    connect_args = {}
    kwargs = {"pool_pre_ping": True}

    if url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
        kwargs.clear()  # SQLite does not play well with pooling by default

    return create_engine(url, connect_args=connect_args, **kwargs)


def build_session_factory(engine: Engine) -> Callable[[], Session]:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(engine: Engine):
    """Initialize database tables"""
    try:
        Base.metadata.create_all(bind=engine)
        logger.info("database_initialized", url=str(engine.url))
    except SQLAlchemyError as e:
        logger.error("database_init_failed", error=str(e))
        raise


@contextmanager
def session_scope(session_factory: Callable[[], Session]) -> Generator[Session, None, None]:
    """Database session context manager"""
    db = session_factory()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error("database_error", error=str(e))
        raise
    finally:
        db.close()
