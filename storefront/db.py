# storefront/db.py

import logging
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, DeclarativeBase

from .config import DATABASE_URL, STORE_TIMEOUT_SECONDS
from .errors import StoreUnavailable

logger = logging.getLogger(__name__)


def _connect_args(url: str) -> dict:
    # Bound every blocking wait on the store
    if url.startswith("sqlite"):
        return {"check_same_thread": False, "timeout": STORE_TIMEOUT_SECONDS}
    return {"connect_timeout": STORE_TIMEOUT_SECONDS}


engine = create_engine(
    DATABASE_URL,
    pool_pre_ping=True,
    connect_args=_connect_args(DATABASE_URL),
)

SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


class Base(DeclarativeBase):
    pass


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def store_guard(action: str):
    """
    Translate driver/ORM failures into StoreUnavailable.
    The session is rolled back when get_db closes it.
    """
    try:
        yield
    except SQLAlchemyError as e:
        logger.exception(f"❌ Store failure while trying to {action}: {e}")
        raise StoreUnavailable("Server not responding") from e
