"""Database engine, session factory and transaction helper."""

import time
from contextlib import contextmanager
from typing import Generator, Iterator, Optional

import structlog
from sqlalchemy import create_engine, text
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from fulfillment.config import get_settings
from fulfillment.core.exceptions import BillingTimeout, TransactionConflict

settings = get_settings()
logger = structlog.get_logger(__name__)

engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)
SessionLocal = sessionmaker(bind=engine, expire_on_commit=False)

# SQLSTATE codes raised by PostgreSQL under lock contention / timeouts
CONFLICT_SQLSTATES = {"40001", "40P01", "55P03"}
QUERY_CANCELED_SQLSTATE = "57014"


Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency — one session per request."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


class Deadline:
    """Wall-clock budget for a unit of work."""

    def __init__(self, seconds: Optional[float]):
        self.seconds = seconds
        self._expires_at = time.monotonic() + seconds if seconds else None

    def remaining(self) -> Optional[float]:
        if self._expires_at is None:
            return None
        return max(self._expires_at - time.monotonic(), 0.0)

    def check(self, phase: str) -> None:
        if self._expires_at is not None and time.monotonic() > self._expires_at:
            raise BillingTimeout(details={"phase": phase, "timeout_seconds": self.seconds})


def _sqlstate(exc: DBAPIError) -> Optional[str]:
    orig = exc.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def _apply_timeouts(db: Session, deadline: Deadline) -> None:
    """Bound statement and lock waits on PostgreSQL for the current transaction."""
    if db.get_bind().dialect.name != "postgresql":
        return
    remaining = deadline.remaining()
    if remaining is not None:
        db.execute(text(f"SET LOCAL statement_timeout = {max(int(remaining * 1000), 1)}"))
    db.execute(text(f"SET LOCAL lock_timeout = {int(settings.LOCK_TIMEOUT_SECONDS * 1000)}"))


@contextmanager
def transaction(db: Session, timeout: Optional[float] = None) -> Iterator[Deadline]:
    """Run a block in one transaction: commit on success, roll back on any error.

    Lock contention and deadlocks surface as TransactionConflict; a statement
    cancelled by the deadline surfaces as BillingTimeout. Both are retryable.
    """
    deadline = Deadline(timeout)
    try:
        _apply_timeouts(db, deadline)
        yield deadline
        deadline.check("commit")
        db.commit()
    except DBAPIError as exc:
        db.rollback()
        code = _sqlstate(exc)
        if code == QUERY_CANCELED_SQLSTATE:
            logger.warning("Transaction cancelled by deadline", sqlstate=code)
            raise BillingTimeout(details={"timeout_seconds": timeout}) from exc
        if code in CONFLICT_SQLSTATES:
            logger.warning("Transaction conflict", sqlstate=code)
            raise TransactionConflict(details={"sqlstate": code}) from exc
        raise
    except Exception:
        db.rollback()
        raise
