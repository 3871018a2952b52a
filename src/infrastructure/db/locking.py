# src/infrastructure/db/locking.py

from contextlib import contextmanager
import logging
import os
import threading

from sqlalchemy import text
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session

from src.domain.exceptions import LockTimeoutError


logger = logging.getLogger(__name__)

LOCK_TIMEOUT_SECONDS = float(os.getenv("RESERVATION_LOCK_TIMEOUT_SECONDS", "5"))

# SQLSTATE raised by Postgres when lock_timeout expires.
_PG_LOCK_NOT_AVAILABLE = "55P03"


class TrainLockRegistry:
    """
    One lock per train id. Trains never share a lock.

    An entry lives only while some caller holds or waits on it, so
    the map stays as small as the set of trains currently in use.
    """

    def __init__(self):
        self._locks: dict[str, threading.Lock] = {}
        self._users: dict[str, int] = {}
        self._registry_lock = threading.Lock()

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)

    def acquire(self, train_id: str, timeout: float) -> bool:
        with self._registry_lock:
            lock = self._locks.setdefault(train_id, threading.Lock())
            self._users[train_id] = self._users.get(train_id, 0) + 1

        if lock.acquire(timeout=timeout):
            return True

        with self._registry_lock:
            self._drop_user(train_id)
        return False

    def release(self, train_id: str) -> None:
        with self._registry_lock:
            self._locks[train_id].release()
            self._drop_user(train_id)

    def _drop_user(self, train_id: str) -> None:
        remaining = self._users[train_id] - 1
        if remaining:
            self._users[train_id] = remaining
        else:
            del self._users[train_id]
            del self._locks[train_id]


train_locks = TrainLockRegistry()


def _is_lock_not_available(exc: OperationalError) -> bool:
    return getattr(exc.orig, "pgcode", None) == _PG_LOCK_NOT_AVAILABLE


def _apply_db_lock_timeout(db: Session, timeout_seconds: float) -> None:
    if db.get_bind().dialect.name != "postgresql":
        return
    timeout_ms = max(1, int(timeout_seconds * 1000))
    db.execute(text(f"SET LOCAL lock_timeout = {timeout_ms}"))


@contextmanager
def train_scope(
    db: Session,
    train_id: str,
    registry: TrainLockRegistry | None = None,
    timeout_seconds: float | None = None,
):
    """
    Exclusive-access scope on one train.

    Holds the in-process train lock from before the first read until
    after commit or rollback. Row locks taken inside the block with
    SELECT ... FOR UPDATE cover other processes sharing the database.
    """
    if registry is None:
        registry = train_locks
    timeout = LOCK_TIMEOUT_SECONDS if timeout_seconds is None else timeout_seconds

    if not registry.acquire(train_id, timeout):
        logger.warning("Lock wait on train %s exceeded %.1fs", train_id, timeout)
        raise LockTimeoutError(train_id, timeout)

    try:
        _apply_db_lock_timeout(db, timeout)
        yield db
        db.commit()
    except OperationalError as exc:
        db.rollback()
        if _is_lock_not_available(exc):
            logger.warning("Row lock on train %s not available", train_id)
            raise LockTimeoutError(train_id, timeout) from exc
        raise
    except Exception:
        db.rollback()
        raise
    finally:
        registry.release(train_id)
