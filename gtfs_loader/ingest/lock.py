"""
PostgreSQL advisory lock guarding a dataset's update.
"""

import logging
from contextlib import contextmanager
from typing import Tuple

from sqlalchemy import text
from sqlalchemy.engine import Connection

from gtfs_loader.errors import LockContentionError

logger = logging.getLogger(__name__)


class AdvisoryLock:
    """
    Non-blocking, session-scoped advisory lock on a ``(namespace, key)`` pair.

    The lock belongs to the backend session of the connection that took it, so
    acquire and release must use the same connection. Transaction commits and
    rollbacks do not release it.
    """

    def __init__(self, key: Tuple[int, int], name: str = ""):
        self.key1, self.key2 = key
        self.name = name

    def acquire(self, conn: Connection) -> bool:
        ok = conn.execute(
            text("SELECT pg_try_advisory_lock(CAST(:k1 AS INT), CAST(:k2 AS INT)) AS ok"),
            {"k1": self.key1, "k2": self.key2},
        ).scalar()
        return bool(ok)

    def release(self, conn: Connection) -> bool:
        """Release the lock. Returns False (and logs) if this session did not hold it."""
        released = conn.execute(
            text("SELECT pg_advisory_unlock(CAST(:k1 AS INT), CAST(:k2 AS INT))"),
            {"k1": self.key1, "k2": self.key2},
        ).scalar()
        conn.commit()
        if not released:
            logger.warning(f"Advisory lock for {self.name or self.key2} was not held by this session")
        return bool(released)

    @contextmanager
    def held(self, conn: Connection):
        """
        Hold the lock for the duration of the block.

        Raises:
            LockContentionError: another session holds the lock
        """
        if not self.acquire(conn):
            conn.rollback()
            raise LockContentionError(
                f"Unable to obtain lock for {self.name or self.key2}, another update is running"
            )
        logger.debug(f"Acquired advisory lock ({self.key1}, {self.key2}) for {self.name}")
        try:
            yield self
        except BaseException:
            # The block's error wins over a failed unlock on a broken connection
            try:
                self._unlock(conn)
            except Exception as e:
                logger.error(f"Failed to release advisory lock for {self.name or self.key2}: {e}")
            raise
        self._unlock(conn)

    def _unlock(self, conn: Connection):
        if conn.in_transaction():
            conn.rollback()
        self.release(conn)
        logger.debug(f"Released advisory lock ({self.key1}, {self.key2}) for {self.name}")
