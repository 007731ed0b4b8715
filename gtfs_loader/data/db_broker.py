from gtfs_loader.config.config_main import db_config

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Connection, Engine

logger = logging.getLogger(__name__)


class ConnectionBroker:
    """
    Owns the connection pool for one ingestion run.

    Each dataset checks out a single pooled connection for its whole update so
    the session-scoped advisory lock, the load transaction and the swap
    transaction all run on the same PostgreSQL backend.
    """

    def __init__(self, url: str = None, engine: Engine = None):
        if engine is None:
            engine = create_engine(
                url or db_config.url,
                pool_pre_ping=True,  # Verify connections before using
                echo=False
            )
        self.engine = engine

    @contextmanager
    def connection(self) -> Iterator[Connection]:
        """
        Check out a connection and return it to the pool on exit.

        Usage:
            with broker.connection() as conn:
                conn.execute(text("SELECT 1"))
        """
        conn = self.engine.connect()
        try:
            yield conn
        except Exception:
            if conn.in_transaction():
                conn.rollback()
            raise
        finally:
            conn.close()

    def dispose(self):
        """Close every pooled connection."""
        logger.debug("Disposing connection pool")
        self.engine.dispose()
