"""
Snapshot swapper: promotes a committed staging schema to the live schema.
"""

import logging

from sqlalchemy import text
from sqlalchemy.engine import Connection
from sqlalchemy.exc import SQLAlchemyError

from gtfs_loader.errors import PromotionError

logger = logging.getLogger(__name__)


def _quote(conn: Connection, identifier: str) -> str:
    return conn.dialect.identifier_preparer.quote_identifier(identifier)


class SnapshotSwapper:

    def promote(self, conn: Connection, staging_schema: str, live_schema: str):
        """
        Drop the live schema and rename the staging schema in its place.

        Runs in its own transaction, after the load transaction has committed.
        Readers see either the old tables or the new ones, never a mix. On
        failure the old live schema is untouched and the staging schema is
        left behind for inspection.

        Raises:
            PromotionError: the swap transaction failed and was rolled back
        """
        try:
            with conn.begin():
                conn.execute(text(f"DROP SCHEMA IF EXISTS {_quote(conn, live_schema)} CASCADE"))
                conn.execute(text(
                    f"ALTER SCHEMA {_quote(conn, staging_schema)} RENAME TO {_quote(conn, live_schema)}"
                ))
        except SQLAlchemyError as e:
            logger.error(f"Promotion of {staging_schema} to {live_schema} failed, staging schema left in place")
            raise PromotionError(f"Failed to promote {staging_schema} to {live_schema}: {e}") from e

        logger.info(f"Promoted {staging_schema} to {live_schema}")
