"""
Cache ledger: per-dataset revalidation metadata stored in ``gtfsmeta.feed_meta``.
"""

import logging
from datetime import datetime
from typing import NamedTuple, Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.engine import Connection
from sqlalchemy.schema import CreateSchema

from gtfs_loader.data.models import FeedMeta

logger = logging.getLogger(__name__)


class CacheRecord(NamedTuple):
    etag: Optional[str]
    last_modified: Optional[str]
    fetched_at: Optional[datetime] = None


class CacheLedger:

    def ensure(self, conn: Connection):
        """Create the metadata schema and table if they do not exist yet."""
        table = FeedMeta.__table__
        conn.execute(CreateSchema(table.schema, if_not_exists=True))
        table.create(conn, checkfirst=True)

    def read(self, conn: Connection, dataset: str) -> Optional[CacheRecord]:
        row = conn.execute(
            select(FeedMeta.etag, FeedMeta.last_modified, FeedMeta.fetched_at)
            .where(FeedMeta.dataset == dataset)
        ).first()
        if row is None:
            return None
        return CacheRecord(row.etag, row.last_modified, row.fetched_at)

    def write(self, conn: Connection, dataset: str, etag: Optional[str],
              last_modified: Optional[str], fetched_at: datetime):
        """Upsert the metadata observed on a successful download."""
        stmt = insert(FeedMeta).values(
            dataset=dataset,
            etag=etag,
            last_modified=last_modified,
            fetched_at=fetched_at,
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[FeedMeta.dataset],
            set_={
                "etag": stmt.excluded.etag,
                "last_modified": stmt.excluded.last_modified,
                "fetched_at": stmt.excluded.fetched_at,
            },
        )
        conn.execute(stmt)
        logger.debug(f"Recorded feed metadata for {dataset}: etag={etag}, last_modified={last_modified}")
