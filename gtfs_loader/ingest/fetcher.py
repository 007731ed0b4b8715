"""
Feed fetcher: conditional download backed by the cache ledger.
"""

import logging
import shutil
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.engine import Connection

from gtfs_loader.data.feeds.feed_client import FeedClient, FetchResult
from .dataset import GtfsDataset
from .ledger import CacheLedger

logger = logging.getLogger(__name__)


class FeedFetcher:
    """Decides whether a dataset needs downloading and records what was downloaded."""

    def __init__(self, client: Optional[FeedClient] = None, ledger: Optional[CacheLedger] = None):
        self.client = client or FeedClient()
        self.ledger = ledger or CacheLedger()

    def fetch(self, conn: Connection, dataset: GtfsDataset, force: bool = False) -> FetchResult:
        """
        Download the dataset's archive unless the feed is unchanged.

        Must run while the dataset's advisory lock is held. Commits the ledger
        update before returning; on the unchanged path nothing is written.

        Args:
            conn: Connection holding the dataset lock
            dataset: Dataset to fetch
            force: Ignore the cached revalidation metadata and always download

        Returns:
            FetchResult; when downloaded, the caller owns ``result.directory``
        """
        self.ledger.ensure(conn)
        record = None if force else self.ledger.read(conn, dataset.name)
        if record is None:
            logger.info(f"No usable cache record for {dataset.name}, downloading unconditionally")

        result = self.client.fetch(
            dataset.name,
            dataset.url,
            dict(dataset.headers),
            etag=record.etag if record else None,
            last_modified=record.last_modified if record else None,
            tmp_prefix=f"{dataset.schema}_",
        )

        if result.unchanged:
            conn.commit()
            return result

        try:
            self.ledger.write(
                conn, dataset.name, result.etag, result.last_modified, datetime.now(timezone.utc)
            )
            conn.commit()
        except Exception:
            shutil.rmtree(result.directory, ignore_errors=True)
            raise

        return result
