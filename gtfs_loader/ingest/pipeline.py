"""
Per-dataset update pipeline: lock, fetch, load, promote, clean up.
"""

import logging
import shutil
from enum import Enum
from typing import Optional

from gtfs_loader.config.tables import TableCatalog, gtfs_tables
from gtfs_loader.data.db_broker import ConnectionBroker
from gtfs_loader.data.feeds.feed_client import FetchResult
from .archive import ArchiveReader
from .dataset import GtfsDataset
from .fetcher import FeedFetcher
from .loader import TableLoader
from .lock import AdvisoryLock
from .swapper import SnapshotSwapper

logger = logging.getLogger(__name__)


class UpdateResult(Enum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"


class DatasetPipeline:
    """
    Runs the full update for one dataset on a single pooled connection.

    The advisory lock covers only the fetch phase: deciding whether the feed
    changed and downloading it. Loading and promotion run after the lock is
    released, in two separate transactions.
    """

    def __init__(self, broker: ConnectionBroker, catalog: TableCatalog = gtfs_tables,
                 fetcher: FeedFetcher = None, loader: TableLoader = None,
                 swapper: SnapshotSwapper = None):
        self.broker = broker
        self.catalog = catalog
        self.fetcher = fetcher or FeedFetcher()
        self.loader = loader or TableLoader(catalog)
        self.swapper = swapper or SnapshotSwapper()

    def run(self, dataset: GtfsDataset, force: bool = False) -> UpdateResult:
        """
        Update one dataset.

        Args:
            dataset: Dataset to update
            force: Download even if the cache ledger says the feed is unchanged

        Returns:
            UpdateResult.UNCHANGED if the feed was not republished, else UPDATED

        Raises:
            LockContentionError, FetchError, SchemaInferenceError, LoadError,
            PromotionError: propagated after the lock, transactions and
            temporary files have been cleaned up
        """
        lock = AdvisoryLock(dataset.lock_key, dataset.name)
        result: Optional[FetchResult] = None

        with self.broker.connection() as conn:
            try:
                with lock.held(conn):
                    result = self.fetcher.fetch(conn, dataset, force=force)

                if result.unchanged:
                    logger.info(f"GTFS already up to date for {dataset.name}")
                    return UpdateResult.UNCHANGED

                logger.info(f"Downloaded GTFS zip for {dataset.name}: {result.path}")
                staging_schema = dataset.staging_schema()
                with ArchiveReader(result.path) as archive:
                    self.loader.load(conn, archive, staging_schema)
                self.swapper.promote(conn, staging_schema, dataset.schema)
            finally:
                if result is not None and not result.unchanged:
                    shutil.rmtree(result.directory, ignore_errors=True)

        logger.info(f"GTFS tables loaded for {dataset.name} into {dataset.schema}")
        return UpdateResult.UPDATED
