"""
GTFS Ingestion Module

Loads GTFS schedule archives into PostgreSQL, one schema per feed.

Entry Point:
    python -m gtfs_loader.ingest --datasets sydneytrains

Components:
    - dataset: Feed identity, schema names and advisory lock keys
    - lock: Session-scoped advisory lock per dataset
    - ledger: ETag / Last-Modified cache in gtfsmeta.feed_meta
    - fetcher: Conditional download recorded in the ledger
    - archive: Random-access reader over the downloaded zip
    - loader: Header inference and COPY into a staging schema
    - swapper: Atomic staging-to-live schema swap
    - pipeline: One dataset end to end
    - orchestrator: Sequential run over all configured feeds
"""

from .dataset import GtfsDataset
from .pipeline import DatasetPipeline, UpdateResult
from .orchestrator import run_all

__all__ = ['GtfsDataset', 'DatasetPipeline', 'UpdateResult', 'run_all']
