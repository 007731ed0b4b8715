"""
GTFS Ingestion Orchestrator

Entry point that updates every configured feed, one dataset at a time.
A failure in one dataset is reported and the run moves on to the next.

Usage:
    python -m gtfs_loader.ingest
    python -m gtfs_loader.ingest --datasets sydneytrains,adelaidemetro --force
"""

import argparse
import logging
import sys
from datetime import datetime
from typing import Dict, List, Optional

from gtfs_loader.config.config_main import ingestion_config
from gtfs_loader.config.endpoints import ENDPOINTS, GtfsEndpoint, resolve_headers
from gtfs_loader.config.tables import TableCatalog, gtfs_tables
from gtfs_loader.data.db_broker import ConnectionBroker
from gtfs_loader.errors import ConfigError

from .dataset import GtfsDataset
from .pipeline import DatasetPipeline, UpdateResult

logger = logging.getLogger(__name__)

FAILED = "failed"


def build_datasets(names: Optional[List[str]] = None,
                   endpoints: List[GtfsEndpoint] = ENDPOINTS) -> List[GtfsDataset]:
    """
    Build datasets for the selected endpoints, in configured order.

    Raises:
        ConfigError: an unknown dataset name was requested, or a required API key is missing
    """
    if names:
        known = {endpoint.name for endpoint in endpoints}
        unknown = [name for name in names if name not in known]
        if unknown:
            raise ConfigError(f"Unknown datasets: {', '.join(unknown)}")
        endpoints = [endpoint for endpoint in endpoints if endpoint.name in names]

    return [
        GtfsDataset(endpoint.name, endpoint.url, resolve_headers(endpoint))
        for endpoint in endpoints
    ]


def run_all(datasets: List[GtfsDataset], broker: ConnectionBroker,
            catalog: TableCatalog = gtfs_tables, force: bool = False) -> Dict[str, str]:
    """
    Update each dataset sequentially.

    Args:
        datasets: Datasets in processing order
        broker: Connection pool shared by the whole run
        catalog: Table specification used for every dataset
        force: Ignore cached revalidation metadata

    Returns:
        Dictionary mapping dataset name -> "updated", "unchanged" or "failed"
    """
    pipeline = DatasetPipeline(broker, catalog)
    results: Dict[str, str] = {}

    for dataset in datasets:
        logger.info(f"Updating {dataset.name} ({dataset.schema})")
        try:
            outcome = pipeline.run(dataset, force=force)
            results[dataset.name] = outcome.value
        except Exception as e:
            logger.error(f"Update of {dataset.name} failed: {e}", exc_info=True)
            results[dataset.name] = FAILED

    return results


def _print_summary(results: Dict[str, str], started: datetime):
    duration = (datetime.now() - started).total_seconds()
    print(f"\n{'='*70}")
    print("GTFS INGESTION SUMMARY")
    print(f"{'='*70}")
    for name, outcome in results.items():
        marker = "✗" if outcome == FAILED else "✓"
        print(f"  {marker} {name:<30} {outcome}")
    print(f"{'='*70}")
    print(f"  {sum(1 for r in results.values() if r == UpdateResult.UPDATED.value)} updated, "
          f"{sum(1 for r in results.values() if r == UpdateResult.UNCHANGED.value)} unchanged, "
          f"{sum(1 for r in results.values() if r == FAILED)} failed "
          f"({duration:.1f}s)")
    print(f"{'='*70}\n")


def main(argv: List[str] = None) -> int:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        description='Load GTFS schedule feeds into PostgreSQL',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Update every configured feed
  python -m gtfs_loader.ingest

  # Update two feeds, ignoring cached ETag/Last-Modified
  python -m gtfs_loader.ingest --datasets sydneytrains,adelaidemetro --force
        """
    )

    parser.add_argument(
        '--datasets',
        type=str,
        default=None,
        help='Comma-separated dataset names (default: GTFS_DATASETS env var, else all)'
    )

    parser.add_argument(
        '--force',
        action='store_true',
        help='Download even if the feed reports no change since the last run'
    )

    parser.add_argument(
        '--list',
        action='store_true',
        help='List configured datasets and exit'
    )

    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable debug logging'
    )

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    if args.list:
        for endpoint in ENDPOINTS:
            print(f"{endpoint.name:<30} {GtfsDataset(endpoint.name, endpoint.url).schema:<36} {endpoint.url}")
        return 0

    names = None
    if args.datasets:
        names = [d.strip() for d in args.datasets.split(',') if d.strip()]
    elif ingestion_config.datasets:
        names = ingestion_config.datasets

    try:
        datasets = build_datasets(names)
    except ConfigError as e:
        logger.error(str(e))
        return 2

    started = datetime.now()
    broker = ConnectionBroker()
    try:
        results = run_all(datasets, broker, force=args.force)
    finally:
        broker.dispose()

    _print_summary(results, started)
    return 1 if FAILED in results.values() else 0


if __name__ == "__main__":
    sys.exit(main())
