"""
Drop staging schemas orphaned by failed promotions.
Use this after inspecting why a swap failed.
"""

import logging
import sys

from gtfs_loader.data.db_broker import ConnectionBroker
from gtfs_loader.errors import GtfsLoaderError
from gtfs_loader.ingest.maintenance import drop_staging_schemas, find_staging_schemas
from gtfs_loader.ingest.orchestrator import build_datasets


def main():
    """Find and drop orphaned staging schemas for every configured dataset."""
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    print("="*60)
    print("STAGING SCHEMA CLEANUP")
    print("="*60 + "\n")

    names = sys.argv[1:] or None
    datasets = build_datasets(names)
    broker = ConnectionBroker()

    try:
        with broker.connection() as conn:
            orphaned = {d.name: find_staging_schemas(conn, d) for d in datasets}
            conn.commit()

            if not any(orphaned.values()):
                print("No orphaned staging schemas found.")
                return

            for name, schemas in orphaned.items():
                for schema in schemas:
                    print(f"  {name}: {schema}")

            response = input("\nDrop these schemas and all their tables? (yes/no): ")
            if response.lower() != 'yes':
                print("Cancelled.")
                return

            for dataset in datasets:
                if not orphaned[dataset.name]:
                    continue
                try:
                    dropped = drop_staging_schemas(conn, dataset)
                    print(f"  ✓ {dataset.name}: dropped {len(dropped)} schema(s)")
                except GtfsLoaderError as e:
                    print(f"  ✗ {dataset.name}: {e}")
    finally:
        broker.dispose()

    print("="*60)
    print("Cleanup complete!")
    print("="*60)


if __name__ == "__main__":
    main()
