"""
GTFS Ingestion Module Entry Point

Allows running the ingestion pipeline via:
    python -m gtfs_loader.ingest [args]
"""

import sys

from .orchestrator import main

if __name__ == "__main__":
    sys.exit(main())
