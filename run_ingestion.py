"""
Main entry point for GTFS ingestion.

Updates every configured feed. Equivalent to ``python -m gtfs_loader.ingest``.
"""

import sys

from gtfs_loader.ingest.orchestrator import main


if __name__ == "__main__":
    sys.exit(main())
