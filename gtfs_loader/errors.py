"""
Exception hierarchy for the GTFS loader.

Every stage raises its own error type so a failed dataset can be reported
with the stage that broke it. None of these are retried by the pipeline.
"""

from typing import Optional


class GtfsLoaderError(Exception):
    """Base exception for all loader failures."""


class ConfigError(GtfsLoaderError):
    """Raised for missing or invalid runtime configuration."""


class LockContentionError(GtfsLoaderError):
    """Raised when another process holds the dataset's advisory lock."""


class FetchError(GtfsLoaderError):
    """Raised when the feed responds with a failure or without a body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class SchemaInferenceError(GtfsLoaderError):
    """Raised when an archive entry's header matches no declared column."""


class LoadError(GtfsLoaderError):
    """Raised when DDL or COPY fails while populating the staging schema."""


class PromotionError(GtfsLoaderError):
    """Raised when the staging schema cannot be swapped in as the live schema."""
