"""
SQLAlchemy models for the GTFS loader's own bookkeeping.

The GTFS tables themselves are created dynamically per dataset from the
table specification; only the revalidation ledger is a fixed model.
"""

from sqlalchemy import Column, DateTime, Text
from sqlalchemy.orm import declarative_base

from gtfs_loader.config.config_main import feed_config

# Base class for SQLAlchemy models
Base = declarative_base()


class FeedMeta(Base):
    """Revalidation metadata from the last download of each dataset."""

    __tablename__ = 'feed_meta'
    __table_args__ = {'schema': feed_config.meta_schema}

    dataset = Column(Text, primary_key=True)
    etag = Column(Text, nullable=True)
    last_modified = Column(Text, nullable=True)
    fetched_at = Column(DateTime(timezone=True), nullable=True)

    def __repr__(self):
        return f"<FeedMeta(dataset='{self.dataset}', etag='{self.etag}', last_modified='{self.last_modified}')>"
