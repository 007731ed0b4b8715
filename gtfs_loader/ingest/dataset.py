"""
Dataset identity: schema names and advisory lock keys derived from a feed name.
"""

import hashlib
import re
import time
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


# First half of every advisory lock key taken by this loader (bytes b"GFTS").
# The value is shared with earlier loader deployments so their locks still
# exclude ours, and keeps our keys apart from other applications.
LOCK_NAMESPACE = 0x47465453

SCHEMA_PREFIX = "gtfs_"


def slugify(value: str) -> str:
    """Lowercase, collapse runs of anything outside [a-z0-9] to '_', strip '_'."""
    value = re.sub(r"[^a-z0-9]+", "_", value.lower())
    return value.strip("_")


def lock_key_for(name: str) -> int:
    """
    Second half of the advisory lock key for a dataset name.

    The first four bytes of SHA-1 over the UTF-8 name, read as a big-endian
    signed 32-bit integer so it fits PostgreSQL's int4. Changing the hash or
    the truncation changes which datasets share a lock; existing deployments
    would stop excluding each other during a mixed-version rollout.
    """
    digest = hashlib.sha1(name.encode("utf-8")).digest()
    return int.from_bytes(digest[:4], byteorder="big", signed=True)


@dataclass(frozen=True)
class GtfsDataset:
    """One configured feed and the identities derived from its name."""

    name: str
    url: str
    headers: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self):
        if not slugify(self.name):
            raise ValueError(f"Dataset name {self.name!r} produces an empty schema name")
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    @property
    def slug(self) -> str:
        return slugify(self.name)

    @property
    def schema(self) -> str:
        """Live schema name, ``gtfs_<slug>``."""
        return f"{SCHEMA_PREFIX}{self.slug}"

    @property
    def lock_key(self) -> Tuple[int, int]:
        return LOCK_NAMESPACE, lock_key_for(self.name)

    def staging_schema(self, created_at_ms: Optional[int] = None) -> str:
        """Staging schema name for a load started at ``created_at_ms``."""
        if created_at_ms is None:
            created_at_ms = int(time.time() * 1000)
        return f"{self.schema}_tmp_{created_at_ms}"

    def __repr__(self):
        return f"<GtfsDataset(name='{self.name}', schema='{self.schema}')>"
