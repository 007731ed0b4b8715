"""
Random-access reader over a downloaded GTFS zip.
"""

import logging
import zipfile
from typing import IO, List

from gtfs_loader.config.tables import TableCatalog, TableSpec

logger = logging.getLogger(__name__)


class ArchiveEntry:
    """A zip member that maps onto a table in the specification."""

    def __init__(self, archive: zipfile.ZipFile, info: zipfile.ZipInfo, spec: TableSpec):
        self._archive = archive
        self.info = info
        self.spec = spec

    @property
    def name(self) -> str:
        return self.info.filename

    def open(self) -> IO[bytes]:
        """Open a fresh decompressing stream positioned at the start of the entry."""
        return self._archive.open(self.info, "r")

    def __repr__(self):
        return f"<ArchiveEntry(name='{self.name}', table='{self.spec.name}')>"


class ArchiveReader:
    """
    Usage:
        with ArchiveReader(path) as archive:
            for entry in archive.entries(catalog):
                with entry.open() as stream:
                    ...
    """

    def __init__(self, path: str):
        self.path = path
        self._zip = None

    def __enter__(self):
        self._zip = zipfile.ZipFile(self.path, "r")
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()

    def close(self):
        if self._zip is not None:
            self._zip.close()
            self._zip = None

    def entries(self, catalog: TableCatalog) -> List[ArchiveEntry]:
        """Entries whose internal path appears in the catalog, in archive order."""
        if self._zip is None:
            raise RuntimeError("ArchiveReader must be opened before listing entries")

        entries = []
        for info in self._zip.infolist():
            if info.is_dir():
                continue
            spec = catalog.for_file(info.filename)
            if spec is None:
                logger.debug(f"Ignoring archive entry {info.filename}")
                continue
            entries.append(ArchiveEntry(self._zip, info, spec))
        return entries
