"""
Table loader: creates the staging schema's tables from archive headers and
bulk loads each archive entry with COPY.

Both passes run inside one transaction on the dataset's connection. Any
failure rolls the transaction back, which also discards the staging schema.
"""

import csv
import io
import logging
from typing import IO, Dict, List, NamedTuple

import psycopg2
from psycopg2 import sql
from sqlalchemy.engine import Connection
from tqdm import tqdm

from gtfs_loader.config.config_main import feed_config
from gtfs_loader.config.tables import TableCatalog, TableSpec
from gtfs_loader.errors import LoadError, SchemaInferenceError
from .archive import ArchiveEntry, ArchiveReader

logger = logging.getLogger(__name__)

COPY_BUFFER_SIZE = 1 << 16


class HeaderMatch(NamedTuple):
    """Declared columns found in an entry's header, in header order."""
    header: List[str]
    columns: List[str]
    indices: List[int]

    @property
    def is_identity(self) -> bool:
        """True when every header field is loaded, in place."""
        return self.indices == list(range(len(self.header)))


def parse_header(line: bytes) -> List[str]:
    """Split a CSV header line into trimmed, unquoted field names."""
    text = line.decode("utf-8-sig").rstrip("\r\n")
    return [field.strip().strip('"').strip() for field in text.split(",")]


def match_columns(header: List[str], spec: TableSpec) -> HeaderMatch:
    """Intersect header fields with the declared columns, keeping header order."""
    declared = spec.column_types
    columns, indices = [], []
    for index, name in enumerate(header):
        if name in declared and name not in columns:
            columns.append(name)
            indices.append(index)
    return HeaderMatch(header, columns, indices)


def read_header(stream: IO[bytes]) -> bytes:
    """Read up to and including the first line terminator, nothing more."""
    return stream.readline()


class ProjectedCsvStream:
    """
    File-like view of a CSV stream restricted to selected column indices.

    Rows are re-encoded one at a time as COPY pulls data, so the entry is never
    held in memory. Blank lines are dropped. Short rows are passed through short
    and rows wider than the header are passed through whole, so COPY rejects
    both exactly as it would the unprojected file.
    """

    def __init__(self, stream: IO[bytes], indices: List[int]):
        self._text = io.TextIOWrapper(stream, encoding="utf-8-sig", newline="")
        self._reader = csv.reader(self._text)
        self._indices = indices
        self._width = None
        self._pending = b""
        self._line = io.StringIO()
        self._writer = csv.writer(self._line, lineterminator="\n")

    def _next_row(self) -> bytes:
        for row in self._reader:
            if not row:
                continue
            self._line.seek(0)
            self._line.truncate()
            if self._width is None:
                self._width = len(row)
            if len(row) > self._width:
                self._writer.writerow(row)
            else:
                self._writer.writerow([row[i] for i in self._indices if i < len(row)])
            return self._line.getvalue().encode("utf-8")
        return b""

    def read(self, size: int = -1) -> bytes:
        while size is None or size < 0 or len(self._pending) < size:
            row = self._next_row()
            if not row:
                break
            self._pending += row

        if size is None or size < 0:
            data, self._pending = self._pending, b""
        else:
            data, self._pending = self._pending[:size], self._pending[size:]
        return data

    def readline(self, size: int = -1) -> bytes:
        if not self._pending:
            self._pending = self._next_row()
        end = self._pending.find(b"\n") + 1 or len(self._pending)
        data, self._pending = self._pending[:end], self._pending[end:]
        return data


class TableLoader:
    """Populates a staging schema from an opened archive."""

    def __init__(self, catalog: TableCatalog, show_progress: bool = None):
        self.catalog = catalog
        self.show_progress = feed_config.show_progress if show_progress is None else show_progress

    def infer_columns(self, entry: ArchiveEntry) -> HeaderMatch:
        """
        Match an entry's header against its table spec.

        Raises:
            SchemaInferenceError: no header field is a declared column
        """
        with entry.open() as stream:
            header = parse_header(read_header(stream))

        match = match_columns(header, entry.spec)
        if not match.columns:
            raise SchemaInferenceError(
                f"Header of {entry.name} has no columns declared for table {entry.spec.name}: {header}"
            )
        return match

    def load(self, conn: Connection, archive: ArchiveReader, staging_schema: str) -> Dict[str, int]:
        """
        Create ``staging_schema`` and load every qualifying entry into it.

        Args:
            conn: Dataset connection with no transaction in progress
            archive: Opened archive reader
            staging_schema: Name of the schema to create

        Returns:
            Dictionary mapping table name -> rows loaded
        """
        entries = archive.entries(self.catalog)
        logger.info(f"Loading {len(entries)} tables into {staging_schema}")
        row_counts: Dict[str, int] = {}

        with conn.begin():
            cursor = conn.connection.cursor()
            try:
                self._execute(cursor, sql.SQL("CREATE SCHEMA {}").format(sql.Identifier(staging_schema)),
                              f"create schema {staging_schema}")

                matches: Dict[str, HeaderMatch] = {}
                for entry in tqdm(entries, desc="Creating tables", unit="table", disable=not self.show_progress):
                    match = self.infer_columns(entry)
                    self._create_table(cursor, staging_schema, entry.spec, match.columns)
                    matches[entry.name] = match

                for entry in tqdm(entries, desc="Copying tables", unit="table", disable=not self.show_progress):
                    row_counts[entry.spec.name] = self._copy_entry(
                        cursor, staging_schema, entry, matches[entry.name]
                    )
            finally:
                cursor.close()

        logger.info(f"Committed {sum(row_counts.values()):,} rows across {len(row_counts)} tables in {staging_schema}")
        return row_counts

    def _create_table(self, cursor, schema: str, spec: TableSpec, columns: List[str]):
        definitions = sql.SQL(", ").join(
            sql.SQL("{} {}").format(sql.Identifier(column), sql.SQL(spec.column_type(column)))
            for column in columns
        )
        statement = sql.SQL("CREATE TABLE {} ({})").format(sql.Identifier(schema, spec.name), definitions)
        self._execute(cursor, statement, f"create table {schema}.{spec.name}")
        logger.debug(f"Created {schema}.{spec.name} with columns {columns}")

    def _copy_entry(self, cursor, schema: str, entry: ArchiveEntry, match: HeaderMatch) -> int:
        column_list = sql.SQL(", ").join(map(sql.Identifier, match.columns))
        statement = sql.SQL(
            "COPY {} ({}) FROM STDIN WITH (FORMAT csv, HEADER true, DELIMITER ',', "
            "ENCODING 'UTF8', FORCE_NOT_NULL ({}))"
        ).format(sql.Identifier(schema, entry.spec.name), column_list, column_list)

        with entry.open() as stream:
            source = stream if match.is_identity else ProjectedCsvStream(stream, match.indices)
            try:
                cursor.copy_expert(statement, source, size=COPY_BUFFER_SIZE)
            except psycopg2.Error as e:
                raise LoadError(f"COPY of {entry.name} into {schema}.{entry.spec.name} failed: {e}") from e

        loaded = cursor.rowcount if cursor.rowcount is not None else -1
        logger.info(f"{loaded:,} records loaded into {schema}.{entry.spec.name}")
        return loaded

    @staticmethod
    def _execute(cursor, statement, action: str):
        try:
            cursor.execute(statement)
        except psycopg2.Error as e:
            raise LoadError(f"Failed to {action}: {e}") from e
