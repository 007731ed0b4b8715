"""
Shared fixtures: in-memory GTFS archives and fake feed responses.
"""

import io
import zipfile
from unittest.mock import MagicMock

import pytest
from requests.structures import CaseInsensitiveDict

from gtfs_loader.config.tables import TableCatalog, TableSpec


STOPS_SPEC = TableSpec(
    "stops.txt", "stops",
    (("stop_id", "TEXT"), ("stop_name", "TEXT"), ("stop_lat", "TEXT")),
)


def build_zip(files: dict) -> bytes:
    """Zip ``{entry name: bytes}``; names ending in '/' become directory entries."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w", zipfile.ZIP_DEFLATED) as archive:
        for name, content in files.items():
            if name.endswith("/"):
                archive.writestr(zipfile.ZipInfo(name), b"")
            else:
                archive.writestr(name, content)
    return buffer.getvalue()


def feed_response(status_code: int = 200, body: bytes = b"", headers: dict = None):
    """Mock of a streamed ``requests`` response usable as a context manager."""
    response = MagicMock()
    response.status_code = status_code
    response.headers = CaseInsensitiveDict(headers or {})
    response.iter_content.side_effect = lambda chunk_size=1: [
        body[i:i + chunk_size] for i in range(0, len(body), chunk_size)
    ]
    response.__enter__.return_value = response
    response.__exit__.return_value = False
    return response


class FakeFeedConfig:
    request_timeout = 5
    chunk_size = 4
    show_progress = False

    def __init__(self, tmp_dir):
        self.tmp_dir = str(tmp_dir)


@pytest.fixture
def stops_catalog():
    return TableCatalog([STOPS_SPEC])


@pytest.fixture
def zip_path(tmp_path):
    """Factory writing an archive to disk and returning its path."""
    def _write(files: dict, name: str = "feed.zip") -> str:
        path = tmp_path / name
        path.write_bytes(build_zip(files))
        return str(path)
    return _write
