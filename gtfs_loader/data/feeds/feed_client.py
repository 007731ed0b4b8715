from gtfs_loader.config.config_main import feed_config
from gtfs_loader.errors import FetchError
import logging
import os
import shutil
import tempfile
from typing import Dict, NamedTuple, Optional

import requests
from tqdm import tqdm

logger = logging.getLogger(__name__)

NOT_MODIFIED = 304
ARCHIVE_NAME = "feed.zip"


class FetchResult(NamedTuple):
    """Outcome of a conditional feed request. ``path`` is None when unchanged."""
    status_code: int
    path: Optional[str] = None
    etag: Optional[str] = None
    last_modified: Optional[str] = None

    @property
    def unchanged(self) -> bool:
        return self.path is None

    @property
    def directory(self) -> Optional[str]:
        return os.path.dirname(self.path) if self.path else None


class FeedClient:
    def __init__(self, config=feed_config):
        self.timeout = config.request_timeout
        self.chunk_size = config.chunk_size
        self.tmp_dir = config.tmp_dir
        self.show_progress = config.show_progress

    def build_headers(self, headers: Dict[str, str], etag: Optional[str] = None,
                      last_modified: Optional[str] = None) -> Dict[str, str]:
        """Static feed headers plus conditional revalidation headers when known."""
        request_headers = dict(headers)
        if etag:
            request_headers["If-None-Match"] = etag
        if last_modified:
            request_headers["If-Modified-Since"] = last_modified
        return request_headers

    def fetch(self, name: str, url: str, headers: Dict[str, str],
              etag: Optional[str] = None, last_modified: Optional[str] = None,
              tmp_prefix: str = "gtfs_") -> FetchResult:
        """
        Conditionally download a feed archive.

        Args:
            name: Dataset name, used in logs and errors
            url: Feed URL
            headers: Static request headers for the feed
            etag: Cached ETag from the last download, if any
            last_modified: Cached Last-Modified from the last download, if any
            tmp_prefix: Prefix for the temporary directory holding the archive

        Returns:
            FetchResult with ``path`` set to the downloaded archive, or an
            unchanged result when the feed has not been republished

        Raises:
            FetchError: non-success status or empty body
        """
        request_headers = self.build_headers(headers, etag, last_modified)

        with requests.get(url, headers=request_headers, stream=True, timeout=self.timeout) as response:
            new_etag = response.headers.get("etag") or None
            new_last_modified = response.headers.get("last-modified") or None

            if self._is_unchanged(response.status_code, etag, last_modified, new_etag, new_last_modified):
                logger.info(f"Feed {name} unchanged (status {response.status_code}, etag={new_etag})")
                return FetchResult(response.status_code)

            if not 200 <= response.status_code < 300:
                raise FetchError(f"Download failed {response.status_code} for {name}", response.status_code)
            if response.headers.get("content-length") == "0" or response.status_code == 204:
                raise FetchError(f"Download failed {response.status_code} for {name}: empty body",
                                 response.status_code)

            path = self._stream_to_file(name, response, tmp_prefix)

        return FetchResult(response.status_code, path, new_etag, new_last_modified)

    @staticmethod
    def _is_unchanged(status_code: int, etag: Optional[str], last_modified: Optional[str],
                      new_etag: Optional[str], new_last_modified: Optional[str]) -> bool:
        # A 304 only answers a conditional request
        if status_code == NOT_MODIFIED and (etag or last_modified):
            return True
        if etag and new_etag == etag:
            return True
        if last_modified and new_last_modified == last_modified:
            return True
        return False

    def _stream_to_file(self, name: str, response: requests.Response, tmp_prefix: str) -> str:
        """Write the whole body to a fresh temporary directory; nothing is kept on failure."""
        tmp = tempfile.mkdtemp(prefix=tmp_prefix, dir=self.tmp_dir)
        path = os.path.join(tmp, ARCHIVE_NAME)
        total = int(response.headers.get("content-length") or 0) or None
        written = 0

        try:
            with open(path, "wb") as f, tqdm(
                total=total, unit="B", unit_scale=True, desc=f"Downloading {name}",
                disable=not self.show_progress
            ) as progress:
                for chunk in response.iter_content(chunk_size=self.chunk_size):
                    if not chunk:
                        continue
                    f.write(chunk)
                    written += len(chunk)
                    progress.update(len(chunk))

            if written == 0:
                raise FetchError(f"Download failed {response.status_code} for {name}: empty body",
                                 response.status_code)
        except BaseException:
            shutil.rmtree(tmp, ignore_errors=True)
            raise

        logger.info(f"Downloaded {written:,} bytes for {name} to {path}")
        return path
