"""
Tests for the conditional feed download.
"""

import os
from unittest.mock import MagicMock, Mock, patch

import pytest

from gtfs_loader.data.feeds.feed_client import ARCHIVE_NAME, FeedClient
from gtfs_loader.errors import FetchError
from gtfs_loader.ingest.dataset import GtfsDataset
from gtfs_loader.ingest.fetcher import FeedFetcher
from gtfs_loader.ingest.ledger import CacheRecord

from conftest import FakeFeedConfig, feed_response

URL = "https://example.com/gtfs.zip"
HEADERS = {"accept": "application/octet-stream"}


class TestFeedClient:
    """Conditional fetch outcome classification."""

    @pytest.fixture
    def downloads(self, tmp_path):
        path = tmp_path / "downloads"
        path.mkdir()
        return path

    @pytest.fixture
    def client(self, downloads):
        return FeedClient(FakeFeedConfig(downloads))

    def test_build_headers_without_cache(self, client):
        assert client.build_headers(HEADERS) == HEADERS

    def test_build_headers_with_cache(self, client):
        headers = client.build_headers(HEADERS, '"v1"', "Tue, 01 Oct 2024 00:00:00 GMT")
        assert headers["If-None-Match"] == '"v1"'
        assert headers["If-Modified-Since"] == "Tue, 01 Oct 2024 00:00:00 GMT"
        assert headers["accept"] == "application/octet-stream"
        assert "If-None-Match" not in HEADERS

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_download_without_cache(self, mock_get, client, downloads):
        """No cached metadata always downloads."""
        mock_get.return_value = feed_response(200, b"zipbytes-here", {"ETag": '"v1"', "Last-Modified": "Mon"})

        result = client.fetch("agencytest", URL, HEADERS, tmp_prefix="gtfs_agencytest_")

        assert not result.unchanged
        assert result.etag == '"v1"'
        assert result.last_modified == "Mon"
        assert os.path.basename(result.path) == ARCHIVE_NAME
        assert os.path.basename(result.directory).startswith("gtfs_agencytest_")
        with open(result.path, "rb") as f:
            assert f.read() == b"zipbytes-here"

        sent = mock_get.call_args.kwargs["headers"]
        assert "If-None-Match" not in sent
        assert "If-Modified-Since" not in sent
        assert mock_get.call_args.kwargs["stream"] is True

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_download_when_response_has_no_validators(self, mock_get, client):
        mock_get.return_value = feed_response(200, b"zip")

        result = client.fetch("agencytest", URL, HEADERS)

        assert not result.unchanged
        assert result.etag is None
        assert result.last_modified is None

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_not_modified(self, mock_get, client, downloads):
        mock_get.return_value = feed_response(304)

        result = client.fetch("agencytest", URL, HEADERS, etag='"v1"', last_modified="Mon")

        assert result.unchanged
        assert result.status_code == 304
        assert os.listdir(downloads) == []
        sent = mock_get.call_args.kwargs["headers"]
        assert sent["If-None-Match"] == '"v1"'
        assert sent["If-Modified-Since"] == "Mon"

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_same_etag_is_unchanged(self, mock_get, client, downloads):
        mock_get.return_value = feed_response(200, b"zip", {"ETag": '"v1"'})

        result = client.fetch("agencytest", URL, HEADERS, etag='"v1"')

        assert result.unchanged
        assert os.listdir(downloads) == []

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_same_last_modified_is_unchanged(self, mock_get, client, downloads):
        mock_get.return_value = feed_response(200, b"zip", {"ETag": '"v2"', "Last-Modified": "Mon"})

        result = client.fetch("agencytest", URL, HEADERS, etag='"v1"', last_modified="Mon")

        assert result.unchanged

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_new_etag_downloads(self, mock_get, client):
        mock_get.return_value = feed_response(200, b"zip", {"ETag": '"v2"', "Last-Modified": "Tue"})

        result = client.fetch("agencytest", URL, HEADERS, etag='"v1"', last_modified="Mon")

        assert not result.unchanged
        assert result.etag == '"v2"'

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_error_status_raises(self, mock_get, client, downloads):
        mock_get.return_value = feed_response(503, b"unavailable")

        with pytest.raises(FetchError) as excinfo:
            client.fetch("agencytest", URL, HEADERS)

        assert excinfo.value.status_code == 503
        assert os.listdir(downloads) == []

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_empty_body_raises_and_leaves_nothing(self, mock_get, client, downloads):
        mock_get.return_value = feed_response(200, b"")

        with pytest.raises(FetchError):
            client.fetch("agencytest", URL, HEADERS)

        assert os.listdir(downloads) == []

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_interrupted_stream_leaves_nothing(self, mock_get, client, downloads):
        response = feed_response(200, b"zip")
        response.iter_content.side_effect = IOError("connection reset")
        mock_get.return_value = response

        with pytest.raises(IOError):
            client.fetch("agencytest", URL, HEADERS)

        assert os.listdir(downloads) == []

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_unconditional_not_modified_raises(self, mock_get, client, downloads):
        """A 304 to a request without validators is not an unchanged feed."""
        mock_get.return_value = feed_response(304)

        with pytest.raises(FetchError) as excinfo:
            client.fetch("agencytest", URL, HEADERS)

        assert excinfo.value.status_code == 304
        assert os.listdir(downloads) == []
        assert "If-None-Match" not in mock_get.call_args.kwargs["headers"]


class TestFeedFetcher:
    """Ledger handling around the conditional fetch."""

    @pytest.fixture
    def ledger(self):
        ledger = Mock()
        ledger.read.return_value = CacheRecord('"v1"', "Mon")
        return ledger

    @pytest.fixture
    def fetcher(self, ledger, tmp_path):
        return FeedFetcher(FeedClient(FakeFeedConfig(tmp_path)), ledger)

    @pytest.fixture
    def dataset(self):
        return GtfsDataset("agencytest", URL, HEADERS)

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_cached_record_sends_validators(self, mock_get, fetcher, ledger, dataset):
        mock_get.return_value = feed_response(304)
        conn = MagicMock()

        assert fetcher.fetch(conn, dataset).unchanged

        assert mock_get.call_args.kwargs["headers"]["If-None-Match"] == '"v1"'
        ledger.write.assert_not_called()
        conn.commit.assert_called_once()

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_force_ignores_record_and_rejects_304(self, mock_get, fetcher, ledger, dataset):
        mock_get.return_value = feed_response(304)

        with pytest.raises(FetchError):
            fetcher.fetch(MagicMock(), dataset, force=True)

        ledger.read.assert_not_called()
        assert "If-None-Match" not in mock_get.call_args.kwargs["headers"]
        ledger.write.assert_not_called()

    @patch("gtfs_loader.data.feeds.feed_client.requests.get")
    def test_force_downloads_and_records(self, mock_get, fetcher, ledger, dataset):
        mock_get.return_value = feed_response(200, b"zip", {"ETag": '"v1"'})
        conn = MagicMock()

        result = fetcher.fetch(conn, dataset, force=True)

        assert not result.unchanged
        assert ledger.write.call_args.args[:4] == (conn, "agencytest", '"v1"', None)
        assert os.path.basename(result.directory).startswith("gtfs_agencytest_")
