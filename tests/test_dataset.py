"""
Tests for dataset identity: slugs, schema names and lock keys.
"""

import hashlib

import pytest

from gtfs_loader.ingest.dataset import GtfsDataset, LOCK_NAMESPACE, lock_key_for, slugify


class TestSlugify:

    def test_lowercases_and_collapses(self):
        assert slugify("Sydney Trains") == "sydney_trains"
        assert slugify("ferries/MFF") == "ferries_mff"
        assert slugify("a -- b") == "a_b"

    def test_strips_edge_underscores(self):
        assert slugify("  __Light Rail!! ") == "light_rail"

    def test_already_slug(self):
        assert slugify("agencytest") == "agencytest"


class TestLockKey:

    def test_namespace_value(self):
        assert LOCK_NAMESPACE == 0x47465453
        assert -2**31 <= LOCK_NAMESPACE < 2**31

    def test_matches_signed_sha1_prefix(self):
        expected = int.from_bytes(hashlib.sha1(b"sydneytrains").digest()[:4], "big", signed=True)
        assert lock_key_for("sydneytrains") == expected

    def test_fits_int4(self):
        for name in ["agencytest", "sydneycomplete", "adelaidemetro", "x", "ünïcode"]:
            key = lock_key_for(name)
            assert -2**31 <= key < 2**31

    def test_deterministic(self):
        assert lock_key_for("agencytest") == lock_key_for("agencytest")

    def test_distinct_names_distinct_keys(self):
        assert lock_key_for("sydneytrains") != lock_key_for("nswtrains")


class TestGtfsDataset:

    def test_derived_names(self):
        dataset = GtfsDataset("agencytest", "https://example.com/gtfs.zip")
        assert dataset.slug == "agencytest"
        assert dataset.schema == "gtfs_agencytest"
        assert dataset.lock_key == (LOCK_NAMESPACE, lock_key_for("agencytest"))

    def test_staging_schema(self):
        dataset = GtfsDataset("agencytest", "https://example.com/gtfs.zip")
        assert dataset.staging_schema(1700000000000) == "gtfs_agencytest_tmp_1700000000000"
        assert dataset.staging_schema().startswith("gtfs_agencytest_tmp_")

    def test_headers_are_read_only(self):
        headers = {"accept": "application/octet-stream"}
        dataset = GtfsDataset("agencytest", "https://example.com/gtfs.zip", headers)
        headers["accept"] = "text/plain"

        assert dataset.headers["accept"] == "application/octet-stream"
        with pytest.raises(TypeError):
            dataset.headers["authorization"] = "apikey x"

    def test_immutable(self):
        dataset = GtfsDataset("agencytest", "https://example.com/gtfs.zip")
        with pytest.raises(AttributeError):
            dataset.name = "other"

    def test_rejects_empty_slug(self):
        with pytest.raises(ValueError):
            GtfsDataset("!!!", "https://example.com/gtfs.zip")
