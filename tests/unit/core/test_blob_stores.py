# tests/unit/core/test_blob_stores.py
"""Tests for blob URIs and the filesystem and in-memory blob stores."""

from pathlib import Path

import pytest

from drawflow.contracts.ports import BlobStore
from drawflow.core.blob_store import FilesystemBlobStore, InMemoryBlobStore, _BlobStoreBase, is_blob_uri, parse_blob_uri


class TestBlobUri:
    def test_parse_splits_bucket_and_key(self) -> None:
        assert parse_blob_uri("blob://bucket/org/documents/1/a.csv") == ("bucket", "org/documents/1/a.csv")

    @pytest.mark.parametrize("uri", ["s3://bucket/key", "blob://bucket", "blob:///key", "blob://bucket/"])
    def test_parse_rejects_malformed(self, uri: str) -> None:
        with pytest.raises(ValueError):
            parse_blob_uri(uri)

    def test_is_blob_uri(self) -> None:
        assert is_blob_uri("blob://b/k")
        assert not is_blob_uri("https://example.com/k")


@pytest.fixture(params=["memory", "filesystem"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> BlobStore:
    if request.param == "memory":
        return InMemoryBlobStore(bucket="b")
    return FilesystemBlobStore(tmp_path / "blobs", bucket="b")


class TestBlobStores:
    def test_satisfies_protocol(self, store: BlobStore) -> None:
        assert isinstance(store, BlobStore)

    def test_write_returns_uri_and_read_returns_content(self, store: BlobStore) -> None:
        uri = store.write("org/a.json", b"{}", "application/json")

        assert uri == "blob://b/org/a.json"
        assert store.read("org/a.json") == b"{}"
        assert store.exists("org/a.json")

    def test_read_missing_raises_key_error(self, store: BlobStore) -> None:
        with pytest.raises(KeyError):
            store.read("nope.csv")
        assert not store.exists("nope.csv")

    def test_write_overwrites(self, store: BlobStore) -> None:
        store.write("k.txt", b"one")
        store.write("k.txt", b"two")

        assert store.read("k.txt") == b"two"

    def test_read_rows_skips_byte_order_mark(self, store: BlobStore) -> None:
        store.write("rows.csv", "\ufeffhunt_code,is_valid\nHC1,Y\nHC2,N\n".encode())

        assert store.read_rows("rows.csv") == [
            {"hunt_code": "HC1", "is_valid": "Y"},
            {"hunt_code": "HC2", "is_valid": "N"},
        ]

    def test_key_from_uri_checks_bucket(self, store: BlobStore) -> None:
        assert store.key_from_uri("blob://b/org/x.csv") == "org/x.csv"
        with pytest.raises(ValueError, match="bucket"):
            store.key_from_uri("blob://other/org/x.csv")

    @pytest.mark.parametrize("key", ["", "/abs", "a/../b", "a//b", "a\\b"])
    def test_invalid_keys_rejected(self, store: BlobStore, key: str) -> None:
        with pytest.raises(ValueError):
            store.write(key, b"x")

    @pytest.mark.parametrize("key", ["", "/abs", "a/../b"])
    def test_invalid_keys_rejected_on_read_and_exists(self, store: BlobStore, key: str) -> None:
        with pytest.raises(ValueError):
            store.read(key)
        with pytest.raises(ValueError):
            store.exists(key)

    def test_base_class_cannot_be_instantiated(self) -> None:
        with pytest.raises(TypeError):
            _BlobStoreBase()  # type: ignore[abstract]


class TestInMemoryBlobStore:
    def test_records_content_type(self) -> None:
        store = InMemoryBlobStore()
        store.write("a.zip", b"PK", "application/zip")

        assert store.content_type("a.zip") == "application/zip"
        assert store.keys() == ["a.zip"]


class TestFilesystemBlobStore:
    def test_nested_key_creates_directories(self, tmp_path: Path) -> None:
        store = FilesystemBlobStore(tmp_path, bucket="b")
        store.write("org/wf/inst/task-chain.json", b"{}")

        assert (tmp_path / "org" / "wf" / "inst" / "task-chain.json").read_bytes() == b"{}"
