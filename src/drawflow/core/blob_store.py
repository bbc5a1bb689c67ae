# src/drawflow/core/blob_store.py
"""
Key-addressed blob stores.

Keys are slash-separated relative paths such as
``org-1/wf-1/inst-1/task-chain.json``. URIs have the form
``blob://{bucket}/{key}`` and are what node data carries between tasks.
"""

from __future__ import annotations

import csv
import io
import threading
from abc import ABC, abstractmethod
from pathlib import Path

__all__ = ["FilesystemBlobStore", "InMemoryBlobStore", "is_blob_uri", "parse_blob_uri"]

_SCHEME = "blob://"


def is_blob_uri(uri: str) -> bool:
    return uri.startswith(_SCHEME)


def parse_blob_uri(uri: str) -> tuple[str, str]:
    """Split a blob URI into (bucket, key).

    Raises:
        ValueError: If uri is not a blob URI or has no key
    """
    if not uri.startswith(_SCHEME):
        raise ValueError(f"Not a blob URI: {uri!r}")
    bucket, sep, key = uri[len(_SCHEME) :].partition("/")
    if not bucket or not sep or not key:
        raise ValueError(f"Blob URI must name a bucket and a key: {uri!r}")
    return bucket, key


def _validate_key(key: str) -> str:
    if not key or key.startswith("/") or "\\" in key:
        raise ValueError(f"Invalid blob key: {key!r}")
    if any(part in ("", ".", "..") for part in key.split("/")):
        raise ValueError(f"Invalid blob key: {key!r}")
    return key


class _BlobStoreBase(ABC):
    bucket: str

    @abstractmethod
    def write(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str: ...

    @abstractmethod
    def read(self, key: str) -> bytes: ...

    @abstractmethod
    def exists(self, key: str) -> bool: ...

    def read_rows(self, key: str) -> list[dict[str, str]]:
        """Parse stored CSV content into header-keyed rows.

        A leading byte order mark is ignored.
        """
        text = self.read(key).decode("utf-8-sig")
        return list(csv.DictReader(io.StringIO(text, newline="")))

    def uri_for(self, key: str) -> str:
        return f"{_SCHEME}{self.bucket}/{_validate_key(key)}"

    def key_from_uri(self, uri: str) -> str:
        bucket, key = parse_blob_uri(uri)
        if bucket != self.bucket:
            raise ValueError(f"Blob URI {uri!r} belongs to bucket {bucket!r}, not {self.bucket!r}")
        return _validate_key(key)


class FilesystemBlobStore(_BlobStoreBase):
    """Blob store backed by a directory tree.

    Structure: base_path/<key>
    """

    def __init__(self, base_path: Path, bucket: str = "drawflow") -> None:
        self.base_path = base_path
        self.bucket = bucket
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _path_for_key(self, key: str) -> Path:
        """Resolve key to a path under base_path.

        Raises:
            ValueError: If key is malformed or resolves outside base_path
        """
        path = self.base_path / _validate_key(key)
        resolved = path.resolve()
        base_resolved = self.base_path.resolve()
        if not resolved.is_relative_to(base_resolved):
            raise ValueError(f"Invalid blob key: resolved path {resolved} is not under {base_resolved}")
        return path

    def write(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        path = self._path_for_key(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(content)
        return self.uri_for(key)

    def read(self, key: str) -> bytes:
        path = self._path_for_key(key)
        if not path.exists():
            raise KeyError(f"Blob not found: {key}")
        return path.read_bytes()

    def exists(self, key: str) -> bool:
        return self._path_for_key(key).exists()


class InMemoryBlobStore(_BlobStoreBase):
    """Dictionary-backed blob store for tests and one-shot CLI runs."""

    def __init__(self, bucket: str = "drawflow") -> None:
        self.bucket = bucket
        self._blobs: dict[str, tuple[bytes, str]] = {}
        self._lock = threading.Lock()

    def write(self, key: str, content: bytes, content_type: str = "application/octet-stream") -> str:
        with self._lock:
            self._blobs[_validate_key(key)] = (content, content_type)
        return self.uri_for(key)

    def read(self, key: str) -> bytes:
        _validate_key(key)
        with self._lock:
            if key not in self._blobs:
                raise KeyError(f"Blob not found: {key}")
            return self._blobs[key][0]

    def exists(self, key: str) -> bool:
        _validate_key(key)
        with self._lock:
            return key in self._blobs

    def content_type(self, key: str) -> str:
        with self._lock:
            if key not in self._blobs:
                raise KeyError(f"Blob not found: {key}")
            return self._blobs[key][1]

    def keys(self) -> list[str]:
        with self._lock:
            return sorted(self._blobs)
