"""Unit tests for storage_ref resolution (local files and gs:// URIs)."""

from __future__ import annotations

import io
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from ocr_service.ingestion.gcs import is_gs_uri, parse_gs_uri
from ocr_service.ingestion.storage import (
    GcsDocumentStorage,
    LocalDocumentStorage,
    RoutingDocumentStorage,
)


class TestGsUris:
    def test_parse(self):
        assert parse_gs_uri("gs://bucket/a/b.pdf") == ("bucket", "a/b.pdf")

    def test_detection(self):
        assert is_gs_uri("gs://b/o")
        assert not is_gs_uri("docs/o.pdf")

    @pytest.mark.parametrize("uri", ["docs/a.pdf", "gs://bucket-only", "gs:///name"])
    def test_invalid(self, uri):
        with pytest.raises(ValueError):
            parse_gs_uri(uri)


class TestLocalDocumentStorage:
    def test_reads_relative_ref(self, tmp_path: Path):
        (tmp_path / "docs").mkdir()
        (tmp_path / "docs" / "a.pdf").write_bytes(b"data")
        with LocalDocumentStorage(tmp_path).open_read("docs/a.pdf") as f:
            assert f.read() == b"data"

    def test_backslashes_and_leading_slash(self, tmp_path: Path):
        storage = LocalDocumentStorage(tmp_path)
        assert storage.resolve("\\docs\\a.pdf") == (tmp_path / "docs" / "a.pdf").resolve()
        assert storage.resolve("/docs/a.pdf") == (tmp_path / "docs" / "a.pdf").resolve()

    def test_escape_rejected(self, tmp_path: Path):
        with pytest.raises(ValueError, match="escapes"):
            LocalDocumentStorage(tmp_path / "root").resolve("../secret.pdf")

    def test_empty_ref_rejected(self, tmp_path: Path):
        with pytest.raises(ValueError):
            LocalDocumentStorage(tmp_path).resolve("  ")

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(FileNotFoundError):
            LocalDocumentStorage(tmp_path).open_read("missing.pdf")


class TestGcsDocumentStorage:
    def test_opens_blob(self):
        client = MagicMock()
        client.bucket.return_value.blob.return_value.open.return_value = io.BytesIO(b"blob")

        stream = GcsDocumentStorage(client).open_read("gs://docs-bucket/tenant/a.pdf")

        assert stream.read() == b"blob"
        client.bucket.assert_called_once_with("docs-bucket")
        client.bucket.return_value.blob.assert_called_once_with("tenant/a.pdf")
        client.bucket.return_value.blob.return_value.open.assert_called_once_with("rb")


class TestRoutingDocumentStorage:
    def test_routes_by_scheme(self, tmp_path: Path):
        (tmp_path / "a.pdf").write_bytes(b"local")
        gcs = MagicMock()
        gcs.open_read.return_value = io.BytesIO(b"remote")
        storage = RoutingDocumentStorage(local=LocalDocumentStorage(tmp_path), gcs=gcs)

        with storage.open_read("a.pdf") as f:
            assert f.read() == b"local"
        assert storage.open_read("gs://b/a.pdf").read() == b"remote"

    def test_gcs_ref_without_gcs_configured(self, tmp_path: Path):
        storage = RoutingDocumentStorage(local=LocalDocumentStorage(tmp_path))
        with pytest.raises(ValueError, match="not configured"):
            storage.open_read("gs://b/a.pdf")
