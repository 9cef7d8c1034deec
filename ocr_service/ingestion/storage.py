"""Storage collaborators: resolve a document's storage_ref to a byte stream."""

from __future__ import annotations

from pathlib import Path
from typing import BinaryIO, Protocol

from google.cloud import storage

from ocr_service.ingestion.gcs import is_gs_uri, open_blob_reader, parse_gs_uri


class DocumentStorage(Protocol):
    def open_read(self, storage_ref: str) -> BinaryIO: ...


class LocalDocumentStorage:
    """Files under a root directory; refs are relative paths."""

    def __init__(self, root: Path) -> None:
        self._root = Path(root).resolve()

    def resolve(self, storage_ref: str) -> Path:
        normalized = storage_ref.replace("\\", "/").strip().lstrip("/")
        if not normalized:
            raise ValueError("storage_ref is empty")
        path = (self._root / normalized).resolve()
        if not path.is_relative_to(self._root):
            raise ValueError(f"storage_ref escapes the storage root: {storage_ref!r}")
        return path

    def open_read(self, storage_ref: str) -> BinaryIO:
        return open(self.resolve(storage_ref), "rb")


class GcsDocumentStorage:
    def __init__(self, client: storage.Client) -> None:
        self._client = client

    def open_read(self, storage_ref: str) -> BinaryIO:
        bucket, name = parse_gs_uri(storage_ref)
        return open_blob_reader(self._client, bucket, name)


class RoutingDocumentStorage:
    """gs:// refs go to GCS, everything else to local storage."""

    def __init__(self, *, local: DocumentStorage, gcs: DocumentStorage | None = None) -> None:
        self._local = local
        self._gcs = gcs

    def open_read(self, storage_ref: str) -> BinaryIO:
        if is_gs_uri(storage_ref):
            if self._gcs is None:
                raise ValueError(f"GCS storage is not configured for {storage_ref!r}")
            return self._gcs.open_read(storage_ref)
        return self._local.open_read(storage_ref)
