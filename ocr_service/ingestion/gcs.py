from __future__ import annotations

from typing import BinaryIO

from google.cloud import storage


def is_gs_uri(ref: str) -> bool:
    return ref.startswith("gs://")


def parse_gs_uri(uri: str) -> tuple[str, str]:
    """Split ``gs://bucket/name`` into (bucket, name)."""
    if not is_gs_uri(uri):
        raise ValueError(f"Not a gs:// URI: {uri!r}")
    bucket, _, name = uri[len("gs://") :].partition("/")
    if not bucket or not name:
        raise ValueError(f"gs:// URI must name a bucket and an object: {uri!r}")
    return bucket, name


def open_blob_reader(client: storage.Client, bucket: str, name: str) -> BinaryIO:
    b = client.bucket(bucket)
    blob = b.blob(name)
    return blob.open("rb")
