"""Per-family record access behind a single capability protocol.

DocRepo documents, project documents and attachments live in separate tables
but share one OCR state machine; pollers and the backfill only ever see an
OcrDocumentSource.
"""

from __future__ import annotations

from typing import Protocol

from ocr_service.db import db_connection
from ocr_service.ingestion.types import OcrDocument
from ocr_service.stores.ocr_document_store import OcrDocumentStore


class OcrDocumentSource(Protocol):
    family: str

    async def fetch_pending(self, limit: int) -> list[OcrDocument]: ...

    async def claim(self, document: OcrDocument) -> None: ...

    async def save(self, document: OcrDocument) -> None: ...

    async def find_banner_succeeded(self) -> list[OcrDocument]: ...


class PostgresDocumentSource:
    """One transaction per call, so every claim and result commits on its own."""

    def __init__(self, family: str) -> None:
        self.family = family
        self._store = OcrDocumentStore(family)

    async def fetch_pending(self, limit: int) -> list[OcrDocument]:
        async with db_connection() as conn:
            return await self._store.fetch_pending(conn, limit=limit)

    async def claim(self, document: OcrDocument) -> None:
        if document.last_tried_at is None:
            raise ValueError("claim() needs last_tried_at set")
        async with db_connection() as conn:
            await self._store.claim(conn, document.id, tried_at=document.last_tried_at)

    async def save(self, document: OcrDocument) -> None:
        async with db_connection() as conn:
            await self._store.save_result(conn, document)

    async def find_banner_succeeded(self) -> list[OcrDocument]:
        async with db_connection() as conn:
            return await self._store.find_banner_succeeded(conn)


def build_sources(families: list[str] | tuple[str, ...]) -> list[OcrDocumentSource]:
    return [PostgresDocumentSource(f) for f in families]
