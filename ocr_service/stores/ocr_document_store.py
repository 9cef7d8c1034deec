"""OCR-state reads and writes for one document family's table.

All methods take an open connection (see db.db_connection). Table names come
from the fixed FAMILY_TABLES registry, never from callers.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Any

import asyncpg

from ocr_service.ingestion.banners import BANNER_SQL_PATTERNS
from ocr_service.ingestion.types import OcrDocument, OcrStatus

logger = logging.getLogger(__name__)

FAMILY_TABLES: dict[str, str] = {
    "docrepo": "docrepo_documents",
    "project": "project_documents",
    "attachment": "document_attachments",
}

_COLUMNS = """
    id, content_type, storage_ref, ocr_status, extracted_text,
    ocr_failure_reason, ocr_last_tried_at, updated_at, updated_by
"""


class OcrDocumentStore:
    """Stateless data-access object for the OCR columns of a family table."""

    def __init__(self, family: str) -> None:
        if family not in FAMILY_TABLES:
            raise ValueError(f"Unknown document family: {family!r}")
        self.family = family
        self._table = FAMILY_TABLES[family]

    async def fetch_pending(self, conn: asyncpg.Connection, *, limit: int) -> list[OcrDocument]:
        """Oldest-tried first; never-tried documents (NULL) ahead of everything."""
        rows = await conn.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM {self._table}
            WHERE ocr_status = $1 AND deleted_at IS NULL
            ORDER BY ocr_last_tried_at ASC NULLS FIRST, created_at ASC
            LIMIT $2
            """,
            OcrStatus.PENDING.value,
            limit,
        )
        return [self._to_document(r) for r in rows]

    async def claim(self, conn: asyncpg.Connection, doc_id: str, *, tried_at: datetime) -> bool:
        tag = await conn.execute(
            f"UPDATE {self._table} SET ocr_last_tried_at = $2 WHERE id = $1",
            uuid.UUID(doc_id),
            tried_at,
        )
        return tag == "UPDATE 1"

    async def save_result(self, conn: asyncpg.Connection, doc: OcrDocument) -> bool:
        tag = await conn.execute(
            f"""
            UPDATE {self._table}
            SET ocr_status = $2,
                extracted_text = $3,
                ocr_failure_reason = $4,
                ocr_last_tried_at = $5,
                updated_at = COALESCE($6, NOW()),
                updated_by = $7
            WHERE id = $1
            """,
            uuid.UUID(doc.id),
            OcrStatus(doc.ocr_status).value,
            doc.extracted_text,
            doc.failure_reason,
            doc.last_tried_at,
            doc.updated_at,
            doc.updated_by,
        )
        if tag != "UPDATE 1":
            logger.warning("OCR result for %s document %s matched no row", self.family, doc.id)
            return False
        return True

    async def find_banner_succeeded(self, conn: asyncpg.Connection) -> list[OcrDocument]:
        """Succeeded rows whose stored text is an OCR placeholder banner."""
        rows = await conn.fetch(
            f"""
            SELECT {_COLUMNS}
            FROM {self._table}
            WHERE ocr_status = $1
              AND deleted_at IS NULL
              AND extracted_text IS NOT NULL
              AND (extracted_text ILIKE $2 OR extracted_text ILIKE $3)
            ORDER BY created_at ASC
            """,
            OcrStatus.SUCCEEDED.value,
            *BANNER_SQL_PATTERNS,
        )
        return [self._to_document(r) for r in rows]

    def _to_document(self, row: Any) -> OcrDocument:
        return OcrDocument(
            id=str(row["id"]),
            family=self.family,
            content_type=row["content_type"],
            storage_ref=row["storage_ref"],
            ocr_status=OcrStatus(row["ocr_status"]),
            extracted_text=row["extracted_text"],
            failure_reason=row["ocr_failure_reason"],
            last_tried_at=row["ocr_last_tried_at"],
            updated_at=row["updated_at"],
            updated_by=row["updated_by"],
        )
