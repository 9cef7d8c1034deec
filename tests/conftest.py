"""Shared test fixtures for the OCR ingestion test suite."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta

import pytest

from ocr_service.ingestion.types import OcrDocument

PDF = "application/pdf"
DOCX = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class FixedClock:
    """Deterministic clock; each call advances by one second."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2026, 3, 1, 9, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(seconds=1)
        return value


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def make_document():
    """Factory for in-memory OcrDocument records."""

    def _make(
        *,
        family: str = "docrepo",
        content_type: str | None = PDF,
        storage_ref: str = "docs/scan.pdf",
        **fields,
    ) -> OcrDocument:
        return OcrDocument(
            id=fields.pop("id", str(uuid.uuid4())),
            family=family,
            content_type=content_type,
            storage_ref=storage_ref,
            **fields,
        )

    return _make
