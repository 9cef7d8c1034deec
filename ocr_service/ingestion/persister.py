"""Apply an extraction outcome to a document record.

Text and failure reasons are hard-truncated before they reach the database;
a noise-filled scan can produce megabytes of garbage "text".
"""

from __future__ import annotations

from datetime import datetime

from ocr_service.config import OCR_EXTRACTED_TEXT_MAX_CHARS, OCR_FAILURE_REASON_MAX_CHARS
from ocr_service.ingestion.types import (
    ExtractionOutcome,
    NotApplicable,
    OcrDocument,
    OcrFailure,
    OcrStatus,
    OcrSuccess,
)


def cap_extracted_text(text: str | None) -> str | None:
    if not text:
        return text
    return text[:OCR_EXTRACTED_TEXT_MAX_CHARS]


def trim_failure_reason(reason: str | None) -> str | None:
    if reason is None or not reason.strip():
        return reason
    return reason[:OCR_FAILURE_REASON_MAX_CHARS]


def apply_outcome(
    document: OcrDocument,
    outcome: ExtractionOutcome,
    *,
    now: datetime,
    updated_by: str,
) -> OcrDocument:
    if isinstance(outcome, OcrSuccess):
        document.ocr_status = OcrStatus.SUCCEEDED
        document.extracted_text = cap_extracted_text(outcome.text)
        document.failure_reason = None
    elif isinstance(outcome, OcrFailure):
        document.ocr_status = OcrStatus.FAILED
        document.extracted_text = None
        document.failure_reason = trim_failure_reason(outcome.reason)
    elif isinstance(outcome, NotApplicable):
        document.ocr_status = OcrStatus.SKIPPED
        document.extracted_text = None
        document.failure_reason = trim_failure_reason(outcome.reason)
    else:
        raise TypeError(f"Unknown extraction outcome: {outcome!r}")

    document.updated_at = now
    document.updated_by = updated_by
    return document


def reset_for_reprocessing(document: OcrDocument, *, now: datetime, updated_by: str) -> OcrDocument:
    document.ocr_status = OcrStatus.PENDING
    document.extracted_text = None
    document.failure_reason = None
    document.last_tried_at = None
    document.updated_at = now
    document.updated_by = updated_by
    return document
