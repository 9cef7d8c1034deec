from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum
from pathlib import Path


class OcrStatus(StrEnum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"


class OcrErrorKind(StrEnum):
    TOOL_MISSING_OR_CRASHED = "tool_missing_or_crashed"
    NO_SIDECAR_PRODUCED = "no_sidecar_produced"
    UNUSABLE_TEXT = "unusable_text"
    UNSUPPORTED_CONTENT_TYPE = "unsupported_content_type"
    CONVERSION_FAILED = "conversion_failed"
    UNEXPECTED_EXCEPTION = "unexpected_exception"


@dataclass
class OcrDocument:
    id: str
    family: str  # docrepo|project|attachment
    content_type: str | None
    storage_ref: str
    ocr_status: OcrStatus = OcrStatus.PENDING
    extracted_text: str | None = None
    failure_reason: str | None = None
    last_tried_at: datetime | None = None
    updated_at: datetime | None = None
    updated_by: str | None = None


@dataclass(frozen=True)
class OcrSuccess:
    text: str
    log_file: Path | None = None


@dataclass(frozen=True)
class OcrFailure:
    reason: str
    kind: OcrErrorKind = OcrErrorKind.UNEXPECTED_EXCEPTION
    log_file: Path | None = None


@dataclass(frozen=True)
class NotApplicable:
    reason: str
    kind: OcrErrorKind | None = None


OcrOutcome = OcrSuccess | OcrFailure
ExtractionOutcome = OcrSuccess | OcrFailure | NotApplicable
