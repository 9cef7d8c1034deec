"""Environment-variable-driven constants for the OCR service.

Pipeline tunables (work directories, poll intervals, executables) live in
ocr_service.ingestion.config; this module holds the fixed limits and identities.
"""

from __future__ import annotations

import os


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


# -- Persisted result limits --------------------------------------------------
OCR_EXTRACTED_TEXT_MAX_CHARS: int = 200_000
OCR_FAILURE_REASON_MAX_CHARS: int = 1_000

# -- Identities written to updated_by ----------------------------------------
OCR_WORKER_USER_ID: str = os.getenv("OCR_WORKER_USER_ID", "ocr-worker")
OCR_BACKFILL_USER_ID: str = os.getenv("OCR_BACKFILL_USER_ID", "ocr-backfill")

# -- Logging ------------------------------------------------------------------
OCR_LOG_LEVEL: str = os.getenv("OCR_LOG_LEVEL", "INFO")
OCR_LOG_JSON: bool = _env_bool("OCR_LOG_JSON", False)

# -- Runtime ------------------------------------------------------------------
IS_CLOUD_RUN: bool = bool(os.getenv("K_SERVICE") or os.getenv("CLOUD_RUN_JOB"))
