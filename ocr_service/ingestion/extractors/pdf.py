from __future__ import annotations

import logging
from pathlib import Path

from pypdf import PdfReader

from ocr_service.ingestion.extractors.base import normalize_text

logger = logging.getLogger(__name__)

PDF_CONTENT_TYPES = frozenset({"application/pdf", "application/x-pdf"})


def is_pdf_content_type(content_type: str | None) -> bool:
    return (content_type or "").strip().lower() in PDF_CONTENT_TYPES


class PdfTextExtractor:
    """Reads the embedded text layer of a PDF without invoking OCR."""

    def try_extract(self, pdf_path: str | Path) -> str | None:
        try:
            r = PdfReader(str(pdf_path))
            parts: list[str] = []
            for p in r.pages:
                t = p.extract_text() or ""
                if t.strip():
                    parts.append(t)
        except Exception as e:
            # Corrupt, encrypted or otherwise unreadable: OCR decides
            logger.debug("Embedded text extraction failed for %s: %s", pdf_path, e)
            return None

        text = normalize_text("\n".join(parts))
        return text or None
