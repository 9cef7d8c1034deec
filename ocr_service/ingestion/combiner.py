"""Text for office documents: direct extraction plus OCR of a PDF derivative.

Slides and spreadsheets often carry text only inside images, so the direct
extraction alone under-reports; the PDF derivative picks those up through the
regular ocrmypdf runner.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import tempfile
from pathlib import Path
from typing import Protocol

from ocr_service.ingestion.config import WorkDirs
from ocr_service.ingestion.conversion import LibreOfficeConverter, OfficeTextExtractor
from ocr_service.ingestion.extractors.base import normalize_text
from ocr_service.ingestion.ocr.ocrmypdf import OcrRequest
from ocr_service.ingestion.types import (
    ExtractionOutcome,
    NotApplicable,
    OcrErrorKind,
    OcrFailure,
    OcrOutcome,
    OcrSuccess,
)

logger = logging.getLogger(__name__)


class PdfOcrRunner(Protocol):
    async def run(self, req: OcrRequest) -> OcrOutcome: ...


def combine_texts(direct: str | None, ocr: str | None) -> str:
    parts = [normalize_text(p) for p in (direct, ocr) if p]
    return "\n\n".join(p for p in parts if p)


class DerivedTextCombiner:
    def __init__(
        self,
        *,
        office: OfficeTextExtractor,
        runner: PdfOcrRunner,
        converter: LibreOfficeConverter | None,
        work: WorkDirs,
        ocr_executable: str = "ocrmypdf",
    ) -> None:
        self._office = office
        self._runner = runner
        self._converter = converter
        self._work = work
        self._ocr_executable = ocr_executable

    def supports(self, content_type: str | None) -> bool:
        return self._office.supports(content_type)

    async def extract(
        self, *, document_id: str, source_path: Path, content_type: str | None
    ) -> ExtractionOutcome:
        if not self._office.supports(content_type):
            return NotApplicable(
                reason=f"Unsupported content type: {content_type}",
                kind=OcrErrorKind.UNSUPPORTED_CONTENT_TYPE,
            )

        direct_text = ""
        direct_error: str | None = None
        try:
            direct_text = await asyncio.to_thread(self._office.extract, source_path, content_type)
        except Exception as e:
            direct_error = f"Text extraction failed: {e}"
            logger.warning("Direct text extraction failed for document %s: %s", document_id, e)

        ocr_text = ""
        conversion_error: str | None = None
        log_file: Path | None = None
        if self._converter is not None:
            out_dir = Path(tempfile.mkdtemp(prefix=f"{document_id}-", dir=self._work.derivatives_dir))
            try:
                conversion = await self._converter.convert_to_pdf(source_path, out_dir)
                if conversion.error:
                    conversion_error = conversion.error
                    logger.warning(
                        "PDF conversion failed for document %s: %s", document_id, conversion.error
                    )
                elif conversion.pdf_path is not None:
                    outcome = await self._runner.run(
                        self._work.ocr_request(
                            document_id=document_id,
                            source_pdf=conversion.pdf_path,
                            executable=self._ocr_executable,
                        )
                    )
                    log_file = outcome.log_file
                    if isinstance(outcome, OcrSuccess):
                        ocr_text = outcome.text
                    else:
                        logger.info(
                            "OCR of PDF derivative gave no text for document %s: %s",
                            document_id,
                            outcome.reason,
                        )
            finally:
                shutil.rmtree(out_dir, ignore_errors=True)

        combined = combine_texts(direct_text, ocr_text)
        if combined:
            return OcrSuccess(text=combined, log_file=log_file)

        errors = [e for e in (conversion_error, direct_error) if e]
        if errors:
            return OcrFailure(
                reason="; ".join(errors),
                kind=OcrErrorKind.CONVERSION_FAILED,
                log_file=log_file,
            )

        return NotApplicable(reason="No extractable text")
