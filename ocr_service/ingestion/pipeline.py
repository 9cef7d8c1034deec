from __future__ import annotations

import asyncio
import logging
import shutil
from pathlib import Path

from ocr_service.ingestion.combiner import DerivedTextCombiner, PdfOcrRunner
from ocr_service.ingestion.config import WorkDirs
from ocr_service.ingestion.extractors.docx import DOCX_CONTENT_TYPE
from ocr_service.ingestion.extractors.pdf import is_pdf_content_type
from ocr_service.ingestion.extractors.pptx import PPTX_CONTENT_TYPE
from ocr_service.ingestion.extractors.xlsx import XLSX_CONTENT_TYPE
from ocr_service.ingestion.ocr.ocrmypdf import build_temp_path, generate_run_token
from ocr_service.ingestion.storage import DocumentStorage
from ocr_service.ingestion.types import (
    ExtractionOutcome,
    NotApplicable,
    OcrDocument,
    OcrErrorKind,
    OcrFailure,
)

logger = logging.getLogger(__name__)

# LibreOffice picks its import filter from the extension
_STAGED_SUFFIXES: dict[str, str] = {
    DOCX_CONTENT_TYPE: ".docx",
    XLSX_CONTENT_TYPE: ".xlsx",
    PPTX_CONTENT_TYPE: ".pptx",
}


class DocumentOcrPipeline:
    """Routes a document to the PDF runner or the office combiner by content type."""

    def __init__(
        self,
        *,
        storage: DocumentStorage,
        runner: PdfOcrRunner,
        combiner: DerivedTextCombiner,
        work: WorkDirs,
        ocr_executable: str = "ocrmypdf",
    ) -> None:
        self._storage = storage
        self._runner = runner
        self._combiner = combiner
        self._work = work
        self._ocr_executable = ocr_executable

    async def process(self, document: OcrDocument) -> ExtractionOutcome:
        content_type = (document.content_type or "").strip().lower()
        is_pdf = is_pdf_content_type(content_type)
        if not is_pdf and not self._combiner.supports(content_type):
            return NotApplicable(
                reason=f"Unsupported content type: {document.content_type}",
                kind=OcrErrorKind.UNSUPPORTED_CONTENT_TYPE,
            )

        suffix = ".pdf" if is_pdf else _STAGED_SUFFIXES.get(content_type, Path(document.storage_ref).suffix)
        staged = build_temp_path(self._work.staging_dir, document.id, generate_run_token(), suffix)
        try:
            if not await asyncio.to_thread(self._stage, document.storage_ref, staged):
                return OcrFailure(
                    reason=f"Source file not found for '{document.storage_ref}'.",
                    kind=OcrErrorKind.UNEXPECTED_EXCEPTION,
                )

            if is_pdf:
                return await self._runner.run(
                    self._work.ocr_request(
                        document_id=document.id,
                        source_pdf=staged,
                        executable=self._ocr_executable,
                    )
                )
            return await self._combiner.extract(
                document_id=document.id, source_path=staged, content_type=content_type
            )
        finally:
            try:
                staged.unlink(missing_ok=True)
            except OSError as e:
                logger.debug("Could not delete staged copy %s: %s", staged, e)

    async def process_safely(self, document: OcrDocument) -> ExtractionOutcome:
        """process(), with any unexpected error turned into an OcrFailure."""
        try:
            return await self.process(document)
        except Exception as e:
            logger.exception(
                "Unexpected error extracting text for %s document %s", document.family, document.id
            )
            return OcrFailure(
                reason=f"OCR failed: {str(e) or type(e).__name__}",
                kind=OcrErrorKind.UNEXPECTED_EXCEPTION,
            )

    def _stage(self, storage_ref: str, destination: Path) -> bool:
        """Copy the stored bytes to destination; False when the source is missing."""
        try:
            src = self._storage.open_read(storage_ref)
        except FileNotFoundError:
            return False
        with src, open(destination, "wb") as dst:
            shutil.copyfileobj(src, dst)
        return True
