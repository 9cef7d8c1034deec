"""Office-format collaborators: direct text extraction and PDF conversion."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from ocr_service.ingestion.extractors.base import Extractor
from ocr_service.ingestion.extractors.docx import DocxExtractor
from ocr_service.ingestion.extractors.pptx import PptxExtractor
from ocr_service.ingestion.extractors.xlsx import XlsxExtractor
from ocr_service.ingestion.ocr.invoker import OcrInvoker

logger = logging.getLogger(__name__)


class OfficeTextExtractor:
    def __init__(self, extractors: list[Extractor] | None = None) -> None:
        self._extractors = extractors or [DocxExtractor(), XlsxExtractor(), PptxExtractor()]

    def supports(self, content_type: str | None) -> bool:
        return any(ex.can_handle(content_type) for ex in self._extractors)

    def extract(self, path: Path, content_type: str | None) -> str:
        extractor = next((ex for ex in self._extractors if ex.can_handle(content_type)), None)
        if extractor is None:
            raise ValueError(f"No text extractor for content type {content_type!r}")
        return extractor.extract(path)


@dataclass(frozen=True)
class PdfConversion:
    pdf_path: Path | None
    error: str | None


class LibreOfficeConverter:
    def __init__(self, *, invoker: OcrInvoker, executable: str = "soffice") -> None:
        self._invoker = invoker
        self._executable = executable

    async def convert_to_pdf(self, source: Path, out_dir: Path) -> PdfConversion:
        target = Path(out_dir) / f"{Path(source).stem}.pdf"
        args = [
            "--headless",
            "--nologo",
            "--nolockcheck",
            "--nodefault",
            "--nofirststartwizard",
            "--convert-to",
            "pdf",
            "--outdir",
            str(out_dir),
            str(source),
        ]
        try:
            result = await self._invoker.run(self._executable, args, out_dir)
        except OSError as e:
            return PdfConversion(pdf_path=None, error=f"LibreOffice conversion failed: {e}")

        if result.exit_code != 0:
            message = result.stderr.strip() or result.stdout.strip() or "LibreOffice conversion failed."
            logger.warning("LibreOffice exited %d converting %s", result.exit_code, source)
            return PdfConversion(pdf_path=None, error=message)

        if not target.exists():
            return PdfConversion(
                pdf_path=None, error="LibreOffice conversion did not produce a PDF output."
            )

        return PdfConversion(pdf_path=target, error=None)
