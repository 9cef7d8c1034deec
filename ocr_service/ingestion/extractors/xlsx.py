from __future__ import annotations

from pathlib import Path

import openpyxl

from ocr_service.ingestion.extractors.base import Extractor, normalize_text

XLSX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"


class XlsxExtractor(Extractor):
    """One output line per non-empty worksheet row, cell values space-joined."""

    content_types = frozenset({XLSX_CONTENT_TYPE})

    def extract(self, path: Path) -> str:
        wb = openpyxl.load_workbook(str(path), read_only=True, data_only=True)
        try:
            parts: list[str] = []
            for ws in wb.worksheets:
                for row in ws.iter_rows(values_only=True):
                    values = [str(v).strip() for v in row if v is not None and str(v).strip()]
                    if values:
                        parts.append(" ".join(values))
        finally:
            wb.close()
        return normalize_text("\n".join(parts))
