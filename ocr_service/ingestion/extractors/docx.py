from __future__ import annotations

from pathlib import Path

import docx  # python-docx

from ocr_service.ingestion.extractors.base import Extractor, normalize_text

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class DocxExtractor(Extractor):
    content_types = frozenset({DOCX_CONTENT_TYPE})

    def extract(self, path: Path) -> str:
        d = docx.Document(str(path))
        parts: list[str] = []
        for p in d.paragraphs:
            if p.text and p.text.strip():
                parts.append(p.text.strip())
        for table in d.tables:
            for row in table.rows:
                cells = [c.text.strip() for c in row.cells if c.text and c.text.strip()]
                if cells:
                    parts.append(" ".join(cells))
        return normalize_text("\n".join(parts))
