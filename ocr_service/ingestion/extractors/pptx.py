from __future__ import annotations

import re
import zipfile
from pathlib import Path

from lxml import etree

from ocr_service.ingestion.extractors.base import Extractor, normalize_text

PPTX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.presentationml.presentation"

_DRAWING_NS = "http://schemas.openxmlformats.org/drawingml/2006/main"
_SLIDE_RE = re.compile(r"^ppt/slides/slide(\d+)\.xml$")


def _slide_names(archive: zipfile.ZipFile) -> list[str]:
    numbered: list[tuple[int, str]] = []
    for name in archive.namelist():
        m = _SLIDE_RE.match(name)
        if m:
            numbered.append((int(m.group(1)), name))
    numbered.sort()
    return [name for _, name in numbered]


class PptxExtractor(Extractor):
    """Reads the DrawingML text runs of each slide, one line per slide."""

    content_types = frozenset({PPTX_CONTENT_TYPE})

    def extract(self, path: Path) -> str:
        parser = etree.XMLParser(resolve_entities=False, no_network=True)
        parts: list[str] = []
        with zipfile.ZipFile(path) as archive:
            for name in _slide_names(archive):
                root = etree.fromstring(archive.read(name), parser=parser)
                runs = [
                    node.text.strip()
                    for node in root.iter(f"{{{_DRAWING_NS}}}t")
                    if node.text and node.text.strip()
                ]
                if runs:
                    parts.append(" ".join(runs))
        return normalize_text("\n".join(parts))
