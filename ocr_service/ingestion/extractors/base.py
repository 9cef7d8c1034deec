from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path


class Extractor(ABC):
    """Direct text extraction from a source format, no OCR involved."""

    content_types: frozenset[str] = frozenset()

    def can_handle(self, content_type: str | None) -> bool:
        return (content_type or "").strip().lower() in self.content_types

    @abstractmethod
    def extract(self, path: Path) -> str: ...


def normalize_text(text: str) -> str:
    if not text:
        return ""
    # Remove null bytes, normalize whitespace a bit
    text = text.replace("\x00", "")
    # Collapse very long runs of blank lines
    while "\n\n\n\n" in text:
        text = text.replace("\n\n\n\n", "\n\n\n")
    return text.strip()
