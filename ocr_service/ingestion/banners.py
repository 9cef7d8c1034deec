"""Detection and removal of OCR placeholder banners.

ocrmypdf writes lines such as ``[OCR skipped on page(s) 1-3]`` or
``[Prior OCR found on page 2]`` into the sidecar for pages it decided not to
process. A sidecar made only of those lines is not extracted text, even though
the tool exited cleanly.
"""

from __future__ import annotations

import re

from ocr_service.ingestion.extractors.base import normalize_text

_SKIPPED_MARKER = "ocr skipped on page"
_PRIOR_PREFIX = "prior ocr"

_OPENERS = "[("
_CLOSERS = "])"

# ILIKE patterns for the stored-record scan; keep in step with matches_banner_pattern
BANNER_SQL_PATTERNS: tuple[str, ...] = ("%OCR skipped on page%", "Prior OCR%")

# A wrapped skip banner ends at its own closer; an unwrapped one ends after the page range
_BANNER_RE = re.compile(
    r"\[[ \t]*OCR skipped on page[^\]\n]*\]"
    r"|\([ \t]*OCR skipped on page(?:\(s\))?[^)\n]*\)"
    r"|OCR skipped on page(?:\(s\))?(?:[ \t]*\d+(?:[ \t]*-[ \t]*\d+)?)?"
    r"|^[ \t\ufeff]*[\[(]?[ \t]*Prior OCR[^\n]*$",
    re.IGNORECASE | re.MULTILINE,
)


def _strip_line(line: str) -> str:
    line = line.replace("\ufeff", "").strip()
    if line[:1] in _OPENERS:
        line = line[1:]
    if line[-1:] in _CLOSERS:
        line = line[:-1]
    return line.strip()


def _is_banner_line(line: str) -> bool:
    lowered = line.casefold()
    return _SKIPPED_MARKER in lowered or lowered.startswith(_PRIOR_PREFIX)


def is_useful_text(text: str | None) -> bool:
    """True when *text* holds at least one line that is not an OCR banner."""
    if text is None or not text.strip():
        return False

    lines = [s for s in (_strip_line(raw) for raw in text.splitlines()) if s]
    if not lines:
        return False

    return not all(_is_banner_line(line) for line in lines)


def clean_banners(text: str | None) -> str:
    """Remove every banner fragment and trim; clean_banners(clean_banners(x)) == clean_banners(x)."""
    if not text:
        return ""

    # Removing a fragment can splice its neighbours into a new banner
    current = normalize_text(text)
    while True:
        cleaned = normalize_text(_BANNER_RE.sub("", current))
        if cleaned == current:
            return cleaned
        current = cleaned


def matches_banner_pattern(text: str | None) -> bool:
    """Python rendition of BANNER_SQL_PATTERNS for stored extracted text."""
    if not text:
        return False
    lowered = text.casefold()
    return _SKIPPED_MARKER in lowered or lowered.startswith(_PRIOR_PREFIX)
