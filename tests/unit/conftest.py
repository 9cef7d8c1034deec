"""Unit test conftest: no database, no ocrmypdf, no LibreOffice required."""

from __future__ import annotations

import dataclasses
import io
import zipfile
from pathlib import Path

import pytest

from ocr_service.ingestion.banners import matches_banner_pattern
from ocr_service.ingestion.config import WorkDirs
from ocr_service.ingestion.ocr.invoker import ProcessOutput
from ocr_service.ingestion.types import OcrDocument, OcrStatus


# ---------------------------------------------------------------------------
# Work directories
# ---------------------------------------------------------------------------


@pytest.fixture
def work_dirs(tmp_path: Path) -> WorkDirs:
    return WorkDirs.under(tmp_path / "work").ensure()


# ---------------------------------------------------------------------------
# Document bytes
# ---------------------------------------------------------------------------


@pytest.fixture
def text_pdf_bytes() -> bytes:
    """A 1-page PDF with an embedded text layer."""
    fpdf = pytest.importorskip("fpdf")
    pdf = fpdf.FPDF()
    pdf.add_page()
    pdf.set_font("Helvetica", size=12)
    pdf.cell(text="Quarterly maintenance report for pump station four.")
    pdf.ln()
    pdf.cell(text="All valves inspected and found serviceable.")
    return bytes(pdf.output())


@pytest.fixture
def scanned_pdf_bytes() -> bytes:
    """A 1-page PDF with no text layer, standing in for a scan."""
    fpdf = pytest.importorskip("fpdf")
    pdf = fpdf.FPDF()
    pdf.add_page()
    return bytes(pdf.output())


@pytest.fixture
def text_pdf(tmp_path: Path, text_pdf_bytes: bytes) -> Path:
    path = tmp_path / "text.pdf"
    path.write_bytes(text_pdf_bytes)
    return path


@pytest.fixture
def scanned_pdf(tmp_path: Path, scanned_pdf_bytes: bytes) -> Path:
    path = tmp_path / "scan.pdf"
    path.write_bytes(scanned_pdf_bytes)
    return path


@pytest.fixture
def sample_docx(tmp_path: Path) -> Path:
    """A DOCX with two paragraphs and a 2x2 table."""
    docx = pytest.importorskip("docx")
    doc = docx.Document()
    doc.add_paragraph("Site survey summary.")
    doc.add_paragraph("Two findings require follow-up.")
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Item"
    table.cell(0, 1).text = "Status"
    table.cell(1, 0).text = "Roof"
    table.cell(1, 1).text = "Leaking"
    path = tmp_path / "survey.docx"
    doc.save(str(path))
    return path


@pytest.fixture
def empty_docx(tmp_path: Path) -> Path:
    docx = pytest.importorskip("docx")
    path = tmp_path / "empty.docx"
    docx.Document().save(str(path))
    return path


@pytest.fixture
def sample_xlsx(tmp_path: Path) -> Path:
    openpyxl = pytest.importorskip("openpyxl")
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "Inventory"
    ws.append(["Part", "Qty"])
    ws.append(["Gasket", 12])
    ws.append([None, None])
    ws.append(["Bearing", 3])
    other = wb.create_sheet("Notes")
    other.append(["Reorder before June"])
    path = tmp_path / "inventory.xlsx"
    wb.save(str(path))
    return path


_SLIDE_XML = (
    '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>'
    '<p:sld xmlns:a="http://schemas.openxmlformats.org/drawingml/2006/main"'
    ' xmlns:p="http://schemas.openxmlformats.org/presentationml/2006/main">'
    "<p:cSld><p:spTree><p:sp><p:txBody>"
    "{runs}"
    "</p:txBody></p:sp></p:spTree></p:cSld></p:sld>"
)


def _write_pptx(path: Path, slides: dict[int, list[str]]) -> Path:
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w") as archive:
        archive.writestr("[Content_Types].xml", "<Types/>")
        archive.writestr("ppt/presentation.xml", "<presentation/>")
        for number, texts in slides.items():
            runs = "".join(f"<a:p><a:r><a:t>{t}</a:t></a:r></a:p>" for t in texts)
            archive.writestr(f"ppt/slides/slide{number}.xml", _SLIDE_XML.format(runs=runs))
            archive.writestr(f"ppt/slides/_rels/slide{number}.xml.rels", "<Relationships/>")
    path.write_bytes(buf.getvalue())
    return path


@pytest.fixture
def make_pptx(tmp_path: Path):
    """Factory: {slide number: [text runs]} -> minimal .pptx on disk."""

    def _make(slides: dict[int, list[str]], name: str = "deck.pptx") -> Path:
        return _write_pptx(tmp_path / name, slides)

    return _make


# ---------------------------------------------------------------------------
# Fake ocrmypdf invoker
# ---------------------------------------------------------------------------


class ScriptedOcrInvoker:
    """Plays back one scripted step per invocation.

    A step is a str (exit 0, that sidecar text), None (exit 0, no sidecar),
    an exception instance (raised), or a dict with exit_code/sidecar/stdout/stderr.
    """

    def __init__(self, steps) -> None:
        self._steps = list(steps)
        self.calls: list[tuple[str, list[str], Path]] = []

    @property
    def flags(self) -> list[str]:
        return [args[0] for _, args, _ in self.calls]

    async def run(self, executable, args, working_dir) -> ProcessOutput:
        args = [str(a) for a in args]
        self.calls.append((executable, args, Path(working_dir)))
        if not self._steps:
            raise AssertionError(f"Unexpected invocation: {executable} {args}")

        step = self._steps.pop(0)
        if isinstance(step, BaseException):
            raise step
        if step is None or isinstance(step, str):
            step = {"sidecar": step}

        sidecar = step.get("sidecar")
        if sidecar is not None:
            Path(args[args.index("--sidecar") + 1]).write_text(sidecar, encoding="utf-8")
            Path(args[-1]).write_bytes(b"%PDF-1.4\n%ocr output\n")
        return ProcessOutput(
            exit_code=step.get("exit_code", 0),
            stdout=step.get("stdout", ""),
            stderr=step.get("stderr", ""),
        )


@pytest.fixture
def scripted_invoker():
    def _make(*steps) -> ScriptedOcrInvoker:
        return ScriptedOcrInvoker(steps)

    return _make


# ---------------------------------------------------------------------------
# In-memory document source
# ---------------------------------------------------------------------------


class InMemoryDocumentSource:
    """OcrDocumentSource over a dict; records every claim and saved snapshot."""

    def __init__(self, family: str, documents: list[OcrDocument]) -> None:
        self.family = family
        self.rows: dict[str, OcrDocument] = {d.id: d for d in documents}
        self.claims: list[tuple[str, object]] = []
        self.saved: list[OcrDocument] = []
        self.fetch_errors: list[Exception] = []

    async def fetch_pending(self, limit: int) -> list[OcrDocument]:
        if self.fetch_errors:
            raise self.fetch_errors.pop(0)
        pending = [d for d in self.rows.values() if d.ocr_status == OcrStatus.PENDING]
        pending.sort(key=lambda d: (d.last_tried_at is not None, d.last_tried_at or 0))
        return [dataclasses.replace(d) for d in pending[:limit]]

    async def claim(self, document: OcrDocument) -> None:
        self.claims.append((document.id, document.last_tried_at))
        self.rows[document.id].last_tried_at = document.last_tried_at

    async def save(self, document: OcrDocument) -> None:
        self.saved.append(dataclasses.replace(document))
        self.rows[document.id] = dataclasses.replace(document)

    async def find_banner_succeeded(self) -> list[OcrDocument]:
        return [
            dataclasses.replace(d)
            for d in self.rows.values()
            if d.ocr_status == OcrStatus.SUCCEEDED and matches_banner_pattern(d.extracted_text)
        ]


@pytest.fixture
def memory_source():
    def _make(documents: list[OcrDocument], family: str = "docrepo") -> InMemoryDocumentSource:
        return InMemoryDocumentSource(family, documents)

    return _make


# ---------------------------------------------------------------------------
# Fake pipeline
# ---------------------------------------------------------------------------


class ScriptedPipeline:
    """Returns a per-document outcome (or raises it when it is an exception)."""

    def __init__(self, outcomes: dict, default=None, on_process=None) -> None:
        self._outcomes = outcomes
        self._default = default
        self._on_process = on_process
        self.processed: list[str] = []

    async def process(self, document: OcrDocument):
        self.processed.append(document.id)
        if self._on_process is not None:
            self._on_process(document)
        outcome = self._outcomes.get(document.id, self._default)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    async def process_safely(self, document: OcrDocument):
        return await self.process(document)


@pytest.fixture
def scripted_pipeline():
    def _make(outcomes: dict | None = None, *, default=None, on_process=None) -> ScriptedPipeline:
        return ScriptedPipeline(outcomes or {}, default=default, on_process=on_process)

    return _make
