"""ocrmypdf escalation runner.

One PDF goes through at most four attempts, cheapest first:

1. the embedded text layer (pypdf, no OCR at all);
2. ``--skip-text``: OCR only pages without a text layer;
3. ``--force-ocr``: rasterize and OCR every page;
4. ``--redo-ocr``: strip an existing OCR layer and redo it.

An attempt "wins" only when its text survives the banner check; a clean exit
with a sidecar full of ``[OCR skipped on page N]`` lines escalates to the next
pass. Tool failures are returned as OcrFailure values, never raised, except
cancellation, which always propagates.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
import traceback
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from ocr_service.ingestion.banners import clean_banners, is_useful_text
from ocr_service.ingestion.extractors.pdf import PdfTextExtractor
from ocr_service.ingestion.ocr.invoker import OcrInvoker, ProcessOutput
from ocr_service.ingestion.types import OcrErrorKind, OcrFailure, OcrOutcome, OcrSuccess

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OcrRequest:
    document_id: str
    source_pdf: Path
    input_dir: Path
    output_dir: Path
    logs_dir: Path
    work_root: Path
    executable: str = "ocrmypdf"
    source_in_work_dir: bool = False


@dataclass(frozen=True)
class OcrPass:
    name: str
    label: str
    flag: str


OCR_PASSES: tuple[OcrPass, ...] = (
    OcrPass("skip-text", "FIRST RUN (skip-text)", "--skip-text"),
    OcrPass("force-ocr", "SECOND RUN (force-ocr)", "--force-ocr"),
    OcrPass("redo-ocr", "THIRD RUN (redo-ocr)", "--redo-ocr"),
)


def generate_run_token() -> str:
    return datetime.now(UTC).strftime("%Y%m%d%H%M%S%f")[:-3] + "-" + uuid.uuid4().hex


def build_temp_path(directory: Path, document_id: str, run_token: str, suffix: str) -> Path:
    return Path(directory) / f"{document_id}-{run_token}{suffix}"


def latest_log_path(logs_dir: Path, document_id: str) -> Path:
    return Path(logs_dir) / f"{document_id}.log"


class OcrmypdfRunner:
    def __init__(self, *, invoker: OcrInvoker, pdf_extractor: PdfTextExtractor | None = None) -> None:
        self._invoker = invoker
        self._pdf = pdf_extractor or PdfTextExtractor()

    async def run(self, req: OcrRequest) -> OcrOutcome:
        run_token = generate_run_token()
        input_pdf = (
            Path(req.source_pdf)
            if req.source_in_work_dir
            else build_temp_path(req.input_dir, req.document_id, run_token, ".pdf")
        )
        output_pdf = build_temp_path(req.output_dir, req.document_id, run_token, ".pdf")
        sidecar = build_temp_path(req.output_dir, req.document_id, run_token, ".txt")
        log_file = build_temp_path(req.logs_dir, req.document_id, run_token, ".log")
        latest_log = latest_log_path(req.logs_dir, req.document_id)

        try:
            if not req.source_in_work_dir:
                await asyncio.to_thread(shutil.copyfile, req.source_pdf, input_pdf)

            embedded = await asyncio.to_thread(self._pdf.try_extract, input_pdf)
            if is_useful_text(embedded):
                _write_log(log_file, "Embedded text extracted; OCR skipped.\n", append=False)
                _mirror_log(log_file, latest_log)
                logger.info("Document %s has an embedded text layer; OCR skipped", req.document_id)
                return OcrSuccess(text=clean_banners(embedded), log_file=log_file)

            for index, ocr_pass in enumerate(OCR_PASSES):
                # A sidecar left by the previous pass must not pass for this one's
                _try_delete(sidecar)
                _try_delete(output_pdf)

                args = [ocr_pass.flag, "--sidecar", str(sidecar), str(input_pdf), str(output_pdf)]
                try:
                    result = await self._invoker.run(req.executable, args, req.work_root)
                except OSError as e:
                    _append_exception(log_file, latest_log)
                    logger.warning(
                        "Could not launch %s for document %s: %s", req.executable, req.document_id, e
                    )
                    return OcrFailure(
                        reason=f"OCR failed: {_describe(e)}, see {log_file}",
                        kind=OcrErrorKind.TOOL_MISSING_OR_CRASHED,
                        log_file=log_file,
                    )

                _write_log(log_file, _format_pass(ocr_pass.label, result), append=index > 0)
                _mirror_log(log_file, latest_log)

                sidecar_text = _read_sidecar(sidecar)
                if sidecar_text is None:
                    kind = (
                        OcrErrorKind.TOOL_MISSING_OR_CRASHED
                        if result.exit_code != 0
                        else OcrErrorKind.NO_SIDECAR_PRODUCED
                    )
                    return OcrFailure(
                        reason=(
                            f"ocrmypdf ({ocr_pass.name}) did not produce a sidecar file "
                            f"(exit {result.exit_code}), see {log_file}"
                        ),
                        kind=kind,
                        log_file=log_file,
                    )

                if is_useful_text(sidecar_text):
                    logger.info(
                        "ocrmypdf %s produced text for document %s", ocr_pass.name, req.document_id
                    )
                    return OcrSuccess(text=clean_banners(sidecar_text), log_file=log_file)

                logger.info(
                    "ocrmypdf %s produced no usable text for document %s (exit %d)",
                    ocr_pass.name,
                    req.document_id,
                    result.exit_code,
                )

            return OcrFailure(
                reason=f"ocrmypdf produced unusable text, see {log_file}",
                kind=OcrErrorKind.UNUSABLE_TEXT,
                log_file=log_file,
            )
        except Exception as e:
            logger.warning("OCR failed for document %s: %s", req.document_id, e, exc_info=True)
            _append_exception(log_file, latest_log)
            return OcrFailure(
                reason=f"OCR failed: {_describe(e)}, see {log_file}",
                kind=OcrErrorKind.UNEXPECTED_EXCEPTION,
                log_file=log_file,
            )
        finally:
            if not req.source_in_work_dir:
                _try_delete(input_pdf)
            _try_delete(output_pdf)
            _try_delete(sidecar)


def _describe(e: BaseException) -> str:
    return str(e) or type(e).__name__


def _format_pass(label: str, result: ProcessOutput) -> str:
    return f"{label} exit={result.exit_code}\n{result.stdout}\n{result.stderr}\n"


def _write_log(log_file: Path, content: str, *, append: bool) -> None:
    if append:
        content = "\n" + content
    with open(log_file, "a" if append else "w", encoding="utf-8") as f:
        f.write(content)


def _append_exception(log_file: Path, latest_log: Path) -> None:
    try:
        _write_log(log_file, traceback.format_exc(), append=True)
    except OSError as e:
        logger.warning("Could not write OCR log %s: %s", log_file, e)
        return
    _mirror_log(log_file, latest_log)


def _mirror_log(source: Path, destination: Path) -> None:
    try:
        shutil.copyfile(source, destination)
    except OSError as e:
        logger.debug("Could not mirror OCR log %s to %s: %s", source, destination, e)


def _read_sidecar(sidecar: Path) -> str | None:
    if not sidecar.exists():
        return None
    return sidecar.read_text(encoding="utf-8", errors="replace")


def _try_delete(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.debug("Could not delete OCR work file %s: %s", path, e)
