from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from ocr_service.ingestion.ocr.ocrmypdf import OcrRequest

FAMILY_NAMES: tuple[str, ...] = ("docrepo", "project", "attachment")

# (batch size, idle poll seconds) per family
_FAMILY_DEFAULTS: dict[str, tuple[int, int]] = {
    "docrepo": (3, 120),
    "project": (5, 120),
    "attachment": (5, 15),
}


def _get_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in ("1", "true", "t", "yes", "y", "on")


def _get_int(name: str, default: int) -> int:
    v = os.getenv(name)
    if v is None:
        return default
    return int(v)


def _get_float(name: str, default: float) -> float:
    v = os.getenv(name)
    if v is None:
        return default
    return float(v)


def resolve_work_root(configured: str) -> Path:
    value = os.path.expandvars(configured.strip())
    if not value:
        raise ValueError("OCR_WORK_ROOT must be configured")
    return Path(value).expanduser().resolve()


def resolve_subpath(configured: str | None, fallback: str, name: str) -> str:
    candidate = (configured or "").strip() or fallback
    sanitized = candidate.replace("\\", "/").strip("/")
    if not sanitized:
        raise ValueError(f"{name} cannot be empty")
    if Path(candidate).is_absolute():
        raise ValueError(f"{name} must be relative")
    for segment in sanitized.split("/"):
        if segment in (".", ".."):
            raise ValueError(f"{name} cannot contain directory traversal segments")
    return sanitized


@dataclass(frozen=True)
class WorkDirs:
    root: Path
    input_dir: Path
    output_dir: Path
    logs_dir: Path
    derivatives_dir: Path
    staging_dir: Path

    @classmethod
    def under(
        cls,
        root: Path,
        *,
        input_subpath: str = "input",
        output_subpath: str = "output",
        logs_subpath: str = "logs",
        derivatives_subpath: str = "derivatives",
        staging_subpath: str = "staging",
    ) -> WorkDirs:
        root = Path(root)
        return cls(
            root=root,
            input_dir=root / input_subpath,
            output_dir=root / output_subpath,
            logs_dir=root / logs_subpath,
            derivatives_dir=root / derivatives_subpath,
            staging_dir=root / staging_subpath,
        )

    def ensure(self) -> WorkDirs:
        for d in (self.root, self.input_dir, self.output_dir, self.logs_dir,
                  self.derivatives_dir, self.staging_dir):
            d.mkdir(parents=True, exist_ok=True)
        return self

    def ocr_request(
        self,
        *,
        document_id: str,
        source_pdf: Path,
        executable: str,
        source_in_work_dir: bool = False,
    ) -> OcrRequest:
        return OcrRequest(
            document_id=document_id,
            source_pdf=Path(source_pdf),
            input_dir=self.input_dir,
            output_dir=self.output_dir,
            logs_dir=self.logs_dir,
            work_root=self.root,
            executable=executable,
            source_in_work_dir=source_in_work_dir,
        )


@dataclass(frozen=True)
class FamilySettings:
    name: str
    enabled: bool
    batch_size: int
    poll_interval_s: float


@dataclass(frozen=True)
class OcrConfig:
    # Tools
    ocr_executable: str
    libreoffice_executable: str
    pdf_conversion_enabled: bool

    # Filesystem
    work: WorkDirs
    storage_root: Path
    gcs_enabled: bool

    # Polling
    families: tuple[FamilySettings, ...]
    error_backoff_s: float

    # Maintenance
    backfill_enabled: bool

    @classmethod
    def from_env(cls) -> OcrConfig:
        work_root_raw = os.getenv("OCR_WORK_ROOT")
        if not work_root_raw:
            raise ValueError("OCR_WORK_ROOT is required")
        work_root = resolve_work_root(work_root_raw)

        work = WorkDirs.under(
            work_root,
            input_subpath=resolve_subpath(os.getenv("OCR_INPUT_SUBPATH"), "input", "OCR_INPUT_SUBPATH"),
            output_subpath=resolve_subpath(os.getenv("OCR_OUTPUT_SUBPATH"), "output", "OCR_OUTPUT_SUBPATH"),
            logs_subpath=resolve_subpath(os.getenv("OCR_LOGS_SUBPATH"), "logs", "OCR_LOGS_SUBPATH"),
            derivatives_subpath=resolve_subpath(
                os.getenv("OCR_DERIVATIVES_SUBPATH"), "derivatives", "OCR_DERIVATIVES_SUBPATH"
            ),
            staging_subpath=resolve_subpath(os.getenv("OCR_STAGING_SUBPATH"), "staging", "OCR_STAGING_SUBPATH"),
        )

        storage_root_raw = os.getenv("OCR_STORAGE_ROOT")
        storage_root = (
            Path(os.path.expandvars(storage_root_raw)).expanduser().resolve()
            if storage_root_raw
            else work_root / "storage"
        )

        families = []
        for name in FAMILY_NAMES:
            batch, interval = _FAMILY_DEFAULTS[name]
            prefix = f"OCR_{name.upper()}"
            families.append(
                FamilySettings(
                    name=name,
                    enabled=_get_bool(f"{prefix}_ENABLED", True),
                    batch_size=_get_int(f"{prefix}_BATCH_SIZE", batch),
                    poll_interval_s=_get_float(f"{prefix}_POLL_SECONDS", float(interval)),
                )
            )

        return cls(
            ocr_executable=os.getenv("OCR_EXECUTABLE", "ocrmypdf"),
            libreoffice_executable=os.getenv("OCR_LIBREOFFICE_EXECUTABLE", "soffice"),
            pdf_conversion_enabled=_get_bool("OCR_PDF_CONVERSION_ENABLED", True),
            work=work,
            storage_root=storage_root,
            gcs_enabled=_get_bool("OCR_GCS_ENABLED", False),
            families=tuple(families),
            error_backoff_s=_get_float("OCR_ERROR_BACKOFF_SECONDS", 30.0),
            backfill_enabled=_get_bool("OCR_BACKFILL_ENABLED", False),
        )

    def family(self, name: str) -> FamilySettings:
        for f in self.families:
            if f.name == name:
                return f
        raise KeyError(name)

    def validate(self) -> None:
        if not self.ocr_executable.strip():
            raise ValueError("OCR_EXECUTABLE must not be empty")
        if self.pdf_conversion_enabled and not self.libreoffice_executable.strip():
            raise ValueError("OCR_LIBREOFFICE_EXECUTABLE must not be empty when PDF conversion is enabled")

        for f in self.families:
            if f.batch_size < 1:
                raise ValueError(f"OCR_{f.name.upper()}_BATCH_SIZE must be >= 1")
            if f.poll_interval_s <= 0:
                raise ValueError(f"OCR_{f.name.upper()}_POLL_SECONDS must be > 0")

        if self.error_backoff_s < 0:
            raise ValueError("OCR_ERROR_BACKOFF_SECONDS must be >= 0")

        work_dirs = (self.work.input_dir, self.work.output_dir, self.work.logs_dir,
                     self.work.derivatives_dir, self.work.staging_dir)
        for d in work_dirs:
            if not d.resolve().is_relative_to(self.work.root):
                raise ValueError(f"{d} must reside inside the work root {self.work.root}")
