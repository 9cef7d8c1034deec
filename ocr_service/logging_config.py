"""Structured JSON logging for Cloud Run compatibility.

Configures python-json-logger for GCP Cloud Logging severity mapping.
Plain text is used for local runs unless OCR_LOG_JSON is set.
"""

from __future__ import annotations

import logging

from pythonjsonlogger.json import JsonFormatter

from ocr_service.config import IS_CLOUD_RUN, OCR_LOG_JSON

# GCP severity mapping: Python log levels -> Cloud Logging severity strings
_GCP_SEVERITY = {
    "DEBUG": "DEBUG",
    "INFO": "INFO",
    "WARNING": "WARNING",
    "ERROR": "ERROR",
    "CRITICAL": "CRITICAL",
}

# Chatty third-party loggers that drown out per-document lines at INFO:
# pypdf warns per malformed object, the GCS client logs every blob request
_QUIET_LOGGERS = ("pypdf", "asyncio", "google.auth", "google.resumable_media", "urllib3")

SERVICE_NAME = "ocr-ingestor"


class GCPJsonFormatter(JsonFormatter):
    """JSON formatter that maps Python log levels to GCP severity."""

    def add_fields(
        self,
        log_record: dict[str, object],
        record: logging.LogRecord,
        message_dict: dict[str, object],
    ) -> None:
        super().add_fields(log_record, record, message_dict)
        log_record["severity"] = _GCP_SEVERITY.get(record.levelname, record.levelname)
        log_record.pop("levelname", None)


def setup_logging(*, level: str = "INFO", json_output: bool | None = None) -> None:
    """Configure structured JSON logging on Cloud Run, plain text locally."""
    use_json = (IS_CLOUD_RUN or OCR_LOG_JSON) if json_output is None else json_output

    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    # Remove existing handlers
    for h in root.handlers[:]:
        root.removeHandler(h)

    handler = logging.StreamHandler()
    if use_json:
        handler.setFormatter(GCPJsonFormatter(
            fmt="%(message)s %(name)s %(funcName)s %(lineno)d",
            rename_fields={"message": "message", "name": "logger"},
            static_fields={"service": SERVICE_NAME},
        ))
    else:
        handler.setFormatter(logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s:%(lineno)d  %(message)s",
            datefmt="%H:%M:%S",
        ))

    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
