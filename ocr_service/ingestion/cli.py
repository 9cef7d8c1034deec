from __future__ import annotations

import argparse

from ocr_service.config import OCR_LOG_LEVEL
from ocr_service.ingestion.config import FAMILY_NAMES

_LOG_LEVEL_HELP = "Python logging level (INFO, DEBUG, ...)"


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="ocr-ingestor",
        description="OCR text extraction workers and maintenance jobs",
    )
    p.add_argument("--log-level", default=OCR_LOG_LEVEL, help=_LOG_LEVEL_HELP)

    # Subcommands accept --log-level too; SUPPRESS keeps the top-level value unless given
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--log-level", default=argparse.SUPPRESS, help=_LOG_LEVEL_HELP)

    sub = p.add_subparsers(dest="command", required=True)

    workers = sub.add_parser("workers", parents=[common], help="Run the OCR pollers until SIGINT/SIGTERM")
    workers.add_argument(
        "--family",
        action="append",
        choices=FAMILY_NAMES,
        default=[],
        help="Document family to poll (repeatable; default: every enabled family)",
    )

    backfill = sub.add_parser(
        "backfill",
        parents=[common],
        help="Reprocess documents whose stored text is only an OCR skip banner",
    )
    backfill.add_argument(
        "--dry-run",
        action="store_true",
        help="Count affected documents per family and exit (no writes)",
    )
    return p
