from __future__ import annotations

import asyncio
import logging
import signal

from google.cloud.storage import Client

from ocr_service.db import check_db_connection, close_pool
from ocr_service.ingestion.backfill import BackfillReconciler
from ocr_service.ingestion.cli import build_parser
from ocr_service.ingestion.combiner import DerivedTextCombiner
from ocr_service.ingestion.config import FAMILY_NAMES, OcrConfig
from ocr_service.ingestion.conversion import LibreOfficeConverter, OfficeTextExtractor
from ocr_service.ingestion.families import PostgresDocumentSource, build_sources
from ocr_service.ingestion.ocr.invoker import SubprocessInvoker
from ocr_service.ingestion.ocr.ocrmypdf import OcrmypdfRunner
from ocr_service.ingestion.pipeline import DocumentOcrPipeline
from ocr_service.ingestion.poller import OcrPoller
from ocr_service.ingestion.storage import (
    GcsDocumentStorage,
    LocalDocumentStorage,
    RoutingDocumentStorage,
)
from ocr_service.logging_config import setup_logging

logger = logging.getLogger("ocr_service.ingestion")


def build_pipeline(cfg: OcrConfig) -> DocumentOcrPipeline:
    cfg.work.ensure()
    invoker = SubprocessInvoker()
    runner = OcrmypdfRunner(invoker=invoker)
    converter = (
        LibreOfficeConverter(invoker=invoker, executable=cfg.libreoffice_executable)
        if cfg.pdf_conversion_enabled
        else None
    )
    combiner = DerivedTextCombiner(
        office=OfficeTextExtractor(),
        runner=runner,
        converter=converter,
        work=cfg.work,
        ocr_executable=cfg.ocr_executable,
    )
    storage = RoutingDocumentStorage(
        local=LocalDocumentStorage(cfg.storage_root),
        gcs=GcsDocumentStorage(Client()) if cfg.gcs_enabled else None,
    )
    return DocumentOcrPipeline(
        storage=storage,
        runner=runner,
        combiner=combiner,
        work=cfg.work,
        ocr_executable=cfg.ocr_executable,
    )


async def run_workers(cfg: OcrConfig, families: list[str]) -> int:
    pipeline = build_pipeline(cfg)
    selected = families or [f.name for f in cfg.families if f.enabled]
    if not selected:
        logger.warning("Every document family is disabled. Exiting.")
        return 0

    pollers = [
        OcrPoller(
            source=PostgresDocumentSource(name),
            pipeline=pipeline,
            settings=cfg.family(name),
            error_backoff_s=cfg.error_backoff_s,
        )
        for name in selected
    ]

    if not await check_db_connection():
        logger.warning("Database unreachable at startup; pollers will retry every %.0fs", cfg.error_backoff_s)

    stop = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop.set)

    tasks = [asyncio.create_task(p.run(stop), name=f"ocr-poller-{p.family}") for p in pollers]
    try:
        await stop.wait()
        logger.info("Shutdown requested; cancelling %d OCR pollers", len(tasks))
    finally:
        # In-flight OCR processes are killed by the invoker on cancellation
        for t in tasks:
            t.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    for p in pollers:
        logger.info("Poller %s totals=%s", p.family, p.stats)
    return 0


async def run_backfill(cfg: OcrConfig, *, dry_run: bool) -> int:
    pipeline = build_pipeline(cfg)
    reconciler = BackfillReconciler(
        sources=build_sources(FAMILY_NAMES),
        pipeline=pipeline,
        enabled=cfg.backfill_enabled,
    )
    if dry_run:
        counts = await reconciler.count_candidates()
        logger.info("DRY RUN banner-only documents=%s", counts)
        return 0

    summary = await reconciler.run()
    logger.info("DONE backfill enabled=%s processed=%s", summary.enabled, summary.processed)
    return 0


async def _amain() -> int:
    parser = build_parser()
    args = parser.parse_args()

    setup_logging(level=args.log_level.upper())

    cfg = OcrConfig.from_env()
    cfg.validate()

    try:
        if args.command == "workers":
            return await run_workers(cfg, list(args.family or []))
        return await run_backfill(cfg, dry_run=bool(args.dry_run))
    finally:
        await close_pool()


def main() -> None:
    raise SystemExit(asyncio.run(_amain()))


if __name__ == "__main__":
    main()
