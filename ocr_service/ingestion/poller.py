"""Background OCR worker: one long-lived poll loop per document family."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Protocol

from ocr_service.config import OCR_WORKER_USER_ID
from ocr_service.ingestion.config import FamilySettings
from ocr_service.ingestion.families import OcrDocumentSource
from ocr_service.ingestion.persister import apply_outcome
from ocr_service.ingestion.types import (
    ExtractionOutcome,
    OcrDocument,
    OcrErrorKind,
    OcrFailure,
    OcrStatus,
)

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(UTC)


class DocumentPipeline(Protocol):
    async def process(self, document: OcrDocument) -> ExtractionOutcome: ...


@dataclass
class PollerStats:
    batches: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    queue_errors: int = 0

    def record(self, status: OcrStatus) -> None:
        if status == OcrStatus.SUCCEEDED:
            self.succeeded += 1
        elif status == OcrStatus.FAILED:
            self.failed += 1
        elif status == OcrStatus.SKIPPED:
            self.skipped += 1


async def wait_or_stop(stop: asyncio.Event, timeout_s: float) -> None:
    """Sleep up to timeout_s, returning early once stop is set."""
    try:
        await asyncio.wait_for(stop.wait(), timeout=timeout_s)
    except TimeoutError:
        pass


class OcrPoller:
    def __init__(
        self,
        *,
        source: OcrDocumentSource,
        pipeline: DocumentPipeline,
        settings: FamilySettings,
        error_backoff_s: float = 30.0,
        clock: Clock = utc_now,
        updated_by: str = OCR_WORKER_USER_ID,
    ) -> None:
        self._source = source
        self._pipeline = pipeline
        self._settings = settings
        self._error_backoff_s = error_backoff_s
        self._clock = clock
        self._updated_by = updated_by
        self.stats = PollerStats()

    @property
    def family(self) -> str:
        return self._settings.name

    async def run(self, stop: asyncio.Event) -> None:
        logger.info(
            "OCR poller for %s started (batch=%d, idle=%.0fs)",
            self.family,
            self._settings.batch_size,
            self._settings.poll_interval_s,
        )
        while not stop.is_set():
            try:
                processed = await self.run_once(stop)
            except Exception:
                self.stats.queue_errors += 1
                logger.exception("Error while processing %s OCR queue", self.family)
                await wait_or_stop(stop, self._error_backoff_s)
                continue

            if processed == 0:
                await wait_or_stop(stop, self._settings.poll_interval_s)

        logger.info("OCR poller for %s stopped (%s)", self.family, self.stats)

    async def run_once(self, stop: asyncio.Event | None = None) -> int:
        """Process one batch of pending documents; returns how many were handled."""
        batch = await self._source.fetch_pending(self._settings.batch_size)
        if not batch:
            return 0

        self.stats.batches += 1
        processed = 0
        for document in batch:
            if stop is not None and stop.is_set():
                break
            await self.process_document(document)
            processed += 1
        return processed

    async def process_document(self, document: OcrDocument) -> OcrStatus:
        # Claim first: other workers order by last_tried_at and move on
        document.last_tried_at = self._clock()
        await self._source.claim(document)

        try:
            outcome = await self._pipeline.process(document)
        except Exception as e:
            logger.exception(
                "Unexpected error running OCR for %s document %s", self.family, document.id
            )
            outcome = OcrFailure(
                reason=str(e) or type(e).__name__,
                kind=OcrErrorKind.UNEXPECTED_EXCEPTION,
            )

        apply_outcome(document, outcome, now=self._clock(), updated_by=self._updated_by)
        await self._source.save(document)
        self.stats.record(document.ocr_status)

        if document.ocr_status == OcrStatus.SUCCEEDED:
            logger.info("OCR succeeded for %s document %s", self.family, document.id)
        elif document.ocr_status == OcrStatus.FAILED:
            logger.warning(
                "OCR failed for %s document %s: %s",
                self.family,
                document.id,
                document.failure_reason,
            )
        else:
            logger.info(
                "OCR skipped for %s document %s: %s",
                self.family,
                document.id,
                document.failure_reason,
            )
        return document.ocr_status
