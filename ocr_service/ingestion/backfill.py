"""Repair documents whose "extracted text" is only an OCR skip banner.

Before the banner check existed, a sidecar reading ``[OCR skipped on page 1]``
was stored as a successful extraction. This job finds those rows in every
family, puts them back to pending and reprocesses them right here instead of
waiting for the pollers. Re-running it after a clean pass finds nothing.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field

from ocr_service.config import OCR_BACKFILL_USER_ID
from ocr_service.ingestion.families import OcrDocumentSource
from ocr_service.ingestion.persister import apply_outcome, reset_for_reprocessing
from ocr_service.ingestion.pipeline import DocumentOcrPipeline
from ocr_service.ingestion.poller import Clock, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BackfillSummary:
    processed: dict[str, int] = field(default_factory=dict)
    enabled: bool = True

    @property
    def total(self) -> int:
        return sum(self.processed.values())


class BackfillReconciler:
    def __init__(
        self,
        *,
        sources: Sequence[OcrDocumentSource],
        pipeline: DocumentOcrPipeline,
        enabled: bool,
        clock: Clock = utc_now,
        updated_by: str = OCR_BACKFILL_USER_ID,
    ) -> None:
        self._sources = list(sources)
        self._pipeline = pipeline
        self._enabled = enabled
        self._clock = clock
        self._updated_by = updated_by

    async def count_candidates(self) -> dict[str, int]:
        return {s.family: len(await s.find_banner_succeeded()) for s in self._sources}

    async def run(self) -> BackfillSummary:
        if not self._enabled:
            logger.warning("OCR backfill is disabled; set OCR_BACKFILL_ENABLED=true to run it")
            return BackfillSummary(enabled=False)

        candidates = {s.family: await s.find_banner_succeeded() for s in self._sources}
        logger.info(
            "Starting OCR backfill: %s",
            ", ".join(f"{family}={len(docs)}" for family, docs in candidates.items()),
        )

        processed: dict[str, int] = {}
        for source in self._sources:
            count = 0
            for document in candidates[source.family]:
                reset_for_reprocessing(document, now=self._clock(), updated_by=self._updated_by)
                await source.save(document)

                outcome = await self._pipeline.process_safely(document)
                now = self._clock()
                document.last_tried_at = now
                apply_outcome(document, outcome, now=now, updated_by=self._updated_by)
                await source.save(document)

                logger.info(
                    "Backfill reprocessed %s document %s -> %s",
                    source.family,
                    document.id,
                    document.ocr_status,
                )
                count += 1
            processed[source.family] = count

        summary = BackfillSummary(processed=processed)
        logger.info("Completed OCR backfill: %d documents reprocessed (%s)", summary.total, processed)
        return summary
