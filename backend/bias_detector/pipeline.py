"""Sequential batch analysis over uploaded CSV rows."""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, List, Optional, Sequence

from bias_detector.analyzers.circularity_analyzer import CircularityAnalyzer
from bias_detector.errors import AnalysisFailure, BatchCancelled
from bias_detector.models import BatchRecord, ParsedTable, Progress
from bias_detector.parsers.csv_parser import CSVParser

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[Progress], None]


def _value_at(row: Sequence[str], index: int) -> str:
    if index < len(row):
        return row[index] or ""
    return ""


class BatchPipeline:
    """Run every accepted CSV row through the analyzer, one row at a time.

    Progress for row ``i`` of ``n`` is announced as ``Progress(i, n)`` before its
    analysis call is awaited, so the last announcement reaches ``n`` while that row is
    still in flight. A failed row becomes a placeholder record and never stops the
    batch.
    """

    def __init__(self, analyzer: CircularityAnalyzer, parser: Optional[CSVParser] = None) -> None:
        self.analyzer = analyzer
        self.parser = parser or CSVParser()

    def prepare(self, blob: str) -> ParsedTable:
        return self.parser.parse(blob)

    async def process(
        self,
        table: ParsedTable,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[BatchRecord]:
        total = len(table.rows)
        records: List[BatchRecord] = []
        logger.info("Batch analizi başladı (rows=%d)", total)

        for position, row in enumerate(table.rows, start=1):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Batch iptal edildi (processed=%d/%d)", position - 1, total)
                raise BatchCancelled(f"Batch cancelled after {position - 1} of {total} rows.")

            generated_text = _value_at(row, table.generated_text_index)
            reference_text = _value_at(row, table.reference_text_index)

            if progress_callback is not None:
                progress_callback(Progress(current=position, total=total))

            try:
                result = await self.analyzer.analyze(generated_text, reference_text)
            except AnalysisFailure as exc:
                logger.error("Error processing row %d: %s", position, exc)
                records.append(BatchRecord.failure(str(exc), generated_text, reference_text))
                continue

            records.append(BatchRecord.from_result(result, generated_text, reference_text))

        failed = sum(1 for record in records if record.failed)
        logger.info("Batch analizi tamamlandı (rows=%d, failed=%d)", len(records), failed)
        return records

    async def run(
        self,
        blob: str,
        progress_callback: Optional[ProgressCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> List[BatchRecord]:
        table = self.prepare(blob)
        return await self.process(table, progress_callback, cancel_event)


async def run_batch(
    blob: str,
    progress_callback: Optional[ProgressCallback],
    analyzer: CircularityAnalyzer,
) -> List[BatchRecord]:
    """Parse ``blob`` and analyze each row; parse errors propagate before any call."""
    return await BatchPipeline(analyzer).run(blob, progress_callback)
