# -*- coding: utf-8 -*-
"""Batch CSV analysis endpoints."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Dict, List, Optional
from uuid import uuid4

from fastapi import APIRouter, BackgroundTasks, Depends, File, HTTPException, UploadFile
from fastapi.responses import Response

from bias_detector.analyzers.circularity_analyzer import CircularityAnalyzer
from bias_detector.api.dependencies import get_analyzer
from bias_detector.errors import BatchCancelled, CSVParseError
from bias_detector.models import BatchRecord, ParsedTable, Progress
from bias_detector.parsers.csv_parser import serialize_records
from bias_detector.pipeline import BatchPipeline

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/batch", tags=["batch"])

RESULTS_FILENAME = "analysis_results.csv"
MAX_FINISHED_BATCHES = 50

_batch_registry: dict[str, dict[str, Any]] = {}
_batch_records: dict[str, List[BatchRecord]] = {}
_cancel_events: dict[str, asyncio.Event] = {}
_batch_lock = Lock()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _init_batch(batch_id: str, total: int, filename: str) -> Dict[str, Any]:
    now = _now()
    payload = {
        "batch_id": batch_id,
        "filename": filename,
        "status": "processing",
        "current": 0,
        "total": total,
        "progress": 0.0,
        "started_at": now,
        "updated_at": now,
        "finished_at": None,
        "detail": None,
    }
    with _batch_lock:
        _batch_registry[batch_id] = payload
        _cancel_events[batch_id] = asyncio.Event()
    return dict(payload)


def _update_progress(batch_id: str, progress: Progress) -> None:
    with _batch_lock:
        entry = _batch_registry.get(batch_id)
        if entry is None:
            return
        entry.update(
            {
                "current": progress.current,
                "total": progress.total,
                "progress": progress.fraction,
                "updated_at": _now(),
            }
        )


def _evict_finished_batches() -> None:
    """Drop the oldest finished batches beyond the retention cap. Caller holds the lock."""
    finished = [key for key, entry in _batch_registry.items() if entry["status"] != "processing"]
    for batch_id in finished[: max(len(finished) - MAX_FINISHED_BATCHES, 0)]:
        _batch_registry.pop(batch_id, None)
        _batch_records.pop(batch_id, None)


def _finalize_batch(
    batch_id: str,
    *,
    status: str,
    records: Optional[List[BatchRecord]] = None,
    detail: Optional[str] = None,
) -> None:
    now = _now()
    with _batch_lock:
        entry = _batch_registry.get(batch_id)
        if entry is None:
            return
        entry.update({"status": status, "detail": detail, "finished_at": now, "updated_at": now})
        if records is not None:
            _batch_records[batch_id] = records
        _cancel_events.pop(batch_id, None)
        _evict_finished_batches()


def _get_entry(batch_id: str) -> Dict[str, Any]:
    with _batch_lock:
        entry = _batch_registry.get(batch_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="Batch not found.")
        return dict(entry)


def _get_completed_records(batch_id: str) -> List[BatchRecord]:
    entry = _get_entry(batch_id)
    if entry["status"] != "complete":
        raise HTTPException(
            status_code=409,
            detail=f"Batch is not complete (status={entry['status']}).",
        )
    with _batch_lock:
        return list(_batch_records.get(batch_id, []))


async def _run_batch_job(
    batch_id: str,
    pipeline: BatchPipeline,
    table: ParsedTable,
    cancel_event: asyncio.Event,
) -> None:
    try:
        records = await pipeline.process(
            table,
            progress_callback=lambda progress: _update_progress(batch_id, progress),
            cancel_event=cancel_event,
        )
    except BatchCancelled as exc:
        _finalize_batch(batch_id, status="cancelled", detail=str(exc))
        return
    except Exception as exc:  # pragma: no cover - unexpected failure surface
        logger.exception("Batch %s beklenmedik şekilde durdu", batch_id)
        _finalize_batch(batch_id, status="error", detail=str(exc))
        return

    _finalize_batch(batch_id, status="complete", records=records)


@router.post("", status_code=202)
async def start_batch(
    background_tasks: BackgroundTasks,
    file: UploadFile = File(...),
    analyzer: CircularityAnalyzer = Depends(get_analyzer),
) -> Dict[str, Any]:
    """Parse an uploaded CSV and analyze its rows in the background."""

    filename = file.filename or "upload.csv"
    raw_bytes = await file.read()
    try:
        blob = raw_bytes.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise HTTPException(status_code=400, detail="CSV file must be UTF-8 encoded.") from exc

    pipeline = BatchPipeline(analyzer)
    try:
        table = pipeline.prepare(blob)
    except CSVParseError as exc:
        logger.warning("CSV reddedildi (%s): %s", filename, exc)
        raise HTTPException(status_code=400, detail=str(exc)) from exc

    batch_id = str(uuid4())
    entry = _init_batch(batch_id, len(table.rows), filename)
    with _batch_lock:
        cancel_event = _cancel_events[batch_id]

    logger.info("Batch %s kuyruğa alındı (file=%s, rows=%d)", batch_id, filename, len(table.rows))
    background_tasks.add_task(_run_batch_job, batch_id, pipeline, table, cancel_event)
    return entry


@router.get("/{batch_id}/status")
async def get_batch_status(batch_id: str) -> Dict[str, Any]:
    """Return live progress information for a batch run."""

    return _get_entry(batch_id)


@router.get("/{batch_id}/results")
async def get_batch_results(batch_id: str) -> Dict[str, Any]:
    records = _get_completed_records(batch_id)
    return {
        "batch_id": batch_id,
        "count": len(records),
        "records": [record.model_dump(by_alias=True) for record in records],
    }


@router.get("/{batch_id}/download")
async def download_batch_results(batch_id: str) -> Response:
    records = _get_completed_records(batch_id)
    if not records:
        raise HTTPException(status_code=409, detail="No results to download.")

    return Response(
        content=serialize_records(records),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{RESULTS_FILENAME}"'},
    )


@router.delete("/{batch_id}")
async def cancel_batch(batch_id: str) -> Dict[str, Any]:
    """Ask a running batch to stop before its next row."""

    entry = _get_entry(batch_id)
    with _batch_lock:
        cancel_event = _cancel_events.get(batch_id)
    if cancel_event is None:
        raise HTTPException(
            status_code=409,
            detail=f"Batch is not running (status={entry['status']}).",
        )

    cancel_event.set()
    logger.info("Batch %s için iptal istendi", batch_id)
    return {"batch_id": batch_id, "status": "cancelling"}
