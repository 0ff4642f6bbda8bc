"""Batch term detection and translation over processed segments.

Both passes walk the segment list in consecutive batches, send a minimal
payload per batch, and apply results by segment_id as each batch returns.
A failed batch is logged and skipped; results from earlier batches are kept.
"""

import logging
import time
from dataclasses import replace
from typing import Any, Callable, Dict, Iterator, List, Optional

from .models import ProcessedSegment
from .progress import ProgressSink, emit_batch

logger = logging.getLogger(__name__)

BATCH_SIZE = 10

BatchCall = Callable[[List[Dict[str, Any]]], List[Dict[str, Any]]]
# Receives (segment_id, {field: value}) for every applied result.
FieldSink = Callable[[int, Dict[str, Any]], None]


def iter_batches(items: List[Any], batch_size: int = BATCH_SIZE) -> Iterator[List[Any]]:
    if batch_size <= 0:
        raise ValueError("batch_size must be > 0")
    for start in range(0, len(items), batch_size):
        yield items[start : start + batch_size]


def count_batches(n: int, batch_size: int = BATCH_SIZE) -> int:
    return (n + batch_size - 1) // batch_size


def _terms_request(seg: ProcessedSegment) -> Dict[str, Any]:
    return {"id": seg.segment_id, "text": seg.text}


def _translation_request(seg: ProcessedSegment) -> Dict[str, Any]:
    item: Dict[str, Any] = {
        "id": seg.segment_id,
        "text": seg.text,
        "durationMs": seg.duration_ms,
    }
    if seg.terms_en is not None:
        item["termsEn"] = seg.terms_en
    return item


def _terms_fields(result: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "terms_ru": str(result.get("termsRu") or ""),
        "terms_en": str(result.get("termsEn") or ""),
    }


def _translation_fields(result: Dict[str, Any]) -> Dict[str, Any]:
    return {"translated_text": str(result.get("translatedText") or "")}


def _result_id(result: Any) -> Optional[int]:
    if not isinstance(result, dict):
        return None
    raw = result.get("id")
    if isinstance(raw, bool):
        return None
    try:
        return int(raw)
    except (TypeError, ValueError):
        return None


def run_batches(
    segments: List[ProcessedSegment],
    pipeline: str,
    call: BatchCall,
    build_request: Callable[[ProcessedSegment], Dict[str, Any]],
    result_fields: Callable[[Dict[str, Any]], Dict[str, Any]],
    batch_size: int = BATCH_SIZE,
    progress: Optional[ProgressSink] = None,
    apply: Optional[FieldSink] = None,
) -> List[ProcessedSegment]:
    """Run one annotation pass and return the updated segment list.

    The input list is not modified. Each result only sets the fields this
    pass owns; when ``apply`` is given those fields are also handed to it
    as soon as their batch returns, so a caller can patch its live list
    without touching fields changed elsewhere in the meantime. Only
    existing segment ids are updated; segments are never added, removed
    or reordered.
    """
    updated = list(segments)
    position = {seg.segment_id: i for i, seg in enumerate(updated)}
    total = count_batches(len(updated), batch_size)

    for number, batch in enumerate(iter_batches(list(updated), batch_size), start=1):
        emit_batch(progress, pipeline, number, total)
        t0 = time.time()
        try:
            results = call([build_request(seg) for seg in batch])
        except Exception:
            logger.exception(
                "[%s] batch %d/%d error %.1fs; skipping", pipeline, number, total, time.time() - t0
            )
            continue

        applied = 0
        for result in results or []:
            rid = _result_id(result)
            idx = position.get(rid) if rid is not None else None
            if idx is None:
                logger.debug("[%s] ignoring result for unknown id %r", pipeline, result)
                continue
            fields = result_fields(result)
            updated[idx] = replace(updated[idx], **fields)
            if apply is not None:
                apply(rid, fields)
            applied += 1
        logger.info(
            "[%s] batch %d/%d ok %.1fs applied=%d", pipeline, number, total, time.time() - t0, applied
        )
    return updated


def detect_terms(
    segments: List[ProcessedSegment],
    call: BatchCall,
    batch_size: int = BATCH_SIZE,
    progress: Optional[ProgressSink] = None,
    apply: Optional[FieldSink] = None,
) -> List[ProcessedSegment]:
    """Fill terms_ru/terms_en from [{id, text}] batches."""
    return run_batches(
        segments, "terms", call, _terms_request, _terms_fields, batch_size, progress, apply
    )


def translate_segments(
    segments: List[ProcessedSegment],
    call: BatchCall,
    batch_size: int = BATCH_SIZE,
    progress: Optional[ProgressSink] = None,
    apply: Optional[FieldSink] = None,
) -> List[ProcessedSegment]:
    """Fill translated_text from [{id, text, durationMs, termsEn?}] batches."""
    return run_batches(
        segments, "translate", call, _translation_request, _translation_fields,
        batch_size, progress, apply,
    )
