"""Merge short gaps between segments and derive duration/pause metrics."""

from dataclasses import replace
from typing import List

from .models import ProcessedSegment, TranscriptSegment

MERGE_THRESHOLD_MS = 1010


def merge_segments(
    segments: List[TranscriptSegment],
    threshold_ms: int = MERGE_THRESHOLD_MS,
) -> List[TranscriptSegment]:
    """Fold each segment into its predecessor when the gap is below threshold.

    Gaps are measured against the running merged span, so a chain of close
    segments collapses into one. Start and timecode come from the first
    segment of each run.
    """
    if not segments:
        return []

    merged: List[TranscriptSegment] = []
    current = segments[0]
    for nxt in segments[1:]:
        gap = nxt.start_time_ms - current.end_time_ms
        if gap < threshold_ms:
            current = replace(
                current,
                end_time_ms=nxt.end_time_ms,
                text=f"{current.text} {nxt.text}",
            )
        else:
            merged.append(current)
            current = nxt
    merged.append(current)
    return merged


def calculate_pauses(segments: List[TranscriptSegment]) -> List[ProcessedSegment]:
    """Attach duration and pause-after metrics; the last pause is always 0.

    Each segment gets its creation position as a stable segment_id.
    """
    processed: List[ProcessedSegment] = []
    for index, seg in enumerate(segments):
        nxt = segments[index + 1] if index + 1 < len(segments) else None
        pause_after = max(0, nxt.start_time_ms - seg.end_time_ms) if nxt else 0
        processed.append(
            ProcessedSegment(
                segment_id=index,
                timecode=seg.timecode,
                start_time_ms=seg.start_time_ms,
                end_time_ms=seg.end_time_ms,
                text=seg.text,
                duration_ms=seg.end_time_ms - seg.start_time_ms,
                pause_after_ms=pause_after,
            )
        )
    return processed


def reconcile_segments(
    segments: List[TranscriptSegment],
    threshold_ms: int = MERGE_THRESHOLD_MS,
) -> List[ProcessedSegment]:
    return calculate_pauses(merge_segments(segments, threshold_ms))
