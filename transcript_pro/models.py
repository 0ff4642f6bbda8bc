"""Segment data types shared across the pipeline."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class TranscriptSegment:
    """A timestamped phrase as returned by the transcription model.

    Times are chunk-local until rebased, global afterwards.
    """
    timecode: str
    start_time_ms: int
    end_time_ms: int
    text: str


@dataclass
class ProcessedSegment:
    """A merged segment with derived metrics and optional annotations."""
    segment_id: int
    timecode: str
    start_time_ms: int
    end_time_ms: int
    text: str
    duration_ms: int
    pause_after_ms: int
    terms_ru: Optional[str] = None
    terms_en: Optional[str] = None
    translated_text: Optional[str] = None
