"""Transcription orchestrator: chunked path with whole-file fallback."""

import logging
import time
from dataclasses import replace
from typing import Callable, List, Optional

from google import genai

from . import gemini_client
from .audio_utils import CHUNK_DURATION_SEC, TARGET_SAMPLE_RATE
from .decode_audio import MAX_LOCAL_DECODE_BYTES, extract_audio_chunks
from .exceptions import AudioTooLargeError, TranscriptionError
from .models import TranscriptSegment
from .progress import ProgressSink, emit_status
from .segment_format import format_ms_to_timecode, segments_from_payload

logger = logging.getLogger(__name__)


def rebase_segments(
    segments: List[TranscriptSegment],
    chunk_index: int,
    chunk_duration_ms: int = CHUNK_DURATION_SEC * 1000,
) -> List[TranscriptSegment]:
    """Shift chunk-local segments into file time and regenerate their timecodes."""
    offset = chunk_index * chunk_duration_ms
    return [
        replace(
            s,
            start_time_ms=s.start_time_ms + offset,
            end_time_ms=s.end_time_ms + offset,
            timecode=format_ms_to_timecode(s.start_time_ms + offset),
        )
        for s in segments
    ]


def transcribe_chunks(
    client: genai.Client,
    chunks: List[bytes],
    model: str = gemini_client.DEFAULT_MODEL,
    chunk_duration_ms: int = CHUNK_DURATION_SEC * 1000,
    progress: Optional[ProgressSink] = None,
) -> List[TranscriptSegment]:
    """Transcribe chunks one at a time, in order.

    A chunk whose call or response fails is logged and contributes no
    segments; the loop moves on to the next chunk.
    """
    all_segments: List[TranscriptSegment] = []
    total = len(chunks)
    for i, chunk in enumerate(chunks):
        emit_status(progress, f"Processing chunk {i + 1} of {total}...")
        t0 = time.time()
        try:
            payload = gemini_client.transcribe_chunk(client, chunk, i + 1, model)
            local = segments_from_payload(payload)
        except Exception:
            logger.exception("[TR] chunk %d error %.1fs; skipping", i, time.time() - t0)
            continue
        all_segments.extend(rebase_segments(local, i, chunk_duration_ms))
        logger.info("[TR] chunk %d ok %.1fs items=%d", i, time.time() - t0, len(local))
    return all_segments


def process_via_chunking(
    client: genai.Client,
    file_path: str,
    model: str = gemini_client.DEFAULT_MODEL,
    chunk_duration_sec: int = CHUNK_DURATION_SEC,
    limit_bytes: int = MAX_LOCAL_DECODE_BYTES,
    progress: Optional[ProgressSink] = None,
) -> List[TranscriptSegment]:
    emit_status(progress, "Extracting and slicing audio...")
    split_t0 = time.time()
    chunks = extract_audio_chunks(file_path, chunk_duration_sec, TARGET_SAMPLE_RATE, limit_bytes)
    logger.info("[SPLIT] ready %d chunks %.1fs", len(chunks), time.time() - split_t0)
    return transcribe_chunks(client, chunks, model, chunk_duration_sec * 1000, progress)


def process_via_files_api(
    client: genai.Client,
    file_path: str,
    mime_type: str,
    model: str = gemini_client.DEFAULT_MODEL,
    poll_interval_s: float = gemini_client.FILE_POLL_INTERVAL_S,
    sleep: Callable[[float], None] = time.sleep,
) -> List[TranscriptSegment]:
    """Submit the original file whole; returned times are already global."""
    logger.info("Using Files API strategy for %s", file_path)
    try:
        payload = gemini_client.transcribe_file(
            client, file_path, mime_type, model, poll_interval_s, sleep
        )
    except TranscriptionError:
        raise
    except Exception as e:
        raise TranscriptionError(f"Whole-file transcription failed: {e}") from e
    return segments_from_payload(payload)


def extract_transcript(
    file_path: str,
    mime_type: str,
    progress: Optional[ProgressSink] = None,
    client: Optional[genai.Client] = None,
    model: str = gemini_client.DEFAULT_MODEL,
    chunk_duration_sec: int = CHUNK_DURATION_SEC,
    limit_bytes: int = MAX_LOCAL_DECODE_BYTES,
    poll_interval_s: float = gemini_client.FILE_POLL_INTERVAL_S,
    sleep: Callable[[float], None] = time.sleep,
) -> List[TranscriptSegment]:
    """Transcribe a media file into globally timed segments.

    Chunking is tried first; files above the local decode ceiling are sent
    whole through the Files API instead.
    """
    if client is None:
        client = gemini_client.make_client()

    try:
        return process_via_chunking(
            client, file_path, model, chunk_duration_sec, limit_bytes, progress
        )
    except AudioTooLargeError as e:
        logger.info("%s; falling back to Files API", e)
        emit_status(
            progress,
            "File is too large for local slicing. Switching to server-side processing...",
        )
        return process_via_files_api(
            client, file_path, mime_type, model, poll_interval_s, sleep
        )
