"""Single owner of a transcript's segment list and the pipelines that touch it."""

import logging
import threading
from contextlib import contextmanager
from dataclasses import replace
from functools import partial
from typing import Any, Dict, Iterator, List, Optional

from google import genai

from . import annotation, gemini_client, supabase_store, transcription
from .config import PipelineConfig
from .exceptions import PipelineBusyError
from .intake import validate_file
from .models import ProcessedSegment
from .progress import ProgressSink, emit_status
from .reconcile import reconcile_segments

logger = logging.getLogger(__name__)


class TranscriptSession:
    """Runs transcription, annotation and upload for one media file.

    Only one pipeline may run at a time; starting another while one is in
    flight raises PipelineBusyError instead of waiting.
    """

    def __init__(
        self,
        config: PipelineConfig,
        progress: Optional[ProgressSink] = None,
        client: Optional[genai.Client] = None,
    ):
        self.config = config
        self.progress = progress
        self._client = client
        self._guard = threading.Lock()
        self._fields_lock = threading.Lock()
        self._active: Optional[str] = None
        self.segments: List[ProcessedSegment] = []
        self.saved = False

    @property
    def client(self) -> genai.Client:
        if self._client is None:
            self._client = gemini_client.make_client()
        return self._client

    @property
    def active_pipeline(self) -> Optional[str]:
        return self._active

    @contextmanager
    def _exclusive(self, name: str) -> Iterator[None]:
        if not self._guard.acquire(blocking=False):
            raise PipelineBusyError(f"Cannot start {name}: {self._active} is still running")
        self._active = name
        try:
            yield
        finally:
            self._active = None
            self._guard.release()

    def load_file(self, path: Optional[str] = None, mime_type: Optional[str] = None) -> List[ProcessedSegment]:
        """Validate, transcribe and reconcile a media file into fresh segments."""
        path = path or self.config.input_path
        effective_mime = validate_file(path, mime_type or self.config.mime_type)
        with self._exclusive("transcription"):
            emit_status(self.progress, "Preparing file...")
            raw = transcription.extract_transcript(
                path,
                effective_mime,
                progress=self.progress,
                client=self.client,
                model=self.config.model,
                chunk_duration_sec=self.config.chunk_duration_sec,
                poll_interval_s=self.config.poll_interval_s,
            )
            self.segments = reconcile_segments(raw, self.config.merge_threshold_ms)
            self.saved = False
            logger.info("Transcribed %d raw segments into %d merged", len(raw), len(self.segments))
        return self.segments

    def detect_terms(self) -> List[ProcessedSegment]:
        if not self.segments:
            return self.segments
        with self._exclusive("terms"):
            self.saved = False
            call = partial(
                gemini_client.detect_terms_batch,
                self.client,
                model=self.config.model,
                source_language=self.config.source_language,
                target_language=self.config.target_language,
                domain=self.config.domain,
            )
            annotation.detect_terms(
                list(self.segments), call, self.config.batch_size, self.progress,
                apply=self._apply_fields,
            )
        return self.segments

    def translate(self) -> List[ProcessedSegment]:
        if not self.segments:
            return self.segments
        with self._exclusive("translate"):
            self.saved = False
            call = partial(
                gemini_client.translate_batch,
                self.client,
                model=self.config.model,
                source_language=self.config.source_language,
                target_language=self.config.target_language,
                domain=self.config.domain,
            )
            annotation.translate_segments(
                list(self.segments), call, self.config.batch_size, self.progress,
                apply=self._apply_fields,
            )
        return self.segments

    def upload(self) -> int:
        if not self.segments:
            return 0
        with self._exclusive("upload"):
            count = supabase_store.upload_transcript(self.segments, table=self.config.supabase_table)
            self.saved = True
        return count

    def _apply_fields(self, segment_id: int, fields: Dict[str, Any]) -> ProcessedSegment:
        """Replace only the named fields of one segment in the live list."""
        with self._fields_lock:
            for i, seg in enumerate(self.segments):
                if seg.segment_id == segment_id:
                    self.segments[i] = replace(seg, **fields)
                    self.saved = False
                    return self.segments[i]
        raise KeyError(f"Unknown segment id: {segment_id}")

    def _edit(self, segment_id: int, **fields) -> ProcessedSegment:
        return self._apply_fields(segment_id, fields)

    def edit_text(self, segment_id: int, text: str) -> ProcessedSegment:
        return self._edit(segment_id, text=text)

    def edit_translation(self, segment_id: int, translated_text: str) -> ProcessedSegment:
        return self._edit(segment_id, translated_text=translated_text)

    def edit_terms(self, segment_id: int, terms_ru: str, terms_en: str) -> ProcessedSegment:
        return self._edit(segment_id, terms_ru=terms_ru, terms_en=terms_en)
