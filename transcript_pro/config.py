"""Pipeline configuration loaded from a JSON file."""

import json
from dataclasses import dataclass
from typing import Optional

from .annotation import BATCH_SIZE
from .audio_utils import CHUNK_DURATION_SEC
from .gemini_client import DEFAULT_DOMAIN, DEFAULT_MODEL, FILE_POLL_INTERVAL_S
from .reconcile import MERGE_THRESHOLD_MS
from .supabase_store import DEFAULT_TABLE

DEFAULT_CONFIG_PATH = "config.json"


@dataclass
class PipelineConfig:
    """Configuration for the transcription pipeline."""
    input_path: str
    mime_type: Optional[str] = None
    output_dir: str = "output_transcripts"
    model: str = DEFAULT_MODEL
    source_language: str = "Russian"
    target_language: str = "English"
    domain: str = DEFAULT_DOMAIN
    chunk_duration_sec: int = CHUNK_DURATION_SEC
    merge_threshold_ms: int = MERGE_THRESHOLD_MS
    batch_size: int = BATCH_SIZE
    poll_interval_s: float = FILE_POLL_INTERVAL_S
    detect_terms: bool = True
    translate: bool = True
    upload: bool = False
    supabase_table: str = DEFAULT_TABLE
    verbose: bool = False


def load_config(path: str = DEFAULT_CONFIG_PATH) -> PipelineConfig:
    """Load pipeline configuration from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        cfg = json.load(f)

    input_path = cfg.get("input_path")
    if not input_path:
        raise ValueError("input_path must be specified in config (local media file path)")

    defaults = PipelineConfig(input_path=input_path)
    return PipelineConfig(
        input_path=input_path,
        mime_type=cfg.get("mime_type"),
        output_dir=cfg.get("output_dir", defaults.output_dir),
        model=cfg.get("model", defaults.model),
        source_language=cfg.get("source_language", defaults.source_language),
        target_language=cfg.get("target_language", defaults.target_language),
        domain=cfg.get("domain", defaults.domain),
        chunk_duration_sec=int(cfg.get("chunk_duration_sec", defaults.chunk_duration_sec)),
        merge_threshold_ms=int(cfg.get("merge_threshold_ms", defaults.merge_threshold_ms)),
        batch_size=int(cfg.get("batch_size", defaults.batch_size)),
        poll_interval_s=float(cfg.get("poll_interval_s", defaults.poll_interval_s)),
        detect_terms=bool(cfg.get("detect_terms", defaults.detect_terms)),
        translate=bool(cfg.get("translate", defaults.translate)),
        upload=bool(cfg.get("upload", defaults.upload)),
        supabase_table=cfg.get("supabase_table", defaults.supabase_table),
        verbose=bool(cfg.get("verbose", defaults.verbose)),
    )
