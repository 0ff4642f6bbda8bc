"""Main entry point for the transcription pipeline."""

import logging
import os
import sys
import time

from transcript_pro.config import DEFAULT_CONFIG_PATH, load_config
from transcript_pro.exceptions import TranscriptProError
from transcript_pro.export import write_outputs
from transcript_pro.progress import ConsoleProgress
from transcript_pro.session import TranscriptSession

logger = logging.getLogger(__name__)


def run_from_config(config_path: str = DEFAULT_CONFIG_PATH) -> None:
    """Load configuration from JSON and run the processing pipeline."""
    config = load_config(config_path)
    logging.basicConfig(
        level=logging.DEBUG if config.verbose else logging.INFO,
        format="%(message)s",
    )

    if not os.path.exists(config.input_path) or os.path.isdir(config.input_path):
        raise FileNotFoundError(f"Local media path not found or is a directory: {config.input_path}")
    print(f"[INPUT] local {config.input_path}", flush=True)

    session = TranscriptSession(config, progress=ConsoleProgress())
    t0 = time.time()

    print("[TRANSCRIBE] start", flush=True)
    tr_t0 = time.time()
    segments = session.load_file()
    print(f"[TRANSCRIBE] done {time.time() - tr_t0:.1f}s segments={len(segments)}", flush=True)
    if not segments:
        logger.warning("[TRANSCRIBE] no segments produced; writing empty outputs")

    if config.detect_terms:
        print("[TERMS] start", flush=True)
        st = time.time()
        session.detect_terms()
        print(f"[TERMS] done {time.time() - st:.1f}s", flush=True)

    if config.translate:
        print("[TRANSLATE] start", flush=True)
        st = time.time()
        session.translate()
        print(f"[TRANSLATE] done {time.time() - st:.1f}s", flush=True)

    base = os.path.splitext(os.path.basename(config.input_path))[0]
    json_path, srt_path = write_outputs(session.segments, config.output_dir, base)
    print(f"[EXPORT] wrote {json_path} {srt_path}", flush=True)

    if config.upload:
        print("[UPLOAD] start", flush=True)
        count = session.upload()
        print(f"[UPLOAD] done rows={count}", flush=True)

    print(f"[DONE] {time.time() - t0:.1f}s")


if __name__ == "__main__":
    try:
        run_from_config(sys.argv[1] if len(sys.argv) > 1 else DEFAULT_CONFIG_PATH)
    except (TranscriptProError, FileNotFoundError, RuntimeError, ValueError) as e:
        print(f"[ERROR] {e}", file=sys.stderr)
        sys.exit(1)
