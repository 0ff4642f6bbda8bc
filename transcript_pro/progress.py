"""Progress reporting sinks, decoupled from any UI."""

import logging
from typing import List, Optional, Protocol, Tuple

logger = logging.getLogger(__name__)


class ProgressSink(Protocol):
    def status(self, message: str) -> None: ...

    def batch(self, pipeline: str, current: int, total: int) -> None: ...


class ConsoleProgress:
    """Prints tagged progress lines to stdout."""

    TAGS = {"terms": "[TERMS]", "translate": "[TL]"}

    def status(self, message: str) -> None:
        print(f"[TR] {message}", flush=True)

    def batch(self, pipeline: str, current: int, total: int) -> None:
        tag = self.TAGS.get(pipeline, f"[{pipeline.upper()}]")
        print(f"{tag} batch {current}/{total}", flush=True)


class RecordingProgress:
    """Keeps every event in memory; handy for tests and for polling callers."""

    def __init__(self) -> None:
        self.messages: List[str] = []
        self.batches: List[Tuple[str, int, int]] = []

    def status(self, message: str) -> None:
        self.messages.append(message)

    def batch(self, pipeline: str, current: int, total: int) -> None:
        self.batches.append((pipeline, current, total))


class NullProgress:
    def status(self, message: str) -> None:
        pass

    def batch(self, pipeline: str, current: int, total: int) -> None:
        pass


def emit_status(sink: Optional[ProgressSink], message: str) -> None:
    """Send a status line; sink errors are logged and never reach the pipeline."""
    if sink is None:
        return
    try:
        sink.status(message)
    except Exception:
        logger.exception("Progress sink failed on status %r", message)


def emit_batch(sink: Optional[ProgressSink], pipeline: str, current: int, total: int) -> None:
    if sink is None:
        return
    try:
        sink.batch(pipeline, current, total)
    except Exception:
        logger.exception("Progress sink failed on %s batch %d/%d", pipeline, current, total)
