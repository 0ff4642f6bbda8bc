"""Timecode formatting, model-response parsing and SRT assembly."""

import json
import re
from typing import Any, Iterable, List, Optional

from .models import ProcessedSegment, TranscriptSegment

# Standard SRT-style timestamp: HH:MM:SS,mmm or H:MM:SS.mmm (hours optional)
TIME_COLON_RE = re.compile(
    r"^\s*(?:(\d{1,2}):)?(\d{1,3}):(\d{1,2})(?:[.,](\d{1,3}))?\s*$"
)


def format_ms_to_timecode(total_ms: int) -> str:
    """Format milliseconds as MM:SS.mmm using integer arithmetic only.

    Minutes are not wrapped into hours, so 61 minutes renders as 61:00.000.
    """
    total_ms = max(0, int(total_ms))
    ms = total_ms % 1000
    total_sec = total_ms // 1000
    s = total_sec % 60
    m = total_sec // 60
    return f"{m:02d}:{s:02d}.{ms:03d}"


def ms_to_hhmmssms(total_ms: int) -> str:
    """Convert milliseconds to a standard SRT timestamp string HH:MM:SS,ms."""
    if total_ms < 0:
        total_ms = 0
    ms = total_ms % 1000
    total_sec = total_ms // 1000
    s = total_sec % 60
    total_min = total_sec // 60
    m = total_min % 60
    h = total_min // 60
    return f"{h:02d}:{m:02d}:{s:02d},{ms:03d}"


def parse_time_value_to_ms(value: Any) -> Optional[int]:
    """Parse a millisecond value from a model response field.

    Numbers are taken as milliseconds. Strings may be plain integers
    ("1500", "1500.0") or colon timestamps ("01:02.500", "00:01:02,500").
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return max(0, int(round(value)))
    if not isinstance(value, str):
        return None

    v = value.strip()
    if not v:
        return None
    try:
        return max(0, int(round(float(v))))
    except ValueError:
        pass

    m_colon = TIME_COLON_RE.match(v)
    if m_colon:
        h = int(m_colon.group(1) or 0)
        m = int(m_colon.group(2) or 0)
        s = int(m_colon.group(3) or 0)
        frac = m_colon.group(4) or ""
        ms_frac = int((frac + "000")[:3]) if frac else 0  # fractional seconds
        return ((h * 3600 + m * 60 + s) * 1000) + ms_frac
    return None


def strip_code_fences(text: str) -> str:
    """Remove Markdown fences that break JSON parsing."""
    t = (text or "").strip()
    if not t.startswith("```"):
        return t
    lines = t.splitlines()
    if lines and lines[0].startswith("```"):
        lines = lines[1:]
    if lines and lines[-1].startswith("```"):
        lines = lines[:-1]
    return "\n".join(lines).strip()


def parse_json_array(text: Optional[str]) -> List[Any]:
    """Parse a JSON array from model output.

    Handles Markdown code blocks and stray prose around the array. Raises
    ValueError if no array can be recovered from non-empty text.
    """
    t = strip_code_fences(text or "")
    if not t:
        return []

    try:
        data = json.loads(t)
    except json.JSONDecodeError:
        # Fallback: try to find the first '[' and last ']'
        start_idx = t.find("[")
        end_idx = t.rfind("]")
        if start_idx == -1 or end_idx <= start_idx:
            raise ValueError("response contains no JSON array")
        try:
            data = json.loads(t[start_idx : end_idx + 1])
        except json.JSONDecodeError as e:
            raise ValueError(f"response is not valid JSON: {e}") from e

    if not isinstance(data, list):
        raise ValueError(f"expected a JSON array, got {type(data).__name__}")
    return data


def segments_from_payload(items: Iterable[Any]) -> List[TranscriptSegment]:
    """Convert decoded response entries into TranscriptSegments.

    Entries without usable times or text are dropped. A missing timecode
    is filled from the start time. Order is preserved as received.
    """
    segments: List[TranscriptSegment] = []
    for entry in items:
        if not isinstance(entry, dict):
            continue
        start_ms = parse_time_value_to_ms(entry.get("startTimeMs"))
        end_ms = parse_time_value_to_ms(entry.get("endTimeMs"))
        content = entry.get("text")
        if start_ms is None or end_ms is None or content is None:
            continue
        text_val = str(content).strip()
        if not text_val:
            continue
        timecode = entry.get("timecode")
        if not isinstance(timecode, str) or not timecode.strip():
            timecode = format_ms_to_timecode(start_ms)
        segments.append(
            TranscriptSegment(
                timecode=timecode.strip(),
                start_time_ms=start_ms,
                end_time_ms=end_ms,
                text=text_val,
            )
        )
    return segments


def assemble_srt(segments: List[ProcessedSegment], prefer_translation: bool = True) -> str:
    """Render processed segments as SRT, using translations where present."""
    blocks: List[str] = []
    for i, seg in enumerate(segments):
        text = seg.text
        if prefer_translation and seg.translated_text:
            text = seg.translated_text
        blocks.append(
            f"{i + 1}\n{ms_to_hhmmssms(seg.start_time_ms)} --> "
            f"{ms_to_hhmmssms(seg.end_time_ms)}\n{text}\n"
        )
    return "\n".join(blocks)
