"""Persist processed transcripts to a Supabase table over its REST API."""

import logging
import os
from typing import Any, Dict, List, Optional

import requests
from dotenv import load_dotenv

from .exceptions import MissingCredentialsError, PersistenceError
from .models import ProcessedSegment

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "translate_shibari"
REQUEST_TIMEOUT_S = 60


def segment_to_record(seg: ProcessedSegment) -> Dict[str, Any]:
    """Map a segment to the flat snake_case row schema; empty annotations become null."""
    return {
        "timecode": seg.timecode,
        "start_time_ms": seg.start_time_ms,
        "end_time_ms": seg.end_time_ms,
        "duration_ms": seg.duration_ms,
        "pause_after_ms": seg.pause_after_ms,
        "text": seg.text,
        "terms_ru": seg.terms_ru or None,
        "terms_en": seg.terms_en or None,
        "translated_text": seg.translated_text or None,
    }


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


def upload_transcript(
    segments: List[ProcessedSegment],
    table: str = DEFAULT_TABLE,
    url: Optional[str] = None,
    key: Optional[str] = None,
) -> int:
    """Insert all segments as rows; return the number of rows sent."""
    base_url = url or os.environ.get("SUPABASE_URL")
    api_key = key or os.environ.get("SUPABASE_KEY")
    if not base_url or not api_key:
        raise MissingCredentialsError("Supabase credentials are missing: set SUPABASE_URL and SUPABASE_KEY.")

    rows = [segment_to_record(s) for s in segments]
    endpoint = f"{base_url.rstrip('/')}/rest/v1/{table}"
    try:
        response = requests.post(
            endpoint,
            headers={
                "apikey": api_key,
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Prefer": "return=minimal",
            },
            json=rows,
            timeout=REQUEST_TIMEOUT_S,
        )
    except requests.RequestException as e:
        raise PersistenceError(f"Supabase error: {e}") from e

    if not 200 <= response.status_code < 300:
        raise PersistenceError(f"Supabase error: {_error_message(response)}")
    logger.info("Inserted %d rows into %s", len(rows), table)
    return len(rows)
