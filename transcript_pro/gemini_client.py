"""Handles interaction with the Gemini API for transcription, term detection and translation."""

import json
import logging
import os
import time
from typing import Any, Callable, Dict, List, Optional

from google import genai
from google.genai import types
from dotenv import load_dotenv

from .exceptions import MissingCredentialsError, TranscriptionError
from .segment_format import parse_json_array

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
FILE_POLL_INTERVAL_S = 2

CHUNK_PROMPT_TEMPLATE = """Transcribe this audio segment.
It is part {part_number} of a larger file.
Return a JSON array of objects with: timecode, startTimeMs, endTimeMs, text.
Times are in milliseconds relative to the start of this segment.
Strictly output JSON.
"""

FILE_PROMPT = """Analyze the audio in this file.
1. Transcribe the spoken text accurately (detect language automatically).
2. Split the text into natural phrases or sentences.
3. For each phrase, provide:
   - The start time in milliseconds.
   - The end time in milliseconds.
   - A formatted timecode (MM:SS.mmm).
   - The exact text.
Return the result as a raw JSON array.
"""

TERMS_PROMPT_TEMPLATE = """You are an expert translator and specialist in {domain}.
Analyze the following list of sentences in {source_language}.
For each sentence, identify if there are any specific {domain} terms (techniques, patterns, safety terms, anatomy in context).

Specific dictionary rules:
- If you see "ТК" in the text, it stands for "Takate Kote".

If terms are found:
1. List the terms in {source_language} (as they appear or standard transliteration).
2. Provide the correct {target_language} translation/terminology for those terms.

If no terms are found, leave the strings empty.

Return a JSON array where each object corresponds to the input id.
"""

TRANSLATION_PROMPT_TEMPLATE = """You are a professional audiovisual translator and dubbing scriptwriter specializing in {domain} content.
Task: Translate the following JSON array of {source_language} phrases into {target_language}.

Constraint 1 (Terminology): Use the specific {target_language} terms provided in the 'termsEn' field. Ensure consistency with the community dialect.
Constraint 2 (Dubbing/Duration): The 'durationMs' is the length of the original speech. Your translation MUST be speakable within this timeframe.
   - If the source phrase is short, keep the translation concise.
   - If the source phrase is long, you have more room, but don't be verbose.
   - The goal is a translation suitable for voice-over that matches the original video timing.
Constraint 3 (Context): Use respectful, safety-conscious, and anatomically correct language.

Input JSON Format: [{{ "id": number, "text": "source text", "durationMs": number, "termsEn": "optional terms" }}]
Output JSON Format: [{{ "id": number, "translatedText": "translation" }}]
"""

DEFAULT_DOMAIN = "Shibari (Japanese rope bondage)"


def make_client(api_key: Optional[str] = None) -> genai.Client:
    """Build a Gemini client; the key comes from GEMINI_API_KEY or GOOGLE_API_KEY."""
    key = api_key or os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
    if not key:
        raise MissingCredentialsError("API key is missing: set GEMINI_API_KEY.")
    return genai.Client(api_key=key)


def _string() -> types.Schema:
    return types.Schema(type=types.Type.STRING)


def _integer() -> types.Schema:
    return types.Schema(type=types.Type.INTEGER)


def _array_of(properties: Dict[str, types.Schema], required: List[str]) -> types.Schema:
    return types.Schema(
        type=types.Type.ARRAY,
        items=types.Schema(type=types.Type.OBJECT, properties=properties, required=required),
    )


def _segment_schema(required: List[str]) -> types.Schema:
    return _array_of(
        {
            "timecode": _string(),
            "startTimeMs": _integer(),
            "endTimeMs": _integer(),
            "text": _string(),
        },
        required,
    )


TERMS_SCHEMA = _array_of(
    {"id": _integer(), "termsRu": _string(), "termsEn": _string()},
    ["id", "termsRu", "termsEn"],
)
TRANSLATION_SCHEMA = _array_of(
    {"id": _integer(), "translatedText": _string()},
    ["id", "translatedText"],
)


def _json_config(schema: types.Schema) -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        response_mime_type="application/json",
        response_schema=schema,
        safety_settings=[
            types.SafetySetting(
                category=types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
                threshold=types.HarmBlockThreshold.BLOCK_NONE,
            )
        ],
    )


def transcribe_chunk(
    client: genai.Client,
    wav_bytes: bytes,
    part_number: int,
    model: str = DEFAULT_MODEL,
) -> List[Dict[str, Any]]:
    """Transcribe one WAV chunk; times in the result are chunk-local."""
    if not isinstance(wav_bytes, (bytes, bytearray)) or not wav_bytes:
        return []
    prompt = CHUNK_PROMPT_TEMPLATE.format(part_number=part_number)
    audio_part = types.Part.from_bytes(data=bytes(wav_bytes), mime_type="audio/wav")
    response = client.models.generate_content(
        model=model,
        contents=[audio_part, prompt],
        # timecode is optional here: it is regenerated after rebasing
        config=_json_config(_segment_schema(["startTimeMs", "endTimeMs", "text"])),
    )
    return parse_json_array(getattr(response, "text", None))


def _state_name(state: Any) -> str:
    return str(getattr(state, "value", state) or "").upper()


def upload_and_wait(
    client: genai.Client,
    file_path: str,
    mime_type: str,
    poll_interval_s: float = FILE_POLL_INTERVAL_S,
    sleep: Callable[[float], None] = time.sleep,
):
    """Upload a file to the Files API and poll until it leaves PROCESSING."""
    try:
        uploaded = client.files.upload(
            file=file_path,
            config=types.UploadFileConfig(
                display_name=os.path.basename(file_path),
                mime_type=mime_type,
            ),
        )
    except Exception as e:
        raise TranscriptionError(f"Upload failed: {e}") from e

    if uploaded is None or not getattr(uploaded, "name", None):
        raise TranscriptionError("File upload failed: no file metadata returned from API.")

    state = _state_name(uploaded.state)
    logger.info("File uploaded: %s, state: %s", uploaded.uri, state)
    while state == "PROCESSING":
        sleep(poll_interval_s)
        uploaded = client.files.get(name=uploaded.name)
        state = _state_name(uploaded.state)
        if state == "FAILED":
            raise TranscriptionError("Media processing failed on the Gemini server.")

    if state != "ACTIVE":
        raise TranscriptionError(f"File is not active. State: {state}")
    return uploaded


def transcribe_file(
    client: genai.Client,
    file_path: str,
    mime_type: str,
    model: str = DEFAULT_MODEL,
    poll_interval_s: float = FILE_POLL_INTERVAL_S,
    sleep: Callable[[float], None] = time.sleep,
) -> List[Dict[str, Any]]:
    """Transcribe a whole file through the Files API; times are already global."""
    uploaded = upload_and_wait(client, file_path, mime_type, poll_interval_s, sleep)
    file_part = types.Part.from_uri(file_uri=uploaded.uri, mime_type=mime_type)
    response = client.models.generate_content(
        model=model,
        contents=[file_part, FILE_PROMPT],
        config=_json_config(_segment_schema(["timecode", "startTimeMs", "endTimeMs", "text"])),
    )
    return parse_json_array(getattr(response, "text", None))


def detect_terms_batch(
    client: genai.Client,
    items: List[Dict[str, Any]],
    model: str = DEFAULT_MODEL,
    source_language: str = "Russian",
    target_language: str = "English",
    domain: str = DEFAULT_DOMAIN,
) -> List[Dict[str, Any]]:
    """Detect domain terms for [{id, text}] items; returns [{id, termsRu, termsEn}]."""
    prompt = TERMS_PROMPT_TEMPLATE.format(
        domain=domain, source_language=source_language, target_language=target_language
    )
    response = client.models.generate_content(
        model=model,
        contents=[json.dumps(items, ensure_ascii=False), prompt],
        config=_json_config(TERMS_SCHEMA),
    )
    return parse_json_array(getattr(response, "text", None))


def translate_batch(
    client: genai.Client,
    items: List[Dict[str, Any]],
    model: str = DEFAULT_MODEL,
    source_language: str = "Russian",
    target_language: str = "English",
    domain: str = DEFAULT_DOMAIN,
) -> List[Dict[str, Any]]:
    """Translate [{id, text, durationMs, termsEn}] items; returns [{id, translatedText}]."""
    prompt = TRANSLATION_PROMPT_TEMPLATE.format(
        domain=domain, source_language=source_language, target_language=target_language
    )
    response = client.models.generate_content(
        model=model,
        contents=[json.dumps(items, ensure_ascii=False), prompt],
        config=_json_config(TRANSLATION_SCHEMA),
    )
    return parse_json_array(getattr(response, "text", None))
