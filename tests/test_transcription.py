from types import SimpleNamespace

import numpy as np
import pytest

from transcript_pro import decode_audio, gemini_client, transcription
from transcript_pro.exceptions import MissingCredentialsError, TranscriptionError
from transcript_pro.models import TranscriptSegment
from transcript_pro.progress import RecordingProgress
from transcript_pro.transcription import extract_transcript, rebase_segments, transcribe_chunks

MB = 1024 * 1024
FAKE_CLIENT = object()


def test_rebase_chunk_two():
    local = [TranscriptSegment(timecode="00:05.000", start_time_ms=5000, end_time_ms=6200, text="hi")]
    out = rebase_segments(local, chunk_index=2, chunk_duration_ms=150000)
    assert out[0].start_time_ms == 305000
    assert out[0].end_time_ms == 306200
    assert out[0].timecode == "05:05.000"
    assert local[0].start_time_ms == 5000


def test_failed_chunk_is_skipped(monkeypatch):
    def fake_transcribe_chunk(client, wav, part_number, model):
        if part_number == 2:
            raise RuntimeError("503 model overloaded")
        return [{"startTimeMs": 1000, "endTimeMs": 2000, "text": f"part {part_number}"}]

    monkeypatch.setattr(gemini_client, "transcribe_chunk", fake_transcribe_chunk)
    progress = RecordingProgress()
    out = transcribe_chunks(FAKE_CLIENT, [b"a", b"b", b"c"], chunk_duration_ms=150000, progress=progress)

    assert [s.text for s in out] == ["part 1", "part 3"]
    assert [s.start_time_ms for s in out] == [1000, 301000]
    assert progress.messages == [
        "Processing chunk 1 of 3...",
        "Processing chunk 2 of 3...",
        "Processing chunk 3 of 3...",
    ]


def test_unparseable_chunk_is_skipped(monkeypatch):
    calls = iter([ValueError("response contains no JSON array"), [{"startTimeMs": 0, "endTimeMs": 10, "text": "ok"}]])

    def fake_transcribe_chunk(*_a):
        item = next(calls)
        if isinstance(item, Exception):
            raise item
        return item

    monkeypatch.setattr(gemini_client, "transcribe_chunk", fake_transcribe_chunk)
    out = transcribe_chunks(FAKE_CLIENT, [b"a", b"b"], chunk_duration_ms=1000)
    assert [(s.start_time_ms, s.text) for s in out] == [(1000, "ok")]


def test_remote_timecode_is_replaced(monkeypatch):
    monkeypatch.setattr(
        gemini_client,
        "transcribe_chunk",
        lambda *_a: [{"timecode": "99:99.999", "startTimeMs": 500, "endTimeMs": 900, "text": "x"}],
    )
    out = transcribe_chunks(FAKE_CLIENT, [b"a", b"b"], chunk_duration_ms=150000)
    assert [s.timecode for s in out] == ["00:00.500", "02:30.500"]


def test_broken_progress_sink_does_not_change_result(monkeypatch):
    class Broken:
        def status(self, message):
            raise RuntimeError("ui gone")

        def batch(self, pipeline, current, total):
            raise RuntimeError("ui gone")

    monkeypatch.setattr(
        gemini_client, "transcribe_chunk", lambda *_a: [{"startTimeMs": 0, "endTimeMs": 10, "text": "x"}]
    )
    out = transcribe_chunks(FAKE_CLIENT, [b"a"], progress=Broken())
    assert len(out) == 1


@pytest.fixture
def fake_media(monkeypatch, tmp_path):
    path = tmp_path / "talk.mp4"
    path.write_bytes(b"\x00" * 64)
    monkeypatch.setattr(decode_audio, "probe_channel_count", lambda _p: 1)
    monkeypatch.setattr(
        decode_audio.subprocess,
        "run",
        lambda *a, **k: SimpleNamespace(stdout=np.zeros(16000 * 4, dtype="<f4").tobytes()),
    )
    return str(path)


def test_400mb_file_uses_chunking(monkeypatch, fake_media):
    monkeypatch.setattr(decode_audio.os.path, "getsize", lambda _p: 400 * MB)
    monkeypatch.setattr(
        gemini_client, "transcribe_chunk", lambda *_a: [{"startTimeMs": 100, "endTimeMs": 200, "text": "c"}]
    )

    def no_fallback(*_a, **_k):
        raise AssertionError("whole-file path must not be used")

    monkeypatch.setattr(gemini_client, "transcribe_file", no_fallback)
    out = extract_transcript(fake_media, "video/mp4", client=FAKE_CLIENT, chunk_duration_sec=2)
    assert [s.start_time_ms for s in out] == [100, 2100]


def test_600mb_file_falls_back_to_whole_file(monkeypatch, fake_media):
    monkeypatch.setattr(decode_audio.os.path, "getsize", lambda _p: 600 * MB)
    seen = {}

    def fake_transcribe_file(client, path, mime_type, model, poll_interval_s, sleep):
        seen["args"] = (path, mime_type)
        return [{"timecode": "02:30.000", "startTimeMs": 150000, "endTimeMs": 151000, "text": "global"}]

    monkeypatch.setattr(gemini_client, "transcribe_file", fake_transcribe_file)
    progress = RecordingProgress()
    out = extract_transcript(fake_media, "video/mp4", progress=progress, client=FAKE_CLIENT)

    assert seen["args"] == (fake_media, "video/mp4")
    assert [(s.start_time_ms, s.timecode) for s in out] == [(150000, "02:30.000")]
    assert any("server-side" in m for m in progress.messages)


def test_fallback_failure_is_fatal(monkeypatch, fake_media):
    monkeypatch.setattr(decode_audio.os.path, "getsize", lambda _p: 600 * MB)

    def failing(*_a, **_k):
        raise ConnectionError("network down")

    monkeypatch.setattr(gemini_client, "transcribe_file", failing)
    with pytest.raises(TranscriptionError, match="network down"):
        extract_transcript(fake_media, "video/mp4", client=FAKE_CLIENT)


def test_missing_api_key(monkeypatch, fake_media):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(MissingCredentialsError):
        extract_transcript(fake_media, "video/mp4")
