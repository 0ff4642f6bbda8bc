import json
from types import SimpleNamespace

import pytest

from transcript_pro import gemini_client
from transcript_pro.exceptions import TranscriptionError


class FakeFiles:
    def __init__(self, states):
        self.states = list(states)
        self.get_calls = 0

    def upload(self, file, config):
        return SimpleNamespace(name="files/abc", uri="https://files/abc", state=self.states.pop(0))

    def get(self, name):
        self.get_calls += 1
        return SimpleNamespace(name=name, uri="https://files/abc", state=self.states.pop(0))


class FakeModels:
    def __init__(self, text):
        self.text = text
        self.calls = []

    def generate_content(self, model, contents, config):
        self.calls.append((model, contents, config))
        return SimpleNamespace(text=self.text)


def make_client(states=("ACTIVE",), text="[]"):
    return SimpleNamespace(files=FakeFiles(states), models=FakeModels(text))


def test_upload_polls_until_active(tmp_path):
    path = tmp_path / "big.mp4"
    path.write_bytes(b"x")
    client = make_client(states=["PROCESSING", "PROCESSING", "ACTIVE"])
    sleeps = []

    uploaded = gemini_client.upload_and_wait(client, str(path), "video/mp4", 2, sleep=sleeps.append)
    assert uploaded.state == "ACTIVE"
    assert client.files.get_calls == 2
    assert sleeps == [2, 2]


def test_upload_failed_state_raises(tmp_path):
    client = make_client(states=["PROCESSING", "FAILED"])
    with pytest.raises(TranscriptionError, match="failed"):
        gemini_client.upload_and_wait(client, str(tmp_path / "f.mp4"), "video/mp4", 0, sleep=lambda _s: None)


def test_upload_inactive_state_raises(tmp_path):
    client = make_client(states=["STATE_UNSPECIFIED"])
    with pytest.raises(TranscriptionError, match="not active"):
        gemini_client.upload_and_wait(client, str(tmp_path / "f.mp4"), "video/mp4", 0, sleep=lambda _s: None)


def test_upload_error_is_wrapped(tmp_path):
    class BrokenFiles:
        def upload(self, file, config):
            raise OSError("disk read error")

    client = SimpleNamespace(files=BrokenFiles(), models=None)
    with pytest.raises(TranscriptionError, match="Upload failed: disk read error"):
        gemini_client.upload_and_wait(client, str(tmp_path / "f.mp4"), "video/mp4")


def test_transcribe_file_returns_parsed_segments(tmp_path):
    payload = [{"timecode": "00:01.000", "startTimeMs": 1000, "endTimeMs": 2000, "text": "hello"}]
    client = make_client(text="```json\n" + json.dumps(payload) + "\n```")
    out = gemini_client.transcribe_file(client, str(tmp_path / "f.mp4"), "video/mp4", sleep=lambda _s: None)
    assert out == payload


def test_transcribe_chunk_sends_part_number():
    client = make_client(text='[{"startTimeMs": 0, "endTimeMs": 5, "text": "a"}]')
    out = gemini_client.transcribe_chunk(client, b"RIFF....", part_number=3)
    assert out == [{"startTimeMs": 0, "endTimeMs": 5, "text": "a"}]
    _model, contents, _config = client.models.calls[0]
    assert "part 3 of a larger file" in contents[1]


def test_transcribe_chunk_empty_bytes_skips_call():
    client = make_client()
    assert gemini_client.transcribe_chunk(client, b"", part_number=1) == []
    assert client.models.calls == []


def test_batch_calls_send_items_as_json():
    client = make_client(text='[{"id": 0, "termsRu": "ТК", "termsEn": "Takate Kote"}]')
    items = [{"id": 0, "text": "Делаем ТК"}]
    out = gemini_client.detect_terms_batch(client, items)
    assert out[0]["termsEn"] == "Takate Kote"
    _model, contents, _config = client.models.calls[0]
    assert json.loads(contents[0]) == items


def test_make_client_requires_key(monkeypatch):
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("GOOGLE_API_KEY", raising=False)
    with pytest.raises(Exception, match="API key is missing"):
        gemini_client.make_client()
