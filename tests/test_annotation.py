import pytest

from transcript_pro.annotation import count_batches, detect_terms, iter_batches, translate_segments
from transcript_pro.models import ProcessedSegment
from transcript_pro.progress import RecordingProgress


def make_segments(n):
    return [
        ProcessedSegment(
            segment_id=i,
            timecode="00:00.000",
            start_time_ms=i * 2000,
            end_time_ms=i * 2000 + 1500,
            text=f"text {i}",
            duration_ms=1500,
            pause_after_ms=500 if i < n - 1 else 0,
        )
        for i in range(n)
    ]


def test_batch_partitioning():
    assert [len(b) for b in iter_batches(list(range(23)), 10)] == [10, 10, 3]
    assert count_batches(23, 10) == 3
    assert count_batches(0, 10) == 0
    with pytest.raises(ValueError):
        list(iter_batches([1], 0))


def test_failed_middle_batch_is_isolated():
    segments = make_segments(23)
    requests = []

    def fake_call(items):
        requests.append(items)
        if len(requests) == 2:
            raise RuntimeError("quota exceeded")
        return [{"id": it["id"], "termsRu": "ТК", "termsEn": "Takate Kote"} for it in items]

    progress = RecordingProgress()
    out = detect_terms(segments, fake_call, batch_size=10, progress=progress)

    assert [len(r) for r in requests] == [10, 10, 3]
    assert requests[0][0] == {"id": 0, "text": "text 0"}
    annotated = [s.segment_id for s in out if s.terms_en]
    assert annotated == list(range(10)) + [20, 21, 22]
    assert all(s.terms_ru is None for s in out[10:20])
    assert progress.batches == [("terms", 1, 3), ("terms", 2, 3), ("terms", 3, 3)]
    # the caller's list is untouched
    assert all(s.terms_en is None for s in segments)


def test_unknown_ids_are_ignored():
    segments = make_segments(3)

    def fake_call(items):
        return [{"id": 1, "translatedText": "one"}, {"id": 99, "translatedText": "ghost"}, {"oops": True}]

    out = translate_segments(segments, fake_call)
    assert [s.translated_text for s in out] == [None, "one", None]
    assert len(out) == 3


def test_results_are_matched_by_id_not_position():
    segments = make_segments(3)

    def reversed_call(items):
        return [{"id": it["id"], "translatedText": f"tr {it['id']}"} for it in reversed(items)]

    out = translate_segments(segments, reversed_call)
    assert [s.translated_text for s in out] == ["tr 0", "tr 1", "tr 2"]


def test_translation_request_carries_duration_and_terms():
    segments = make_segments(1)
    segments[0].terms_en = "Takate Kote"
    seen = []

    def fake_call(items):
        seen.extend(items)
        return []

    translate_segments(segments, fake_call)
    assert seen == [{"id": 0, "text": "text 0", "durationMs": 1500, "termsEn": "Takate Kote"}]


def test_translation_request_omits_terms_before_terms_pass():
    seen = []

    def fake_call(items):
        seen.extend(items)
        return []

    translate_segments(make_segments(1), fake_call)
    assert seen == [{"id": 0, "text": "text 0", "durationMs": 1500}]


def test_results_are_forwarded_per_batch():
    segments = make_segments(12)
    forwarded = []

    def fake_call(items):
        forwarded.append(("call", items[0]["id"]))
        return [{"id": it["id"], "translatedText": "x"} for it in items]

    out = translate_segments(
        segments, fake_call, batch_size=10, apply=lambda sid, fields: forwarded.append((sid, fields))
    )
    assert forwarded[0] == ("call", 0)
    assert forwarded[1] == (0, {"translated_text": "x"})
    assert forwarded[11] == ("call", 10)
    assert len(forwarded) == 14
    assert all(s.translated_text == "x" for s in out)


def test_empty_terms_are_kept_as_empty_strings():
    out = detect_terms(make_segments(1), lambda items: [{"id": 0, "termsRu": "", "termsEn": ""}])
    assert (out[0].terms_ru, out[0].terms_en) == ("", "")


def test_empty_segment_list_makes_no_calls():
    def fail(_items):
        raise AssertionError("no call expected")

    assert detect_terms([], fail) == []
