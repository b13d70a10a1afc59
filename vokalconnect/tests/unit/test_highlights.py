from __future__ import annotations

import re

from vokalconnect.services.scorecards import (
    DEFAULT_MAX_SCORE,
    generate_highlight_id,
    generate_metric_signal_id,
    highlight_input_from_item,
    normalize_highlights,
)


def test_normalize_highlights_handles_missing_payload() -> None:
    normalized = normalize_highlights(None)
    assert normalized == {"items": [], "score": 0, "maxScore": DEFAULT_MAX_SCORE}


def test_normalize_highlights_parses_json_string() -> None:
    raw = '{"items": [{"text": "Slow checkout"}], "score": 61, "maxScore": 80}'
    normalized = normalize_highlights(raw)
    assert normalized["items"] == [{"text": "Slow checkout"}]
    assert normalized["score"] == 61
    assert normalized["maxScore"] == 80


def test_normalize_highlights_wraps_bare_list() -> None:
    normalized = normalize_highlights([{"text": "a"}, "not-an-item", {"text": "b"}], score=12)
    assert [item["text"] for item in normalized["items"]] == ["a", "b"]
    assert normalized["score"] == 12
    assert normalized["maxScore"] == DEFAULT_MAX_SCORE


def test_normalize_highlights_tolerates_garbage_string() -> None:
    normalized = normalize_highlights("{not json")
    assert normalized["items"] == []


def test_normalize_highlights_explicit_scores_win_over_payload() -> None:
    normalized = normalize_highlights({"items": [], "score": 10, "maxScore": 20}, score=70, max_score=90)
    assert normalized["score"] == 70
    assert normalized["maxScore"] == 90


def test_normalize_highlights_keeps_unknown_keys() -> None:
    normalized = normalize_highlights({"items": None, "summary": "kept"})
    assert normalized["items"] == []
    assert normalized["summary"] == "kept"


def test_highlight_input_from_item_reads_legacy_keys() -> None:
    payload = highlight_input_from_item(
        {"text": "Cart abandonment", "serviceArea": "Website", "relatedMetricId": "m1", "aiGenerated": True}
    )
    assert payload is not None
    assert payload.service_area == "Website"
    assert payload.related_metric_id == "m1"
    assert payload.ai_generated is True
    assert highlight_input_from_item({"text": "   "}) is None
    assert highlight_input_from_item({"serviceArea": "Website"}) is None


def test_highlight_id_format() -> None:
    highlight_id = generate_highlight_id(now_ms=1700000000000)
    assert re.fullmatch(r"1700000000000-[0-9a-z]{7}", highlight_id)
    assert generate_highlight_id() != generate_highlight_id()


def test_metric_signal_id_format() -> None:
    assert re.fullmatch(r"metric-1700000000000-[0-9a-z]{7}", generate_metric_signal_id(now_ms=1700000000000))
