import pytest

from muve.agents.evaluation.tools import (
    flatten_triggers,
    parse_batch_response,
    parse_locator,
    parse_score_response,
    parse_triggers,
    unwrap_code_fence,
)
from muve.errors import VisionResponseError


# ── unwrap_code_fence ────────────────────────────────────

def test_unwrap_leaves_plain_text_alone():
    assert unwrap_code_fence('{"score": 5}') == '{"score": 5}'


def test_unwrap_removes_tagged_fence():
    assert unwrap_code_fence('```json\n{"score": 5}\n```') == '{"score": 5}'


def test_unwrap_removes_untagged_fence():
    assert unwrap_code_fence("```\n[1, 2]\n```") == "[1, 2]"


def test_unwrap_removes_only_one_layer():
    once = unwrap_code_fence("```\n```json\n{}\n```\n```")
    assert once == "```json\n{}\n```"
    assert unwrap_code_fence(once) == "{}"


def test_unwrap_extracts_single_block_after_prose():
    text = 'Here you go:\n```json\n{"a": 1}\n```'
    assert unwrap_code_fence(text) == '{"a": 1}'
    assert unwrap_code_fence('```json\n{"a": 1}\n```\nHope this helps.') == '{"a": 1}'


def test_unwrap_leaves_several_blocks_alone():
    text = "First:\n```\n[1]\n```\nSecond:\n```\n[2]\n```"
    assert unwrap_code_fence(text) == text


def test_unwrap_ignores_inline_backticks():
    text = "Use ```json``` next time."
    assert unwrap_code_fence(text) == text


# ── parse_triggers / parse_locator ───────────────────────

def test_parse_triggers_none_token():
    assert parse_triggers("NONE") is None
    assert parse_triggers(" none ") is None
    assert parse_triggers("") is None
    assert parse_triggers(None) is None


def test_parse_triggers_splits_and_trims():
    assert parse_triggers("narrow doorway,  steep stairs ,") == ["narrow doorway", "steep stairs"]


def test_parse_triggers_accepts_list():
    assert parse_triggers(["loose rugs", "NONE"]) == ["loose rugs"]


def test_parse_locator():
    assert parse_locator([412, 230]) == (412.0, 230.0)
    assert parse_locator(None) is None
    assert parse_locator([1]) is None
    assert parse_locator(["a", "b"]) is None


# ── parse_batch_response ─────────────────────────────────

def test_parse_batch_response_maps_in_order():
    response = """```json
[
  {"image": 1, "trigger_found": "NONE", "pixel_coordinates": null},
  {"image": 2, "trigger_found": "narrow doorway", "pixel_coordinates": [100, 200]}
]
```"""
    findings = parse_batch_response(response, ["https://img/1.jpg", "https://img/2.jpg"])
    assert [f.image_url for f in findings] == ["https://img/1.jpg", "https://img/2.jpg"]
    assert findings[0].triggers is None
    assert findings[1].triggers == ["narrow doorway"]
    assert findings[1].to_record() == {
        "image_url": "https://img/2.jpg",
        "triggers": ["narrow doorway"],
        "locator": [100.0, 200.0],
    }


def test_parse_batch_response_single_object_for_single_image():
    findings = parse_batch_response('{"trigger_found": "steps at entrance"}', ["https://img/1.jpg"])
    assert findings[0].triggers == ["steps at entrance"]


def test_parse_batch_response_rejects_count_mismatch():
    with pytest.raises(VisionResponseError):
        parse_batch_response('[{"trigger_found": "NONE"}]', ["a", "b"])


def test_parse_batch_response_rejects_non_json():
    with pytest.raises(VisionResponseError):
        parse_batch_response("I can see a lovely kitchen.", ["a"])


def test_flatten_triggers_keeps_duplicates_in_order():
    results = [
        {"image_url": "a", "triggers": ["stairs"]},
        {"image_url": "b", "triggers": None},
        {"image_url": "c", "triggers": ["stairs", "loose rugs"]},
    ]
    assert flatten_triggers(results) == ["stairs", "stairs", "loose rugs"]


# ── parse_score_response ─────────────────────────────────

def test_parse_score_response_fenced():
    result = parse_score_response('```json\n{"score": 72, "summary": "Two steps at the door."}\n```')
    assert result.score == 72
    assert result.summary == "Two steps at the door."


def test_parse_score_response_after_preamble():
    result = parse_score_response('Here you go:\n```json\n{"score": 80, "summary": "A single step at the porch."}\n```')
    assert result.score == 80
    assert result.summary == "A single step at the porch."


def test_parse_score_response_clamps_and_rounds():
    assert parse_score_response('{"score": 140, "summary": "s"}').score == 100
    assert parse_score_response('{"score": -3, "summary": "s"}').score == 0
    assert parse_score_response('{"score": "81.6", "summary": "s"}').score == 82


def test_parse_score_response_bad_score_keeps_summary():
    result = parse_score_response('{"score": "high", "summary": "Fine overall."}')
    assert result.score is None
    assert result.summary == "Fine overall."


def test_parse_score_response_unparseable_falls_back_to_raw():
    raw = "This home looks great for you!"
    result = parse_score_response(raw)
    assert result.score is None
    assert result.summary == raw


def test_parse_score_response_missing_summary_falls_back_to_raw():
    raw = '{"score": 50}'
    result = parse_score_response(raw)
    assert result.score is None
    assert result.summary == raw
