from __future__ import annotations

import json

from halalmap.chat.extraction import extract_model_json

REPLY = {"filter": {"cuisine_subtype": "Ramen", "keyword": "Shinjuku"}, "message": "Here you go!"}


def test_plain_json():
    assert extract_model_json(json.dumps(REPLY)) == REPLY


def test_prose_before_json():
    text = "Let me think about what the user wants... they'd like ramen.\n\n" + json.dumps(REPLY)
    assert extract_model_json(text) == REPLY


def test_code_fence():
    text = "```json\n" + json.dumps(REPLY, indent=2) + "\n```"
    assert extract_model_json(text) == REPLY


def test_prefers_last_reply_object():
    draft = {"filter": {}, "message": "draft"}
    text = f"First try: {json.dumps(draft)}\nFinal answer: {json.dumps(REPLY)}"
    assert extract_model_json(text) == REPLY


def test_braces_inside_strings():
    reply = {"filter": {}, "message": "Try the {special} set menu"}
    assert extract_model_json("Sure! " + json.dumps(reply)) == reply


def test_returns_outer_object_not_nested_filter():
    assert extract_model_json("Answer: " + json.dumps(REPLY))["message"] == "Here you go!"


def test_json_without_expected_keys_is_rejected():
    assert extract_model_json('{"foo": 1}') is None


def test_no_json():
    assert extract_model_json("I'm not sure what you mean.") is None


def test_empty_and_none():
    assert extract_model_json("") is None
    assert extract_model_json(None) is None


def test_truncated_json():
    assert extract_model_json('{"filter": {"cuisine_subtype": "Ramen"}, "message": "Here') is None
