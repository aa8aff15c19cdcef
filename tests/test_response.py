"""Tests for pixel result normalization."""

from __future__ import annotations

import pytest

from semoss_openai.errors import ConfigError, MessageValidationError, UpstreamError
from semoss_openai.response import (
    MODEL_LABEL,
    NO_RESPONSE,
    build_pixel,
    extract_output,
    format_response,
    raise_for_errors,
)
from tests.conftest import pixel_result


class TestExtractOutput:
    def test_object_output(self):
        result = pixel_result({"response": "hi", "numberOfTokensInResponse": 3})
        assert extract_output(result) == ("hi", 3)

    def test_object_output_without_token_count(self):
        assert extract_output(pixel_result({"response": "hi"})) == ("hi", 0)

    def test_string_output(self):
        assert extract_output(pixel_result("hi")) == ("hi", 0)

    @pytest.mark.parametrize(
        "result",
        [
            {},
            {"pixelReturn": []},
            {"pixelReturn": [{}]},
            {"pixelReturn": [{"output": None}]},
            {"pixelReturn": [{"output": {"response": ""}}]},
            {"pixelReturn": [{"output": 42}]},
        ],
    )
    def test_missing_output(self, result):
        assert extract_output(result) == (None, 0)


class TestFormatResponse:
    def test_envelope(self):
        resp = format_response(pixel_result({"response": "hi", "numberOfTokensInResponse": 3}))
        assert resp.id == "insight-1"
        assert resp.object == "chat.completion"
        assert resp.model == MODEL_LABEL
        assert resp.created > 0
        assert len(resp.choices) == 1
        choice = resp.choices[0]
        assert choice.index == 0
        assert choice.message.role == "assistant"
        assert choice.message.content == "hi"
        assert choice.finish_reason == "stop"
        assert resp.usage.prompt_tokens == 0
        assert resp.usage.completion_tokens == 3
        assert resp.usage.total_tokens == 3

    def test_placeholder_when_no_output(self):
        resp = format_response(pixel_result(None))
        assert resp.choices[0].message.content == NO_RESPONSE
        assert resp.usage.completion_tokens == 0

    def test_generated_id_without_insight(self):
        resp = format_response({"pixelReturn": [{"output": "hi"}]})
        assert resp.id.startswith("chatcmpl-")


class TestRaiseForErrors:
    def test_no_errors(self):
        raise_for_errors(pixel_result("hi"))
        raise_for_errors({"errors": None})

    def test_errors_are_joined(self):
        with pytest.raises(UpstreamError, match="bad engine, quota exceeded"):
            raise_for_errors(pixel_result(errors=["bad engine", "quota exceeded"]))


def test_build_pixel_embeds_engine_and_prompt():
    pixel = build_pixel("engine-1", "User: Hi")
    assert pixel == (
        'LLM(engine=["engine-1"], command=["<encode>User: Hi</encode>"], paramValues=[{}]);'
    )


class TestBuildPixelSafety:
    @pytest.mark.parametrize(
        "prompt",
        [
            'x</encode>"]);DeleteDatabase("abc");',
            "User: </ENCODE>",
            "User: </ encode >",
        ],
    )
    def test_closing_tag_in_prompt_is_rejected(self, prompt):
        with pytest.raises(MessageValidationError):
            build_pixel("engine-1", prompt)

    def test_opening_tag_and_quotes_are_kept(self):
        pixel = build_pixel("engine-1", 'User: say "<encode>" please')
        assert '<encode>User: say "<encode>" please</encode>' in pixel

    @pytest.mark.parametrize("engine_id", ['abc"]);Drop("x', "a b", "", "id\n"])
    def test_unsafe_engine_id_is_rejected(self, engine_id):
        with pytest.raises(ConfigError, match="Invalid engine id"):
            build_pixel(engine_id, "User: Hi")
