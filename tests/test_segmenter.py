"""Tests for script segmentation prompt, reply parsing and the Anthropic client."""

from __future__ import annotations

import json

import httpx
import pytest

from conftest import FakeProviders, make_settings
from voiceover.errors import (
    ConfigurationError,
    SegmentationParseError,
    SegmentationShapeError,
    UpstreamError,
)
from voiceover.services.segmenter import (
    SEGMENTATION_INSTRUCTIONS,
    ScriptSegmenter,
    build_segmentation_prompt,
    parse_segments,
    strip_code_fences,
)


def test_prompt_appends_text_verbatim():
    text = "  Line one.\n\nLine two with ```ticks``` \n"
    prompt = build_segmentation_prompt(text)

    assert prompt.startswith(SEGMENTATION_INSTRUCTIONS)
    assert prompt.endswith("Text to split:\n" + text)


def test_instructions_keep_core_rules():
    assert "NEVER split mid-sentence" in SEGMENTATION_INSTRUCTIONS
    assert "NEVER separate a question from its answer" in SEGMENTATION_INSTRUCTIONS
    assert "NEVER split a list across chunks" in SEGMENTATION_INSTRUCTIONS
    assert "Better to have fewer, longer chunks than many choppy ones" in SEGMENTATION_INSTRUCTIONS
    assert "Return ONLY a raw JSON array of strings" in SEGMENTATION_INSTRUCTIONS


@pytest.mark.parametrize(
    "reply",
    [
        '```json\n["a", "b"]\n```',
        '```\n["a", "b"]\n```',
        '  ```json\n["a", "b"]```  ',
        '["a", "b"]',
    ],
)
def test_fenced_reply_parses_like_unwrapped(reply):
    assert parse_segments(reply) == parse_segments('["a", "b"]') == ["a", "b"]


def test_strip_code_fences_is_idempotent():
    fenced = '```json\n["Hello world.", "Second"]\n```'
    once = strip_code_fences(fenced)

    assert once == '["Hello world.", "Second"]'
    assert strip_code_fences(once) == once


def test_strip_code_fences_keeps_backticks_inside_strings():
    reply = '```json\n["use ``` fences", "b"]\n```'

    assert parse_segments(reply) == ["use ``` fences", "b"]


def test_invalid_json_raises_parse_error():
    with pytest.raises(SegmentationParseError) as exc_info:
        parse_segments("Sure! Here are your chunks: one, two")

    assert exc_info.value.status_code == 500


@pytest.mark.parametrize(
    "reply",
    ['{"chunks": ["a"]}', '"just a string"', "42", "null", "true"],
)
def test_non_array_raises_shape_error(reply):
    with pytest.raises(SegmentationShapeError):
        parse_segments(reply)


def test_non_string_element_raises_shape_error():
    with pytest.raises(SegmentationShapeError) as exc_info:
        parse_segments('["ok", 3]')

    assert "Element 1" in str(exc_info.value.details)


def test_blank_elements_are_dropped_and_order_kept():
    assert parse_segments('["first", "  ", "second", ""]') == ["first", "second"]


def test_all_blank_reply_raises_shape_error():
    with pytest.raises(SegmentationShapeError):
        parse_segments("[]")


@pytest.mark.asyncio
async def test_segment_sends_single_messages_request(tmp_path):
    providers = FakeProviders()
    providers.llm_reply = '```json\n["Hello world.", "This is a test."]\n```'
    segmenter = ScriptSegmenter(make_settings(tmp_path), providers.http_client())

    chunks = await segmenter.segment("Hello world. This is a test.")

    assert chunks == ["Hello world.", "This is a test."]
    assert len(providers.llm_requests) == 1
    payload = providers.llm_requests[0]
    assert payload["model"] == "claude-haiku-4-5-20251001"
    assert payload["max_tokens"] == 4096
    assert payload["messages"] == [
        {
            "role": "user",
            "content": build_segmentation_prompt("Hello world. This is a test."),
        }
    ]


@pytest.mark.asyncio
async def test_segment_sends_anthropic_headers(tmp_path):
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"content": [{"type": "text", "text": '["x"]'}]})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    segmenter = ScriptSegmenter(make_settings(tmp_path), client)

    await segmenter.segment("x")

    request = seen[0]
    assert str(request.url) == "https://api.anthropic.com/v1/messages"
    assert request.headers["x-api-key"] == "anthropic-test-key"
    assert request.headers["anthropic-version"] == "2023-06-01"


@pytest.mark.asyncio
async def test_segment_http_error_raises_upstream_error(tmp_path):
    providers = FakeProviders()
    providers.llm_status = 529
    segmenter = ScriptSegmenter(make_settings(tmp_path), providers.http_client())

    with pytest.raises(UpstreamError) as exc_info:
        await segmenter.segment("Some text.")

    assert exc_info.value.provider_status == 529
    assert exc_info.value.details == "overloaded"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_segment_transport_error_raises_upstream_error(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    segmenter = ScriptSegmenter(make_settings(tmp_path), client)

    with pytest.raises(UpstreamError) as exc_info:
        await segmenter.segment("Some text.")

    assert exc_info.value.provider_status is None


@pytest.mark.asyncio
async def test_segment_reply_without_text_is_parse_error(tmp_path):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"content": []})

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    segmenter = ScriptSegmenter(make_settings(tmp_path), client)

    with pytest.raises(SegmentationParseError):
        await segmenter.segment("Some text.")


@pytest.mark.asyncio
async def test_segment_without_key_fails_before_request(tmp_path):
    providers = FakeProviders()
    segmenter = ScriptSegmenter(
        make_settings(tmp_path, anthropic_api_key=None), providers.http_client()
    )

    with pytest.raises(ConfigurationError):
        await segmenter.segment("Some text.")

    assert providers.llm_requests == []


def test_error_detail_prefers_provider_message():
    raw = json.dumps({"type": "error", "error": {"message": "invalid x-api-key"}}).encode()

    assert ScriptSegmenter._extract_error_detail(raw) == "invalid x-api-key"
    assert ScriptSegmenter._extract_error_detail(b"plain failure") == "plain failure"
