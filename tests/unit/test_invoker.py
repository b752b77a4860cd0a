"""Unit tests for the chat-completion provider invoker.

The aiohttp session is replaced by MagicMock objects; no network access.
"""

import asyncio
import base64
import json
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from fridgechef.models.models import ErrorKind, ProviderCandidate, TaskKind, TaskPayload
from fridgechef.providers.invoker import (
    ChatCompletionInvoker,
    build_messages,
    classify_response,
    is_quota_exhausted_error,
    to_image_url,
)

CANDIDATE = ProviderCandidate(backend_id="meta-llama/llama-3.3-70b-instruct:free", task_kind=TaskKind.TEXT)


def make_session(status=200, body=None, json_side_effect=None):
    """Build a MagicMock session whose post() is an async context manager."""
    response = MagicMock()
    response.status = status
    response.json = AsyncMock(return_value=body, side_effect=json_side_effect)
    session = MagicMock()
    session.post.return_value.__aenter__.return_value = response
    return session


def completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class TestIsQuotaExhaustedError:
    """Test quota marker detection."""

    @pytest.mark.parametrize(
        "message",
        [
            "Rate limit exceeded: free-models-per-day. Add 10 credits to unlock 1000 free model requests per day",
            "You exceeded your current quota, please check your plan (insufficient_quota)",
            "Daily limit reached for this key",
        ],
    )
    def test_default_patterns_match(self, message):
        assert is_quota_exhausted_error(message) is True

    @pytest.mark.parametrize("message", [None, "", "Provider returned error", "Rate limit exceeded, retry shortly"])
    def test_non_quota_messages(self, message):
        assert is_quota_exhausted_error(message) is False

    def test_custom_patterns(self):
        assert is_quota_exhausted_error("Monthly Cap hit", patterns=["monthly cap"]) is True
        assert is_quota_exhausted_error("free-models-per-day", patterns=["monthly cap"]) is False

    def test_patterns_follow_config(self, monkeypatch):
        from fridgechef.utils.config import config

        monkeypatch.setattr(config, "QUOTA_ERROR_PATTERNS", ["plan exhausted"])
        assert is_quota_exhausted_error("Your PLAN EXHAUSTED today") is True
        assert is_quota_exhausted_error("free-models-per-day") is False


class TestToImageUrl:
    """Test image_url construction."""

    def test_data_uri_unchanged(self):
        uri = "data:image/png;base64,iVBORw0KGgo="
        assert to_image_url(uri) == uri

    def test_http_url_unchanged(self):
        assert to_image_url("https://example.com/fridge.jpg") == "https://example.com/fridge.jpg"

    def test_plain_base64_png_sniffed(self):
        encoded = base64.b64encode(b"\x89PNG\r\n\x1a\n" + b"\x00" * 40).decode()
        assert to_image_url(encoded) == f"data:image/png;base64,{encoded}"

    def test_plain_base64_jpeg_sniffed(self):
        encoded = base64.b64encode(b"\xff\xd8\xff\xe0\x00\x10JFIF" + b"\x00" * 38).decode()
        assert to_image_url(encoded).startswith("data:image/jpeg;base64,")

    def test_undecodable_defaults_to_jpeg(self):
        assert to_image_url("abc") == "data:image/jpeg;base64,abc"


class TestBuildMessages:
    """Test request framing."""

    def test_text_payload(self):
        messages = build_messages(TaskPayload(prompt="Make soup", system_prompt="You are a chef"))
        assert messages == [
            {"role": "system", "content": "You are a chef"},
            {"role": "user", "content": "Make soup"},
        ]

    def test_vision_payload(self):
        payload = TaskPayload(prompt="What is in the fridge?", image_data="https://example.com/f.jpg")
        messages = build_messages(payload)
        assert len(messages) == 1
        content = messages[0]["content"]
        assert content[0] == {"type": "text", "text": "What is in the fridge?"}
        assert content[1] == {"type": "image_url", "image_url": {"url": "https://example.com/f.jpg"}}


class TestClassifyResponse:
    """Test success / retryable / fatal classification."""

    def test_success(self):
        outcome = classify_response(200, completion("[]"), CANDIDATE)
        assert outcome.ok
        assert outcome.value == "[]"

    def test_null_content_is_empty_string(self):
        outcome = classify_response(200, completion(None), CANDIDATE)
        assert outcome.ok
        assert outcome.value == ""

    def test_content_parts_flattened(self):
        body = completion([{"type": "text", "text": "[{"}, {"type": "text", "text": '"name":"Egg"}]'}])
        assert classify_response(200, body, CANDIDATE).value == '[{"name":"Egg"}]'

    def test_quota_error_is_fatal(self):
        body = {"error": {"message": "Rate limit exceeded: free-models-per-day", "code": 429}}
        outcome = classify_response(429, body, CANDIDATE)
        assert outcome.error_kind == ErrorKind.QUOTA_EXHAUSTED
        assert outcome.is_fatal

    def test_quota_marker_in_metadata_raw(self):
        body = {"error": {"message": "Provider returned error", "metadata": {"raw": "insufficient_quota"}}}
        assert classify_response(429, body, CANDIDATE).error_kind == ErrorKind.QUOTA_EXHAUSTED

    def test_other_error_is_retryable(self):
        body = {"error": {"message": "No endpoints found for this model", "code": 404}}
        outcome = classify_response(404, body, CANDIDATE)
        assert outcome.error_kind == ErrorKind.PROVIDER_UNAVAILABLE
        assert not outcome.is_fatal
        assert "No endpoints found" in outcome.message

    def test_error_in_200_body_is_retryable(self):
        outcome = classify_response(200, {"error": {"message": "upstream overloaded"}}, CANDIDATE)
        assert outcome.error_kind == ErrorKind.PROVIDER_UNAVAILABLE

    def test_non_2xx_without_error_body(self):
        assert classify_response(503, None, CANDIDATE).error_kind == ErrorKind.PROVIDER_UNAVAILABLE

    @pytest.mark.parametrize("body", [{}, {"choices": []}, {"choices": [{}]}, {"choices": [{"message": "x"}]}, []])
    def test_malformed_success_body(self, body):
        assert classify_response(200, body, CANDIDATE).error_kind == ErrorKind.PROVIDER_UNAVAILABLE


class TestChatCompletionInvoker:
    """Test the HTTP call itself."""

    @pytest.mark.asyncio
    async def test_success_returns_content(self):
        session = make_session(body=completion('{"title": "Soup"}'))
        invoker = ChatCompletionInvoker(api_key="sk-test", base_url="https://llm.example/v1/", session=session)

        outcome = await invoker.invoke(CANDIDATE, TaskPayload(prompt="Make soup", max_tokens=500))

        assert outcome.ok
        assert outcome.value == '{"title": "Soup"}'
        args, kwargs = session.post.call_args
        assert args[0] == "https://llm.example/v1/chat/completions"
        assert kwargs["headers"]["Authorization"] == "Bearer sk-test"
        assert kwargs["json"]["model"] == CANDIDATE.backend_id
        assert kwargs["json"]["max_tokens"] == 500
        assert kwargs["json"]["messages"][-1] == {"role": "user", "content": "Make soup"}

    @pytest.mark.asyncio
    async def test_timeout_is_retryable(self):
        session = MagicMock()
        session.post.side_effect = asyncio.TimeoutError()
        invoker = ChatCompletionInvoker(api_key="k", timeout_seconds=5, session=session)

        outcome = await invoker.invoke(CANDIDATE, TaskPayload(prompt="x"))

        assert outcome.error_kind == ErrorKind.PROVIDER_UNAVAILABLE
        assert "Timed out after 5s" in outcome.message

    @pytest.mark.asyncio
    async def test_transport_error_is_retryable(self):
        session = MagicMock()
        session.post.side_effect = aiohttp.ClientConnectionError("connection reset")
        invoker = ChatCompletionInvoker(api_key="k", session=session)

        outcome = await invoker.invoke(CANDIDATE, TaskPayload(prompt="x"))

        assert outcome.error_kind == ErrorKind.PROVIDER_UNAVAILABLE
        assert "connection reset" in outcome.message

    @pytest.mark.asyncio
    async def test_undecodable_body_is_retryable(self):
        session = make_session(status=502, json_side_effect=json.JSONDecodeError("Expecting value", "<html>", 0))
        invoker = ChatCompletionInvoker(api_key="k", session=session)

        outcome = await invoker.invoke(CANDIDATE, TaskPayload(prompt="x"))

        assert outcome.error_kind == ErrorKind.PROVIDER_UNAVAILABLE

    @pytest.mark.asyncio
    async def test_quota_error_is_fatal(self):
        session = make_session(status=429, body={"error": {"message": "Rate limit exceeded: free-models-per-day"}})
        invoker = ChatCompletionInvoker(api_key="k", session=session)

        outcome = await invoker.invoke(CANDIDATE, TaskPayload(prompt="x"))

        assert outcome.error_kind == ErrorKind.QUOTA_EXHAUSTED

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self):
        session = MagicMock()
        session.post.side_effect = asyncio.CancelledError()
        invoker = ChatCompletionInvoker(api_key="k", session=session)

        with pytest.raises(asyncio.CancelledError):
            await invoker.invoke(CANDIDATE, TaskPayload(prompt="x"))

    @pytest.mark.asyncio
    async def test_opens_own_session_when_none_given(self):
        session = make_session(body=completion("ok"))
        session_cm = MagicMock()
        session_cm.__aenter__.return_value = session

        with patch("fridgechef.providers.invoker.aiohttp.ClientSession", return_value=session_cm) as client_session:
            outcome = await ChatCompletionInvoker(api_key="k").invoke(CANDIDATE, TaskPayload(prompt="x"))

        client_session.assert_called_once()
        assert outcome.value == "ok"
