"""Tests for LLM summaries."""

from types import SimpleNamespace
from unittest.mock import Mock, patch

import anthropic
import httpx
import pytest

from ytx.config import Config
from ytx.summarizer import (
    SummaryError,
    build_user_message,
    extract_anthropic_text,
    extract_openai_text,
    is_anthropic_model,
    summarize,
)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"


def text_block(text):
    return SimpleNamespace(type="text", text=text)


def message(*blocks):
    return SimpleNamespace(content=list(blocks))


def anthropic_status_error(status, body="error"):
    request = httpx.Request("POST", ANTHROPIC_URL)
    response = httpx.Response(status, request=request, text=body)
    return anthropic.APIStatusError(f"Error code: {status}", response=response, body=None)


def anthropic_client(side_effect):
    client = Mock()
    client.messages.create = Mock(side_effect=side_effect)
    return client


class TestHelpers:

    @pytest.mark.parametrize("model,expected", [
        ("claude-sonnet-4-6", True),
        ("gpt-4o-mini", False),
    ])
    def test_provider_routing(self, model, expected):
        assert is_anthropic_model(model) is expected

    def test_user_message(self, sample_transcript):
        message_text = build_user_message(sample_transcript)

        assert '"Test Video"' in message_text
        assert message_text.endswith("Hello world This is a test")

    def test_anthropic_text(self):
        data = message(text_block("Sum"), SimpleNamespace(type="tool_use"), text_block("mary"))
        assert extract_anthropic_text(data) == "Summary"

    @pytest.mark.parametrize("data", [
        SimpleNamespace(),
        message(),
        SimpleNamespace(content="text"),
        None,
    ])
    def test_anthropic_unexpected(self, data):
        with pytest.raises(SummaryError):
            extract_anthropic_text(data)

    def test_openai_text(self):
        assert extract_openai_text({"choices": [{"message": {"content": "Summary"}}]}) == "Summary"

    @pytest.mark.parametrize("data", [{}, {"choices": []}, {"choices": [{"message": {"content": None}}]}])
    def test_openai_unexpected(self, data):
        with pytest.raises(SummaryError):
            extract_openai_text(data)


class TestSummarize:

    def test_anthropic(self, sample_transcript):
        client = anthropic_client([message(text_block("Short"))])

        assert summarize(sample_transcript, "claude-sonnet-4-6", anthropic_client=client) == "Short"

        kwargs = client.messages.create.call_args.kwargs
        assert kwargs["model"] == "claude-sonnet-4-6"
        assert kwargs["max_tokens"] == 4096
        assert kwargs["messages"][0]["role"] == "user"
        assert "Hello world" in kwargs["messages"][0]["content"]

    def test_anthropic_builds_sdk_client(self, sample_transcript, monkeypatch):
        monkeypatch.setattr(Config, "ANTHROPIC_API_KEY", "sk-ant-test")
        with patch("ytx.summarizer.anthropic.Anthropic") as sdk:
            sdk.return_value.messages.create.return_value = message(text_block("Short"))
            assert summarize(sample_transcript, "claude-sonnet-4-6") == "Short"

        assert sdk.call_args.kwargs["api_key"] == "sk-ant-test"

    def test_anthropic_missing_key(self, sample_transcript):
        with patch("ytx.summarizer.anthropic.Anthropic") as sdk:
            with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
                summarize(sample_transcript, "claude-sonnet-4-6")
        sdk.assert_not_called()

    def test_anthropic_client_error_not_retried(self, sample_transcript):
        client = anthropic_client([anthropic_status_error(401, "invalid x-api-key")])

        with pytest.raises(SummaryError, match="401"):
            summarize(sample_transcript, "claude-sonnet-4-6", anthropic_client=client)
        assert client.messages.create.call_count == 1

    def test_anthropic_overloaded_is_retried(self, sample_transcript):
        client = anthropic_client([anthropic_status_error(529), message(text_block("Short"))])

        with patch("ytx.summarizer.time.sleep") as sleep:
            assert summarize(sample_transcript, "claude-sonnet-4-6", anthropic_client=client) == "Short"

        sleep.assert_called_once_with(1)

    def test_anthropic_connection_error(self, sample_transcript):
        error = anthropic.APIConnectionError(request=httpx.Request("POST", ANTHROPIC_URL))
        client = anthropic_client([error] * 3)

        with patch("ytx.summarizer.time.sleep"):
            with pytest.raises(SummaryError, match="APIConnectionError"):
                summarize(sample_transcript, "claude-sonnet-4-6", anthropic_client=client)
        assert client.messages.create.call_count == 3

    def test_openai(self, sample_transcript):
        client = Mock()
        client.chat.completions.create.return_value.model_dump.return_value = {
            "choices": [{"message": {"content": "OpenAI summary"}}]
        }

        assert summarize(sample_transcript, "gpt-4o-mini", client=client) == "OpenAI summary"
        assert client.chat.completions.create.call_args.kwargs["model"] == "gpt-4o-mini"

    def test_openai_missing_key(self, sample_transcript):
        with pytest.raises(ValueError, match="OPENAI_API_KEY"):
            summarize(sample_transcript, "gpt-4o-mini")
