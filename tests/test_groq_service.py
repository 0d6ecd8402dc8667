"""Tests for the Groq text generation service."""

import asyncio
from types import SimpleNamespace

import httpx
from groq import APIConnectionError, APIStatusError, APITimeoutError

from app.services.ai.groq_service import ERROR_PREVIEW_CHARS, GroqService

MESSAGES = [{"role": "user", "content": "Tell me a story"}]
REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


class FakeCompletions:
    """Records create() calls and answers with a canned response or error."""

    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _reply(text):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=text))],
        usage=SimpleNamespace(total_tokens=42),
    )


def test_missing_key_skips_the_call():
    service = GroqService(api_key="")

    assert service.is_configured is False
    assert asyncio.run(service.generate_chat(MESSAGES)) == ""
    assert service._client is None


def test_successful_reply_is_stripped():
    completions = FakeCompletions(response=_reply("  Once upon a time.  "))
    service = GroqService(api_key="", model="test-model", client=_client(completions))

    text = asyncio.run(service.generate_chat(MESSAGES, max_tokens=1600))

    assert text == "Once upon a time."
    assert completions.calls[0]["model"] == "test-model"
    assert completions.calls[0]["max_tokens"] == 1600
    assert completions.calls[0]["messages"] == MESSAGES


def test_model_override_is_used():
    completions = FakeCompletions(response=_reply("ok"))
    service = GroqService(api_key="key", client=_client(completions))

    asyncio.run(service.generate_chat(MESSAGES, model="other-model"))

    assert completions.calls[0]["model"] == "other-model"


def test_status_error_logs_status_and_bounded_preview(caplog):
    body = "x" * (ERROR_PREVIEW_CHARS * 3)
    error = APIStatusError(
        "rate limited",
        response=httpx.Response(429, text=body, request=REQUEST),
        body=None,
    )
    service = GroqService(api_key="key", client=_client(FakeCompletions(error=error)))

    assert asyncio.run(service.generate_chat(MESSAGES)) == ""
    assert "status=429" in caplog.text
    assert "x" * ERROR_PREVIEW_CHARS in caplog.text
    assert "x" * (ERROR_PREVIEW_CHARS + 1) not in caplog.text


def test_timeout_returns_empty(caplog):
    service = GroqService(
        api_key="key",
        timeout=3,
        client=_client(FakeCompletions(error=APITimeoutError(request=REQUEST))),
    )

    assert asyncio.run(service.generate_chat(MESSAGES)) == ""
    assert "timed out" in caplog.text


def test_connection_error_returns_empty():
    error = APIConnectionError(request=REQUEST)
    service = GroqService(api_key="key", client=_client(FakeCompletions(error=error)))

    assert asyncio.run(service.generate_chat(MESSAGES)) == ""


def test_malformed_response_returns_empty(caplog):
    response = SimpleNamespace(choices=[], usage=None)
    service = GroqService(api_key="key", client=_client(FakeCompletions(response=response)))

    assert asyncio.run(service.generate_chat(MESSAGES)) == ""
    assert "Malformed Groq response" in caplog.text


def test_null_content_returns_empty():
    service = GroqService(api_key="key", client=_client(FakeCompletions(response=_reply(None))))

    assert asyncio.run(service.generate_chat(MESSAGES)) == ""
