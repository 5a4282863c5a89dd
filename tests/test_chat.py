"""Tests for the chat handler's orchestration and error mapping."""

import pytest
from fakes import FakeBackend

from chat_proxy.backend import BackendError, BackendErrorKind
from chat_proxy.chat import ChatHandler, build_prompt, extract_message
from chat_proxy.config import ChatProxyConfig
from chat_proxy.errors import GENERIC_FAILURE_MESSAGE
from chat_proxy.limiter import RateLimiter


def _handler(
    config: ChatProxyConfig, backend: FakeBackend, max_requests: int = 10
) -> ChatHandler:
    limiter = RateLimiter(window_ms=60_000, max_requests=max_requests)
    return ChatHandler(config, limiter, backend)


def test_build_prompt_embeds_message_verbatim() -> None:
    prompt = build_prompt("  What is 2+2? {braces} ")
    assert prompt.startswith("You are a helpful, friendly, and knowledgeable AI assistant.")
    assert prompt.endswith("User message:   What is 2+2? {braces} ")


def test_extract_message() -> None:
    assert extract_message({"message": "hi", "extra": 1}) == "hi"
    assert extract_message({}) is None
    assert extract_message(["message"]) is None
    assert extract_message(None) is None


@pytest.mark.asyncio
async def test_success(test_config: ChatProxyConfig, api_key: str) -> None:
    backend = FakeBackend(reply="Hi there!")
    status, body = await _handler(test_config, backend).handle({"message": "Hello"}, "1.2.3.4")

    assert status == 200
    assert body == {"response": "Hi there!"}
    assert backend.prompts == [build_prompt("Hello")]


@pytest.mark.asyncio
async def test_untrimmed_message_forwarded(test_config: ChatProxyConfig, api_key: str) -> None:
    backend = FakeBackend()
    await _handler(test_config, backend).handle({"message": " hi "}, "1.2.3.4")

    assert backend.prompts[0].endswith("User message:  hi ")


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "body, reason",
    [
        ({}, "Message is required and must be a string"),
        ({"message": 42}, "Message is required and must be a string"),
        ("not an object", "Message is required and must be a string"),
        ({"message": "a" * 1001}, "Message too long. Please keep it under 1000 characters."),
        ({"message": ""}, "Message cannot be empty"),
        ({"message": "   "}, "Message cannot be empty"),
    ],
)
async def test_invalid_messages(
    test_config: ChatProxyConfig, api_key: str, body, reason: str
) -> None:
    backend = FakeBackend()
    status, payload = await _handler(test_config, backend).handle(body, "1.2.3.4")

    assert status == 400
    assert payload == {"error": reason}
    assert backend.calls == 0


@pytest.mark.asyncio
async def test_rate_limit_checked_before_validation(
    test_config: ChatProxyConfig, api_key: str
) -> None:
    """A rate-limited client gets 429 even when the message is invalid."""
    handler = _handler(test_config, FakeBackend(), max_requests=1)
    await handler.handle({"message": "first"}, "1.2.3.4")

    status, payload = await handler.handle({"message": ""}, "1.2.3.4")

    assert status == 429
    assert payload == {"error": "Too many requests. Please try again later."}


@pytest.mark.asyncio
async def test_invalid_requests_consume_quota(
    test_config: ChatProxyConfig, api_key: str
) -> None:
    handler = _handler(test_config, FakeBackend(), max_requests=2)
    await handler.handle({"message": ""}, "1.2.3.4")
    await handler.handle({"message": ""}, "1.2.3.4")

    status, _ = await handler.handle({"message": "Hello"}, "1.2.3.4")
    assert status == 429


@pytest.mark.asyncio
async def test_missing_api_key(test_config: ChatProxyConfig) -> None:
    backend = FakeBackend()
    status, payload = await _handler(test_config, backend).handle({"message": "Hello"}, "1.2.3.4")

    assert status == 500
    assert payload == {"error": "Server configuration error. Please contact administrator."}
    assert backend.calls == 0


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", ["", None])
async def test_empty_backend_reply(test_config: ChatProxyConfig, api_key: str, reply) -> None:
    status, payload = await _handler(test_config, FakeBackend(reply=reply)).handle(
        {"message": "Hello"}, "1.2.3.4"
    )

    assert status == 500
    assert payload == {"error": GENERIC_FAILURE_MESSAGE}


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "kind, status_code, message",
    [
        (BackendErrorKind.AUTH, 500, "Invalid API key configuration"),
        (BackendErrorKind.QUOTA, 503, "Service temporarily unavailable due to quota limits"),
        (BackendErrorKind.OTHER, 500, GENERIC_FAILURE_MESSAGE),
    ],
)
async def test_backend_errors_mapped(
    test_config: ChatProxyConfig,
    api_key: str,
    kind: BackendErrorKind,
    status_code: int,
    message: str,
) -> None:
    backend = FakeBackend(error=BackendError(kind, "provider said: secret detail"))
    status, payload = await _handler(test_config, backend).handle({"message": "Hello"}, "1.2.3.4")

    assert status == status_code
    assert payload == {"error": message}


@pytest.mark.asyncio
async def test_unexpected_backend_exception(test_config: ChatProxyConfig, api_key: str) -> None:
    backend = FakeBackend(error=RuntimeError("boom"))
    status, payload = await _handler(test_config, backend).handle({"message": "Hello"}, "1.2.3.4")

    assert status == 500
    assert payload == {"error": GENERIC_FAILURE_MESSAGE}


@pytest.mark.asyncio
async def test_internal_detail_is_logged_not_returned(
    test_config: ChatProxyConfig, api_key: str, caplog: pytest.LogCaptureFixture
) -> None:
    backend = FakeBackend(error=BackendError(BackendErrorKind.QUOTA, "QUOTA_EXCEEDED for project 42"))
    with caplog.at_level("INFO", logger="chat_proxy"):
        status, payload = await _handler(test_config, backend).handle({"message": "Hello"}, "1.2.3.4")

    assert status == 503
    assert "project 42" not in payload["error"]
    assert "QUOTA_EXCEEDED for project 42" in caplog.text
    assert "backend_quota_error" in caplog.text
