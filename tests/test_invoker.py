import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from prompt_lens.config_types import GenerationProfile
from prompt_lens.pipeline.invoker import (
    ConfigurationError,
    GeminiInvoker,
    OpenAIChatInvoker,
    UpstreamError,
    build_invoker,
)
from prompt_lens.settings import load_runtime_settings

GEMINI_PROFILE = GenerationProfile(
    provider="gemini", model="gemini-1.5-flash", temperature=0.7, max_output_tokens=500
)
OPENAI_PROFILE = GenerationProfile(
    provider="openai", model="gpt-4o-mini", temperature=0.3, max_output_tokens=500
)


def _gemini_envelope(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def test_gemini_invoker_posts_generation_config() -> None:
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json=_gemini_envelope('{"usecases": []}'))

    invoker = GeminiInvoker(
        "gm-key", base_url="https://gemini.test/v1beta", transport=httpx.MockTransport(handler)
    )
    text = asyncio.run(invoker.complete("Generate ideas", GEMINI_PROFILE))

    assert text == '{"usecases": []}'
    (request,) = seen
    assert request.url.path == "/v1beta/models/gemini-1.5-flash:generateContent"
    assert request.headers["x-goog-api-key"] == "gm-key"
    body = json.loads(request.content)
    assert body["contents"][0]["parts"][0]["text"] == "Generate ideas"
    assert body["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 500}


def test_gemini_error_status_raises_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, text="internal failure")

    invoker = GeminiInvoker("gm-key", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(invoker.complete("x", GEMINI_PROFILE))
    assert excinfo.value.status == 500
    assert excinfo.value.body == "internal failure"
    assert "500" in str(excinfo.value)


def test_gemini_envelope_without_text_is_invalid() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    invoker = GeminiInvoker("gm-key", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(invoker.complete("x", GEMINI_PROFILE))
    assert excinfo.value.status == 200
    assert "Invalid response structure" in str(excinfo.value)


def test_gemini_transport_failure_raises_upstream_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    invoker = GeminiInvoker("gm-key", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(invoker.complete("x", GEMINI_PROFILE))
    assert excinfo.value.status is None


def test_missing_credentials_raise_before_any_call() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200, json=_gemini_envelope("unused"))

    transport = httpx.MockTransport(handler)
    with pytest.raises(ConfigurationError):
        asyncio.run(GeminiInvoker(None, transport=transport).complete("x", GEMINI_PROFILE))
    with pytest.raises(ConfigurationError):
        asyncio.run(OpenAIChatInvoker("", transport=transport).complete("x", OPENAI_PROFILE))
    assert calls == []


@patch("prompt_lens.pipeline.invoker.AsyncOpenAI")
@patch("prompt_lens.pipeline.invoker.httpx.AsyncClient")
@patch("prompt_lens.pipeline.invoker.httpx.AsyncHTTPTransport")
def test_openai_invoker_calls_chat_completions(mock_transport, mock_httpx_client, mock_openai):
    transport_instance = MagicMock()
    mock_transport.return_value = transport_instance
    http_client = MagicMock()
    http_client.aclose = AsyncMock()
    mock_httpx_client.return_value = http_client
    client_instance = MagicMock()
    mock_openai.return_value = client_instance
    client_instance.chat.completions.create = AsyncMock(
        return_value=MagicMock(choices=[MagicMock(message=MagicMock(content='{"match": "Yes"}'))])
    )

    invoker = OpenAIChatInvoker(
        "sk-test",
        base_url="https://api.example.com/v1",
        timeout_seconds=12.0,
        http_proxy="http://proxy.local:8080",
    )
    result = asyncio.run(invoker.complete("Evaluate this", OPENAI_PROFILE))

    assert result == '{"match": "Yes"}'
    mock_transport.assert_called_once_with(proxy="http://proxy.local:8080")
    _, kwargs = mock_httpx_client.call_args
    assert kwargs["transport"] is transport_instance
    assert kwargs["timeout"].connect == 12.0
    mock_openai.assert_called_once_with(
        base_url="https://api.example.com/v1",
        api_key="sk-test",
        http_client=http_client,
        max_retries=0,
    )
    client_instance.chat.completions.create.assert_awaited_once_with(
        model="gpt-4o-mini",
        messages=[{"role": "user", "content": "Evaluate this"}],
        temperature=0.3,
        max_tokens=500,
    )
    http_client.aclose.assert_awaited_once()


def test_openai_error_status_raises_upstream_error() -> None:
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(500, json={"error": {"message": "boom"}})

    invoker = OpenAIChatInvoker(
        "sk-test", base_url="https://openai.test/v1", transport=httpx.MockTransport(handler)
    )
    with pytest.raises(UpstreamError) as excinfo:
        asyncio.run(invoker.complete("x", OPENAI_PROFILE))
    assert excinfo.value.status == 500
    assert "boom" in excinfo.value.body
    assert len(calls) == 1


def test_openai_missing_content_is_invalid() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "id": "cmpl-1",
                "object": "chat.completion",
                "created": 0,
                "model": "gpt-4o-mini",
                "choices": [],
            },
        )

    invoker = OpenAIChatInvoker("sk-test", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError, match="missing choices"):
        asyncio.run(invoker.complete("x", OPENAI_PROFILE))


def test_openai_undecodable_body_is_invalid() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"content-type": "application/json"},
            content=b"<html>gateway</html>",
        )

    invoker = OpenAIChatInvoker("sk-test", transport=httpx.MockTransport(handler))
    with pytest.raises(UpstreamError, match="Invalid response structure from OpenAI API"):
        asyncio.run(invoker.complete("x", OPENAI_PROFILE))


def test_build_invoker_injects_credentials(monkeypatch) -> None:
    monkeypatch.setenv("OPENAI_API_KEY", "sk-env")
    monkeypatch.setenv("GEMINI_API_KEY", "gm-env")
    settings = load_runtime_settings()
    openai_invoker = build_invoker("openai", settings)
    gemini_invoker = build_invoker("gemini", settings)
    assert isinstance(openai_invoker, OpenAIChatInvoker)
    assert openai_invoker.api_key == "sk-env"
    assert isinstance(gemini_invoker, GeminiInvoker)
    assert gemini_invoker.api_key == "gm-env"
    with pytest.raises(ValueError):
        build_invoker("unknown", settings)
