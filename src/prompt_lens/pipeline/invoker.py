"""Stage 2: one outbound call per request to a generative-model endpoint.

Two providers are supported: an OpenAI-compatible chat-completions endpoint
(through the ``openai`` SDK) and Gemini ``generateContent`` (plain httpx).
Both return the model's raw answer text. No retries are performed; a failed
call ends the request with ``UpstreamError``.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional, Protocol

import httpx
from openai import APIConnectionError, APIError, APIStatusError, AsyncOpenAI

from ..config_types import GenerationProfile
from ..settings import DEFAULT_GEMINI_BASE_URL, DEFAULT_OPENAI_BASE_URL, RuntimeSettings

logger = logging.getLogger(__name__)


class ConfigurationError(RuntimeError):
    """Raised when a provider credential is missing; no call is attempted."""


class UpstreamError(RuntimeError):
    """Raised when the provider call fails or returns an unusable envelope."""

    def __init__(self, message: str, *, status: Optional[int] = None, body: str = "") -> None:
        super().__init__(message)
        self.status = status
        self.body = body


class ModelInvoker(Protocol):
    async def complete(self, instruction: str, profile: GenerationProfile) -> str: ...


class _HttpInvoker:
    """Shared credential/transport handling for provider invokers."""

    provider = ""
    credential_name = ""

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str,
        timeout_seconds: float = 60.0,
        http_proxy: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout_seconds = timeout_seconds
        self.http_proxy = http_proxy
        self._transport = transport

    def _require_api_key(self) -> str:
        if not self.api_key:
            logger.error("%s credential missing (%s)", self.provider, self.credential_name)
            raise ConfigurationError(f"{self.credential_name} is not set")
        return self.api_key

    def _build_http_client(self) -> httpx.AsyncClient:
        transport = self._transport
        if transport is None and self.http_proxy:
            transport = httpx.AsyncHTTPTransport(proxy=self.http_proxy)
        return httpx.AsyncClient(
            transport=transport,
            timeout=httpx.Timeout(self.timeout_seconds),
        )


class OpenAIChatInvoker(_HttpInvoker):
    provider = "openai"
    credential_name = "OPENAI_API_KEY"

    def __init__(self, api_key: Optional[str], *, base_url: str = DEFAULT_OPENAI_BASE_URL, **kwargs):
        super().__init__(api_key, base_url=base_url, **kwargs)

    async def complete(self, instruction: str, profile: GenerationProfile) -> str:
        api_key = self._require_api_key()
        http_client = self._build_http_client()
        client = AsyncOpenAI(
            base_url=self.base_url,
            api_key=api_key,
            http_client=http_client,
            max_retries=0,
        )
        logger.info(
            "calling openai model=%s temperature=%s max_tokens=%s",
            profile.model,
            profile.temperature,
            profile.max_output_tokens,
        )
        try:
            response = await client.chat.completions.create(
                model=profile.model,
                messages=[{"role": "user", "content": instruction}],
                temperature=profile.temperature,
                max_tokens=profile.max_output_tokens,
            )
        except APIStatusError as exc:
            body = exc.response.text
            logger.error("openai API error: %s - %s", exc.status_code, body)
            raise UpstreamError(
                f"OpenAI API error: {exc.status_code}", status=exc.status_code, body=body
            ) from exc
        except APIConnectionError as exc:
            logger.error("openai request failed: %s", exc)
            raise UpstreamError(f"OpenAI request failed: {exc}", body=str(exc)) from exc
        except (APIError, ValueError) as exc:
            logger.error("invalid response structure from openai: %s", exc)
            raise UpstreamError(
                "Invalid response structure from OpenAI API",
                status=getattr(exc, "status_code", None),
                body=str(exc),
            ) from exc
        finally:
            await http_client.aclose()
        return _chat_completion_text(response)


class GeminiInvoker(_HttpInvoker):
    provider = "gemini"
    credential_name = "GEMINI_API_KEY"

    def __init__(self, api_key: Optional[str], *, base_url: str = DEFAULT_GEMINI_BASE_URL, **kwargs):
        super().__init__(api_key, base_url=base_url, **kwargs)

    async def complete(self, instruction: str, profile: GenerationProfile) -> str:
        api_key = self._require_api_key()
        url = f"{self.base_url}/models/{profile.model}:generateContent"
        payload = {
            "contents": [{"parts": [{"text": instruction}]}],
            "generationConfig": {
                "temperature": profile.temperature,
                "maxOutputTokens": profile.max_output_tokens,
            },
        }
        logger.info(
            "calling gemini model=%s temperature=%s max_tokens=%s",
            profile.model,
            profile.temperature,
            profile.max_output_tokens,
        )
        async with self._build_http_client() as client:
            try:
                response = await client.post(
                    url, json=payload, headers={"x-goog-api-key": api_key}
                )
            except httpx.HTTPError as exc:
                logger.error("gemini request failed: %s", exc)
                raise UpstreamError(f"Gemini request failed: {exc}", body=str(exc)) from exc

        logger.info("gemini response status=%s", response.status_code)
        if not response.is_success:
            logger.error("gemini API error: %s - %s", response.status_code, response.text)
            raise UpstreamError(
                f"Gemini API error: {response.status_code} - {response.text}",
                status=response.status_code,
                body=response.text,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise UpstreamError(
                "Invalid response structure from Gemini API",
                status=response.status_code,
                body=response.text,
            ) from exc
        return _gemini_text(data, status=response.status_code, body=response.text)


def _chat_completion_text(response: Any) -> str:
    choices = getattr(response, "choices", None)
    if not choices:
        raise UpstreamError("Invalid response structure from OpenAI API: missing choices")
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None) if message else None
    if not content:
        raise UpstreamError("Invalid response structure from OpenAI API: missing content")
    return content


def _gemini_text(data: Any, *, status: Optional[int], body: str) -> str:
    """Read ``candidates[0].content.parts[0].text`` from a Gemini envelope."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        text = None
    if not isinstance(text, str) or not text:
        logger.error("invalid response structure from gemini: %s", body)
        raise UpstreamError(
            "Invalid response structure from Gemini API", status=status, body=body
        )
    logger.debug("gemini content length=%s", len(text))
    return text


def build_invoker(
    provider: str,
    settings: RuntimeSettings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> ModelInvoker:
    """Construct the invoker for a provider with credentials injected from settings."""

    common: Dict[str, Any] = {
        "timeout_seconds": settings.llm_timeout_seconds,
        "http_proxy": settings.http_proxy,
        "transport": transport,
    }
    if provider == "openai":
        return OpenAIChatInvoker(
            settings.openai_api_key, base_url=settings.openai_base_url, **common
        )
    if provider == "gemini":
        return GeminiInvoker(settings.gemini_api_key, base_url=settings.gemini_base_url, **common)
    raise ValueError(f"unknown provider `{provider}`")
