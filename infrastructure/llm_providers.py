"""Streaming adapters for upstream LLM providers.

Each adapter only knows its own wire format: how to build the request and how
to decode one line of the server-sent event stream into a DecodeResult. The
shared HTTP loop lives in HTTPStreamingProvider.
"""
import json
import logging
from abc import abstractmethod
from typing import Any, AsyncIterator, Dict, Optional, Tuple

import httpx

from config import settings
from core.domain import DecodeKind, DecodeResult, GenerationParams, UpstreamError
from core.interfaces import ILLMProvider

logger = logging.getLogger(settings.LOGGER_NAME)

MAX_ERROR_DETAIL = 500


def sse_data(line: str) -> Optional[str]:
    """Payload of an SSE `data:` line, or None for any other line."""
    line = line.strip()
    if not line.startswith("data:"):
        return None
    return line[len("data:"):].strip()


def load_json_payload(data: str) -> Tuple[Optional[Dict[str, Any]], Optional[DecodeResult]]:
    try:
        payload = json.loads(data)
    except json.JSONDecodeError:
        return None, DecodeResult.failed(f"Malformed stream payload: {data[:100]!r}")
    if not isinstance(payload, dict):
        return None, DecodeResult.failed(f"Unexpected stream payload: {data[:100]!r}")
    return payload, None


def _error_message(payload: Dict[str, Any]) -> str:
    error = payload.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or error.get("type") or error)
    return str(error)


class HTTPStreamingProvider(ILLMProvider):
    """
    Base adapter: POST a streaming request and yield decoded text fragments.

    Subclasses implement build_request() and decode_line().
    """

    name = "provider"
    # Providers that never send an explicit end-of-stream marker
    ends_on_close = False

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: Optional[httpx.Timeout] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout or httpx.Timeout(
            settings.UPSTREAM_READ_TIMEOUT, connect=settings.UPSTREAM_CONNECT_TIMEOUT
        )
        self.transport = transport

    @abstractmethod
    def build_request(self, prompt: str, params: GenerationParams) -> Tuple[str, Dict[str, str], Dict[str, Any]]:
        """Return (url, headers, json body) for a streaming completion."""
        pass

    @abstractmethod
    def decode_line(self, line: str) -> DecodeResult:
        pass

    async def stream(self, prompt: str, params: GenerationParams) -> AsyncIterator[str]:
        url, headers, body = self.build_request(prompt, params)
        logger.info(f"Opening {self.name} stream (model={params.model})")

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                async with client.stream("POST", url, headers=headers, json=body) as response:
                    if not response.is_success:
                        detail = (await response.aread()).decode("utf-8", errors="replace")
                        raise UpstreamError(
                            f"{self.name} returned HTTP {response.status_code}: {detail[:MAX_ERROR_DETAIL]}",
                            status_code=response.status_code,
                        )

                    async for line in response.aiter_lines():
                        result = self.decode_line(line)
                        if result.kind == DecodeKind.FRAGMENT:
                            yield result.text
                        elif result.kind == DecodeKind.DONE:
                            return
                        elif result.kind == DecodeKind.ERROR:
                            raise UpstreamError(f"{self.name} stream error: {result.error}")

                    if not self.ends_on_close:
                        logger.warning(f"{self.name} stream closed without an end marker")
        except httpx.TimeoutException as e:
            raise UpstreamError(f"{self.name} request timed out") from e
        except httpx.HTTPError as e:
            raise UpstreamError(f"{self.name} request failed: {e}") from e


class OpenAIProvider(HTTPStreamingProvider):
    """OpenAI chat completions (`choices[0].delta.content`, `[DONE]` terminator)."""

    name = "openai"

    def build_request(self, prompt, params):
        url = f"{self.base_url}/chat/completions"
        headers = {"Authorization": f"Bearer {self.api_key}"}
        body = {
            "model": params.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "stream": True,
        }
        return url, headers, body

    def decode_line(self, line: str) -> DecodeResult:
        data = sse_data(line)
        if not data:
            return DecodeResult.skip()
        if data == "[DONE]":
            return DecodeResult.done()

        payload, failure = load_json_payload(data)
        if failure:
            return failure
        if "error" in payload:
            return DecodeResult.failed(_error_message(payload))

        choices = payload.get("choices") or []
        if not choices:
            return DecodeResult.skip()
        content = (choices[0].get("delta") or {}).get("content")
        return DecodeResult.fragment(content) if content else DecodeResult.skip()


class AnthropicProvider(HTTPStreamingProvider):
    """Anthropic messages API (`content_block_delta` events, `message_stop` terminator)."""

    name = "anthropic"

    def __init__(self, api_key: str, base_url: str, api_version: Optional[str] = None, **kwargs):
        super().__init__(api_key, base_url, **kwargs)
        self.api_version = api_version or settings.ANTHROPIC_VERSION

    def build_request(self, prompt, params):
        url = f"{self.base_url}/messages"
        headers = {
            "x-api-key": self.api_key,
            "anthropic-version": self.api_version,
        }
        body = {
            "model": params.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": params.temperature,
            "max_tokens": params.max_tokens,
            "stream": True,
        }
        return url, headers, body

    def decode_line(self, line: str) -> DecodeResult:
        # `event:` lines repeat the payload type, so only `data:` lines matter
        data = sse_data(line)
        if not data:
            return DecodeResult.skip()

        payload, failure = load_json_payload(data)
        if failure:
            return failure

        event_type = payload.get("type")
        if event_type == "content_block_delta":
            text = (payload.get("delta") or {}).get("text")
            return DecodeResult.fragment(text) if text else DecodeResult.skip()
        if event_type == "message_stop":
            return DecodeResult.done()
        if event_type == "error":
            return DecodeResult.failed(_error_message(payload))
        return DecodeResult.skip()


class GoogleProvider(HTTPStreamingProvider):
    """Gemini streamGenerateContent in SSE mode. The stream simply ends when done."""

    name = "google"
    ends_on_close = True

    def build_request(self, prompt, params):
        url = f"{self.base_url}/models/{params.model}:streamGenerateContent?alt=sse"
        headers = {"x-goog-api-key": self.api_key}
        body = {
            "contents": [{"role": "user", "parts": [{"text": prompt}]}],
            "generationConfig": {
                "temperature": params.temperature,
                "maxOutputTokens": params.max_tokens,
            },
        }
        return url, headers, body

    def decode_line(self, line: str) -> DecodeResult:
        data = sse_data(line)
        if not data:
            return DecodeResult.skip()

        payload, failure = load_json_payload(data)
        if failure:
            return failure
        if "error" in payload:
            return DecodeResult.failed(_error_message(payload))

        candidates = payload.get("candidates") or []
        if not candidates:
            return DecodeResult.skip()
        parts = (candidates[0].get("content") or {}).get("parts") or []
        text = "".join(part.get("text", "") for part in parts if isinstance(part, dict))
        return DecodeResult.fragment(text) if text else DecodeResult.skip()
