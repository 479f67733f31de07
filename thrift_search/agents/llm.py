from __future__ import annotations

import base64
import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable, Deque, Protocol, Union

import httpx

from thrift_search.core.config import AppSettings

logger = logging.getLogger("thrift_search.llm")


class GenerativeModelError(RuntimeError):
    """Raised when the generative model cannot complete a request."""


@dataclass(frozen=True)
class InlineImage:
    mime_type: str
    data: bytes

    def to_part(self) -> dict[str, Any]:
        return {
            "inline_data": {
                "mime_type": self.mime_type,
                "data": base64.b64encode(self.data).decode("ascii"),
            }
        }


@dataclass(frozen=True)
class GenerationConfig:
    temperature: float = 0.2
    top_p: float = 0.8
    top_k: int = 40
    max_output_tokens: int = 2048

    def to_payload(self) -> dict[str, Any]:
        return {
            "temperature": self.temperature,
            "topP": self.top_p,
            "topK": self.top_k,
            "maxOutputTokens": self.max_output_tokens,
        }


class GenerativeModel(Protocol):
    async def generate_async(
        self,
        prompt: str,
        *,
        image: InlineImage | None = None,
        prompt_id: str,
    ) -> str:
        ...


def build_request_body(prompt: str, image: InlineImage | None, config: GenerationConfig) -> dict[str, Any]:
    parts: list[dict[str, Any]] = [{"text": prompt}]
    if image is not None:
        parts.append(image.to_part())
    return {
        "contents": [{"parts": parts}],
        "generationConfig": config.to_payload(),
    }


def extract_candidate_text(payload: Any) -> str:
    try:
        text = payload["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError) as exc:
        raise GenerativeModelError("Model response is missing candidate text.") from exc
    if not isinstance(text, str):
        raise GenerativeModelError("Model candidate text is not a string.")
    return text


FakeResponse = Union[str, Exception]

_fake_responses: Deque[FakeResponse] = deque()
_fake_lock = threading.RLock()


def queue_fake_response(response: FakeResponse) -> None:
    with _fake_lock:
        _fake_responses.append(response)


def clear_fake_responses() -> None:
    with _fake_lock:
        _fake_responses.clear()


class _FakeGenerativeModel:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def generate_async(
        self,
        prompt: str,
        *,
        image: InlineImage | None = None,
        prompt_id: str,
    ) -> str:
        self.calls.append({"prompt": prompt, "image": image, "prompt_id": prompt_id})
        with _fake_lock:
            if not _fake_responses:
                raise GenerativeModelError("No fake responses queued for the generative model")
            response = _fake_responses.popleft()
        if isinstance(response, Exception):
            raise response
        return response


class _OfflineGenerativeModel:
    async def generate_async(
        self,
        prompt: str,
        *,
        image: InlineImage | None = None,
        prompt_id: str,
    ) -> str:
        raise GenerativeModelError("Generative model is disabled (GENAI_PROVIDER=offline).")


class _GeminiGenerativeModel:
    def __init__(
        self,
        *,
        api_key: str,
        base_url: str,
        model: str,
        timeout: float,
        config: GenerationConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._url = f"{base_url.rstrip('/')}/{model}:generateContent"
        self._timeout = timeout
        self._config = config
        self._transport = transport

    @property
    def url(self) -> str:
        return self._url

    async def generate_async(
        self,
        prompt: str,
        *,
        image: InlineImage | None = None,
        prompt_id: str,
    ) -> str:
        body = build_request_body(prompt, image, self._config)
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                response = await client.post(
                    self._url,
                    params={"key": self._api_key},
                    json=body,
                    headers={"Content-Type": "application/json"},
                )
        except httpx.TimeoutException as exc:
            raise GenerativeModelError("Generative model request timed out.") from exc
        except httpx.RequestError as exc:
            raise GenerativeModelError("Generative model is unreachable.") from exc

        latency_ms = round((time.perf_counter() - start) * 1000, 2)
        if response.status_code < 200 or response.status_code >= 300:
            logger.warning(
                "llm.call",
                extra={
                    "promptId": prompt_id,
                    "status": "error",
                    "httpStatus": response.status_code,
                    "latencyMs": latency_ms,
                },
            )
            raise GenerativeModelError(f"Generative model request failed with status {response.status_code}.")

        try:
            payload = response.json()
        except ValueError as exc:
            raise GenerativeModelError("Generative model response was not valid JSON.") from exc

        text = extract_candidate_text(payload)
        logger.info(
            "llm.call",
            extra={"promptId": prompt_id, "status": "success", "latencyMs": latency_ms, "chars": len(text)},
        )
        return text


GenerativeModelFactory = Callable[[], GenerativeModel]


def get_generative_model(settings: AppSettings) -> GenerativeModelFactory:
    provider = (settings.genai_provider or "gemini").lower()

    if provider == "fake":
        return _FakeGenerativeModel

    if provider in {"offline", "none"}:
        return _OfflineGenerativeModel

    if provider == "gemini":
        if not settings.gemini_api_key:
            logger.warning("llm.disabled", extra={"reason": "GEMINI_API_KEY is not configured"})
            return _OfflineGenerativeModel
        config = GenerationConfig(
            temperature=settings.genai_temperature,
            top_p=settings.genai_top_p,
            top_k=settings.genai_top_k,
            max_output_tokens=settings.genai_max_output_tokens,
        )
        return lambda: _GeminiGenerativeModel(
            api_key=settings.gemini_api_key or "",
            base_url=settings.gemini_base_url,
            model=settings.gemini_model,
            timeout=settings.genai_timeout_sec,
            config=config,
        )

    raise GenerativeModelError(f"Unsupported generative model provider '{settings.genai_provider}'")


__all__ = [
    "GenerationConfig",
    "GenerativeModel",
    "GenerativeModelError",
    "GenerativeModelFactory",
    "InlineImage",
    "build_request_body",
    "clear_fake_responses",
    "extract_candidate_text",
    "get_generative_model",
    "queue_fake_response",
]
