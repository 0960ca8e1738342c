from __future__ import annotations

import http.client
import json
import time
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.error import HTTPError, URLError
from urllib.parse import quote, urlencode
from urllib.request import Request, urlopen

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_GEMINI_MODEL = "gemini-1.5-flash-002"
DEFAULT_TIMEOUT_S = 15.0
UPSTREAM_ERROR_MESSAGE = "Upstream error (Gemini)"
_READ_CHUNK_BYTES = 8192


@dataclass
class LLMResponse:
    content: str


class LLMProviderError(Exception):
    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class LLMUpstreamError(LLMProviderError):
    """The API answered with a non-2xx status."""

    def __init__(self, detail: str, status_code: int, body: str = "") -> None:
        super().__init__(detail)
        self.status_code = status_code
        self.body = body


class LLMConnectionError(LLMProviderError):
    """The API could not be reached or did not answer in time."""


class LLMProvider:
    model: str = ""

    def generate(self, prompt: str) -> LLMResponse:  # pragma: no cover - interface
        raise NotImplementedError


class GeminiProvider(LLMProvider):
    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_GEMINI_MODEL,
        base_url: str = GEMINI_BASE_URL,
        timeout_s: float = DEFAULT_TIMEOUT_S,
        json_mode: bool = True,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.base_url = base_url.rstrip("/")
        self.timeout_s = timeout_s
        self.json_mode = json_mode

    def endpoint_url(self) -> str:
        query = urlencode({"key": self.api_key})
        return f"{self.base_url}/models/{quote(self.model, safe='')}:generateContent?{query}"

    def build_payload(self, prompt: str) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if self.json_mode:
            payload["generationConfig"] = {"responseMimeType": "application/json"}
        return payload

    def generate(self, prompt: str) -> LLMResponse:
        request = Request(
            self.endpoint_url(),
            data=json.dumps(self.build_payload(prompt)).encode("utf-8"),
            headers={"Content-Type": "application/json"},
            method="POST",
        )
        deadline_at = time.monotonic() + self.timeout_s
        executor = ThreadPoolExecutor(max_workers=1)
        future = executor.submit(self._send, request, deadline_at)
        try:
            body = future.result(timeout=self.timeout_s)
        except FuturesTimeoutError as exc:
            future.cancel()
            raise LLMConnectionError(
                f"Gemini API call timed out after {self.timeout_s}s"
            ) from exc
        finally:
            # Never block the caller on a hung worker thread.
            executor.shutdown(wait=False, cancel_futures=True)
        try:
            data = json.loads(body)
        except json.JSONDecodeError:
            data = {}
        return LLMResponse(content=_extract_candidate_text(data))

    def _send(self, request: Request, deadline_at: float) -> str:
        try:
            with urlopen(request, timeout=self.timeout_s) as response:
                return _read_body(response, deadline_at).decode("utf-8", errors="replace")
        except HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="replace") if exc.fp else ""
            raise LLMUpstreamError(
                _extract_error_message(detail) or UPSTREAM_ERROR_MESSAGE,
                status_code=exc.code,
                body=detail,
            ) from exc
        except (URLError, TimeoutError, OSError, http.client.HTTPException) as exc:
            raise LLMConnectionError(f"Gemini API connection error: {exc}") from exc


def _read_body(response: Any, deadline_at: float) -> bytes:
    chunks: list[bytes] = []
    while True:
        if time.monotonic() > deadline_at:
            raise LLMConnectionError("Gemini API response exceeded the time limit")
        chunk = response.read1(_READ_CHUNK_BYTES)
        if not chunk:
            return b"".join(chunks)
        chunks.append(chunk)


def resolve_provider(
    *,
    api_key: Optional[str] = None,
    model: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout_s: Optional[float] = None,
    json_mode: bool = True,
) -> Optional[LLMProvider]:
    """Return a configured provider, or None when no API key is available."""
    if not api_key or not api_key.strip():
        return None
    return GeminiProvider(
        api_key=api_key.strip(),
        model=model or DEFAULT_GEMINI_MODEL,
        base_url=base_url or GEMINI_BASE_URL,
        timeout_s=timeout_s or DEFAULT_TIMEOUT_S,
        json_mode=json_mode,
    )


def _extract_candidate_text(response: Any) -> str:
    if not isinstance(response, dict):
        return ""
    candidates = response.get("candidates")
    if not isinstance(candidates, list) or not candidates:
        return ""
    first = candidates[0]
    if not isinstance(first, dict):
        return ""
    content = first.get("content")
    if not isinstance(content, dict):
        return ""
    parts = content.get("parts")
    if not isinstance(parts, list) or not parts or not isinstance(parts[0], dict):
        return ""
    text = parts[0].get("text")
    return text if isinstance(text, str) else ""


def _extract_error_message(detail: str) -> str:
    if not detail:
        return ""
    try:
        data = json.loads(detail)
    except json.JSONDecodeError:
        return ""
    if not isinstance(data, dict):
        return ""
    error = data.get("error")
    if isinstance(error, dict):
        message = error.get("message")
        if isinstance(message, str) and message.strip():
            return message.strip()
    return ""
