"""Client for OpenAI-compatible chat completion endpoints."""

from __future__ import annotations

import http.client
import json
import logging
import socket
import time
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any
from urllib import error, request

from ..config import DEFAULT_BASE_URL, DEFAULT_MODEL, AssistantConfig
from ..logging import log_call


logger = logging.getLogger(__name__)


CHAT_COMPLETIONS_PATH = "/chat/completions"
MODELS_PATH = "/models"
WEB_SEARCH_TOOL: dict[str, Any] = {"google_search": {}}
RETRYABLE_STATUSES = frozenset({408, 409, 429, 500, 502, 503, 504})


class ChatClientError(RuntimeError):
    """Base exception for chat backend failures."""


class ConfigurationError(ChatClientError):
    """Raised when the credential or endpoint is missing or rejected."""


class TransportError(ChatClientError):
    """Raised when the backend cannot be reached or the stream breaks."""


class ChatResponseError(ChatClientError):
    """Raised when the backend returns an invalid response."""


@dataclass(frozen=True)
class StreamRequest:
    """Everything the backend needs for one streamed exchange."""

    model: str
    system_instruction: str
    message: str
    web_search: bool = False
    history: tuple[dict[str, str], ...] = field(default_factory=tuple)

    def to_messages(self) -> list[dict[str, str]]:
        messages: list[dict[str, str]] = []
        if self.system_instruction:
            messages.append({"role": "system", "content": self.system_instruction})
        messages.extend(dict(entry) for entry in self.history)
        messages.append({"role": "user", "content": self.message})
        return messages


@dataclass(frozen=True)
class StreamFragment:
    """One incremental chunk of assistant text."""

    text: str


class ChatClient:
    """HTTP client for an OpenAI-compatible ``/chat/completions`` API."""

    @log_call(logger=logger, include_args=False)
    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        api_key: str | None = None,
        model: str = DEFAULT_MODEL,
        max_retries: int = 2,
        retry_backoff: float = 0.5,
        timeout: float | None = 60.0,
    ) -> None:
        self._base_url = base_url.rstrip("/") or DEFAULT_BASE_URL
        self._api_key = api_key
        self._model = model
        self.max_retries = max(max_retries, 0)
        self.retry_backoff = retry_backoff
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: AssistantConfig) -> "ChatClient":
        return cls(
            base_url=config.base_url,
            api_key=config.api_key,
            model=config.model,
            max_retries=config.max_retries,
            timeout=config.timeout,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def model(self) -> str:
        return self._model

    @property
    def has_credentials(self) -> bool:
        return bool(self._api_key and self._api_key.strip())

    @log_call(logger=logger, include_args=False)
    def configure(
        self,
        *,
        base_url: str | None = None,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        """Update connection settings without recreating the client."""

        if base_url is not None:
            normalized = base_url.rstrip("/")
            self._base_url = normalized or DEFAULT_BASE_URL
        if api_key is not None:
            self._api_key = api_key
        if model is not None:
            self._model = model

    @log_call(logger=logger, include_result=True)
    def health_check(self) -> bool:
        """Return ``True`` if the backend answers a model listing request."""

        try:
            with self._open("GET", MODELS_PATH) as response:
                response.read()
        except (ChatClientError, OSError, http.client.HTTPException):
            return False
        return True

    # ------------------------------------------------------------------
    @log_call(logger=logger, include_args=False)
    def open_stream(self, stream_request: StreamRequest) -> Iterator[StreamFragment]:
        """Start a streamed completion and return an iterator of fragments.

        Connection setup happens eagerly so configuration and HTTP failures
        surface here; failures while reading raise from the iterator.
        """

        payload: dict[str, Any] = {
            "model": stream_request.model or self._model,
            "messages": stream_request.to_messages(),
            "stream": True,
        }
        if stream_request.web_search:
            payload["tools"] = [dict(WEB_SEARCH_TOOL)]
        logger.info(
            "Opening chat stream",
            extra={
                "message_count": len(payload["messages"]),
                "history_length": len(stream_request.history),
                "web_search": stream_request.web_search,
                "base_url": self._base_url,
            },
        )
        response = self._open(
            "POST",
            CHAT_COMPLETIONS_PATH,
            payload,
            accept="text/event-stream",
        )
        return self._iter_fragments(response)

    @log_call(logger=logger, include_args=False)
    def complete(
        self,
        messages: Sequence[dict[str, Any]],
        *,
        response_format: dict[str, Any] | None = None,
        extra_options: dict[str, Any] | None = None,
    ) -> str:
        """Send ``messages`` as a single non-streamed request and return the text."""

        payload: dict[str, Any] = {
            "model": self._model,
            "messages": list(messages),
            "stream": False,
        }
        if response_format is not None:
            payload["response_format"] = response_format
        if extra_options:
            payload.update(extra_options)
        with self._open("POST", CHAT_COMPLETIONS_PATH, payload) as response:
            try:
                body = response.read()
            except (OSError, http.client.HTTPException) as exc:
                raise TransportError(str(exc) or "Chat backend read failed") from exc
        if not body:
            raise ChatResponseError("Empty response from chat backend")
        try:
            data = json.loads(body.decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ChatResponseError("Invalid JSON from chat backend") from exc
        return self._parse_completion_text(data)

    # ------------------------------------------------------------------
    def _open(
        self,
        method: str,
        path: str,
        payload: dict[str, Any] | None = None,
        *,
        accept: str = "application/json",
    ) -> http.client.HTTPResponse:
        if not self.has_credentials:
            raise ConfigurationError("No API key configured for the chat backend")
        url = f"{self._base_url}{path}"
        data: bytes | None = None
        headers = {
            "Accept": accept,
            "Authorization": f"Bearer {self._api_key}",
        }
        if payload is not None:
            data = json.dumps(payload).encode("utf-8")
            headers["Content-Type"] = "application/json"
        request_obj = request.Request(url, data=data, headers=headers, method=method)
        last_error: ChatClientError | None = None
        for attempt in range(self.max_retries + 1):
            try:
                logger.debug(
                    "Chat backend request attempt",
                    extra={"method": method, "url": url, "attempt": attempt + 1},
                )
                return request.urlopen(request_obj, timeout=self.timeout)
            except error.HTTPError as exc:
                body = exc.read() if hasattr(exc, "read") else b""
                message = self._build_http_error_message(exc.code, body)
                if exc.code in {401, 403}:
                    raise ConfigurationError(message) from exc
                last_error = ChatResponseError(message)
                if exc.code not in RETRYABLE_STATUSES:
                    break
            except error.URLError as exc:
                if isinstance(exc.reason, (TimeoutError, socket.timeout)):
                    last_error = TransportError("Chat backend request timed out")
                else:
                    last_error = TransportError(str(exc.reason))
            except (TimeoutError, ConnectionError) as exc:
                last_error = TransportError(str(exc) or "Chat backend request timed out")
            if attempt < self.max_retries:
                logger.warning(
                    "Chat backend request failed, retrying",
                    extra={
                        "method": method,
                        "url": url,
                        "attempt": attempt + 1,
                        "error": str(last_error),
                    },
                )
                time.sleep(self.retry_backoff * (2**attempt))
        if last_error is not None:
            raise last_error
        raise ChatClientError("Unexpected chat backend failure")

    def _iter_fragments(
        self, response: http.client.HTTPResponse
    ) -> Iterator[StreamFragment]:
        with response:
            content_type = response.headers.get_content_type()
            try:
                if content_type == "application/json":
                    # Some servers ignore ``stream`` and answer in one body.
                    data = json.loads(response.read().decode("utf-8"))
                    text = self._parse_completion_text(data)
                    if text:
                        yield StreamFragment(text)
                    return
                for raw_line in response:
                    line = raw_line.decode("utf-8", errors="replace").strip()
                    if not line or line.startswith(":") or not line.startswith("data:"):
                        continue
                    data_text = line[5:].strip()
                    if data_text == "[DONE]":
                        return
                    try:
                        event = json.loads(data_text)
                    except json.JSONDecodeError as exc:
                        raise ChatResponseError("Malformed event in chat stream") from exc
                    text = self._extract_delta_text(event)
                    if text:
                        yield StreamFragment(text)
            except json.JSONDecodeError as exc:
                raise ChatResponseError("Invalid JSON from chat backend") from exc
            except (OSError, http.client.HTTPException) as exc:
                raise TransportError(str(exc) or "Chat stream interrupted") from exc

    # ------------------------------------------------------------------
    @classmethod
    def _extract_delta_text(cls, event: Any) -> str:
        if not isinstance(event, dict):
            return ""
        error_payload = event.get("error")
        if error_payload:
            raise TransportError(cls._summarize_error_body(json.dumps(event)))
        choices = event.get("choices")
        if not isinstance(choices, Iterable):
            return ""
        parts: list[str] = []
        for choice in choices:
            if not isinstance(choice, dict):
                continue
            delta = choice.get("delta")
            if not isinstance(delta, dict):
                continue
            content = delta.get("content")
            if content is None:
                continue
            parts.append(cls._normalize_message_content(content))
        return "".join(parts)

    @classmethod
    def _parse_completion_text(cls, data: Any) -> str:
        if not isinstance(data, dict):
            raise ChatResponseError("Chat response is not an object")
        choices = data.get("choices")
        if not isinstance(choices, Iterable):
            raise ChatResponseError("Chat response missing choices")
        first = next(iter(choices), None)
        if not isinstance(first, dict):
            raise ChatResponseError("Chat response missing first choice")
        message = first.get("message")
        if not isinstance(message, dict):
            raise ChatResponseError("Chat response missing message")
        return cls._normalize_message_content(message.get("content"))

    @staticmethod
    def _normalize_message_content(content: Any) -> str:
        """Return a usable string from ``content`` or raise an error."""

        if isinstance(content, str):
            return content
        if isinstance(content, Iterable):
            parts: list[str] = []
            for item in content:
                if isinstance(item, str):
                    parts.append(item)
                elif isinstance(item, dict):
                    text = item.get("text")
                    if isinstance(text, str):
                        parts.append(text)
            return "".join(parts)
        raise ChatResponseError("Chat message missing content")

    @staticmethod
    def _build_http_error_message(
        status: int | None, body: bytes | str | None
    ) -> str:
        summary = ChatClient._summarize_error_body(body)
        if status is not None:
            if summary:
                return f"Chat backend returned HTTP {status}: {summary}"
            return f"Chat backend returned HTTP {status}"
        return summary or "Chat backend request failed"

    @staticmethod
    def _summarize_error_body(body: bytes | str | None) -> str:
        """Pull a one-line message out of an error body.

        Gemini wraps errors in a one-element list; OpenAI-style servers use
        ``{"error": {"message": ...}}`` or a bare ``{"detail": ...}``.
        """

        raw = body.decode("utf-8", errors="replace") if isinstance(body, bytes) else str(body or "")
        flat = " ".join(raw.split())
        try:
            parsed = json.loads(raw) if flat else None
        except json.JSONDecodeError:
            return flat
        if isinstance(parsed, list):
            parsed = parsed[0] if parsed else None
        if not isinstance(parsed, dict):
            return flat
        nested = parsed.get("error")
        if isinstance(nested, str):
            return " ".join(nested.split()) or flat
        for source in (nested, parsed):
            if isinstance(source, dict):
                found = source.get("message") or source.get("detail")
                if found:
                    return " ".join(str(found).split())
        return flat


__all__ = [
    "ChatClient",
    "ChatClientError",
    "ChatResponseError",
    "ConfigurationError",
    "StreamFragment",
    "StreamRequest",
    "TransportError",
    "WEB_SEARCH_TOOL",
]
