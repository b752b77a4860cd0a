"""Single chat-completion call to one backend, classified into an Outcome.

The invoker is the only component that knows about HTTP and provider error
shapes. Everything it returns is an Outcome[str]:

- success: the model's raw text content (possibly "")
- PROVIDER_UNAVAILABLE: transport errors, timeouts, non-2xx answers, bodies
  without choices. The orchestrator moves on to the next candidate.
- QUOTA_EXHAUSTED: the error message matches a configured quota pattern. The
  orchestrator aborts the whole chain.

asyncio.CancelledError is never caught, so an abandoned request stops.
"""

import asyncio
import base64
import binascii
import json
from typing import Any, Optional, Protocol, Sequence

import aiohttp
import filetype

from fridgechef.models.models import ErrorKind, Outcome, ProviderCandidate, TaskPayload
from fridgechef.utils.config import config
from fridgechef.utils.logger import logger


class Invoker(Protocol):
    """Anything the orchestrator can call once per candidate."""

    async def invoke(self, candidate: ProviderCandidate, payload: TaskPayload) -> Outcome:
        ...


def is_quota_exhausted_error(message: Optional[str], patterns: Optional[Sequence[str]] = None) -> bool:
    """Check whether an upstream error message reports account-wide quota exhaustion.

    Upstream wording changes over time, so the markers come from
    config.QUOTA_ERROR_PATTERNS unless `patterns` is given.

    Args:
        message: Error message from the provider.
        patterns: Case-insensitive substrings; defaults to the configured list.

    Returns:
        True if any pattern occurs in the message.
    """
    if not message:
        return False
    lowered = message.lower()
    markers = config.QUOTA_ERROR_PATTERNS if patterns is None else patterns
    return any(marker.lower() in lowered for marker in markers if marker)


def to_image_url(image_data: str) -> str:
    """Return an `image_url` value for a data URI, http(s) URL or plain base64 string.

    Plain base64 is wrapped in a data URI; its MIME type is sniffed from the
    magic bytes and falls back to image/jpeg.
    """
    image_data = image_data.strip()
    if image_data.startswith(("data:", "http://", "https://")):
        return image_data

    mime_type = "image/jpeg"
    try:
        # 64 base64 chars decode to 48 bytes, enough for any magic number
        head = base64.b64decode(image_data[:64], validate=False)
        kind = filetype.guess(head)
        if kind is not None and kind.mime.startswith("image/"):
            mime_type = kind.mime
    except (binascii.Error, ValueError) as e:
        logger.debug(f"Could not sniff image type, assuming JPEG: {e}")
    return f"data:{mime_type};base64,{image_data}"


def build_messages(payload: TaskPayload) -> list[dict[str, Any]]:
    """Frame the payload as chat messages: plain text, or text plus image parts."""
    messages: list[dict[str, Any]] = []
    if payload.system_prompt:
        messages.append({"role": "system", "content": payload.system_prompt})

    if payload.is_vision:
        messages.append(
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": payload.prompt},
                    {"type": "image_url", "image_url": {"url": to_image_url(payload.image_data)}},
                ],
            }
        )
    else:
        messages.append({"role": "user", "content": payload.prompt})
    return messages


def _error_message(error: Any) -> str:
    if isinstance(error, dict):
        message = error.get("message") or json.dumps(error)
        # OpenRouter nests the upstream provider's text under metadata.raw
        metadata = error.get("metadata")
        raw = metadata.get("raw") if isinstance(metadata, dict) else None
        if isinstance(raw, str) and raw not in message:
            message = f"{message} ({raw})"
        return str(message)
    return str(error)


def _content_text(content: Any) -> str:
    """Flatten message content, which some providers return as a list of parts."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        return "".join(
            part.get("text", "") for part in content if isinstance(part, dict) and part.get("type") == "text"
        )
    return str(content)


def classify_response(status: int, body: Any, candidate: ProviderCandidate) -> Outcome:
    """Turn an HTTP status and decoded body into success / retryable / fatal."""
    if isinstance(body, dict) and body.get("error"):
        message = _error_message(body["error"])
        if is_quota_exhausted_error(message):
            logger.warning(f"{candidate}: quota exhausted: {message}")
            return Outcome.failure(ErrorKind.QUOTA_EXHAUSTED, message)
        return Outcome.failure(ErrorKind.PROVIDER_UNAVAILABLE, f"HTTP {status}: {message}")

    if status < 200 or status >= 300:
        return Outcome.failure(ErrorKind.PROVIDER_UNAVAILABLE, f"HTTP {status} without error body")

    try:
        message = body["choices"][0]["message"]
    except (KeyError, IndexError, TypeError):
        return Outcome.failure(ErrorKind.PROVIDER_UNAVAILABLE, "Response has no choices")

    if not isinstance(message, dict):
        return Outcome.failure(ErrorKind.PROVIDER_UNAVAILABLE, "Response message is not an object")
    return Outcome.success(_content_text(message.get("content")))


class ChatCompletionInvoker:
    """POSTs to an OpenAI-compatible /chat/completions endpoint with a bearer token.

    Args:
        api_key: Bearer token. Defaults to config.OPENROUTER_API_KEY.
        base_url: Endpoint base. Defaults to config.OPENROUTER_BASE_URL.
        timeout_seconds: Per-call total timeout. Defaults to config.REQUEST_TIMEOUT_SECONDS.
        session: Optional shared aiohttp.ClientSession. When omitted, each call
            opens and closes its own session.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout_seconds: Optional[float] = None,
        session: Optional[aiohttp.ClientSession] = None,
    ) -> None:
        self.api_key = api_key if api_key is not None else config.OPENROUTER_API_KEY
        self.base_url = (base_url or config.OPENROUTER_BASE_URL).rstrip("/")
        self.timeout_seconds = timeout_seconds or config.REQUEST_TIMEOUT_SECONDS
        self._session = session

    @property
    def url(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": config.APP_REFERER,
            "X-Title": config.APP_TITLE,
        }

    def _body(self, candidate: ProviderCandidate, payload: TaskPayload) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": candidate.backend_id,
            "messages": build_messages(payload),
            "temperature": config.TEMPERATURE,
        }
        if payload.max_tokens:
            body["max_tokens"] = payload.max_tokens
        return body

    async def _post(self, session: aiohttp.ClientSession, body: dict[str, Any]) -> tuple[int, Any]:
        async with session.post(
            self.url,
            json=body,
            headers=self._headers(),
            timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
        ) as response:
            # content_type=None: some gateways label JSON errors as text/plain
            return response.status, await response.json(content_type=None)

    async def invoke(self, candidate: ProviderCandidate, payload: TaskPayload) -> Outcome:
        """Perform one outbound call for `candidate`. Never raises except on cancellation."""
        body = self._body(candidate, payload)
        try:
            if self._session is not None:
                status, data = await self._post(self._session, body)
            else:
                async with aiohttp.ClientSession() as session:
                    status, data = await self._post(session, body)
        except asyncio.TimeoutError:
            return Outcome.failure(
                ErrorKind.PROVIDER_UNAVAILABLE, f"Timed out after {self.timeout_seconds:g}s"
            )
        except aiohttp.ClientError as e:
            return Outcome.failure(ErrorKind.PROVIDER_UNAVAILABLE, f"Transport error: {e}")
        except (json.JSONDecodeError, ValueError) as e:
            return Outcome.failure(ErrorKind.PROVIDER_UNAVAILABLE, f"Undecodable response body: {e}")

        return classify_response(status, data, candidate)
