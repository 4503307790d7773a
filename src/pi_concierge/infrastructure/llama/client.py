"""llama.cpp ``/completion`` HTTP client.

Speaks the server's native text-completion API rather than the OpenAI-compatible
chat route: the orchestrator renders the prompt itself and needs ``grammar``,
``n_predict`` and ``cache_prompt``, which only the native route takes.

Request::

    POST /completion
    {"prompt": "...", "n_predict": 128, "temperature": 0.1, "stream": false,
     "grammar": "...", "stop": [...], "cache_prompt": false}

A non-streaming response is ``{"content": "...", "stop": true, ...}``.  A
streaming response is ``data: {...}`` lines, one per generated fragment.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from pi_concierge.config.constants import COMPLETION_DEFAULT_TIMEOUT_S
from pi_concierge.domain import CompletionBackendError

logger = logging.getLogger(__name__)

# Error bodies are echoed into exceptions and logs; keep them short.
_MAX_ERROR_BODY_CHARS = 500


class LlamaCompletionClient:
    """Async client for one llama.cpp server.

    Every transport failure and every non-2xx status surfaces as
    ``CompletionBackendError``; nothing is retried.

    Args:
        url: Full completion URL, e.g. ``http://pi.local:8080/completion``.
        api_key: Sent as ``Authorization: Bearer`` when non-empty.
        timeout_s: HTTP timeout applied to connect and each read.
        transport: Optional ``httpx`` transport (tests pass ``httpx.MockTransport``).
    """

    def __init__(
        self,
        url: str,
        api_key: str = "",
        timeout_s: float = COMPLETION_DEFAULT_TIMEOUT_S,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout_s
        self._transport = transport

    def _headers(self) -> Dict[str, str]:
        headers: Dict[str, str] = {}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _new_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=httpx.Timeout(self._timeout), transport=self._transport)

    def _status_error(self, status_code: int, body: str) -> CompletionBackendError:
        body = body[:_MAX_ERROR_BODY_CHARS]
        logger.error("Completion backend returned %s: %s", status_code, body)
        return CompletionBackendError(
            f"Completion backend error ({self._url}): {status_code} {body}".rstrip(),
            status_code=status_code,
            body=body,
        )

    async def complete(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        logger.debug(
            "POST %s stream=false n_predict=%s grammar=%s",
            self._url, payload.get("n_predict"), "grammar" in payload,
        )
        try:
            async with self._new_client() as client:
                r = await client.post(self._url, headers=self._headers(), json=payload)
        except httpx.HTTPError as e:
            raise CompletionBackendError(
                f"Completion backend unreachable ({self._url}): {e}"
            ) from e
        if r.is_error:
            raise self._status_error(r.status_code, r.text)
        try:
            data = r.json()
        except ValueError as e:
            raise CompletionBackendError(
                f"Completion backend returned invalid JSON ({self._url}): {e}",
                status_code=r.status_code,
                body=r.text[:_MAX_ERROR_BODY_CHARS],
            ) from e
        if not isinstance(data, dict):
            raise CompletionBackendError(
                f"Completion backend returned {type(data).__name__}, expected an object",
                status_code=r.status_code,
            )
        return data

    async def open_stream(self, payload: Dict[str, Any]) -> StreamingBody:
        logger.debug("POST %s stream=true n_predict=%s", self._url, payload.get("n_predict"))
        client = self._new_client()
        request = client.build_request("POST", self._url, headers=self._headers(), json=payload)
        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise CompletionBackendError(
                f"Completion backend unreachable ({self._url}): {e}"
            ) from e

        if response.is_error:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = ""
            finally:
                await response.aclose()
                await client.aclose()
            raise self._status_error(response.status_code, body)

        return StreamingBody(client, response)


class StreamingBody:
    """Raw bytes of one streaming completion response.

    ``aclose()`` releases the response and its client, and is safe to call
    whether or not iteration ever started; exhausting the body closes too.
    """

    def __init__(self, client: httpx.AsyncClient, response: httpx.Response) -> None:
        self._client = client
        self._response = response
        self._bytes = response.aiter_bytes()

    def __aiter__(self) -> "StreamingBody":
        return self

    async def __anext__(self) -> bytes:
        try:
            return await self._bytes.__anext__()
        except StopAsyncIteration:
            await self.aclose()
            raise

    async def aclose(self) -> None:
        await self._response.aclose()
        await self._client.aclose()
