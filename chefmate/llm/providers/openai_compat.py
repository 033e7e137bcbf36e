"""
OpenAI-compatible chat-completion provider.

Works with any endpoint that speaks the OpenAI ``/v1/chat/completions`` wire
protocol -- OpenAI itself, Azure OpenAI, vLLM, LM Studio, LocalAI, etc.

Dependencies: ``httpx`` (async HTTP client).  No ``openai`` SDK needed.
"""

from __future__ import annotations

import json
import logging
from typing import AsyncIterator

import httpx

from chefmate.llm.providers.base import Provider
from chefmate.llm.types import (
    Message,
    ModelReply,
    RawToolDelta,
    StreamChunk,
    ToolCallRef,
)
from chefmate.types import ProviderError, Usage

logger = logging.getLogger(__name__)


class OpenAICompatProvider(Provider):
    """
    Stream-capable provider for any OpenAI-API-compatible endpoint.

    Parameters
    ----------
    url:
        Base URL of the API, e.g. ``"https://api.openai.com/v1"`` or
        ``"http://localhost:8080/v1"``.
    model:
        Model identifier sent in the ``model`` field.
    api_key:
        Bearer token.  Pass ``""`` for unauthenticated local endpoints.
    timeout:
        HTTP request timeout in seconds.
    max_retries:
        Number of automatic retries on transient HTTP errors (5xx, 429).
    temperature:
        Sampling temperature.
    max_output:
        Maximum output tokens per completion.
    transport:
        Optional httpx transport, mainly for tests (``httpx.MockTransport``).
    """

    def __init__(
        self,
        url: str = "https://api.openai.com/v1",
        model: str = "gpt-4o-mini",
        api_key: str = "",
        timeout: float = 60.0,
        max_retries: int = 2,
        temperature: float = 0.7,
        max_output: int = 1024,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._url = url.rstrip("/")
        self._model = model
        self._api_key = api_key
        self._timeout = timeout
        self._max_retries = max_retries
        self._temperature = temperature
        self._max_output = max_output
        self._transport = transport

    # ------------------------------------------------------------------
    # Provider interface
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return "openai-compat"

    @property
    def model(self) -> str:
        return self._model

    async def complete(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        timeout: float | None = None,
    ) -> ModelReply:
        body = self._build_body(messages, tools, stream=False)
        data = await self._sync_request(
            body, self._build_headers(), timeout or self._timeout
        )
        return self._parse_non_stream(data)

    async def chat(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        stream: bool = True,
        timeout: float | None = None,
    ) -> AsyncIterator[StreamChunk]:
        body = self._build_body(messages, tools, stream)
        headers = self._build_headers()
        effective_timeout = timeout or self._timeout

        if stream:
            async for chunk in self._stream_request(body, headers, effective_timeout):
                yield chunk
        else:
            data = await self._sync_request(body, headers, effective_timeout)
            yield self._reply_to_chunk(self._parse_non_stream(data))

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=timeout, transport=self._transport)

    def _build_headers(self) -> dict[str, str]:
        headers: dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "text/event-stream",
        }
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    def _build_body(
        self,
        messages: list[Message],
        tools: list[dict] | None,
        stream: bool,
    ) -> dict:
        body: dict = {
            "model": self._model,
            "messages": [msg.to_wire() for msg in messages],
            "stream": stream,
            "temperature": self._temperature,
            "max_tokens": self._max_output,
        }
        if stream:
            body["stream_options"] = {"include_usage": True}
        if tools:
            body["tools"] = tools
            body["tool_choice"] = "auto"
        logger.info(
            "REQUEST: model=%s tools=%d messages=%d stream=%s",
            self._model,
            len(tools) if tools else 0,
            len(messages),
            stream,
        )
        return body

    # ------------------------------------------------------------------
    # Streaming request
    # ------------------------------------------------------------------

    async def _stream_request(
        self,
        body: dict,
        headers: dict[str, str],
        timeout: float,
    ) -> AsyncIterator[StreamChunk]:
        url = f"{self._url}/chat/completions"

        last_error: Exception | None = None
        yielded = False
        for attempt in range(1 + self._max_retries):
            try:
                async with self._client(timeout) as client:
                    async with client.stream(
                        "POST", url, json=body, headers=headers
                    ) as response:
                        if response.status_code == 429 or response.status_code >= 500:
                            # Retryable -- read body so the connection is released.
                            await response.aread()
                            last_error = httpx.HTTPStatusError(
                                f"HTTP {response.status_code}",
                                request=response.request,
                                response=response,
                            )
                            continue

                        response.raise_for_status()

                        async for chunk in self._parse_sse_stream(response):
                            yielded = True
                            yield chunk
                        return  # success
            except httpx.HTTPStatusError as exc:
                raise ProviderError(f"Model backend returned {exc}") from exc
            except httpx.TransportError as exc:
                last_error = exc
                if attempt < self._max_retries and not yielded:
                    continue
                raise ProviderError(f"Model backend unreachable: {exc}") from exc

        raise ProviderError(f"Model backend failed: {last_error}") from last_error

    async def _parse_sse_stream(
        self, response: httpx.Response
    ) -> AsyncIterator[StreamChunk]:
        """
        Parse Server-Sent Events from the response byte stream.

        Each SSE event has the form::

            data: {json}\\n\\n

        The sentinel ``data: [DONE]`` terminates the stream.
        """
        buffer = ""
        async for raw_bytes in response.aiter_bytes():
            buffer += raw_bytes.decode("utf-8", errors="replace")

            while "\n" in buffer:
                line, buffer = buffer.split("\n", 1)
                line = line.rstrip("\r")

                if not line or not line.startswith("data:"):
                    continue

                data_str = line[len("data:"):].strip()
                if data_str == "[DONE]":
                    yield StreamChunk(done=True)
                    return

                try:
                    data = json.loads(data_str)
                except json.JSONDecodeError:
                    logger.warning("Failed to parse SSE data: %s", data_str[:200])
                    continue

                chunk = self._sse_data_to_chunk(data)
                if chunk is not None:
                    yield chunk

        # If the stream ends without [DONE], emit a final chunk.
        yield StreamChunk(done=True)

    def _sse_data_to_chunk(self, data: dict) -> StreamChunk | None:
        """Convert a parsed SSE ``data`` payload into a ``StreamChunk``."""
        usage = Usage.from_wire(data.get("usage"))
        choices = data.get("choices")
        if not choices:
            # The usage report arrives on its own chunk with no choices.
            return StreamChunk(usage=usage) if usage else None

        choice = choices[0]
        delta = choice.get("delta") or {}

        tool_deltas: list[RawToolDelta] | None = None
        raw_tcs = delta.get("tool_calls")
        if raw_tcs:
            tool_deltas = []
            for raw_tc in raw_tcs:
                func = raw_tc.get("function") or {}
                tool_deltas.append(
                    RawToolDelta(
                        call_index=raw_tc.get("index", 0),
                        id=raw_tc.get("id"),
                        name=func.get("name") or "",
                        args_delta=func.get("arguments") or "",
                    )
                )

        return StreamChunk(
            delta=delta.get("content") or "",
            tool_deltas=tool_deltas,
            finish_reason=choice.get("finish_reason"),
            usage=usage,
        )

    # ------------------------------------------------------------------
    # Non-streaming request
    # ------------------------------------------------------------------

    async def _sync_request(
        self,
        body: dict,
        headers: dict[str, str],
        timeout: float,
    ) -> dict:
        url = f"{self._url}/chat/completions"

        last_error: Exception | None = None
        for attempt in range(1 + self._max_retries):
            try:
                async with self._client(timeout) as client:
                    resp = await client.post(url, json=body, headers=headers)

                    if resp.status_code == 429 or resp.status_code >= 500:
                        last_error = httpx.HTTPStatusError(
                            f"HTTP {resp.status_code}",
                            request=resp.request,
                            response=resp,
                        )
                        continue

                    resp.raise_for_status()
                    return resp.json()
            except httpx.HTTPStatusError as exc:
                raise ProviderError(f"Model backend returned {exc}") from exc
            except httpx.TransportError as exc:
                last_error = exc
                if attempt < self._max_retries:
                    continue
                raise ProviderError(f"Model backend unreachable: {exc}") from exc

        raise ProviderError(f"Model backend failed: {last_error}") from last_error

    def _parse_non_stream(self, data: dict) -> ModelReply:
        """Convert a non-streaming response into a ``ModelReply``."""
        usage = Usage.from_wire(data.get("usage"))
        choices = data.get("choices") or []
        if not choices:
            return ModelReply(content="", usage=usage)

        choice = choices[0]
        message = choice.get("message") or {}
        tool_calls = []
        for idx, raw_tc in enumerate(message.get("tool_calls") or []):
            func = raw_tc.get("function") or {}
            tool_calls.append(
                ToolCallRef(
                    id=raw_tc.get("id") or f"call_{idx}",
                    name=func.get("name") or "",
                    arguments_text=func.get("arguments") or "",
                )
            )

        return ModelReply(
            content=message.get("content") or "",
            tool_calls=tool_calls,
            usage=usage,
            finish_reason=choice.get("finish_reason"),
        )

    @staticmethod
    def _reply_to_chunk(reply: ModelReply) -> StreamChunk:
        tool_deltas = [
            RawToolDelta(
                call_index=idx,
                id=tc.id,
                name=tc.name,
                args_delta=tc.arguments_text,
            )
            for idx, tc in enumerate(reply.tool_calls)
        ]
        return StreamChunk(
            delta=reply.content,
            tool_deltas=tool_deltas or None,
            finish_reason=reply.finish_reason,
            usage=reply.usage,
            done=True,
        )
