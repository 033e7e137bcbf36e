"""Abstract base class for LLM providers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import AsyncIterator

from chefmate.llm.types import Message, ModelReply, StreamChunk


class Provider(ABC):
    """
    A provider encapsulates access to a single LLM endpoint.

    Implementations must support:
      - A request/response completion (``complete``).
      - Streaming chat completions (``chat``).

    Transport and HTTP failures are raised as
    :class:`chefmate.types.ProviderError`.
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        timeout: float | None = None,
    ) -> ModelReply:
        """Run one non-streaming completion and return the full reply."""
        ...

    @abstractmethod
    async def chat(
        self,
        messages: list[Message],
        tools: list[dict] | None = None,
        stream: bool = True,
        timeout: float | None = None,
    ) -> AsyncIterator[StreamChunk]:
        """
        Start a chat completion.

        Yields ``StreamChunk`` objects.  The last chunk has ``done=True``.
        """
        ...
        # Make the method an async generator so sub-classes can ``yield``.
        # This line is unreachable but satisfies the type checker.
        if False:  # pragma: no cover
            yield StreamChunk()  # type: ignore[misc]

    @property
    @abstractmethod
    def name(self) -> str:
        """Human-readable provider name (e.g. ``"openai-compat"``)."""
        ...
