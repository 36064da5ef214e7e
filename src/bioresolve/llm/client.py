"""
LLM client for schema-constrained resolver calls.

Uses Instructor over the async OpenAI client so every response is parsed into
a pydantic model or rejected.
"""

from __future__ import annotations

import asyncio
from typing import Protocol, TypeVar

import instructor
from instructor.core import InstructorRetryException
from openai import AsyncOpenAI
from pydantic import BaseModel, ValidationError

from bioresolve.errors import LLMUnavailableError, ResolutionParseError

from .config import LLMConfig

T = TypeVar("T", bound=BaseModel)


class ResolverLLM(Protocol):
    """
    Structured-completion capability the resolver depends on.

    Implementations return a validated instance of response_model or raise
    (timeouts as TimeoutError, bad payloads as ResolutionParseError).
    """

    config: LLMConfig

    async def create_structured(
        self,
        messages: list[dict],
        response_model: type[T],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> T: ...


class ResolverClient:
    """
    Client for an OpenAI-compatible chat endpoint.

    Uses Instructor to enforce the response schemas in bioresolve.llm.schemas.
    """

    def __init__(self, config: LLMConfig | None = None):
        self.config = config or LLMConfig()
        if not self.config.enabled:
            raise LLMUnavailableError("OPENAI_API_KEY environment variable not set")
        self._raw_client = AsyncOpenAI(
            api_key=self.config.api_key,
            base_url=self.config.base_url,
        )
        # Wrap with instructor for structured output
        self._client = instructor.from_openai(
            self._raw_client,
            mode=getattr(instructor.Mode, self.config.instructor_mode.upper()),
        )

    async def create_structured(
        self,
        messages: list[dict],
        response_model: type[T],
        *,
        model: str | None = None,
        max_tokens: int | None = None,
        timeout: float | None = None,
    ) -> T:
        """
        Generate structured output matching a pydantic model.

        Args:
            messages: Chat messages list
            response_model: Pydantic model class to enforce
            model: Model name, defaults to the small model
            max_tokens: Completion token cap
            timeout: Deadline in seconds; raises TimeoutError when exceeded

        Returns:
            Instance of response_model
        """
        kwargs = {}
        if self.config.temperature is not None:
            kwargs["temperature"] = self.config.temperature
        if max_tokens is not None:
            kwargs["max_completion_tokens"] = max_tokens

        call = self._client.chat.completions.create(
            model=model or self.config.small_model,
            messages=messages,
            response_model=response_model,
            max_retries=self.config.max_retries,
            **kwargs,
        )
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except (InstructorRetryException, ValidationError) as exc:
            raise ResolutionParseError(f"{response_model.__name__} rejected: {exc}") from exc

    async def close(self) -> None:
        await self._raw_client.close()


def create_client(config: LLMConfig | None = None) -> ResolverClient | None:
    """Build a client when an API key is configured, else None."""
    config = config or LLMConfig()
    if not config.enabled:
        return None
    return ResolverClient(config)
