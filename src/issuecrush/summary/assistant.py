"""Conversational AI assistant used for issue summaries.

The assistant is a black box: a client is started, a session is opened, a prompt
is sent, and the session eventually produces either an assistant message or an
error. Callers decide how long to wait.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod

from openai import AsyncOpenAI

logger = logging.getLogger(__name__)


class AssistantSession(ABC):
    """One prompt/response exchange with the assistant."""

    @abstractmethod
    async def send(self, prompt: str) -> None:
        """Submit a prompt without waiting for the reply."""

    @abstractmethod
    async def wait_for_message(self) -> str:
        """Resolve with the assistant message content."""

    @abstractmethod
    async def wait_for_error(self) -> str:
        """Resolve with an error description if the exchange fails."""

    @abstractmethod
    async def destroy(self) -> None:
        """Abandon the exchange and release its resources."""


class AssistantClient(ABC):
    """Connection to an assistant backend.

    This interface allows pluggable backends; one client is used per summary.
    """

    @abstractmethod
    async def start(self) -> None:
        pass

    @abstractmethod
    async def create_session(self, *, model: str) -> AssistantSession:
        pass

    @abstractmethod
    async def stop(self) -> None:
        pass


class OpenAIAssistantSession(AssistantSession):
    """Single chat completion exposed as message/error outcomes.

    Exactly one of the two outcomes is resolved. Waiters are shielded, so
    cancelling a waiter never cancels the in-flight completion.
    """

    def __init__(
        self, client: AsyncOpenAI, *, model: str, temperature: float | None = None
    ) -> None:
        loop = asyncio.get_running_loop()
        self._client = client
        self._model = model
        self._temperature = temperature
        self._message: asyncio.Future[str] = loop.create_future()
        self._error: asyncio.Future[str] = loop.create_future()
        self._task: asyncio.Task[None] | None = None

    def _resolve(self, outcome: asyncio.Future[str], value: str) -> None:
        if self._message.done() or self._error.done():
            return
        outcome.set_result(value)

    async def send(self, prompt: str) -> None:
        if self._task is not None:
            raise RuntimeError("A prompt was already sent on this session")
        self._task = asyncio.create_task(self._complete(prompt))

    async def _complete(self, prompt: str) -> None:
        logger.debug(f"Requesting completion for prompt: {prompt[:100]}...")
        kwargs: dict[str, float] = {}
        if self._temperature is not None:
            kwargs["temperature"] = self._temperature
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=[{"role": "user", "content": prompt}],
                **kwargs,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:  # noqa: BLE001 (reported as an error outcome)
            self._resolve(self._error, str(e) or type(e).__name__)
            return

        content = ""
        if response.choices:
            content = response.choices[0].message.content or ""
        logger.debug(f"Generated {len(content)} characters")
        self._resolve(self._message, content)

    async def wait_for_message(self) -> str:
        return await asyncio.shield(self._message)

    async def wait_for_error(self) -> str:
        return await asyncio.shield(self._error)

    async def destroy(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass


class OpenAIAssistantClient(AssistantClient):
    """Assistant backed by an OpenAI-compatible chat completions endpoint."""

    def __init__(
        self,
        *,
        api_key: str,
        base_url: str | None = None,
        temperature: float | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("API key is required")
        self._api_key = api_key
        self._base_url = base_url
        self._temperature = temperature
        self._client: AsyncOpenAI | None = None

    async def start(self) -> None:
        self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url)

    async def create_session(self, *, model: str) -> AssistantSession:
        if self._client is None:
            raise RuntimeError("Assistant client is not started")
        logger.debug("Creating assistant session", extra={"model": model})
        return OpenAIAssistantSession(self._client, model=model, temperature=self._temperature)

    async def stop(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None
