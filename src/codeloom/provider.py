import logging
import os
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx
from openai import APIConnectionError, APIStatusError, APITimeoutError, AsyncOpenAI

from codeloom.config import ProviderConfig
from codeloom.errors import (
    NetworkError,
    ProviderError,
    describe_http_error,
    describe_network_error,
)
from codeloom.events import Started, StreamError, StreamEvent
from codeloom.instrumentation import completion_span, record_error, record_usage
from codeloom.message import ChatCompletionRequest, ChatCompletionResponse, ChatMessage
from codeloom.streaming import StreamEventDecoder

logger = logging.getLogger(__name__)

OPENAI_BASE_URL = "https://api.openai.com/v1"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

# Local OpenAI-compatible servers ignore the key but the SDK requires one.
_PLACEHOLDER_KEY = "DUMMY"


class ModelProvider(ABC):
    """Streams chat completions as :class:`~codeloom.events.StreamEvent` values."""

    system = "openai"

    @abstractmethod
    def stream_chat(
        self,
        model: str,
        messages: list[ChatMessage],
        tools: list[dict] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        ...

    @abstractmethod
    async def complete(
        self,
        model: str,
        messages: list[ChatMessage],
        tools: list[dict] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResponse:
        ...


class OpenAICompatibleProvider(ModelProvider):
    """Any endpoint that speaks the OpenAI chat-completions protocol.

    Args:
        base_url: Endpoint root; overrides ``config.base_url``.
        api_key: Bearer key; falls back to ``config.api_key`` and then to
            the ``api_key_env`` environment variable.
        config: Timeouts, retries and sampling defaults.
    """

    api_key_env: str | None = None

    def __init__(
        self,
        base_url: str | None = None,
        api_key: str | None = None,
        config: ProviderConfig | None = None,
    ):
        config = config or ProviderConfig()
        if base_url:
            config = config.model_copy(update={"base_url": base_url})
        self.config = config

        if not api_key:
            api_key = config.api_key
        if not api_key and self.api_key_env:
            api_key = os.getenv(self.api_key_env)

        self.client = AsyncOpenAI(
            base_url=config.base_url,
            api_key=api_key or _PLACEHOLDER_KEY,
            max_retries=config.max_retries,
            timeout=config.timeout(),
            default_headers=self.default_headers() or None,
        )

    def default_headers(self) -> dict[str, str]:
        return {}

    def _request(
        self, model, messages, tools, temperature, max_tokens, stream,
    ) -> ChatCompletionRequest:
        return ChatCompletionRequest(
            model=model,
            messages=messages,
            stream=stream,
            temperature=(
                self.config.temperature if temperature is None else temperature
            ),
            max_tokens=max_tokens if max_tokens is not None else self.config.max_tokens,
            tools=tools or None,
        )

    @asynccontextmanager
    async def _open_stream(self, request: ChatCompletionRequest):
        """Open the HTTP response and hand out its raw SSE lines."""
        async with self.client.chat.completions.with_streaming_response.create(
            **request.to_kwargs(),
        ) as response:
            yield response.iter_lines()

    async def stream_chat(
        self,
        model: str,
        messages: list[ChatMessage],
        tools: list[dict] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one completion.

        Yields :class:`Started` once the response is open, then the
        decoded events.  Provider failures come out as a terminal
        :class:`StreamError` rather than an exception.  If the stream
        stops without a terminal event the caller should treat the turn
        as cancelled.
        """
        request = self._request(model, messages, tools, temperature, max_tokens, True)
        logger.info(f"Streaming completion from {model} ({len(request.messages)} messages)")

        async with completion_span(self.system, model) as span:
            failure: Exception | None = None
            error: StreamError | None = None
            try:
                async with self._open_stream(request) as lines:
                    yield Started()
                    decoder = StreamEventDecoder()
                    async for event in decoder.decode(lines):
                        yield event
            except APIStatusError as e:
                failure = e
                error = StreamError(
                    message=describe_http_error(e.status_code, e.body),
                    status_code=e.status_code,
                )
            except (APITimeoutError, httpx.TimeoutException) as e:
                failure = e
                error = StreamError(message=describe_network_error(e, timed_out=True))
            except (APIConnectionError, httpx.TransportError) as e:
                failure = e
                error = StreamError(message=describe_network_error(e))

            if error is not None:
                logger.warning(f"Completion from {model} failed: {error.message}")
                record_error(span, failure)
                yield error

    async def complete(
        self,
        model: str,
        messages: list[ChatMessage],
        tools: list[dict] | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
    ) -> ChatCompletionResponse:
        """Request a single non-streamed completion.

        Raises:
            ProviderError: The provider answered with an error status.
            NetworkError: The request timed out or never connected.
        """
        request = self._request(model, messages, tools, temperature, max_tokens, False)
        async with completion_span(self.system, model) as span:
            try:
                raw = await self.client.chat.completions.create(**request.to_kwargs())
            except APIStatusError as e:
                record_error(span, e)
                raise ProviderError(
                    describe_http_error(e.status_code, e.body),
                    status_code=e.status_code,
                ) from e
            except APITimeoutError as e:
                record_error(span, e)
                raise NetworkError(describe_network_error(e, timed_out=True)) from e
            except APIConnectionError as e:
                record_error(span, e)
                raise NetworkError(describe_network_error(e)) from e

            response = ChatCompletionResponse.model_validate(raw.model_dump())
            record_usage(span, response.usage, response.model)
            return response


class OpenAIProvider(OpenAICompatibleProvider):

    api_key_env = "OPENAI_API_KEY"

    def __init__(self, api_key: str | None = None, config: ProviderConfig | None = None):
        super().__init__(base_url=OPENAI_BASE_URL, api_key=api_key, config=config)


class OpenRouter(OpenAICompatibleProvider):
    """OpenRouter, with the app attribution headers it asks for."""

    system = "openrouter"
    api_key_env = "OPENROUTER_API_KEY"

    def __init__(self, api_key: str | None = None, config: ProviderConfig | None = None):
        super().__init__(base_url=OPENROUTER_BASE_URL, api_key=api_key, config=config)

    def default_headers(self) -> dict[str, str]:
        headers = {"X-Title": self.config.app_name}
        if self.config.site_url:
            headers["HTTP-Referer"] = self.config.site_url
        return headers
