"""
Base gateway for hosted LLM APIs.

Each provider client turns one CompletionRequest into a ProviderResponse.
Failures (non-2xx, network errors, timeouts) come back as ok=False results
instead of exceptions. A 5xx reply is retried once; nothing else is retried.
SDK-level retries are switched off so this is the only retry policy.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from typing import Optional

import httpx
from openai import AsyncOpenAI

from models.provider_models import CompletionRequest, ProviderResponse, TokenUsage
from utils.settings import ProviderSettings

logger = logging.getLogger(__name__)


class GatewayClient(ABC):
    """Shared retry / timeout / cancellation handling for provider clients"""

    provider_name = "llm"

    def __init__(
        self,
        settings: ProviderSettings,
        http_client: Optional[httpx.AsyncClient] = None,
        retry_backoff: float = 1.0,
    ):
        self.settings = settings
        self.http_client = http_client
        self.retry_backoff = retry_backoff
        self._client = None

    @property
    def model(self) -> str:
        return self.settings.model

    @property
    def configured(self) -> bool:
        return self.settings.configured

    async def complete(
        self,
        request: CompletionRequest,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ProviderResponse:
        """Send one request. Never raises for provider-side failures."""
        model = request.model or self.settings.model

        if not self.configured:
            return ProviderResponse.failure(
                self.provider_name, f"{self.settings.api_key_env} not configured", model=model
            )

        attempts = 1 + max(0, self.settings.retries_on_5xx)
        for attempt in range(attempts):
            if cancel_event is not None and cancel_event.is_set():
                return ProviderResponse.failure(self.provider_name, "Request cancelled", model=model)

            start_time = time.time()
            try:
                result = await self._send(request, model)
            except Exception as e:
                status_code = getattr(e, "status_code", None)
                if status_code is not None and status_code >= 500 and attempt < attempts - 1:
                    logger.warning(
                        f"{self.provider_name} returned {status_code} "
                        f"(attempt {attempt + 1}/{attempts}). Retrying in {self.retry_backoff}s..."
                    )
                    await asyncio.sleep(self.retry_backoff)
                    continue

                message = self._describe_error(e)
                logger.warning(f"{self.provider_name} call failed: {message}")
                return ProviderResponse.failure(
                    self.provider_name, message, model=model, status_code=status_code
                )

            result.latency_ms = round((time.time() - start_time) * 1000, 2)
            usage = result.usage or TokenUsage()
            logger.info(
                f"LLM call to {self.provider_name}/{model}: {result.latency_ms}ms, "
                f"in={usage.input_tokens} out={usage.output_tokens}"
            )
            return result

        # Unreachable: the loop always returns
        return ProviderResponse.failure(self.provider_name, "No attempts made", model=model)

    async def ping(self) -> ProviderResponse:
        """Tiny request used by the system audit to prove the key works."""
        return await self.complete(CompletionRequest(prompt="test", max_tokens=10))

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    @abstractmethod
    async def _send(self, request: CompletionRequest, model: str) -> ProviderResponse:
        """Make one SDK call. Exceptions are turned into failure results by complete()."""

    def _describe_error(self, exc: Exception) -> str:
        status_code = getattr(exc, "status_code", None)
        if status_code is not None:
            return f"{status_code} - {getattr(exc, 'message', None) or exc}"
        if isinstance(exc, (httpx.TimeoutException, asyncio.TimeoutError)) or "timed out" in str(exc).lower():
            return f"Timed out after {self.settings.timeout}s"
        return f"{type(exc).__name__}: {exc}"


class ChatCompletionsClient(GatewayClient):
    """Providers exposing an OpenAI-compatible /chat/completions endpoint"""

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
                max_retries=0,
                http_client=self.http_client,
            )
        return self._client

    async def _send(self, request: CompletionRequest, model: str) -> ProviderResponse:
        messages = []
        if request.system:
            messages.append({"role": "system", "content": request.system})
        messages.extend(request.chat_messages())

        params = {
            "model": model,
            "messages": messages,
            "temperature": request.temperature if request.temperature is not None else self.settings.temperature,
            "max_tokens": request.max_tokens or self.settings.max_tokens,
        }
        if request.extra_body:
            params["extra_body"] = request.extra_body

        response = await self.client.chat.completions.create(**params)

        text = ""
        if response.choices:
            text = response.choices[0].message.content or ""

        usage = None
        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.prompt_tokens or 0,
                output_tokens=response.usage.completion_tokens or 0,
            )

        return ProviderResponse(
            ok=True,
            provider=self.provider_name,
            model=model,
            text=text,
            usage=usage,
            citations=list(getattr(response, "citations", None) or []),
        )
