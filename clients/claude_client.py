"""
Anthropic Claude client - the primary content model.
"""

from anthropic import AsyncAnthropic

from clients.llm_gateway import GatewayClient
from models.provider_models import CompletionRequest, ProviderResponse, TokenUsage


class ClaudeClient(GatewayClient):
    """Messages API wrapper. System prompts go in the top-level `system` field."""

    provider_name = "claude"

    @property
    def client(self) -> AsyncAnthropic:
        if self._client is None:
            self._client = AsyncAnthropic(
                api_key=self.settings.api_key,
                base_url=self.settings.base_url,
                timeout=self.settings.timeout,
                max_retries=0,
                http_client=self.http_client,
            )
        return self._client

    async def _send(self, request: CompletionRequest, model: str) -> ProviderResponse:
        system_parts = [request.system] if request.system else []
        messages = []
        for message in request.chat_messages():
            if message.get("role") == "system":
                system_parts.append(message.get("content", ""))
            else:
                messages.append({"role": message.get("role", "user"), "content": message.get("content", "")})

        params = {
            "model": model,
            "max_tokens": request.max_tokens or self.settings.max_tokens,
            "temperature": request.temperature if request.temperature is not None else self.settings.temperature,
            "messages": messages,
        }
        if system_parts:
            params["system"] = "\n\n".join(system_parts)

        response = await self.client.messages.create(**params)

        # Concatenate only text blocks
        content = ""
        for block in response.content:
            if hasattr(block, "text"):
                content += block.text

        usage = None
        if response.usage:
            usage = TokenUsage(
                input_tokens=response.usage.input_tokens or 0,
                output_tokens=response.usage.output_tokens or 0,
            )

        return ProviderResponse(ok=True, provider=self.provider_name, model=model, text=content, usage=usage)
