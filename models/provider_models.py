"""
Request/response shapes shared by the LLM gateway clients.
"""

from pydantic import BaseModel, Field
from typing import List, Optional, Dict, Any


class TokenUsage(BaseModel):
    input_tokens: int = 0
    output_tokens: int = 0


class CompletionRequest(BaseModel):
    """One call to a hosted model. Either messages or prompt must be set."""
    prompt: Optional[str] = None
    messages: Optional[List[Dict[str, str]]] = None
    system: Optional[str] = None
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    model: Optional[str] = None
    extra_body: Dict[str, Any] = Field(default_factory=dict)

    def chat_messages(self) -> List[Dict[str, str]]:
        """Messages without the system prompt (Anthropic takes it separately)."""
        if self.messages:
            return list(self.messages)
        return [{"role": "user", "content": self.prompt or ""}]


class ProviderResponse(BaseModel):
    """
    Outcome of one provider call.

    ok=False carries error_message instead of raising so a best-effort
    pipeline can decide whether the failure matters.
    """
    ok: bool
    provider: str
    model: Optional[str] = None
    text: str = ""
    usage: Optional[TokenUsage] = None
    error_message: Optional[str] = None
    status_code: Optional[int] = None
    citations: List[str] = Field(default_factory=list)
    latency_ms: Optional[float] = None

    @classmethod
    def failure(
        cls,
        provider: str,
        error_message: str,
        model: Optional[str] = None,
        status_code: Optional[int] = None,
    ) -> "ProviderResponse":
        return cls(ok=False, provider=provider, model=model, error_message=error_message, status_code=status_code)

    def usage_dict(self) -> Optional[Dict[str, int]]:
        return self.usage.model_dump() if self.usage else None
