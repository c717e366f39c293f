"""
Perplexity API client for cited web research.
Perplexity API is OpenAI-compatible (same SDK, different base_url).
"""

import asyncio
import logging
from typing import Optional

from clients.llm_gateway import ChatCompletionsClient
from models.provider_models import CompletionRequest, ProviderResponse

logger = logging.getLogger(__name__)

RESEARCH_SYSTEM_PROMPT = (
    "You are a research assistant providing accurate, well-cited information. "
    "Always include sources and verify facts."
)

# researchDepth -> model
DEPTH_MODELS = {
    "standard": "sonar",
    "deep": "sonar-pro",
}


class PerplexityClient(ChatCompletionsClient):
    provider_name = "perplexity"

    def model_for_depth(self, research_depth: Optional[str]) -> str:
        """Deep research uses sonar-pro; anything else keeps the configured model."""
        if research_depth == "deep":
            return DEPTH_MODELS["deep"]
        return self.settings.model

    async def research(
        self,
        query: str,
        research_depth: str = "standard",
        include_citations: bool = True,
        system: Optional[str] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> ProviderResponse:
        """
        Ask a research question restricted to recent sources.

        Returns:
            ProviderResponse with text and, when requested, citations (URLs)
        """
        request = CompletionRequest(
            system=system or RESEARCH_SYSTEM_PROMPT,
            prompt=query,
            temperature=0.2,
            model=self.model_for_depth(research_depth),
            extra_body={
                "top_p": 0.9,
                "return_citations": include_citations,
                "return_images": False,
                "search_recency_filter": "month",
            },
        )
        response = await self.complete(request, cancel_event=cancel_event)
        if response.ok:
            logger.info(f"Perplexity research: {len(response.citations)} citations")
            if not include_citations:
                response.citations = []
        return response
