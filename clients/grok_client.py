"""
xAI Grok client - real-time trends and creative brainstorming.
Grok's API is OpenAI-compatible (same SDK, different base_url).
"""

from clients.llm_gateway import ChatCompletionsClient


class GrokClient(ChatCompletionsClient):
    provider_name = "grok"
