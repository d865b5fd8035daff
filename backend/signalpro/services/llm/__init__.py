"""
LLM Client

CONTRACT:
    Input:  system prompt + user prompt
    Output: LLMResponse (raw text)

PROVIDERS:
    - Google Gemini, Anthropic Claude, OpenAI
    - Configured primary first, then any other provider with a key

CRITICAL RULES:
    - LLM does NO math - all numbers come from the Indicator Engine
    - Provider failures surface as ExternalAPIError / RateLimitError
    - System remains functional without LLM API keys
"""

from signalpro.services.llm.client import (
    LLMClient,
    LLMConfig,
    LLMProvider,
    LLMResponse,
    get_llm_client,
)

__all__ = [
    "LLMClient",
    "LLMConfig",
    "LLMProvider",
    "LLMResponse",
    "get_llm_client",
]
