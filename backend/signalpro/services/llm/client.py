"""
LLM Client Abstraction

Unified interface over Google Gemini, Anthropic Claude and OpenAI.
Providers are tried in order: the configured primary first, then every
other provider that has an API key.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional
import logging

from signalpro.services.base import ExternalAPIError, RateLimitError

logger = logging.getLogger(__name__)


class LLMProvider(str, Enum):
    ANTHROPIC = "anthropic"
    OPENAI = "openai"
    GEMINI = "gemini"


@dataclass
class LLMConfig:
    """Configuration for LLM client."""

    provider: LLMProvider
    anthropic_api_key: Optional[str] = None
    openai_api_key: Optional[str] = None
    gemini_api_key: Optional[str] = None
    anthropic_model: str = "claude-3-5-sonnet-latest"
    openai_model: str = "gpt-4o-mini"
    gemini_model: str = "gemini-1.5-flash"
    max_tokens: int = 1500
    temperature: float = 0.3


@dataclass
class LLMResponse:
    """Response from LLM."""

    content: str
    model: str
    provider: LLMProvider
    usage: dict = field(default_factory=dict)


class BaseLLMClient(ABC):
    """Abstract base class for a single provider."""

    provider: LLMProvider

    def __init__(self, config: LLMConfig):
        self.config = config
        self._client = None

    @abstractmethod
    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        """Generate a response from the LLM."""
        pass

    def _temperature(self, temperature: Optional[float]) -> float:
        return temperature if temperature is not None else self.config.temperature

    def _max_tokens(self, max_tokens: Optional[int]) -> int:
        return max_tokens if max_tokens is not None else self.config.max_tokens


class AnthropicClient(BaseLLMClient):
    """Anthropic Claude client implementation."""

    provider = LLMProvider.ANTHROPIC

    def _get_client(self):
        """Lazy initialization of Anthropic client."""
        if self._client is None:
            try:
                import anthropic

                self._client = anthropic.AsyncAnthropic(
                    api_key=self.config.anthropic_api_key
                )
            except ImportError:
                raise RuntimeError(
                    "anthropic package not installed. Run: pip install anthropic"
                )
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        client = self._get_client()
        model = self.config.anthropic_model

        if response_format == "json":
            system_prompt = f"{system_prompt}\n\nRespond with a single JSON object only."

        response = await client.messages.create(
            model=model,
            max_tokens=self._max_tokens(max_tokens),
            temperature=self._temperature(temperature),
            system=system_prompt,
            messages=[{"role": "user", "content": user_prompt}],
        )

        return LLMResponse(
            content=response.content[0].text,
            model=model,
            provider=self.provider,
            usage={
                "input_tokens": response.usage.input_tokens,
                "output_tokens": response.usage.output_tokens,
            },
        )


class OpenAIClient(BaseLLMClient):
    """OpenAI GPT client implementation."""

    provider = LLMProvider.OPENAI

    def _get_client(self):
        """Lazy initialization of OpenAI client."""
        if self._client is None:
            try:
                import openai

                self._client = openai.AsyncOpenAI(api_key=self.config.openai_api_key)
            except ImportError:
                raise RuntimeError(
                    "openai package not installed. Run: pip install openai"
                )
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        client = self._get_client()
        model = self.config.openai_model

        kwargs = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": self._temperature(temperature),
            "max_tokens": self._max_tokens(max_tokens),
        }

        if response_format == "json":
            kwargs["response_format"] = {"type": "json_object"}

        response = await client.chat.completions.create(**kwargs)

        return LLMResponse(
            content=response.choices[0].message.content or "",
            model=model,
            provider=self.provider,
            usage={
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            },
        )


class GeminiClient(BaseLLMClient):
    """Google Gemini client implementation."""

    provider = LLMProvider.GEMINI

    def _get_client(self):
        if self._client is None:
            try:
                import google.generativeai as genai
            except ImportError:
                raise RuntimeError(
                    "google-generativeai package not installed. Run: pip install google-generativeai"
                )
            genai.configure(api_key=self.config.gemini_api_key)
            self._client = genai.GenerativeModel(self.config.gemini_model)
        return self._client

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        model = self._get_client()

        # Combine system and user prompts for Gemini
        full_prompt = f"{system_prompt}\n\n---\n\n{user_prompt}"

        generation_config = {
            "temperature": self._temperature(temperature),
            "max_output_tokens": self._max_tokens(max_tokens),
        }
        if response_format == "json":
            generation_config["response_mime_type"] = "application/json"

        response = await model.generate_content_async(
            full_prompt, generation_config=generation_config
        )

        usage = {}
        metadata = getattr(response, "usage_metadata", None)
        if metadata is not None:
            usage = {
                "prompt_tokens": metadata.prompt_token_count,
                "completion_tokens": metadata.candidates_token_count,
            }

        return LLMResponse(
            content=response.text,
            model=self.config.gemini_model,
            provider=self.provider,
            usage=usage,
        )


_CLIENT_CLASSES: dict[LLMProvider, type[BaseLLMClient]] = {
    LLMProvider.GEMINI: GeminiClient,
    LLMProvider.ANTHROPIC: AnthropicClient,
    LLMProvider.OPENAI: OpenAIClient,
}


def _classify_error(provider: LLMProvider, error: Exception) -> ExternalAPIError:
    """Map SDK exceptions onto the service error hierarchy."""
    service = f"LLM:{provider.value}"
    status = getattr(error, "status_code", None) or getattr(error, "code", None)
    name = type(error).__name__
    details = {"provider": provider.value, "error_type": name}

    if status == 429 or "RateLimit" in name or "ResourceExhausted" in name:
        return RateLimitError(service, f"Rate limited: {error}", details)
    if status is not None:
        details["status"] = status
    return ExternalAPIError(service, str(error) or name, details)


class LLMClient:
    """
    Unified LLM client with ordered provider fallback.

    Each provider failure is logged and the next provider is tried. When
    all of them fail, the last failure is raised as ExternalAPIError (or
    RateLimitError).
    """

    def __init__(self, config: LLMConfig):
        self.config = config
        self._clients: list[BaseLLMClient] = self._setup_clients()

    def _keys(self) -> dict[LLMProvider, Optional[str]]:
        return {
            LLMProvider.GEMINI: self.config.gemini_api_key,
            LLMProvider.ANTHROPIC: self.config.anthropic_api_key,
            LLMProvider.OPENAI: self.config.openai_api_key,
        }

    def _setup_clients(self) -> list[BaseLLMClient]:
        """Primary first, then the remaining providers that have keys."""
        keys = self._keys()
        order = [self.config.provider] + [p for p in LLMProvider if p != self.config.provider]
        clients = [_CLIENT_CLASSES[p](self.config) for p in order if keys.get(p)]

        if not clients:
            logger.warning("No LLM API keys configured. Advisory disabled.")
        return clients

    @property
    def is_configured(self) -> bool:
        return bool(self._clients)

    @property
    def providers(self) -> list[LLMProvider]:
        return [client.provider for client in self._clients]

    async def generate(
        self,
        system_prompt: str,
        user_prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        response_format: Optional[str] = None,
    ) -> LLMResponse:
        """Generate an LLM response, falling through providers in order."""
        if not self._clients:
            raise ExternalAPIError("LLMClient", "No LLM providers configured")

        last_error: Optional[ExternalAPIError] = None
        for client in self._clients:
            try:
                return await client.generate(
                    system_prompt=system_prompt,
                    user_prompt=user_prompt,
                    temperature=temperature,
                    max_tokens=max_tokens,
                    response_format=response_format,
                )
            except Exception as e:
                last_error = _classify_error(client.provider, e)
                logger.warning(f"LLM provider {client.provider.value} failed: {e}")

        raise last_error


# Singleton instance management
_llm_client: Optional[LLMClient] = None


def get_llm_client() -> LLMClient:
    """Get or create LLM client singleton."""
    global _llm_client
    if _llm_client is None:
        from signalpro.core.config import settings

        config = LLMConfig(
            provider=LLMProvider(settings.llm_primary_provider),
            anthropic_api_key=settings.anthropic_api_key,
            openai_api_key=settings.openai_api_key,
            gemini_api_key=settings.gemini_api_key,
            anthropic_model=settings.llm_anthropic_model,
            openai_model=settings.llm_openai_model,
            gemini_model=settings.llm_gemini_model,
        )
        _llm_client = LLMClient(config)
    return _llm_client
