"""Chat completion access to the AI platforms whose answers we monitor.

Every provider speaks the OpenAI chat completions protocol, so one
AsyncOpenAI client per provider is enough.
"""

from typing import Dict, List, Optional

from loguru import logger
import openai
from openai import AsyncOpenAI

from ..utils.config import LLMConfig, Settings
from ..utils.errors import ExternalServiceError, RateLimitError

PERPLEXITY_BASE_URL = "https://api.perplexity.ai"
GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"

SHOPPING_ASSISTANT_PROMPT = (
    "You are a helpful shopping assistant. Provide detailed, honest recommendations based on "
    "your knowledge. Include specific brand names and stores when relevant."
)
SEARCH_ASSISTANT_PROMPT = (
    "You are a helpful shopping assistant with access to current web information. Provide "
    "detailed recommendations including specific brand names and stores."
)


class LLMClient:
    """Send prompts to ChatGPT, Perplexity, Gemini or any OpenRouter model."""

    def __init__(self, settings: Settings, config: Optional[LLMConfig] = None):
        """Initialize LLM client.

        Args:
            settings: Environment settings holding the API keys
            config: Model names and request limits
        """
        self.config = config or LLMConfig()
        self._clients: Dict[str, AsyncOpenAI] = {}
        self._models: Dict[str, str] = {}

        common = {"timeout": self.config.timeout, "max_retries": self.config.max_retries}
        if settings.openai_api_key:
            self._clients["chatgpt"] = AsyncOpenAI(api_key=settings.openai_api_key, **common)
            self._models["chatgpt"] = self.config.openai_model
        if settings.perplexity_api_key:
            self._clients["perplexity"] = AsyncOpenAI(
                api_key=settings.perplexity_api_key, base_url=PERPLEXITY_BASE_URL, **common
            )
            self._models["perplexity"] = self.config.perplexity_model
        if settings.google_ai_api_key:
            self._clients["gemini"] = AsyncOpenAI(
                api_key=settings.google_ai_api_key, base_url=GEMINI_BASE_URL, **common
            )
            self._models["gemini"] = self.config.gemini_model
        if settings.openrouter_api_key:
            self._clients["openrouter"] = AsyncOpenAI(
                api_key=settings.openrouter_api_key, base_url=OPENROUTER_BASE_URL, **common
            )

    def available_platforms(self) -> List[str]:
        """Platforms with a direct API key, in preference order."""
        return [p for p in ("chatgpt", "perplexity", "gemini") if p in self._clients]

    @property
    def has_openrouter(self) -> bool:
        return "openrouter" in self._clients

    def system_prompt_for(self, platform: str) -> str:
        return SEARCH_ASSISTANT_PROMPT if platform == "perplexity" else SHOPPING_ASSISTANT_PROMPT

    async def complete(
        self,
        platform: str,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        """Ask one platform a question.

        Args:
            platform: chatgpt, perplexity or gemini
            prompt: User message
            system: System message (defaults to the shopping assistant prompt)
            max_tokens: Completion token cap
            temperature: Sampling temperature

        Returns:
            The response text, empty when the model returned nothing

        Raises:
            ExternalServiceError: If the platform is not configured or the call fails
            RateLimitError: If the provider throttled the request
        """
        if platform not in self._models:
            raise ExternalServiceError(platform, f"{platform} API key not configured")
        return await self._chat(
            platform,
            self._clients[platform],
            self._models[platform],
            prompt,
            system or self.system_prompt_for(platform),
            max_tokens,
            temperature,
        )

    async def complete_openrouter(
        self,
        model: str,
        prompt: str,
        system: Optional[str] = None,
        max_tokens: int = 1000,
        temperature: float = 0.7,
    ) -> str:
        """Ask any OpenRouter model (e.g. anthropic/claude-3.5-haiku) a question."""
        if not self.has_openrouter:
            raise ExternalServiceError("openrouter", "OpenRouter API key not configured")
        return await self._chat(
            "openrouter",
            self._clients["openrouter"],
            model,
            prompt,
            system or SHOPPING_ASSISTANT_PROMPT,
            max_tokens,
            temperature,
        )

    async def _chat(
        self,
        service: str,
        client: AsyncOpenAI,
        model: str,
        prompt: str,
        system: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        try:
            response = await client.chat.completions.create(
                model=model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
                max_tokens=max_tokens,
                temperature=temperature,
            )
        except openai.RateLimitError as e:
            logger.warning(f"{service} rate limited ({model}): {e}")
            raise RateLimitError(f"{service} rate limit exceeded, try again later") from e
        except Exception as e:
            logger.error(f"{service} completion failed ({model}): {e}")
            raise ExternalServiceError(service, str(e)) from e

        if not response.choices:
            return ""
        return response.choices[0].message.content or ""
