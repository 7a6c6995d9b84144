"""Trust evaluator backends.

Every backend satisfies EvaluatorPort: a system instruction and a prompt go
in, plain response text comes out. The backend is chosen once at startup by
build_evaluator.
"""

from __future__ import annotations

import logging

import anthropic
import openai

from newspulse.core.config import VerificationConfig
from newspulse.core.errors import ConfigError, EvaluatorError

LOGGER = logging.getLogger(__name__)

REQUEST_TIMEOUT_SECONDS = 60.0

# OpenAI-compatible providers and their default endpoints.
OPENAI_COMPATIBLE_BASE_URLS = {
    "openai": None,
    "openrouter": "https://openrouter.ai/api/v1",
    "ollama": "http://localhost:11434/v1",
}


class AnthropicEvaluator:
    """Anthropic Messages API backend."""

    name = "anthropic"

    def __init__(self, api_key: str, model: str, max_tokens: int) -> None:
        self._client = anthropic.AsyncAnthropic(api_key=api_key, timeout=REQUEST_TIMEOUT_SECONDS, max_retries=0)
        self._model = model
        self._max_tokens = max_tokens

    async def complete(self, system: str, prompt: str) -> str:
        try:
            response = await self._client.messages.create(
                model=self._model,
                max_tokens=self._max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as exc:
            raise EvaluatorError(f"Anthropic request failed: {exc}") from exc
        return "".join(block.text for block in response.content if getattr(block, "type", None) == "text")


class OpenAICompatibleEvaluator:
    """Chat Completions backend for OpenAI and OpenAI-compatible servers."""

    def __init__(self, name: str, api_key: str, model: str, max_tokens: int, base_url: str | None = None) -> None:
        self.name = name
        self._client = openai.AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=REQUEST_TIMEOUT_SECONDS,
            max_retries=0,
        )
        self._model = model
        self._max_tokens = max_tokens

    async def complete(self, system: str, prompt: str) -> str:
        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                max_tokens=self._max_tokens,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": prompt},
                ],
            )
        except openai.OpenAIError as exc:
            raise EvaluatorError(f"{self.name} request failed: {exc}") from exc
        if not response.choices:
            raise EvaluatorError(f"{self.name} returned no choices")
        return response.choices[0].message.content or ""


def build_evaluator(config: VerificationConfig):
    """Create the evaluator backend named by config.provider."""

    provider = config.provider.lower()
    if provider == "anthropic":
        if not config.api_key:
            raise ConfigError("ANTHROPIC_API_KEY is required when verification.provider=anthropic")
        evaluator = AnthropicEvaluator(config.api_key, config.model, config.max_tokens)
    elif provider in OPENAI_COMPATIBLE_BASE_URLS:
        base_url = config.base_url or OPENAI_COMPATIBLE_BASE_URLS[provider]
        api_key = config.api_key
        if not api_key:
            if provider != "ollama":
                raise ConfigError(f"An API key is required when verification.provider={provider}")
            # Ollama ignores the key but the client insists on one.
            api_key = "ollama"
        evaluator = OpenAICompatibleEvaluator(provider, api_key, config.model, config.max_tokens, base_url)
    else:
        raise ConfigError(
            "verification.provider must be one of: anthropic, " + ", ".join(OPENAI_COMPATIBLE_BASE_URLS)
        )

    LOGGER.info("Selected evaluator - %s (%s)", provider, config.model)
    return evaluator
