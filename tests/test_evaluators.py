from __future__ import annotations

import pytest

from newspulse.adapters.evaluators import AnthropicEvaluator, OpenAICompatibleEvaluator, build_evaluator
from newspulse.core.config import VerificationConfig
from newspulse.core.errors import ConfigError


def test_builds_anthropic_backend() -> None:
    evaluator = build_evaluator(VerificationConfig(provider="anthropic", api_key="sk-ant-test"))
    assert isinstance(evaluator, AnthropicEvaluator)
    assert evaluator.name == "anthropic"


def test_builds_openai_compatible_backends() -> None:
    openrouter = build_evaluator(VerificationConfig(provider="openrouter", model="x/y", api_key="key"))
    ollama = build_evaluator(VerificationConfig(provider="ollama", model="llama3"))

    assert isinstance(openrouter, OpenAICompatibleEvaluator)
    assert openrouter.name == "openrouter"
    assert ollama.name == "ollama"


def test_missing_key_is_a_config_error() -> None:
    with pytest.raises(ConfigError, match="ANTHROPIC_API_KEY"):
        build_evaluator(VerificationConfig(provider="anthropic"))
    with pytest.raises(ConfigError):
        build_evaluator(VerificationConfig(provider="openai"))


def test_unknown_provider() -> None:
    with pytest.raises(ConfigError, match="must be one of"):
        build_evaluator(VerificationConfig(provider="gemini", api_key="k"))
