"""
AI Backend Service Module

This module provides:
- ModelBackend, the capability every provider implements
- Configuration validation
- create_backend, the factory keyed on the configured provider name

For provider-specific API implementations, see ai/providers.py
"""

from typing import Any, Dict, Optional, Protocol

import httpx

from chaptrans.config import BUILTIN_PROVIDERS, BUILTIN_PROVIDER_DISPLAY_NAMES
from chaptrans.exceptions import ConfigError
from chaptrans.logger import get_logger
from chaptrans.ai.providers import (
    GeminiBackend,
    OllamaBackend,
    OpenAICompatibleBackend,
    TokenUsage,
)

logger = get_logger(__name__)


class ModelBackend(Protocol):
    """A text-generation backend. json_mode asks the vendor for valid JSON output."""

    provider: str
    usage: TokenUsage

    def generate(self, system_prompt: str, user_content: str, json_mode: bool) -> str:
        ...


def _display_name(provider: str) -> str:
    return BUILTIN_PROVIDER_DISPLAY_NAMES.get(provider, provider.replace('-', ' ').title())


def validate_ai_config(config: Dict[str, Any], provider_override: Optional[str] = None) -> str:
    """
    Validate that AI provider configuration is properly set up.

    Args:
        config: Loaded configuration
        provider_override: Optional provider to validate instead of the configured one.

    Returns:
        The provider name that was validated.

    Raises:
        ConfigError: If configuration is invalid or missing, with code and details.
    """
    provider = provider_override if provider_override else config.get('ai_provider')
    if not provider:
        raise ConfigError("ai_provider is not configured", code="ai_config_missing",
                          details={"missing_field": "ai_provider"})

    provider_config = config.get(provider)

    if provider not in BUILTIN_PROVIDERS:
        # Custom provider - must exist in config with an OpenAI-compatible endpoint
        if not isinstance(provider_config, dict):
            raise ConfigError(
                f"Unknown AI provider: '{provider}'",
                code="ai_provider_unknown",
                details={"provider": provider}
            )
        if not provider_config.get('api_url'):
            raise ConfigError(
                f"Custom provider '{provider}' API URL not configured",
                code="ai_config_missing",
                details={"provider": provider, "missing_field": "api_url"}
            )

    if not isinstance(provider_config, dict) or not provider_config:
        raise ConfigError(
            f"AI provider '{provider}' configuration not found",
            code="ai_config_missing",
            details={"provider": provider}
        )

    provider_display = _display_name(provider)

    if provider == 'ollama':
        if not provider_config.get('base_url'):
            raise ConfigError(
                f"{provider_display} base_url not configured",
                code="ai_config_missing",
                details={"provider": provider, "missing_field": "base_url"}
            )
    else:
        api_key = provider_config.get('api_key', '')
        if not api_key or api_key == "YOUR_API_KEY_HERE":
            raise ConfigError(
                f"{provider_display} API key not configured",
                code="ai_config_missing",
                details={"provider": provider, "missing_field": "api_key"}
            )
        if provider != 'gemini' and not provider_config.get('api_url'):
            raise ConfigError(
                f"{provider_display} API URL not configured",
                code="ai_config_missing",
                details={"provider": provider, "missing_field": "api_url"}
            )

    # Check for models array or model field
    models = provider_config.get('models', [])
    model = provider_config.get('model', '')
    valid_models = [m for m in models if m and isinstance(m, str)] if isinstance(models, list) else []
    if not valid_models and not model:
        raise ConfigError(
            f"{provider_display} model not configured",
            code="ai_config_missing",
            details={"provider": provider, "missing_field": "models"}
        )

    return provider


def create_backend(
    config: Dict[str, Any],
    provider_override: Optional[str] = None,
    model_override: Optional[str] = None,
    transport: Optional[httpx.BaseTransport] = None,
) -> ModelBackend:
    """
    Build the backend for the configured provider.

    Raises:
        ConfigError: Unknown provider or incomplete provider block.
    """
    provider = validate_ai_config(config, provider_override)
    provider_config = config[provider]

    if provider == 'gemini':
        backend = GeminiBackend(provider_config, model_override, transport=transport)
    elif provider == 'ollama':
        backend = OllamaBackend(provider_config, model_override, transport=transport)
    else:
        # openai, deepseek and custom providers share the chat completions format
        backend = OpenAICompatibleBackend(provider, provider_config, model_override, transport=transport)

    logger.info(f"Initialized AI backend: {_display_name(provider)} (model: {backend.model})")
    return backend
