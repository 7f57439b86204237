from __future__ import annotations

import logging

from tfnotify_core.errors import ConfigError

logger = logging.getLogger(__name__)

PROVIDERS = ("anthropic", "openai", "litellm")
DEFAULT_PROVIDER = "litellm"

_API_KEYS = {
    "anthropic": ("anthropic_api_key", "ANTHROPIC_API_KEY"),
    "openai": ("openai_api_key", "OPENAI_API_KEY"),
    "litellm": ("litellm_api_key", "LITELLM_API_KEY"),
}


def build_summarizer(config: dict):
    """Return the configured AI summarizer, or None when summaries are disabled."""
    settings = config.get("ai_summary") or {}
    if not settings.get("enabled"):
        return None

    provider = settings.get("provider") or DEFAULT_PROVIDER
    if provider not in PROVIDERS:
        raise ConfigError(f"unsupported AI provider: {provider}")

    key_name, env_name = _API_KEYS[provider]
    api_key = config.get(key_name)
    if not api_key:
        raise ConfigError(f"{env_name} is not set")

    kwargs = {
        "model": settings.get("model") or None,
        "max_tokens": settings.get("max_tokens") or None,
        "template": settings.get("template") or None,
        "template_file": settings.get("template_file") or None,
    }
    logger.info("AI summary enabled (provider=%s, model=%s)", provider, kwargs["model"] or "default")

    if provider == "anthropic":
        from tfnotify_core.providers.anthropic import AnthropicSummarizer

        return AnthropicSummarizer(api_key=api_key, **kwargs)
    if provider == "openai":
        from tfnotify_core.providers.openai import OpenAISummarizer

        return OpenAISummarizer(api_key=api_key, **kwargs)

    from tfnotify_core.providers.litellm import LiteLLMSummarizer

    return LiteLLMSummarizer(api_key=api_key, **kwargs)
