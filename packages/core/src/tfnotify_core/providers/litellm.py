from __future__ import annotations

import os

from tfnotify_core.errors import ConfigError
from tfnotify_core.providers.openai import OpenAISummarizer


class LiteLLMSummarizer(OpenAISummarizer):
    """LiteLLM proxy, reached through its OpenAI-compatible deployment routes."""

    MODEL = "gpt-4o"

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        proxy = base_url or os.environ.get("LITELLM_BASE_URL")
        if not proxy:
            raise ConfigError("LITELLM_BASE_URL is not set")
        model = kwargs.get("model") or self.MODEL
        super().__init__(api_key=api_key, base_url=f"{proxy.rstrip('/')}/openai/deployments/{model}", **kwargs)
