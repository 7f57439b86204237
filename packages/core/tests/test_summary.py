"""Tests for building the configured AI summarizer."""

import pytest

from tfnotify_core.errors import ConfigError
from tfnotify_core.providers.anthropic import AnthropicSummarizer
from tfnotify_core.providers.openai import OpenAISummarizer
from tfnotify_core.summary import build_summarizer


def _config(**settings):
    ai_summary = {"enabled": True, "provider": "", "model": "", "template": "", "template_file": "", "max_tokens": 0}
    ai_summary.update(settings)
    return {
        "ai_summary": ai_summary,
        "anthropic_api_key": "ant",
        "openai_api_key": "oai",
        "litellm_api_key": None,
    }


def test_disabled_returns_none():
    assert build_summarizer(_config(enabled=False)) is None


def test_missing_section_returns_none():
    assert build_summarizer({}) is None


def test_anthropic(mocker):
    mocker.patch("anthropic.Anthropic")
    summarizer = build_summarizer(_config(provider="anthropic", model="claude-3-5-haiku-latest", max_tokens=300))
    assert isinstance(summarizer, AnthropicSummarizer)
    assert summarizer.model == "claude-3-5-haiku-latest"
    assert summarizer.max_tokens == 300


def test_openai(mocker):
    mocker.patch("tfnotify_core.providers.openai._OpenAI")
    summarizer = build_summarizer(_config(provider="openai", template="{{ result }}"))
    assert isinstance(summarizer, OpenAISummarizer)
    assert summarizer.model == "gpt-4o"
    assert summarizer.template == "{{ result }}"


def test_default_provider_needs_litellm_key():
    with pytest.raises(ConfigError, match="LITELLM_API_KEY is not set"):
        build_summarizer(_config())


def test_missing_key():
    config = _config(provider="openai")
    config["openai_api_key"] = None
    with pytest.raises(ConfigError, match="OPENAI_API_KEY is not set"):
        build_summarizer(config)


def test_unsupported_provider():
    with pytest.raises(ConfigError, match="unsupported AI provider: devin"):
        build_summarizer(_config(provider="devin"))
