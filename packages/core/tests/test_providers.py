"""Tests for AI summary provider implementations.

Shared behaviour (template selection and prompt rendering) lives in
BaseSummarizer and is tested once via a lightweight stub. Provider-specific
tests cover only what differs: the SDK client setup and _call_api.
"""

from unittest.mock import MagicMock, patch

import pytest

from tfnotify_core.errors import ConfigError
from tfnotify_core.providers import prompts
from tfnotify_core.providers.anthropic import AnthropicSummarizer
from tfnotify_core.providers.base import BaseSummarizer
from tfnotify_core.providers.litellm import LiteLLMSummarizer
from tfnotify_core.providers.openai import OpenAISummarizer


class _StubSummarizer(BaseSummarizer):
    MODEL = "stub-model"

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.prompts = []

    def _call_api(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return "  summary text \n"


# ---------------------------------------------------------------------------
# Shared behaviour, tested once through the stub
# ---------------------------------------------------------------------------


class TestBaseSummarizer:
    def test_defaults(self):
        stub = _StubSummarizer()
        assert stub.model == "stub-model"
        assert stub.max_tokens == 500

    def test_overrides(self):
        stub = _StubSummarizer(model="other", max_tokens=100)
        assert stub.model == "other"
        assert stub.max_tokens == 100

    def test_response_is_stripped(self):
        assert _StubSummarizer().summarize({"operation_type": "plan", "is_success": True}) == "summary text"

    def test_plan_success_prompt(self):
        stub = _StubSummarizer()
        stub.summarize(
            {
                "operation_type": "plan",
                "is_success": True,
                "result": "Plan: 1 to add, 0 to change, 1 to destroy.",
                "created_resources": ["aws_s3_bucket.logs"],
                "deleted_resources": ["aws_instance.old"],
            }
        )
        prompt = stub.prompts[0]
        assert "Plan: 1 to add, 0 to change, 1 to destroy." in prompt
        assert "Created: aws_s3_bucket.logs" in prompt
        assert "Deleted: aws_instance.old" in prompt
        assert "Updated:" not in prompt

    def test_apply_failure_prompt(self):
        stub = _StubSummarizer()
        stub.summarize({"operation_type": "apply", "is_success": False, "exit_code": 1, "result": "Error: denied"})
        assert "A Terraform apply failed (exit code 1)." in stub.prompts[0]

    def test_error_messages_included(self):
        stub = _StubSummarizer()
        stub.summarize({"operation_type": "plan", "is_success": True, "error_messages": ["add a label x: boom"]})
        assert "- add a label x: boom" in stub.prompts[0]

    def test_custom_template_string(self):
        stub = _StubSummarizer(template="Result: {{ result }}")
        stub.summarize({"operation_type": "plan", "result": "No changes."})
        assert stub.prompts == ["Result: No changes."]

    def test_template_file_wins(self, tmp_path):
        path = tmp_path / "prompt.j2"
        path.write_text("From file: {{ repo_name }}")
        stub = _StubSummarizer(template="ignored", template_file=str(path))
        stub.summarize({"repo_name": "infra"})
        assert stub.prompts == ["From file: infra"]


class TestPromptSelection:
    def test_known_contexts(self):
        assert prompts.select("plan", True) is prompts.PLAN_SUCCESS
        assert prompts.select("plan", False) is prompts.PLAN_FAILURE
        assert prompts.select("apply", True) is prompts.APPLY_SUCCESS
        assert prompts.select("apply", False) is prompts.APPLY_FAILURE

    def test_unknown_context(self):
        assert prompts.select("", True) is prompts.DEFAULT


# ---------------------------------------------------------------------------
# Provider-specific behaviour
# ---------------------------------------------------------------------------


class TestAnthropicSummarizer:
    def test_raises_import_error_without_sdk(self):
        """AnthropicSummarizer.__init__ must raise if the anthropic package is absent."""
        with patch.dict("sys.modules", {"anthropic": None}):
            with pytest.raises(ImportError):
                AnthropicSummarizer(api_key="key")

    def test_model_is_claude(self):
        assert "claude" in AnthropicSummarizer.MODEL

    def test_call_api_joins_text_blocks(self, mocker):
        from anthropic.types import TextBlock

        client_cls = mocker.patch("anthropic.Anthropic")
        client_cls.return_value.messages.create.return_value = MagicMock(
            content=[TextBlock(type="text", text="Adds "), TextBlock(type="text", text="a bucket.")]
        )
        summarizer = AnthropicSummarizer(api_key="key", max_tokens=200)
        assert summarizer._call_api("prompt") == "Adds a bucket."
        kwargs = client_cls.return_value.messages.create.call_args.kwargs
        assert kwargs["max_tokens"] == 200
        assert kwargs["messages"] == [{"role": "user", "content": "prompt"}]

    def test_empty_response(self, mocker):
        client_cls = mocker.patch("anthropic.Anthropic")
        client_cls.return_value.messages.create.return_value = MagicMock(content=[])
        with pytest.raises(ValueError, match="no content"):
            AnthropicSummarizer(api_key="key")._call_api("prompt")


class TestOpenAISummarizer:
    def test_raises_import_error_without_sdk(self, mocker):
        """OpenAISummarizer.__init__ must raise if the openai package is absent."""
        mocker.patch("tfnotify_core.providers.openai._OpenAI", None)
        with pytest.raises(ImportError):
            OpenAISummarizer(api_key="key")

    def test_model_is_gpt(self):
        assert "gpt" in OpenAISummarizer.MODEL

    def test_call_api(self, mocker):
        client_cls = mocker.patch("tfnotify_core.providers.openai._OpenAI")
        message = MagicMock()
        message.content = "Replaces one instance."
        client_cls.return_value.chat.completions.create.return_value = MagicMock(choices=[MagicMock(message=message)])
        summarizer = OpenAISummarizer(api_key="key", model="gpt-4o-mini")
        assert summarizer._call_api("prompt") == "Replaces one instance."
        client_cls.assert_called_once_with(api_key="key", base_url=None)
        assert client_cls.return_value.chat.completions.create.call_args.kwargs["model"] == "gpt-4o-mini"

    def test_no_choices(self, mocker):
        client_cls = mocker.patch("tfnotify_core.providers.openai._OpenAI")
        client_cls.return_value.chat.completions.create.return_value = MagicMock(choices=[])
        with pytest.raises(ValueError, match="no choices"):
            OpenAISummarizer(api_key="key")._call_api("prompt")


class TestLiteLLMSummarizer:
    def test_deployment_url(self, mocker, monkeypatch):
        monkeypatch.setenv("LITELLM_BASE_URL", "https://litellm.example.com/")
        client_cls = mocker.patch("tfnotify_core.providers.openai._OpenAI")
        summarizer = LiteLLMSummarizer(api_key="key", model="gpt-4o-mini")
        client_cls.assert_called_once_with(
            api_key="key", base_url="https://litellm.example.com/openai/deployments/gpt-4o-mini"
        )
        assert summarizer.model == "gpt-4o-mini"

    def test_default_model(self, mocker, monkeypatch):
        monkeypatch.setenv("LITELLM_BASE_URL", "https://litellm.example.com")
        client_cls = mocker.patch("tfnotify_core.providers.openai._OpenAI")
        LiteLLMSummarizer(api_key="key")
        assert client_cls.call_args.kwargs["base_url"].endswith("/openai/deployments/gpt-4o")

    def test_base_url_required(self, monkeypatch):
        monkeypatch.delenv("LITELLM_BASE_URL", raising=False)
        with pytest.raises(ConfigError, match="LITELLM_BASE_URL"):
            LiteLLMSummarizer(api_key="key")
