from __future__ import annotations

from tfnotify_core.providers.base import BaseSummarizer


class AnthropicSummarizer(BaseSummarizer):
    MODEL = "claude-3-haiku-20240307"

    def __init__(self, api_key: str, **kwargs):
        super().__init__(**kwargs)
        try:
            from anthropic import Anthropic
        except ImportError:
            raise ImportError(
                "The 'anthropic' package is required for this provider. " "Install it with: pip install anthropic"
            )
        self.client = Anthropic(api_key=api_key)

    def _call_api(self, prompt: str) -> str:
        # __init__ already checked that anthropic is importable.
        from anthropic.types import TextBlock

        response = self.client.messages.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
        )
        text_blocks = [block.text for block in response.content if isinstance(block, TextBlock)]
        if not text_blocks:
            raise ValueError("no content in response")
        return "".join(text_blocks)
