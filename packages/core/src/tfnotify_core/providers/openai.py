from __future__ import annotations

try:
    from openai import OpenAI as _OpenAI
except ImportError:
    _OpenAI = None  # type: ignore[assignment,misc]

from tfnotify_core.providers.base import BaseSummarizer


class OpenAISummarizer(BaseSummarizer):
    MODEL = "gpt-4o"

    def __init__(self, api_key: str, base_url: str | None = None, **kwargs):
        super().__init__(**kwargs)
        if _OpenAI is None:
            raise ImportError(
                "The 'openai' package is required for this provider. " "Install it with: pip install openai"
            )
        self.client = _OpenAI(api_key=api_key, base_url=base_url)

    def _call_api(self, prompt: str) -> str:
        response = self.client.chat.completions.create(
            model=self.model,
            messages=[{"role": "user", "content": prompt}],
            max_tokens=self.max_tokens,
        )
        if not response.choices:
            raise ValueError("no choices in response")
        return response.choices[0].message.content or ""
