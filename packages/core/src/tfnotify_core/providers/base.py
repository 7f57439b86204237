"""Base summarizer implementing the Template Method pattern.

All providers share the same summary algorithm:
    summarize() → _load_template() → _render_prompt()
                → _call_api()   ← only this differs per provider

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

A failed call is not retried; the notifier logs it and posts the comment
without a summary.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from jinja2.sandbox import SandboxedEnvironment

from tfnotify_core.providers import prompts

logger = logging.getLogger(__name__)

_MAX_TOKENS = 500


class BaseSummarizer(ABC):
    MODEL: str = ""
    MAX_TOKENS: int = _MAX_TOKENS

    def __init__(
        self,
        model: str | None = None,
        max_tokens: int | None = None,
        template: str | None = None,
        template_file: str | None = None,
    ):
        self.model = model or self.MODEL
        self.max_tokens = max_tokens or self.MAX_TOKENS
        self.template = template
        self.template_file = template_file

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def summarize(self, data: dict) -> str:
        """Render the prompt for ``data`` and return the model's summary."""
        template = self._load_template(data.get("operation_type", ""), bool(data.get("is_success")))
        prompt = self._render_prompt(template, data)
        logger.debug(
            "%s: prompt of %d chars (model=%s, max_tokens=%d)",
            self.__class__.__name__,
            len(prompt),
            self.model,
            self.max_tokens,
        )
        return self._call_api(prompt).strip()

    # ------------------------------------------------------------------ #
    # Implemented by each provider                                         #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, prompt: str) -> str:
        """Make a single API call and return the raw text response."""

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _load_template(self, operation_type: str, is_success: bool) -> str:
        """Pick the prompt template: explicit file, then explicit string, then built-in."""
        if self.template_file:
            return Path(self.template_file).read_text()
        if self.template:
            return self.template
        return prompts.select(operation_type, is_success)

    def _render_prompt(self, template: str, data: dict) -> str:
        return SandboxedEnvironment().from_string(template).render(**data)
