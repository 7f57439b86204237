"""Redaction of secrets from comment bodies and echoed command output.

Masks come from ``TFNOTIFY_MASKS``, a separator-delimited list of entries:

    env:GITHUB_TOKEN        the variable's current value, matched literally
    regexp:ghp_[0-9a-z]+    a regular expression

Every match is replaced with ``***``.
"""

from __future__ import annotations

import os
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TextIO

from tfnotify_core.errors import ConfigError

REDACTED = "***"

TYPE_EQUAL = "equal"
TYPE_REGEXP = "regexp"


@dataclass
class Mask:
    type: str
    value: str
    pattern: re.Pattern | None = None

    def apply(self, text: str) -> str:
        if self.type == TYPE_EQUAL:
            return text.replace(self.value, REDACTED)
        if self.type == TYPE_REGEXP and self.pattern is not None:
            return self.pattern.sub(REDACTED, text)
        return text


def _parse_mask(entry: str, getenv: Callable[[str], str | None]) -> Mask | None:
    kind, sep, value = entry.partition(":")
    if not sep:
        raise ConfigError(f"parse a mask {entry!r}: the mask is invalid. ':' is missing")
    if kind == "env":
        resolved = getenv(value)
        if not resolved:
            return None
        return Mask(type=TYPE_EQUAL, value=resolved)
    if kind == "regexp":
        try:
            pattern = re.compile(value)
        except re.error as e:
            raise ConfigError(f"parse a mask {entry!r}: the regular expression is invalid: {e}") from e
        return Mask(type=TYPE_REGEXP, value=value, pattern=pattern)
    raise ConfigError(f"parse a mask {entry!r}: the mask type is invalid")


def parse_masks(value: str, separator: str = ",", getenv: Callable[[str], str | None] = os.getenv) -> list[Mask]:
    if not value:
        return []
    masks = []
    for entry in value.split(separator or ","):
        parsed = _parse_mask(entry, getenv)
        if parsed is not None:
            masks.append(parsed)
    return masks


def parse_masks_from_env(getenv: Callable[[str], str | None] = os.getenv) -> list[Mask]:
    return parse_masks(getenv("TFNOTIFY_MASKS") or "", getenv("TFNOTIFY_MASKS_SEPARATOR") or ",", getenv)


def mask(text: str, masks: list[Mask]) -> str:
    for m in masks:
        text = m.apply(text)
    return text


class MaskedWriter:
    """File-like wrapper that redacts everything written through it."""

    def __init__(self, stream: TextIO, masks: list[Mask]):
        self.stream = stream
        self.masks = masks

    def write(self, text: str) -> int:
        self.stream.write(mask(text, self.masks))
        return len(text)

    def flush(self) -> None:
        self.stream.flush()
