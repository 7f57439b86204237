"""Line-oriented parsers for terraform / OpenTofu plan and apply output.

Both parsers are pure functions of the captured text and never raise: output
that matches neither the pass nor the fail signature produces a result with
``has_parse_error`` set and nothing else filled in.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from tfnotify_core.errors import ParseError

_PLAN_PASS = re.compile(r"^(Plan: \d|No changes.)", re.M)
_PLAN_FAIL = re.compile(r"^([│|] )?(Error: )", re.M)
_PLAN_WARNING = re.compile(r"^([│|] )?(Warning: )", re.M)
_OUTPUTS_CHANGES = re.compile(r"^Changes to Outputs:", re.M)
# "0 to destroy" is not a destroy.
_HAS_DESTROY = re.compile(r"([1-9][0-9]* to destroy.)")
_HAS_NO_CHANGES = re.compile(r"^(No changes\.|Plan: 0 to add, 0 to change, 0 to destroy\.)", re.M)

_APPLY_PASS = re.compile(r"^(Apply complete!)", re.M)
_APPLY_FAIL = re.compile(r"^([│|] )?(Error: )", re.M)

_CREATE = re.compile(r"^ *# (.*) will be created$")
_UPDATE = re.compile(r"^ *# (.*) will be updated in-place$")
_DELETE = re.compile(r"^ *# (.*) will be destroyed$")
_REPLACE = re.compile(r"^ *# (.*?)(?: is tainted, so)? must be replaced$")
_REPLACE_OPTION = re.compile(r"^ *# (.*?) will be replaced, as requested$")
_MOVE = re.compile(r"^ *# (.*?) has moved to (.*?)$")
_IMPORT = re.compile(r"^ *# (.*?) will be imported$")
_IMPORTED_FROM = re.compile(r"^ *# \(imported from (.*?)\)$")
_MOVED_FROM = re.compile(r"^ *# \(moved from (.*?)\)$")

_DRIFT_BANNERS = (
    "Note: Objects have changed outside of Terraform",
    "Note: Objects have changed outside of OpenTofu",
)
_DRIFT_FOOTER = "Unless you have made equivalent changes to your configuration"
_ACTION_BANNERS = (
    "Terraform will perform the following actions:",
    "OpenTofu will perform the following actions:",
)
_OUTPUTS_BANNER = "Changes to Outputs:"
# Terraform draws horizontal rules with either character depending on version.
_RULES = ("─────", "-----")

# Evaluated top to bottom; the first rule whose pattern captures a non-empty
# address wins the line.
_RESOURCE_RULES = (
    ("created", _CREATE),
    ("updated", _UPDATE),
    ("deleted", _DELETE),
    ("replaced", _REPLACE),
    ("replaced", _REPLACE_OPTION),
    ("imported", _IMPORT),
    ("imported_from", _IMPORTED_FROM),
    ("moved", _MOVE),
    ("moved_from", _MOVED_FROM),
)


@dataclass
class MovedResource:
    before: str
    after: str


@dataclass
class ParseResult:
    result: str = ""
    changed_result: str = ""
    outside_tool_changes: str = ""
    warning: str = ""
    has_add_or_update_only: bool = False
    has_destroy: bool = False
    has_no_changes: bool = False
    has_error: bool = False
    has_parse_error: bool = False
    error: Exception | None = None
    created: list[str] = field(default_factory=list)
    updated: list[str] = field(default_factory=list)
    deleted: list[str] = field(default_factory=list)
    replaced: list[str] = field(default_factory=list)
    imported: list[str] = field(default_factory=list)
    moved: list[MovedResource] = field(default_factory=list)


@dataclass
class _Span:
    """A half-open range of line indices; either bound may still be unknown."""

    start: int | None = None
    end: int | None = None

    @property
    def is_open(self) -> bool:
        return self.start is not None and self.end is None

    def text(self, lines: list[str], bars: bool = False) -> str:
        if self.start is None:
            return ""
        selected = lines[self.start : self.end] if self.end is not None else _trim_last_newline(lines[self.start :])
        if bars:
            selected = _trim_bars(selected)
        return "\n".join(selected).strip()


def _trim_last_newline(lines: list[str]) -> list[str]:
    if lines and lines[-1] == "":
        return lines[:-1]
    return lines


def _trim_bars(lines: list[str]) -> list[str]:
    """Strip one leading box-drawing bar of each style, in a fixed order."""
    return [line.removeprefix("|").removeprefix("│").removeprefix("╵") for line in lines]


def _changed_resource(line: str) -> str:
    """Return the address on an update/replace line, which "(imported from ...)"
    and "(moved from ...)" annotations refer back to."""
    for pattern in (_UPDATE, _REPLACE, _REPLACE_OPTION):
        match = pattern.match(line)
        if match and match.group(1):
            return match.group(1)
    return ""


def classify_line(line: str, previous: str | None = None) -> tuple[str, str | MovedResource] | None:
    """Classify one plan line as a resource action.

    Returns ``(bucket, value)`` where bucket names a ``ParseResult`` list, or
    None when the line describes no resource. ``previous`` is the line above,
    None for the first line of the body.
    """
    for bucket, pattern in _RESOURCE_RULES:
        match = pattern.match(line)
        if not match:
            continue
        if bucket == "moved":
            return bucket, MovedResource(before=match.group(1), after=match.group(2))
        address = match.group(1)
        if not address:
            continue
        if bucket in ("imported_from", "moved_from"):
            if previous is None:
                return None
            target = _changed_resource(previous)
            if not target:
                return None
            if bucket == "imported_from":
                return "imported", target
            return "moved", MovedResource(before=address, after=target)
        return bucket, address
    return None


class PlanParser:
    def parse(self, body: str) -> ParseResult:
        if not (_PLAN_FAIL.search(body) or _PLAN_PASS.search(body) or _OUTPUTS_CHANGES.search(body)):
            return ParseResult(has_parse_error=True, error=ParseError("cannot parse plan result"))

        lines = body.split("\n")
        parsed = ParseResult()
        outside = _Span()
        changed = _Span()
        warning = _Span()
        first_match: int | None = None
        error_seen = False

        for i, line in enumerate(lines):
            if line in _DRIFT_BANNERS:
                outside.start = i + 1
            if outside.is_open and line.startswith(_DRIFT_FOOTER):
                outside.end = i + 1
            if line in _ACTION_BANNERS:
                changed.start = i + 1
            # Output-only changes print no action banner.
            if line == _OUTPUTS_BANNER and changed.start is None:
                changed.start = i
            if warning.start is None and _PLAN_WARNING.search(line):
                warning.start = i
            if line.startswith(_RULES):
                if warning.is_open:
                    warning.end = i
                if changed.is_open:
                    changed.end = i - 1
            # The first error outranks any pass line seen before it.
            if not error_seen and _PLAN_FAIL.search(line):
                error_seen = True
                first_match = i
            if first_match is None and (_PLAN_PASS.search(line) or _OUTPUTS_CHANGES.search(line)):
                first_match = i

            classified = classify_line(line, lines[i - 1] if i > 0 else None)
            if classified:
                bucket, value = classified
                getattr(parsed, bucket).append(value)

        first_line = lines[first_match] if first_match is not None else ""
        if _PLAN_FAIL.search(first_line):
            parsed.has_error = True
            parsed.result = "\n".join(_trim_bars(_trim_last_newline(lines[first_match:])))
        elif _PLAN_PASS.search(first_line):
            parsed.result = first_line
        elif _OUTPUTS_CHANGES.search(first_line):
            parsed.result = "Only Outputs will be changed."
        parsed.result = parsed.result.strip()

        parsed.has_destroy = bool(_HAS_DESTROY.search(first_line))
        parsed.has_no_changes = bool(_HAS_NO_CHANGES.search(first_line))
        parsed.has_add_or_update_only = not (parsed.has_no_changes or parsed.has_destroy or parsed.has_error)

        parsed.outside_tool_changes = outside.text(lines)
        parsed.changed_result = changed.text(lines)
        parsed.warning = warning.text(lines, bars=True)
        return parsed


class ApplyParser:
    def parse(self, body: str) -> ParseResult:
        if _APPLY_FAIL.search(body):
            has_error = True
        elif _APPLY_PASS.search(body):
            has_error = False
        else:
            return ParseResult(has_parse_error=True, error=ParseError("cannot parse apply result"))

        lines = body.split("\n")
        index = next(
            i for i, line in enumerate(lines) if _APPLY_PASS.search(line) or _APPLY_FAIL.search(line)
        )
        line = lines[index]
        if _APPLY_FAIL.search(line):
            result = "\n".join(_trim_bars(_trim_last_newline(lines[index:])))
        else:
            result = line
        return ParseResult(result=result.strip(), has_error=has_error)
