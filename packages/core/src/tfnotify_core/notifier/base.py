"""Shared notification pipeline.

Every notifier runs the same steps:
    parse → (labels) → AI summary → render → embed metadata → mask → publish

Subclasses decide how the finished body is published (``plan``/``apply``);
parsing, rendering, the metadata trailer and masking live here so they
behave identically whether the body goes to GitHub or to a file.
"""

from __future__ import annotations

import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass, field

from tfnotify_core import metadata
from tfnotify_core.mask import Mask, mask
from tfnotify_core.notifier.labels import ResultLabels
from tfnotify_core.terraform.parser import ParseResult
from tfnotify_core.terraform.template import (
    RenderContext,
    Template,
    apply_parse_error_template,
    apply_template,
    plan_parse_error_template,
    plan_template,
)

logger = logging.getLogger(__name__)


@dataclass
class ExecResult:
    """Captured output of the wrapped terraform command."""

    stdout: str = ""
    stderr: str = ""
    combined_output: str = ""
    exit_code: int = 0
    ci_name: str = ""


@dataclass
class NotifyOptions:
    owner: str = ""
    repo: str = ""
    revision: str = ""
    pr_number: int = 0
    link: str = ""
    vars: dict[str, str] = field(default_factory=dict)
    embedded_var_names: list[str] = field(default_factory=list)
    templates: dict[str, str] = field(default_factory=dict)
    use_raw_output: bool = False
    patch: bool = False
    skip_no_changes: bool = False
    ignore_warning: bool = False
    disable_label: bool = False
    masks: list[Mask] = field(default_factory=list)
    result_labels: ResultLabels = field(default_factory=ResultLabels)
    plan_template: str = ""
    plan_parse_error_template: str = ""
    apply_template: str = ""
    apply_parse_error_template: str = ""

    @classmethod
    def from_config(cls, config: dict, result_labels: ResultLabels | None = None) -> NotifyOptions:
        terraform = config["terraform"]
        plan = terraform["plan"]
        apply = terraform["apply"]
        ci = config["ci"]
        return cls(
            owner=ci["owner"],
            repo=ci["repo"],
            revision=ci["sha"],
            pr_number=ci["pr_number"] or 0,
            link=ci["link"],
            vars=dict(config.get("vars") or {}),
            embedded_var_names=list(config.get("embedded_var_names") or []),
            templates=dict(config.get("templates") or {}),
            use_raw_output=bool(terraform.get("use_raw_output")),
            patch=bool(config.get("plan_patch")),
            skip_no_changes=bool(plan["when_no_changes"].get("disable_comment")),
            ignore_warning=bool(plan.get("ignore_warning")),
            disable_label=bool(plan.get("disable_label")),
            masks=list(config.get("masks") or []),
            result_labels=result_labels or ResultLabels(),
            plan_template=plan.get("template") or "",
            plan_parse_error_template=plan["when_parse_error"].get("template") or "",
            apply_template=apply.get("template") or "",
            apply_parse_error_template=apply["when_parse_error"].get("template") or "",
        )


class Notifier(ABC):
    def __init__(self, options: NotifyOptions, summarizer=None, getenv: Callable[[str], str | None] = os.getenv):
        self.options = options
        self.summarizer = summarizer
        self.getenv = getenv

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def plan(self, exec_result: ExecResult) -> None:
        """Publish the result of ``terraform plan``."""

    @abstractmethod
    def apply(self, exec_result: ExecResult) -> None:
        """Publish the result of ``terraform apply``."""

    # ------------------------------------------------------------------ #
    # Shared implementations                                               #
    # ------------------------------------------------------------------ #

    def _template(self, command: str, parse_error: bool) -> Template:
        opts = self.options
        kwargs = {"use_raw_output": opts.use_raw_output, "templates": opts.templates}
        if command == "plan":
            if parse_error:
                return plan_parse_error_template(opts.plan_parse_error_template, **kwargs)
            return plan_template(opts.plan_template, **kwargs)
        if parse_error:
            return apply_parse_error_template(opts.apply_parse_error_template, **kwargs)
        return apply_template(opts.apply_template, **kwargs)

    def _summarize(self, command: str, parsed: ParseResult, exec_result: ExecResult, warnings: list[str]) -> str:
        """Ask the AI summarizer for a summary; failures leave the comment without one."""
        if self.summarizer is None:
            logger.debug("AI summarizer not configured, skipping the %s summary", command)
            return ""
        data = {
            "result": parsed.result,
            "created_resources": parsed.created,
            "updated_resources": parsed.updated,
            "deleted_resources": parsed.deleted,
            "replaced_resources": parsed.replaced,
            "moved_resources": [f"{m.before} => {m.after}" for m in parsed.moved],
            "imported_resources": parsed.imported,
            "has_destroy": parsed.has_destroy,
            "has_error": parsed.has_error,
            "warning": parsed.warning,
            "change_outside_terraform": parsed.outside_tool_changes,
            "error_messages": warnings,
            "exit_code": exec_result.exit_code,
            "combined_output": exec_result.combined_output,
            "operation_type": command,
            "is_success": not parsed.has_error and exec_result.exit_code == 0,
            "pr_number": self.options.pr_number,
            "repo_owner": self.options.owner,
            "repo_name": self.options.repo,
        }
        try:
            summary = self.summarizer.summarize(data)
        except Exception as e:
            logger.warning("Failed to generate the AI summary: %s", e)
            return ""
        logger.info("AI summary generated (%d chars)", len(summary))
        return summary

    def _render(
        self,
        template: Template,
        parsed: ParseResult,
        exec_result: ExecResult,
        warnings: list[str],
        ai_summary: str = "",
    ) -> str:
        context = RenderContext(
            result=parsed.result,
            changed_result=parsed.changed_result,
            change_outside_terraform=parsed.outside_tool_changes,
            warning=parsed.warning,
            link=self.options.link,
            vars=self.options.vars,
            stdout=exec_result.stdout,
            stderr=exec_result.stderr,
            combined_output=exec_result.combined_output,
            exit_code=exec_result.exit_code,
            has_destroy=parsed.has_destroy,
            has_error=parsed.has_error,
            error_messages=warnings,
            created_resources=parsed.created,
            updated_resources=parsed.updated,
            deleted_resources=parsed.deleted,
            replaced_resources=parsed.replaced,
            moved_resources=parsed.moved,
            imported_resources=parsed.imported,
            ai_summary=ai_summary,
            summary_enabled=self.summarizer is not None,
        )
        return template.execute(context)

    def _finish(self, body: str, command: str, ci_name: str) -> str:
        """Append the metadata trailer, then mask the whole body including the trailer."""
        opts = self.options
        data = metadata.build_metadata(
            command=command,
            vars=opts.vars,
            embedded_var_names=opts.embedded_var_names,
            revision=opts.revision,
            pr_number=opts.pr_number,
            ci_name=ci_name,
            getenv=self.getenv,
        )
        trailer = metadata.embed(data)
        logger.debug("Embedded metadata: %s", trailer.strip())
        return mask(body + trailer, opts.masks)
