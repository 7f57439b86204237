from __future__ import annotations

import logging
from collections.abc import Callable

from tfnotify_core.errors import PublishError
from tfnotify_core.notifier.base import ExecResult, Notifier
from tfnotify_core.terraform.parser import ApplyParser, ParseResult, PlanParser

logger = logging.getLogger(__name__)


class LocalFileNotifier(Notifier):
    """Appends the rendered comment to a file instead of posting it.

    ``labeler`` still reconciles pull request labels for plans when given.
    """

    def __init__(
        self,
        output_path: str,
        options,
        labeler: Callable[[ParseResult], list[str]] | None = None,
        summarizer=None,
        **kwargs,
    ):
        super().__init__(options, summarizer=summarizer, **kwargs)
        self.output_path = output_path
        self.labeler = labeler

    def _write(self, body: str, command: str) -> None:
        logger.debug("Writing the %s result to %s", command, self.output_path)
        try:
            with open(self.output_path, "a") as f:
                f.write(body + "\n")
        except OSError as e:
            raise PublishError(f"write the {command} result to a file: {e}") from e

    def plan(self, exec_result: ExecResult) -> None:
        parsed = PlanParser().parse(exec_result.combined_output)
        if not parsed.has_parse_error and not parsed.result:
            return
        template = self._template("plan", parsed.has_parse_error)

        warnings: list[str] = []
        if self.labeler is not None and not self.options.disable_label:
            logger.debug("Updating labels")
            warnings.extend(self.labeler(parsed))

        if self.options.ignore_warning:
            parsed.warning = ""

        ai_summary = self._summarize("plan", parsed, exec_result, warnings)
        body = self._render(template, parsed, exec_result, warnings, ai_summary)
        self._write(self._finish(body, "plan", exec_result.ci_name), "plan")

    def apply(self, exec_result: ExecResult) -> None:
        parsed = ApplyParser().parse(exec_result.combined_output)
        if not parsed.has_parse_error and not parsed.result:
            return
        template = self._template("apply", parsed.has_parse_error)

        ai_summary = ""
        if exec_result.exit_code != 0:
            ai_summary = self._summarize("apply", parsed, exec_result, [])
        body = self._render(template, parsed, exec_result, [], ai_summary)
        self._write(self._finish(body, "apply", exec_result.ci_name), "apply")
