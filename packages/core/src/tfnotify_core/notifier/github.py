from __future__ import annotations

import logging

from tfnotify_core import metadata
from tfnotify_core.errors import PublishError
from tfnotify_core.gh.comment import Comment
from tfnotify_core.gh.pull_request import API_ERRORS, get_pr_number
from tfnotify_core.notifier.base import ExecResult, Notifier
from tfnotify_core.notifier.labels import update_labels
from tfnotify_core.terraform.parser import ApplyParser, PlanParser

logger = logging.getLogger(__name__)


def find_patch_target(comments: list[Comment], target: str) -> Comment | None:
    """Return the comment a plan should overwrite in patch mode.

    A candidate carries a tfnotify plan trailer for the same target and is
    not minimized; when several qualify the last one wins.
    """
    found = None
    for index, comment in enumerate(comments):
        data, ok = metadata.extract(comment.body)
        if not ok:
            logger.debug("comment %d (id %s): metadata isn't found", index, comment.id)
            continue
        if data.get("Program") != metadata.PROGRAM:
            logger.debug("comment %d (id %s): Program isn't tfnotify", index, comment.id)
            continue
        if data.get("Command") != "plan":
            logger.debug("comment %d (id %s): Command isn't plan", index, comment.id)
            continue
        if (data.get("Target") or "") != target:
            logger.debug("comment %d (id %s): target is different", index, comment.id)
            continue
        if comment.is_minimized:
            logger.debug("comment %d (id %s): comment is hidden", index, comment.id)
            continue
        found = comment
    return found


class GitHubNotifier(Notifier):
    """Posts results as pull request (or commit) comments."""

    def __init__(self, repo, comments, labels, options, summarizer=None, **kwargs):
        super().__init__(options, summarizer=summarizer, **kwargs)
        self.repo = repo
        self.comments = comments
        self.labels = labels

    def _resolve_pr_number(self) -> None:
        opts = self.options
        if opts.pr_number or not opts.revision:
            return
        try:
            opts.pr_number = get_pr_number(self.repo, opts.revision)
            logger.debug("Resolved PR #%d from commit %s", opts.pr_number, opts.revision)
        except (*API_ERRORS, LookupError) as e:
            logger.debug("No pull request found for %s, commenting on the commit: %s", opts.revision, e)

    def _post(self, body: str) -> None:
        opts = self.options
        try:
            self.comments.post(body, number=opts.pr_number, revision=opts.revision)
        except (*API_ERRORS, ValueError) as e:
            raise PublishError(f"post a comment: {e}") from e

    def plan(self, exec_result: ExecResult) -> None:
        opts = self.options
        self._resolve_pr_number()

        parsed = PlanParser().parse(exec_result.combined_output)
        if not parsed.has_parse_error and not parsed.result:
            return
        template = self._template("plan", parsed.has_parse_error)

        warnings: list[str] = []
        if opts.pr_number and opts.result_labels.has_any_label_defined():
            warnings.extend(update_labels(self.labels, parsed, opts.result_labels, opts.pr_number))

        if opts.ignore_warning:
            parsed.warning = ""

        ai_summary = self._summarize("plan", parsed, exec_result, warnings)
        body = self._render(template, parsed, exec_result, warnings, ai_summary)
        body = self._finish(body, "plan", exec_result.ci_name)

        if opts.patch and opts.pr_number:
            logger.debug("Trying to patch an existing comment")
            try:
                comments = self.comments.list(opts.pr_number)
            except API_ERRORS as e:
                logger.debug("Failed to list comments, posting a new one: %s", e)
                self._post(body)
                return
            logger.debug("Listed %d comments", len(comments))
            comment = find_patch_target(comments, opts.vars.get("target", ""))
            if comment is not None:
                if comment.body == body:
                    logger.debug("Comment %s is unchanged", comment.id)
                    return
                logger.debug("Patching comment %s", comment.id)
                try:
                    self.comments.patch(body, comment.id)
                except API_ERRORS as e:
                    raise PublishError(f"patch a comment: {e}") from e
                return

        if parsed.has_no_changes and not parsed.warning and not warnings and opts.skip_no_changes:
            logger.debug("Skipping the comment because there is no change")
            return

        logger.debug("Creating a comment")
        self._post(body)

    def apply(self, exec_result: ExecResult) -> None:
        self._resolve_pr_number()

        parsed = ApplyParser().parse(exec_result.combined_output)
        if not parsed.has_parse_error and not parsed.result:
            return
        template = self._template("apply", parsed.has_parse_error)

        warnings: list[str] = []
        ai_summary = ""
        if exec_result.exit_code != 0:
            ai_summary = self._summarize("apply", parsed, exec_result, warnings)
        body = self._render(template, parsed, exec_result, warnings, ai_summary)
        body = self._finish(body, "apply", exec_result.ci_name)

        logger.debug("Creating a comment")
        self._post(body)
