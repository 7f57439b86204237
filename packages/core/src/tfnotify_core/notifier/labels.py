"""Outcome labels (add-or-update / destroy / no-changes / plan-error).

At most one outcome label belongs on a pull request at a time. Reconciling
removes the stale ones and adds the current one, collecting every API
failure as a warning string for the comment body instead of raising.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from github import GithubException
from jinja2 import TemplateError
from jinja2.sandbox import SandboxedEnvironment

from tfnotify_core.errors import TemplateRenderError
from tfnotify_core.gh.pull_request import API_ERRORS
from tfnotify_core.terraform.parser import ParseResult

logger = logging.getLogger(__name__)

MAX_LABEL_LENGTH = 50

DEFAULT_ADD_OR_UPDATE_COLOR = "1d76db"  # blue
DEFAULT_DESTROY_COLOR = "d93f0b"  # red
DEFAULT_NO_CHANGES_COLOR = "0e8a16"  # green


@dataclass
class ResultLabels:
    add_or_update: str = ""
    add_or_update_color: str = ""
    destroy: str = ""
    destroy_color: str = ""
    no_changes: str = ""
    no_changes_color: str = ""
    plan_error: str = ""
    plan_error_color: str = ""

    def _names(self) -> tuple[str, ...]:
        return (self.add_or_update, self.destroy, self.no_changes, self.plan_error)

    def has_any_label_defined(self) -> bool:
        return any(self._names())

    def is_result_label(self, name: str) -> bool:
        return bool(name) and name in self._names()

    def select(self, result: ParseResult) -> tuple[str, str]:
        """Return ``(label, color)`` for the outcome of ``result``.

        Priority: add-or-update-only, destroy, no-changes, error.
        """
        if result.has_add_or_update_only:
            return self.add_or_update, self.add_or_update_color
        if result.has_destroy:
            return self.destroy, self.destroy_color
        if result.has_no_changes:
            return self.no_changes, self.no_changes_color
        if result.has_error:
            return self.plan_error, self.plan_error_color
        return "", ""


def _render_label(template: str, vars: dict[str, str]) -> str:
    try:
        return SandboxedEnvironment().from_string(template).render(vars=vars)
    except TemplateError as e:
        raise TemplateRenderError(f"render a label template: {e}") from e


def build_result_labels(config: dict) -> ResultLabels:
    """Resolve label names and colors from ``terraform.plan`` settings."""
    plan = config["terraform"]["plan"]
    vars = config.get("vars") or {}
    target = vars.get("target", "")
    labels = ResultLabels(
        add_or_update_color=plan["when_add_or_update_only"].get("label_color") or DEFAULT_ADD_OR_UPDATE_COLOR,
        destroy_color=plan["when_destroy"].get("label_color") or DEFAULT_DESTROY_COLOR,
        no_changes_color=plan["when_no_changes"].get("label_color") or DEFAULT_NO_CHANGES_COLOR,
        plan_error_color=plan["when_plan_error"].get("label_color") or "",
    )

    for attr, key, default in (
        ("add_or_update", "when_add_or_update_only", "add-or-update"),
        ("destroy", "when_destroy", "destroy"),
        ("no_changes", "when_no_changes", "no-changes"),
    ):
        when = plan[key]
        if when.get("disable_label"):
            continue
        if when.get("label"):
            setattr(labels, attr, _render_label(when["label"], vars))
        else:
            setattr(labels, attr, f"{target}/{default}" if target else default)

    if not plan["when_plan_error"].get("disable_label"):
        labels.plan_error = _render_label(plan["when_plan_error"].get("label") or "", vars)

    return labels


def _update_color(service, name: str, color: str, warnings: list[str]) -> None:
    try:
        service.update_color(name, color)
    except API_ERRORS as e:
        logger.error("Failed to update the color of label %s to %s: %s", name, color, e)
        warnings.append(f"update a label color (name: {name}, color: {color}): {e}")


def update_labels(service, result: ParseResult, labels: ResultLabels, pr_number: int) -> list[str]:
    """Make the outcome label of ``result`` the only result label on the PR.

    Returns the warnings collected along the way; never raises for API errors.
    """
    if pr_number == 0:
        return []

    label_to_add, label_color = labels.select(result)
    warnings: list[str] = []
    current_color = ""

    try:
        existing = service.list(pr_number)
    except API_ERRORS as e:
        logger.error("Failed to list labels: %s", e)
        warnings.append(f"remove labels: {e}")
        existing = []

    for label in existing:
        if label.name == label_to_add:
            current_color = label.color
            continue
        if not labels.is_result_label(label.name):
            continue
        try:
            service.remove(pr_number, label.name)
        except API_ERRORS as e:
            # 404: the label was already gone.
            if isinstance(e, GithubException) and e.status == 404:
                continue
            logger.error("Failed to remove label %s: %s", label.name, e)
            warnings.append(f"remove labels: {e}")

    if not label_to_add:
        return warnings

    if len(label_to_add) > MAX_LABEL_LENGTH:
        warnings.append(
            f"failed to add a label {label_to_add}: label name is too long (max: {MAX_LABEL_LENGTH})"
        )
        return warnings

    if current_color:
        if label_color and label_color != current_color:
            _update_color(service, label_to_add, label_color, warnings)
        return warnings

    try:
        service.add(pr_number, [label_to_add])
    except API_ERRORS as e:
        logger.error("Failed to add label %s: %s", label_to_add, e)
        warnings.append(f"add a label {label_to_add}: {e}")
        return warnings

    if label_color:
        try:
            added = service.get(label_to_add)
        except API_ERRORS as e:
            logger.error("Label %s was added but its color could not be read: %s", label_to_add, e)
            warnings.append(f"get a label {label_to_add} to check its color: {e}")
            return warnings
        if added.color != label_color:
            _update_color(service, label_to_add, label_color, warnings)

    return warnings
