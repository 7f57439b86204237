"""Invisible metadata trailer appended to every posted comment.

The trailer is a single-line HTML comment wrapping a JSON object, so GitHub
renders nothing for it. Patch mode reads it back to recognise comments this
tool posted earlier for the same target.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable

logger = logging.getLogger(__name__)

PROGRAM = "tfnotify"

_TRAILER_RE = re.compile(r"<!-- github-comment: (.*?) -->")
# Escaped so the payload can never close the surrounding HTML comment.
_JSON_ESCAPES = {"<": "\\u003c", ">": "\\u003e", "&": "\\u0026"}

_CI_ENV_FIELDS: dict[str, dict[str, str]] = {
    "github-actions": {
        "JobName": "GITHUB_JOB",
        "RunID": "GITHUB_RUN_ID",
        "WorkflowName": "GITHUB_WORKFLOW",
    },
    "circleci": {
        "BuildNum": "CIRCLE_BUILD_NUM",
        "JobName": "CIRCLE_JOB",
        "WorkflowID": "CIRCLE_WORKFLOW_ID",
    },
    "codebuild": {
        "BuildID": "CODEBUILD_BUILD_ID",
    },
    "google-cloud-build": {
        "BuildID": "BUILD_ID",
    },
}


def embed(data: dict) -> str:
    """Serialize ``data`` into a trailer ready to append to a comment body."""
    payload = json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=False)
    for char, replacement in _JSON_ESCAPES.items():
        payload = payload.replace(char, replacement)
    return f"\n<!-- github-comment: {payload} -->"


def extract(body: str | None) -> tuple[dict, bool]:
    """Return the metadata embedded in ``body`` and whether any was found.

    Comments without a trailer, or with one that is not a JSON object, are
    reported as not found.
    """
    match = _TRAILER_RE.search(body or "")
    if not match:
        return {}, False
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.debug("Ignoring malformed metadata trailer: %s", e)
        return {}, False
    if not isinstance(data, dict):
        return {}, False
    return data, True


def set_ci_env(ci_name: str, getenv: Callable[[str], str | None], data: dict) -> None:
    """Add the identifying fields of the current CI build to ``data``."""
    for key, env_name in _CI_ENV_FIELDS.get(ci_name, {}).items():
        data[key] = getenv(env_name) or ""


def build_metadata(
    command: str,
    vars: dict[str, str],
    embedded_var_names: list[str],
    revision: str,
    pr_number: int,
    ci_name: str,
    getenv: Callable[[str], str | None],
) -> dict:
    data: dict = {
        "Program": PROGRAM,
        "Command": command,
        "Vars": {name: vars.get(name, "") for name in embedded_var_names},
        "SHA1": revision,
        "PRNumber": pr_number,
    }
    if vars.get("target"):
        data["Target"] = vars["target"]
    set_ci_env(ci_name, getenv, data)
    return data
