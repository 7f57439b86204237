"""CI platform detection.

Fills owner, repository, commit, PR number and build link from the
environment of the CI service the command runs in, without overriding
anything already given on the command line or in the config file.
"""

from __future__ import annotations

import json
import logging
import os
import re
from collections.abc import Callable
from dataclasses import dataclass

from tfnotify_core.errors import ConfigError

logger = logging.getLogger(__name__)

Getenv = Callable[[str], "str | None"]

_PR_URL_RE = re.compile(r"/pull/(\d+)/?$")
_REPO_URL_RE = re.compile(r"[/:]([^/:]+)/([^/]+?)(?:\.git)?/?$")


@dataclass
class CIInfo:
    name: str
    owner: str = ""
    repo: str = ""
    sha: str = ""
    pr_number: int = 0
    link: str = ""


def _to_int(value: str | None, source: str) -> int:
    if not value:
        return 0
    try:
        return int(value)
    except ValueError as e:
        raise ConfigError(f"{source} is invalid. It failed to parse {value!r} as an integer") from e


def _github_actions(getenv: Getenv) -> CIInfo:
    owner, _, repo = (getenv("GITHUB_REPOSITORY") or "").partition("/")
    info = CIInfo(
        name="github-actions",
        owner=owner,
        repo=repo,
        sha=getenv("GITHUB_SHA") or "",
        link=f"{getenv('GITHUB_SERVER_URL') or ''}/{getenv('GITHUB_REPOSITORY') or ''}"
        f"/actions/runs/{getenv('GITHUB_RUN_ID') or ''}",
    )
    event_path = getenv("GITHUB_EVENT_PATH")
    if event_path and os.path.isfile(event_path):
        with open(event_path) as f:
            event = json.load(f)
        pull_request = event.get("pull_request")
        if pull_request:
            info.pr_number = int(pull_request.get("number") or 0)
            info.sha = (pull_request.get("head") or {}).get("sha") or info.sha
        elif event.get("issue"):
            info.pr_number = int(event["issue"].get("number") or 0)
    return info


def _circleci(getenv: Getenv) -> CIInfo:
    pr_number = 0
    for name in ("CIRCLE_PULL_REQUEST", "CI_PULL_REQUEST"):
        match = _PR_URL_RE.search(getenv(name) or "")
        if match:
            pr_number = int(match.group(1))
            break
    else:
        pr_number = _to_int(getenv("CIRCLE_PR_NUMBER"), "CIRCLE_PR_NUMBER")
    return CIInfo(
        name="circleci",
        owner=getenv("CIRCLE_PROJECT_USERNAME") or "",
        repo=getenv("CIRCLE_PROJECT_REPONAME") or "",
        sha=getenv("CIRCLE_SHA1") or "",
        pr_number=pr_number,
        link=getenv("CIRCLE_BUILD_URL") or "",
    )


def _codebuild(getenv: Getenv) -> CIInfo:
    owner = repo = ""
    match = _REPO_URL_RE.search(getenv("CODEBUILD_SOURCE_REPO_URL") or "")
    if match:
        owner, repo = match.group(1), match.group(2)
    pr_number = 0
    for name in ("CODEBUILD_SOURCE_VERSION", "CODEBUILD_WEBHOOK_TRIGGER"):
        value = getenv(name) or ""
        if value.startswith("pr/"):
            pr_number = _to_int(value[3:], name)
            break
    return CIInfo(
        name="codebuild",
        owner=owner,
        repo=repo,
        sha=getenv("CODEBUILD_RESOLVED_SOURCE_VERSION") or "",
        pr_number=pr_number,
        link=getenv("CODEBUILD_BUILD_URL") or "",
    )


def _google_cloud_build(getenv: Getenv) -> CIInfo:
    region = getenv("_REGION") or "global"
    return CIInfo(
        name="google-cloud-build",
        sha=getenv("COMMIT_SHA") or "",
        pr_number=_to_int(getenv("_PR_NUMBER"), "_PR_NUMBER"),
        link=(
            f"https://console.cloud.google.com/cloud-build/builds;region={region}"
            f"/{getenv('BUILD_ID') or ''}?project={getenv('PROJECT_ID') or ''}"
        ),
    )


# Checked in order; the first platform whose marker variable is set wins.
_PLATFORMS: tuple[tuple[str, Callable[[Getenv], CIInfo]], ...] = (
    ("GITHUB_ACTIONS", _github_actions),
    ("CIRCLECI", _circleci),
    ("CODEBUILD_BUILD_ID", _codebuild),
    ("GOOGLE_CLOUD_BUILD", _google_cloud_build),
)


def detect(getenv: Getenv = os.getenv) -> CIInfo | None:
    for marker, build in _PLATFORMS:
        if getenv(marker):
            return build(getenv)
    return None


def complement(config: dict, getenv: Getenv = os.getenv) -> None:
    """Fill the unset ``ci`` fields of ``config`` in place."""
    ci = config["ci"]
    if config.get("repo_owner"):
        ci["owner"] = config["repo_owner"]
    if config.get("repo_name"):
        ci["repo"] = config["repo_name"]

    info = detect(getenv)
    if info is not None:
        logger.debug("Detected CI platform: %s", info.name)
        ci["name"] = info.name
        ci["owner"] = ci.get("owner") or info.owner
        ci["repo"] = ci.get("repo") or info.repo
        ci["sha"] = ci.get("sha") or info.sha
        if (ci.get("pr_number") or 0) <= 0:
            ci["pr_number"] = info.pr_number
        ci["link"] = ci.get("link") or info.link

    # Set by suzuki-shunsuke/ci-info.
    if (ci.get("pr_number") or 0) <= 0:
        ci["pr_number"] = _to_int(getenv("CI_INFO_PR_NUMBER"), "CI_INFO_PR_NUMBER")
