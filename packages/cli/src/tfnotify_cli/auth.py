"""GitHub token lookup.

Sources, first non-empty wins:
  1. TFCMT_GITHUB_TOKEN, a token meant only for tfnotify
  2. GITHUB_TOKEN, injected by GitHub Actions
  3. `gh auth token`, the GitHub CLI session of a local user
"""

from __future__ import annotations

import logging
import os
import subprocess

logger = logging.getLogger(__name__)

TOKEN_ENV_VARS = ("TFCMT_GITHUB_TOKEN", "GITHUB_TOKEN")
GH_TIMEOUT_SECONDS = 5


def _token_from_gh_cli() -> str | None:
    try:
        completed = subprocess.run(
            ["gh", "auth", "token"],
            capture_output=True,
            text=True,
            timeout=GH_TIMEOUT_SECONDS,
        )
    except FileNotFoundError:
        logger.debug("gh is not installed")
        return None
    except subprocess.TimeoutExpired:
        logger.debug("gh auth token timed out after %ds", GH_TIMEOUT_SECONDS)
        return None

    if completed.returncode != 0:
        return None
    return completed.stdout.strip() or None


def resolve_github_token() -> str | None:
    """Return a GitHub token, or None when there is none.

    A missing token is only an error when a comment or label has to be
    written, so the controller reports it, not this function.
    """
    for name in TOKEN_ENV_VARS:
        if os.environ.get(name):
            return os.environ[name]

    token = _token_from_gh_cli()
    if token:
        logger.debug("Using the GitHub token of the gh CLI session")
    return token
