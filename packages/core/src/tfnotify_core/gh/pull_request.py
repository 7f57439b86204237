from __future__ import annotations

import requests
from github import Auth, Github, GithubException

DEFAULT_GRAPHQL_URL = "https://api.github.com/graphql"

# PyGithub wraps HTTP error responses in GithubException but lets transport
# failures (connection reset, timeout) through as requests exceptions.
API_ERRORS = (GithubException, requests.exceptions.RequestException)


def get_github(token: str, base_url: str | None = None) -> Github:
    """Return a client for github.com, or for GitHub Enterprise when ``base_url`` is set."""
    if base_url:
        return Github(auth=Auth.Token(token), base_url=base_url.rstrip("/"))
    return Github(auth=Auth.Token(token))


def get_repo(gh: Github, owner: str, name: str):
    return gh.get_repo(f"{owner}/{name}", lazy=True)


def graphql_url(base_url: str | None = None, endpoint: str | None = None) -> str:
    """Resolve the GraphQL endpoint; GitHub Enterprise serves it beside ``/api/v3``."""
    if endpoint:
        return endpoint
    if not base_url:
        return DEFAULT_GRAPHQL_URL
    base = base_url.rstrip("/")
    if base.endswith("/api/v3"):
        base = base[: -len("/v3")]
    return f"{base}/graphql"


def get_pr_number(repo, sha: str) -> int:
    """Return the number of the first pull request containing commit ``sha``."""
    for pull in repo.get_commit(sha).get_pulls():
        return pull.number
    raise LookupError(f"associated pull request isn't found: {sha}")
