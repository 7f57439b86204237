"""Issue / pull request comments.

Listing goes through GraphQL because only that API reports whether a comment
has been minimized (hidden) in the UI.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from github import GithubException

logger = logging.getLogger(__name__)

_PAGE_SIZE = 100

_COMMENT_FIELDS = """
        nodes { databaseId body isMinimized }
        pageInfo { endCursor hasNextPage }"""

_LIST_QUERY = """
query($owner: String!, $name: String!, $number: Int!, $cursor: String) {
  repository(owner: $owner, name: $name) {
    %(kind)s(number: $number) {
      comments(first: %(size)d, after: $cursor) {%(fields)s
      }
    }
  }
}"""


@dataclass
class Comment:
    id: int
    body: str
    is_minimized: bool = False


class CommentService:
    def __init__(self, gh, repo, graphql_url: str):
        self.requester = gh.requester
        self.repo = repo
        self.graphql_url = graphql_url

    def list(self, number: int) -> list[Comment]:
        """Return every comment on pull request (or issue) ``number``, oldest first."""
        try:
            return self._list("pullRequest", number)
        except GithubException as pr_error:
            logger.debug("Listing pull request comments failed, trying issue comments: %s", pr_error)
            return self._list("issue", number)

    def _list(self, kind: str, number: int) -> list[Comment]:
        query = _LIST_QUERY % {"kind": kind, "size": _PAGE_SIZE, "fields": _COMMENT_FIELDS}
        variables = {"owner": self.repo.owner.login, "name": self.repo.name, "number": number, "cursor": None}
        comments: list[Comment] = []
        while True:
            data = self._query(query, variables)
            connection = data["repository"][kind]["comments"]
            comments.extend(
                Comment(id=node["databaseId"], body=node["body"] or "", is_minimized=bool(node["isMinimized"]))
                for node in connection["nodes"]
            )
            if not connection["pageInfo"]["hasNextPage"]:
                return comments
            variables["cursor"] = connection["pageInfo"]["endCursor"]

    def _query(self, query: str, variables: dict) -> dict:
        headers, data = self.requester.requestJsonAndCheck(
            "POST", self.graphql_url, input={"query": query, "variables": variables}
        )
        if data.get("errors"):
            raise GithubException(400, data, headers)
        return data["data"]

    def post(self, body: str, number: int = 0, revision: str = "") -> None:
        """Comment on pull request ``number`` if known, otherwise on commit ``revision``."""
        if number:
            self.repo.get_issue(number).create_comment(body)
        elif revision:
            self.repo.get_commit(revision).create_comment(body)
        else:
            raise ValueError("Number or Revision is required")

    def patch(self, body: str, comment_id: int) -> None:
        self.requester.requestJsonAndCheck("PATCH", f"{self.repo.url}/issues/comments/{comment_id}", input={"body": body})
