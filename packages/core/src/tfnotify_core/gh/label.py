from __future__ import annotations

from dataclasses import dataclass
from itertools import islice

# GitHub allows at most 100 labels on a pull request.
MAX_LABELS = 100


@dataclass
class Label:
    name: str
    color: str = ""


class LabelService:
    def __init__(self, repo):
        self.repo = repo

    def list(self, number: int) -> list[Label]:
        labels = self.repo.get_issue(number).get_labels()
        return [Label(name=label.name, color=label.color) for label in islice(labels, MAX_LABELS)]

    def add(self, number: int, names: list[str]) -> None:
        self.repo.get_issue(number).add_to_labels(*names)

    def get(self, name: str) -> Label:
        """Return repository label ``name`` as stored by GitHub."""
        label = self.repo.get_label(name)
        return Label(name=label.name, color=label.color)

    def remove(self, number: int, name: str) -> None:
        self.repo.get_issue(number).remove_from_labels(name)

    def update_color(self, name: str, color: str) -> None:
        label = self.repo.get_label(name)
        label.edit(name=label.name, color=color)
