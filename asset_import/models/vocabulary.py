from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum

"""Controlled vocabulary models.

VocabularySnapshot is read once per import and passed through the pipeline as a
value; newly observed terms travel separately as DiscoveredTerms and are merged
server-side by the vocabulary reconciler.
"""

__all__ = [
    "VocabularyCategory",
    "VocabularySnapshot",
    "DiscoveredTerms",
]


class VocabularyCategory(Enum):
    SECTOR = "sector"
    FLOOR = "floor"
    ROOM = "room"
    OS = "os"


def _fold(term: str) -> str:
    return " ".join(term.split()).casefold()


@dataclass(frozen=True)
class VocabularySnapshot:
    """Read-only view of the canonical lists at import start."""
    lists: Mapping[VocabularyCategory, tuple[str, ...]] = field(default_factory=dict)

    @classmethod
    def from_lists(cls, lists: Mapping[VocabularyCategory, Iterable[str]]) -> VocabularySnapshot:
        return cls(lists={cat: tuple(values) for cat, values in lists.items()})

    def terms(self, category: VocabularyCategory) -> tuple[str, ...]:
        return tuple(self.lists.get(category, ()))

    def contains(self, category: VocabularyCategory, term: str) -> bool:
        folded = _fold(term)
        return any(_fold(t) == folded for t in self.lists.get(category, ()))


class DiscoveredTerms:
    """Per-category, insertion-ordered set of out-of-vocabulary terms.

    Terms differing only by case/whitespace are recorded once (first spelling
    wins).
    """

    def __init__(self) -> None:
        self._terms: dict[VocabularyCategory, dict[str, str]] = {}

    def add(self, category: VocabularyCategory, term: str) -> None:
        cleaned = " ".join(term.split())
        if not cleaned:
            return
        bucket = self._terms.setdefault(category, {})
        bucket.setdefault(cleaned.casefold(), cleaned)

    def get(self, category: VocabularyCategory) -> list[str]:
        return list(self._terms.get(category, {}).values())

    def as_dict(self) -> dict[VocabularyCategory, list[str]]:
        return {cat: list(bucket.values()) for cat, bucket in self._terms.items() if bucket}

    def __bool__(self) -> bool:
        return any(self._terms.values())

    def __len__(self) -> int:
        return sum(len(b) for b in self._terms.values())
