from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol

from ..models.vocabulary import VocabularyCategory, VocabularySnapshot

"""Store contracts consumed by the import engine.

DocumentStore: get-by-key, bounded IN-style existence query, bounded atomic
upsert-merge batch. VocabularyStore: read snapshot, idempotent server-side
union of new terms. The numeric bounds are exposed by each implementation
(max_in_keys / max_batch_ops) and exceeding them raises StoreLimitError.
"""

__all__ = [
    "StoreError",
    "StoreLimitError",
    "DocumentStore",
    "VocabularyStore",
]


class StoreError(Exception):
    """Backend failure (network, rejection, constraint...)."""


class StoreLimitError(StoreError):
    """A query or batch exceeded the backend's hard bound."""


class DocumentStore(Protocol):
    max_in_keys: int
    max_batch_ops: int

    def get(self, collection: str, key: str) -> dict[str, Any] | None: ...

    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]: ...

    def find_existing(self, collection: str, keys: Sequence[str]) -> set[str]: ...

    def commit_upserts(self, collection: str, documents: Sequence[tuple[str, dict[str, Any]]]) -> None:
        """Atomically upsert-merge every (key, fields) pair, or none of them."""
        ...


class VocabularyStore(Protocol):
    def snapshot(self, list_ids: Mapping[VocabularyCategory, str]) -> VocabularySnapshot: ...

    def merge_terms(self, additions: Mapping[str, Sequence[str]]) -> None:
        """Union terms into each list id in one batched write. Re-adding is a no-op."""
        ...
