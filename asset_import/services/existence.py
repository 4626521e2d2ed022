from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Sequence
from typing import TypeVar

from ..db.store import DocumentStore
from ..models.asset import NormalizedAsset
from ..models.classified_row import Classification, ClassifiedRow

"""Existence resolver.

Natural keys are checked in chunks of at most `chunk_size` keys (the store's
IN-query limit), one query at a time, and the answers are unioned into a
membership set used to classify each row as NEW or UPDATE.
"""

logger = logging.getLogger(__name__)

T = TypeVar("T")

__all__ = [
    "ExistenceCancelled",
    "chunked",
    "classify_rows",
    "find_existing_keys",
]


class ExistenceCancelled(Exception):
    """Raised when the cancellation token fires between existence queries."""


def chunked(items: Sequence[T], size: int) -> Iterator[Sequence[T]]:
    """Yield consecutive slices of at most `size` items (last one may be short)."""
    if size < 1:
        raise ValueError(f"chunk size must be >= 1, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def find_existing_keys(
    store: DocumentStore,
    collection: str,
    keys: Sequence[str],
    chunk_size: int,
    should_cancel: Callable[[], bool] | None = None,
) -> set[str]:
    existing: set[str] = set()
    queries = 0
    for chunk in chunked(keys, chunk_size):
        if should_cancel is not None and should_cancel():
            raise ExistenceCancelled(f"cancelled after {queries} existence queries")
        existing |= store.find_existing(collection, list(chunk))
        queries += 1
    logger.info(f"existence check: {len(existing)}/{len(keys)} keys already present ({queries} queries)")
    return existing


def classify_rows(assets: Sequence[NormalizedAsset], existing: set[str]) -> list[ClassifiedRow]:
    return [
        ClassifiedRow(
            asset=a,
            classification=Classification.UPDATE if a.natural_key in existing else Classification.NEW,
        )
        for a in assets
    ]
