from __future__ import annotations

import logging
from collections.abc import Mapping

from ..db.store import VocabularyStore
from ..errors import ImportAbortedError
from ..models.vocabulary import DiscoveredTerms, VocabularyCategory

logger = logging.getLogger(__name__)

__all__ = [
    "VocabularyReconcileError",
    "reconcile_vocabulary",
]


class VocabularyReconcileError(ImportAbortedError):
    """The vocabulary merge failed; the import must stop before asset writes."""


def reconcile_vocabulary(
    store: VocabularyStore,
    discovered: DiscoveredTerms,
    list_ids: Mapping[VocabularyCategory, str],
) -> dict[str, list[str]]:
    """Merge discovered terms into their canonical lists with one batched write.

    Returns the additions sent, keyed by list id (empty when nothing was new).
    """
    additions: dict[str, list[str]] = {}
    for category, terms in discovered.as_dict().items():
        list_id = list_ids.get(category)
        if list_id is None:
            logger.warning(f"no vocabulary list configured for {category.value}; {len(terms)} terms ignored")
            continue
        additions.setdefault(list_id, []).extend(terms)

    if not additions:
        return {}
    try:
        store.merge_terms(additions)
    except Exception as e:
        raise VocabularyReconcileError(f"vocabulary update failed: {e}") from e
    for list_id, terms in additions.items():
        logger.info(f"vocabulary '{list_id}' += {terms}")
    return additions
