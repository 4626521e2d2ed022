from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..models.asset import NormalizedAsset
from ..models.classified_row import Classification, ClassifiedRow

logger = logging.getLogger(__name__)

__all__ = [
    "DedupResult",
    "deduplicate",
]


@dataclass
class DedupResult:
    unique: list[NormalizedAsset] = field(default_factory=list)
    # every entry is tagged Classification.DUPLICATE_IGNORED
    duplicates: list[ClassifiedRow] = field(default_factory=list)


def deduplicate(assets: Iterable[NormalizedAsset]) -> DedupResult:
    """Keep the first occurrence of each natural key, in input order.

    Later occurrences are discarded without merging their field values.
    """
    result = DedupResult()
    seen: set[str] = set()
    for asset in assets:
        if asset.natural_key in seen:
            result.duplicates.append(ClassifiedRow(asset, Classification.DUPLICATE_IGNORED))
            continue
        seen.add(asset.natural_key)
        result.unique.append(asset)
    if result.duplicates:
        logger.warning(f"{len(result.duplicates)} rows repeat a serial already present in the file")
    return result
