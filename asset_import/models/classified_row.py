from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from .asset import NormalizedAsset

__all__ = [
    "Classification",
    "ClassifiedRow",
]


class Classification(Enum):
    NEW = "new"
    UPDATE = "update"
    DUPLICATE_IGNORED = "duplicate_ignored"


@dataclass(frozen=True)
class ClassifiedRow:
    asset: NormalizedAsset
    classification: Classification

    @property
    def natural_key(self) -> str:
        return self.asset.natural_key
