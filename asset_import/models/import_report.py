from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from .asset import NormalizedAsset

"""ImportReport and FailureRecord models.

The report is the single terminal artefact of an import run. Every input row
ends up in exactly one of: written-new, written-update, duplicate, failed.
FailureRecord doubles as the JSON Lines record written by the error log.
"""

__all__ = [
    "FailureStage",
    "FailureRecord",
    "ImportReport",
]

DUPLICATE_REASON = "duplicate key within file"
CANCELLED_REASON = "import cancelled"


class FailureStage(Enum):
    VALIDATION = "validation"
    DUPLICATE = "duplicate"
    COMMIT = "commit"
    CANCELLED = "cancelled"


@dataclass(frozen=True)
class FailureRecord:
    """One entry of the failure ledger.

    Attributes:
        natural_key: Serial (or synthesized key) of the failed row
        unit: Unit identifier as resolved (or the raw token when unresolved)
        declared_id: Tombamento, empty string when absent
        reason: Human readable reason
        stage: Pipeline stage that produced the failure
        sheet: Originating sheet name
        row: Spreadsheet row number. -1 when unknown
        timestamp: ISO8601 UTC with 'Z' suffix
    """
    natural_key: str
    unit: str
    declared_id: str
    reason: str
    stage: FailureStage
    sheet: str = ""
    row: int = -1
    timestamp: str = ""

    @staticmethod
    def create(asset: NormalizedAsset, reason: str, stage: FailureStage) -> FailureRecord:
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return FailureRecord(
            natural_key=asset.natural_key,
            unit=asset.unit_id or "",
            declared_id=asset.declared_id or "",
            reason=reason,
            stage=stage,
            sheet=asset.sheet_name,
            row=asset.row_number,
            timestamp=ts,
        )

    def to_dict(self) -> dict[str, str]:
        """Public report shape (camelCase keys)."""
        return {
            "naturalKey": self.natural_key,
            "unit": self.unit,
            "declaredId": self.declared_id,
            "reason": self.reason,
        }

    def to_json_line(self) -> str:
        data = asdict(self)
        data["stage"] = self.stage.value
        return json.dumps(data, ensure_ascii=False)


@dataclass(frozen=True)
class ImportReport:
    """Aggregated outcome of one import run. Immutable once returned."""
    total_attempted: int
    new_count: int
    updated_count: int
    duplicate_count: int
    failures: tuple[FailureRecord, ...] = ()
    synthetic_key_count: int = 0  # rows written/attempted under a synthesized key
    elapsed_seconds: float = 0.0
    commit_chunks: int = 0
    failed_chunks: int = 0
    started_at: datetime | None = field(default=None, compare=False)

    @property
    def failed_count(self) -> int:
        """Failures that are not duplicates (validation, commit, cancelled)."""
        return sum(1 for f in self.failures if f.stage is not FailureStage.DUPLICATE)

    @property
    def written_count(self) -> int:
        return self.new_count + self.updated_count

    @property
    def is_complete_success(self) -> bool:
        return not self.failures

    def failures_by_stage(self, stage: FailureStage) -> list[FailureRecord]:
        return [f for f in self.failures if f.stage is stage]

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalAttempted": self.total_attempted,
            "newCount": self.new_count,
            "updatedCount": self.updated_count,
            "duplicateCount": self.duplicate_count,
            "failures": [f.to_dict() for f in self.failures],
        }
