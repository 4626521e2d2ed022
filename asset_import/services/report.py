from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime

from ..models.asset import NormalizedAsset
from ..models.classified_row import ClassifiedRow
from ..models.import_report import DUPLICATE_REASON, FailureRecord, FailureStage, ImportReport
from ..models.validation import ValidationOutcome
from .commit import CommitOutcome

"""Reconciliation reporter.

Pure aggregation of per-row outcomes into one ImportReport, plus the SUMMARY
line rendering used by the CLI.
"""

__all__ = [
    "ReportBuilder",
    "render_summary_line",
]


class ReportBuilder:
    """Accumulates outcomes during a run; build() returns the frozen report."""

    def __init__(self, total_attempted: int = 0) -> None:
        self.total_attempted = total_attempted
        self.started_at = datetime.now(UTC)
        self.new_count = 0
        self.updated_count = 0
        self.duplicate_count = 0
        self.synthetic_key_count = 0
        self.commit_chunks = 0
        self.failed_chunks = 0
        self._failures: list[FailureRecord] = []

    def add_rejected(self, outcomes: Iterable[ValidationOutcome]) -> None:
        for o in outcomes:
            self._failures.append(FailureRecord.create(o.asset, o.describe(), FailureStage.VALIDATION))

    def add_dropped(self, assets: Iterable[NormalizedAsset], reason: str) -> None:
        for a in assets:
            self._failures.append(FailureRecord.create(a, reason, FailureStage.VALIDATION))

    def add_duplicates(self, rows: Iterable[ClassifiedRow]) -> None:
        for row in rows:
            self.duplicate_count += 1
            self._failures.append(FailureRecord.create(row.asset, DUPLICATE_REASON, FailureStage.DUPLICATE))

    def add_cancelled(self, assets: Iterable[NormalizedAsset], reason: str) -> None:
        for a in assets:
            self._failures.append(FailureRecord.create(a, reason, FailureStage.CANCELLED))

    def add_commit(self, outcome: CommitOutcome) -> None:
        self.new_count += outcome.new_count
        self.updated_count += outcome.updated_count
        self.commit_chunks += outcome.chunks
        self.failed_chunks += outcome.failed_chunks
        self._failures.extend(outcome.failures)

    def count_synthetic(self, assets: Iterable[NormalizedAsset]) -> None:
        self.synthetic_key_count += sum(1 for a in assets if a.synthetic_key)

    def build(self) -> ImportReport:
        elapsed = (datetime.now(UTC) - self.started_at).total_seconds()
        return ImportReport(
            total_attempted=self.total_attempted,
            new_count=self.new_count,
            updated_count=self.updated_count,
            duplicate_count=self.duplicate_count,
            failures=tuple(self._failures),
            synthetic_key_count=self.synthetic_key_count,
            elapsed_seconds=elapsed,
            commit_chunks=self.commit_chunks,
            failed_chunks=self.failed_chunks,
            started_at=self.started_at,
        )


def _format_seconds(value: float) -> str:
    if value == 0:
        return "0"
    if value == int(value):
        return str(int(value))
    if value < 0.01:
        # evita notação científica
        return f"{value:.6f}".rstrip("0").rstrip(".")
    return f"{value:.2f}"


def render_summary_line(report: ImportReport) -> str:
    """Render the SUMMARY line for a report.

    Format:
    SUMMARY attempted={n} new={n} updated={n} duplicates={n} failed={n}
    synthetic_keys={n} chunks={ok}/{total} elapsed_sec={s}

    >>> r = ImportReport(total_attempted=3, new_count=2, updated_count=1, duplicate_count=0)
    >>> render_summary_line(r)
    'SUMMARY attempted=3 new=2 updated=1 duplicates=0 failed=0 synthetic_keys=0 chunks=0/0 elapsed_sec=0'
    """
    ok_chunks = report.commit_chunks - report.failed_chunks
    return (
        f"SUMMARY attempted={report.total_attempted} "
        f"new={report.new_count} "
        f"updated={report.updated_count} "
        f"duplicates={report.duplicate_count} "
        f"failed={report.failed_count} "
        f"synthetic_keys={report.synthetic_key_count} "
        f"chunks={ok_chunks}/{report.commit_chunks} "
        f"elapsed_sec={_format_seconds(report.elapsed_seconds)}"
    )
