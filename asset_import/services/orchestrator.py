from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO

from ..db.store import DocumentStore, VocabularyStore
from ..errors import ImportAbortedError
from ..excel.reader import read_workbook
from ..models.asset import AssetType
from ..models.config_models import ImportConfig
from ..models.import_report import CANCELLED_REASON, ImportReport
from ..models.permission import PermissionContext, Unit
from ..models.row_data import RawRow
from ..models.validation import ValidationResult
from ..models.vocabulary import VocabularySnapshot
from .commit import ChunkMetrics, commit_rows
from .dedup import DedupResult, deduplicate
from .existence import ExistenceCancelled, classify_rows, find_existing_keys
from .normalizer import NormalizationResult, SyntheticKeyGenerator, normalize_rows
from .report import ReportBuilder
from .validation import validate_rows
from .vocabulary import reconcile_vocabulary

"""Import orchestration.

Normalizer -> Validation/Discovery -> Vocabulary Reconciler -> Deduplicator ->
Existence Resolver -> Batch Commit Engine -> Reporter.

Everything runs sequentially on the calling thread; each existence query and
each commit chunk completes before the next one starts.
"""

logger = logging.getLogger(__name__)

MISSING_SECTOR_REASON = "missing sector"

__all__ = [
    "ExistenceCheckError",
    "ImportPreview",
    "ValidationBlockedError",
    "import_workbook",
    "preview_import",
    "run_import",
]


class ValidationBlockedError(ImportAbortedError):
    """Raised in strict mode when blocking validation errors remain."""

    def __init__(self, preview: ImportPreview) -> None:
        self.preview = preview
        super().__init__(f"{len(preview.blocking_errors)} blocking validation errors")


class ExistenceCheckError(ImportAbortedError):
    """An existence query failed; no asset has been written."""


@dataclass
class ImportPreview:
    """Everything the wizard shows before the operator confirms."""
    asset_type: AssetType
    normalization: NormalizationResult
    validation: ValidationResult
    dedup: DedupResult

    @property
    def total_rows(self) -> int:
        return len(self.normalization.assets) + len(self.normalization.dropped)

    @property
    def blocking_errors(self) -> list[str]:
        errors = [
            f"{a.sheet_name}!{a.row_number} ({a.natural_key}): {MISSING_SECTOR_REASON}"
            for a in self.normalization.dropped
        ]
        return errors + self.validation.error_messages()

    @property
    def ready(self) -> bool:
        return not self.blocking_errors and bool(self.dedup.unique)

    def stats(self) -> dict[str, int]:
        """Counts shown next to the preview table."""
        return {
            "rows": self.total_rows,
            "importable": len(self.dedup.unique),
            "duplicates": len(self.dedup.duplicates),
            "blocking_errors": len(self.blocking_errors),
            "synthetic_keys": sum(1 for a in self.dedup.unique if a.synthetic_key),
            "new_terms": len(self.validation.discovered),
        }


def preview_import(
    rows: Sequence[RawRow],
    asset_type: AssetType,
    permissions: PermissionContext,
    units: Sequence[Unit],
    vocabulary: VocabularySnapshot,
    config: ImportConfig,
    keygen: SyntheticKeyGenerator | None = None,
) -> ImportPreview:
    """Normalize, validate and deduplicate without touching any store."""
    normalization = normalize_rows(rows, asset_type, units, config.rules, keygen)
    validation = validate_rows(normalization.assets, permissions, vocabulary, config.rules)
    dedup = deduplicate(validation.importable)
    return ImportPreview(
        asset_type=asset_type,
        normalization=normalization,
        validation=validation,
        dedup=dedup,
    )


def run_import(
    rows: Sequence[RawRow],
    asset_type: AssetType,
    permissions: PermissionContext,
    units: Sequence[Unit],
    *,
    document_store: DocumentStore,
    vocabulary_store: VocabularyStore,
    config: ImportConfig,
    require_clean: bool = False,
    should_cancel: Callable[[], bool] | None = None,
    metrics_callback: Callable[[ChunkMetrics], None] | None = None,
    commit_started: Callable[[int], None] | None = None,
    keygen: SyntheticKeyGenerator | None = None,
) -> ImportReport:
    """Run a full import and return its report.

    Rows failing validation are excluded and reported; the rest proceed. With
    require_clean=True any blocking error aborts the run before any write.
    commit_started receives the number of rows about to be committed.

    Raises:
        ValidationBlockedError: strict mode with blocking errors
        VocabularyReconcileError: vocabulary merge failed (no asset written)
        ExistenceCheckError: an existence query failed (no asset written)
    """
    vocabulary = vocabulary_store.snapshot(config.vocabulary_lists)
    preview = preview_import(rows, asset_type, permissions, units, vocabulary, config, keygen)
    if require_clean and preview.blocking_errors:
        raise ValidationBlockedError(preview)

    builder = ReportBuilder(total_attempted=preview.total_rows)
    builder.count_synthetic(preview.normalization.assets)
    builder.count_synthetic(preview.normalization.dropped)
    builder.add_dropped(preview.normalization.dropped, MISSING_SECTOR_REASON)
    builder.add_rejected(preview.validation.rejected)
    builder.add_duplicates(preview.dedup.duplicates)

    # vocabulário antes de qualquer escrita de ativo
    reconcile_vocabulary(vocabulary_store, preview.validation.discovered, config.vocabulary_lists)

    unique = preview.dedup.unique
    collection = config.store.assets_collection
    # configured sizes never exceed what the backend accepts
    in_limit = min(config.store.query_in_limit, document_store.max_in_keys)
    batch_limit = min(config.store.batch_write_limit, document_store.max_batch_ops)
    try:
        existing = find_existing_keys(
            document_store,
            collection,
            [a.natural_key for a in unique],
            in_limit,
            should_cancel=should_cancel,
        )
    except ExistenceCancelled as e:
        logger.warning(str(e))
        builder.add_cancelled(unique, CANCELLED_REASON)
        return builder.build()
    except Exception as e:
        raise ExistenceCheckError(f"existence check failed: {e}") from e

    classified = classify_rows(unique, existing)
    if commit_started is not None:
        commit_started(len(classified))
    outcome = commit_rows(
        document_store,
        collection,
        classified,
        batch_limit,
        imported_by=permissions.user,
        should_cancel=should_cancel,
        metrics_callback=metrics_callback,
    )
    builder.add_commit(outcome)

    report = builder.build()
    logger.info(
        f"import finished: {report.new_count} new, {report.updated_count} updated, "
        f"{report.duplicate_count} duplicates, {report.failed_count} failed"
    )
    return report


def import_workbook(
    source: Path | str | bytes | BinaryIO,
    asset_type: AssetType,
    permissions: PermissionContext,
    units: Sequence[Unit],
    *,
    document_store: DocumentStore,
    vocabulary_store: VocabularyStore,
    config: ImportConfig,
    **kwargs,
) -> ImportReport:
    """read_workbook + run_import over every importable sheet."""
    sheets = read_workbook(source, config.rules.skip_sheet_patterns)
    rows = [row for sheet in sheets for row in sheet.rows]
    logger.info(f"{len(rows)} rows read from {len(sheets)} sheets")
    return run_import(
        rows,
        asset_type,
        permissions,
        units,
        document_store=document_store,
        vocabulary_store=vocabulary_store,
        config=config,
        **kwargs,
    )
