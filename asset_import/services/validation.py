from __future__ import annotations

import logging
from collections.abc import Iterable

from ..models.asset import Computer, NormalizedAsset, Printer
from ..models.config_models import ImportRules
from ..models.permission import PermissionContext
from ..models.validation import ValidationOutcome, ValidationResult
from ..models.vocabulary import DiscoveredTerms, VocabularyCategory, VocabularySnapshot

"""Validation & vocabulary discovery.

Hard rules reject a row (all violations are collected). Controlled-vocabulary
fields never reject: unknown sector / floor / room / OS values are recorded as
discovered terms instead. Only rows that pass every hard rule contribute to the
discovery sets, so rejected rows cannot leak terms into the vocabulary.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "validate_row",
    "validate_rows",
]


def _vocabulary_fields(asset: NormalizedAsset) -> list[tuple[VocabularyCategory, str | None]]:
    fields = [(VocabularyCategory.SECTOR, asset.sector)]
    if isinstance(asset, Computer):
        fields += [
            (VocabularyCategory.FLOOR, asset.floor),
            (VocabularyCategory.ROOM, asset.room),
            (VocabularyCategory.OS, asset.os),
        ]
    return fields


def validate_row(
    asset: NormalizedAsset,
    permissions: PermissionContext,
    vocabulary: VocabularySnapshot,
    rules: ImportRules,
    discovered: DiscoveredTerms | None = None,
) -> ValidationOutcome:
    """Evaluate every rule for one row.

    Unknown vocabulary terms go to `discovered` only when the row has no
    blocking error.
    """
    errors: list[str] = []

    if not asset.unit_id:
        errors.append("missing unit")
    elif not asset.unit_resolved:
        errors.append(f"unknown unit '{asset.unit_id}'")
    elif not permissions.can_write(asset.unit_id):
        errors.append(f"no write permission for unit '{asset.unit_id}'")

    if not asset.natural_key:
        errors.append("missing serial")

    if not asset.status:
        errors.append("missing status")
    else:
        allowed = {s.casefold() for s in rules.statuses_for(asset.asset_type)}
        if asset.status.casefold() not in allowed:
            errors.append(f"invalid status '{asset.status}'")

    if not asset.sector:
        errors.append("missing sector")

    if isinstance(asset, Computer):
        if not asset.hostname:
            errors.append("missing hostname")
        if not asset.processor:
            errors.append("missing processor")
    elif isinstance(asset, Printer):
        if not asset.connectivity:
            errors.append("missing connectivity")

    if not errors and discovered is not None:
        for category, term in _vocabulary_fields(asset):
            if term and not vocabulary.contains(category, term):
                discovered.add(category, term)

    return ValidationOutcome(asset=asset, errors=tuple(errors))


def validate_rows(
    assets: Iterable[NormalizedAsset],
    permissions: PermissionContext,
    vocabulary: VocabularySnapshot,
    rules: ImportRules,
) -> ValidationResult:
    result = ValidationResult()
    for asset in assets:
        outcome = validate_row(asset, permissions, vocabulary, rules, result.discovered)
        if outcome.ok:
            result.importable.append(asset)
        else:
            result.rejected.append(outcome)
    logger.info(
        f"validation: {len(result.importable)} importable, {len(result.rejected)} rejected, "
        f"{len(result.discovered)} new vocabulary terms"
    )
    return result
