from __future__ import annotations

import logging
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

from ..db.store import DocumentStore
from ..models.asset import Computer, NormalizedAsset, Printer
from ..models.classified_row import Classification, ClassifiedRow
from ..models.import_report import CANCELLED_REASON, FailureRecord, FailureStage
from .existence import chunked

"""Batch commit engine.

Rows are written in chunks of at most `chunk_size` upserts, one atomic batch per
chunk, strictly in order. A failed chunk is not retried nor rolled back beyond
its own batch: every row in it is recorded as failed with the backend message
and the next chunk proceeds (partial-success model).
"""

logger = logging.getLogger(__name__)

__all__ = [
    "ChunkMetrics",
    "CommitOutcome",
    "NEW_DOCUMENT_DEFAULTS",
    "build_document",
    "commit_rows",
]


@dataclass(frozen=True)
class ChunkMetrics:
    """Timing and result for one commit chunk."""
    index: int  # 0-based chunk number
    size: int
    elapsed_seconds: float
    ok: bool
    error: str | None = None


@dataclass
class CommitOutcome:
    new_count: int = 0
    updated_count: int = 0
    failures: list[FailureRecord] = field(default_factory=list)
    chunks: int = 0
    failed_chunks: int = 0


def _iso(ts: datetime) -> str:
    return ts.isoformat().replace("+00:00", "Z")


# Template values used when a new asset is created without them
NEW_DOCUMENT_DEFAULTS: dict[str, str] = {
    "marca": "Genérico",
    "modelo": "Desconhecido",
    "colorido": "Não",
    "frenteVerso": "Não",
}


def _asset_fields(asset: NormalizedAsset) -> dict[str, Any]:
    """Row-supplied fields; None where the sheet had no usable value."""
    fields: dict[str, Any] = {
        "tombamento": asset.declared_id,
        "marca": asset.brand,
        "modelo": asset.model,
        "status": asset.status,
        "unitId": asset.unit_id,
        "setor": asset.sector,
        "sala": asset.room,
        "pavimento": asset.floor,
        "funcionario": asset.assignee,
        "observacao": asset.notes,
    }
    if isinstance(asset, Computer):
        fields.update(
            hostname=asset.hostname,
            processador=asset.processor,
            memoria=asset.memory,
            hdSsd=asset.storage,
            so=asset.os,
            antivirus=asset.antivirus,
            macAddress=asset.mac_address,
            serviceTag=asset.service_tag,
        )
    elif isinstance(asset, Printer):
        fields.update(
            ip=asset.ip,
            conectividade=asset.connectivity,
            cartucho=asset.cartridge,
            colorido=asset.color,
            frenteVerso=asset.duplex,
        )
    return fields


def build_document(
    asset: NormalizedAsset,
    classification: Classification,
    imported_by: str | None,
    now: datetime,
) -> dict[str, Any]:
    """Fields upserted for one asset.

    NEW rows get the full document: template defaults and empty strings fill
    the gaps, and createdAt is set. UPDATE rows only carry the fields the
    sheet supplied, so the merge keeps every other stored value.
    """
    fields = _asset_fields(asset)
    if classification is Classification.NEW:
        doc = {
            key: NEW_DOCUMENT_DEFAULTS.get(key, "") if value is None else value
            for key, value in fields.items()
        }
        doc["createdAt"] = _iso(now)
    else:
        doc = {key: value for key, value in fields.items() if value is not None}

    doc.update(
        serial=asset.natural_key,
        type=asset.asset_type.value,
        isImported=True,
        syntheticSerial=asset.synthetic_key,
        lastSeen=_iso(now),
    )
    if imported_by is not None or classification is Classification.NEW:
        doc["importedBy"] = imported_by
    return doc


def commit_rows(
    store: DocumentStore,
    collection: str,
    rows: Sequence[ClassifiedRow],
    chunk_size: int,
    *,
    imported_by: str | None = None,
    should_cancel: Callable[[], bool] | None = None,
    metrics_callback: Callable[[ChunkMetrics], None] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> CommitOutcome:
    """Write classified rows chunk by chunk.

    Parameters
    ----------
    store: document store receiving one commit_upserts call per chunk
    collection: asset collection name
    rows: NEW / UPDATE rows (duplicates must already be filtered out)
    chunk_size: max operations per atomic batch
    should_cancel: polled before each chunk; when it returns True the remaining
        rows are recorded as cancelled failures and nothing else is written
    metrics_callback: receives a ChunkMetrics after every chunk attempt
    """
    clock = clock or (lambda: datetime.now(UTC))
    outcome = CommitOutcome()
    chunks = list(chunked(rows, chunk_size))

    for index, chunk in enumerate(chunks):
        if should_cancel is not None and should_cancel():
            remaining = [r for c in chunks[index:] for r in c]
            logger.warning(f"import cancelled before chunk {index + 1}/{len(chunks)}; {len(remaining)} rows not written")
            outcome.failures.extend(
                FailureRecord.create(r.asset, CANCELLED_REASON, FailureStage.CANCELLED) for r in remaining
            )
            break

        now = clock()
        documents = [
            (r.natural_key, build_document(r.asset, r.classification, imported_by, now)) for r in chunk
        ]
        outcome.chunks += 1
        start = time.perf_counter()
        try:
            store.commit_upserts(collection, documents)
        except Exception as e:
            elapsed = time.perf_counter() - start
            outcome.failed_chunks += 1
            logger.error(f"chunk {index + 1}/{len(chunks)} ({len(chunk)} rows) failed: {e}")
            outcome.failures.extend(
                FailureRecord.create(r.asset, str(e), FailureStage.COMMIT) for r in chunk
            )
            if metrics_callback is not None:
                metrics_callback(ChunkMetrics(index, len(chunk), elapsed, ok=False, error=str(e)))
            continue

        elapsed = time.perf_counter() - start
        for r in chunk:
            if r.classification is Classification.NEW:
                outcome.new_count += 1
            elif r.classification is Classification.UPDATE:
                outcome.updated_count += 1
        logger.info(f"chunk {index + 1}/{len(chunks)} committed ({len(chunk)} rows)")
        if metrics_callback is not None:
            metrics_callback(ChunkMetrics(index, len(chunk), elapsed, ok=True))

    return outcome
