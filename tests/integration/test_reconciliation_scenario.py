from __future__ import annotations

import pytest

from asset_import.db.store import StoreError
from asset_import.models.asset import AssetType
from asset_import.models.import_report import FailureStage
from asset_import.models.row_data import RawRow
from asset_import.services.orchestrator import run_import
from conftest import computer_values

"""650-row reconciliation scenario.

530 rows for a unit the caller may write (10 of them forming 5 duplicate
pairs), 120 rows for a unit the caller may not write, 100 serials already
registered.
"""


def _scenario_rows() -> list[RawRow]:
    rows: list[RawRow] = []

    def add(serial: str, unit: str) -> None:
        rows.append(RawRow("Computadores", len(rows) + 2, computer_values(serial, Unidade=unit)))

    for i in range(520):
        add(f"HMR-{i:04d}", "HMR")
    for i in range(5):
        add(f"DUP-{i}", "HMR")
        add(f"DUP-{i}", "HMR")
    for i in range(120):
        add(f"HSS-{i:04d}", "HSS")
    return rows


@pytest.fixture()
def seeded_store(document_store):
    for i in range(100):
        document_store.seed("assets", f"HMR-{i:04d}", {"serial": f"HMR-{i:04d}", "createdAt": "2024-01-01T00:00:00Z"})
    return document_store


def _run(store, vocabulary_store, hmr_only, units, config, keygen, **kwargs):
    return run_import(
        _scenario_rows(),
        AssetType.COMPUTER,
        hmr_only,
        units,
        document_store=store,
        vocabulary_store=vocabulary_store,
        config=config,
        keygen=keygen,
        **kwargs,
    )


def test_expected_counts(seeded_store, vocabulary_store, hmr_only, units, config, keygen):
    report = _run(seeded_store, vocabulary_store, hmr_only, units, config, keygen)

    assert report.total_attempted == 650
    assert report.new_count == 425
    assert report.updated_count == 100
    assert report.duplicate_count == 5
    assert len(report.failures) == 125

    validation = report.failures_by_stage(FailureStage.VALIDATION)
    assert len(validation) == 120
    assert all("no write permission" in f.reason for f in validation)
    assert {f.natural_key for f in report.failures_by_stage(FailureStage.DUPLICATE)} == {
        f"DUP-{i}" for i in range(5)
    }
    assert report.is_complete_success is False


def test_backend_limits_respected(seeded_store, vocabulary_store, hmr_only, units, config, keygen):
    _run(seeded_store, vocabulary_store, hmr_only, units, config, keygen)

    assert len(seeded_store.in_queries) == 18
    assert max(len(q) for q in seeded_store.in_queries) <= 30
    assert [len(b) for b in seeded_store.batches] == [400, 125]
    assert vocabulary_store.merge_calls == []


def test_updates_keep_creation_time(seeded_store, vocabulary_store, hmr_only, units, config, keygen):
    _run(seeded_store, vocabulary_store, hmr_only, units, config, keygen)

    updated = seeded_store.get("assets", "HMR-0000")
    assert updated["createdAt"] == "2024-01-01T00:00:00Z"
    assert updated["hostname"] == "HMR-TI-01"
    assert "createdAt" in seeded_store.get("assets", "HMR-0300")
    assert not any(k.startswith("HSS-") for k in seeded_store.collections["assets"])


def test_failed_chunk_does_not_stop_the_next(make_document_store, vocabulary_store, hmr_only, units, config, keygen):
    store = make_document_store(fail_batches={0: StoreError("deadline exceeded")})
    for i in range(100):
        store.seed("assets", f"HMR-{i:04d}", {"serial": f"HMR-{i:04d}"})

    report = _run(store, vocabulary_store, hmr_only, units, config, keygen)

    commit_failures = report.failures_by_stage(FailureStage.COMMIT)
    assert len(commit_failures) == 400
    assert {f.reason for f in commit_failures} == {"deadline exceeded"}
    assert report.new_count == 125
    assert report.updated_count == 0
    assert report.failed_chunks == 1 and report.commit_chunks == 2
    assert "HMR-0450" in store.collections["assets"]
    assert "HMR-0399" not in store.collections["assets"]


@pytest.mark.parametrize("fail_batches", [{}, {0: StoreError("x")}, {1: StoreError("y")}, {0: StoreError("a"), 1: StoreError("b")}])
def test_partition_completeness(make_document_store, vocabulary_store, hmr_only, units, config, keygen, fail_batches):
    store = make_document_store(fail_batches=fail_batches)
    report = _run(store, vocabulary_store, hmr_only, units, config, keygen)

    assert report.new_count + report.updated_count + len(report.failures) == report.total_attempted
    keys = [(f.sheet, f.row) for f in report.failures]
    assert len(keys) == len(set(keys))


def test_cancellation_before_existence_check(seeded_store, vocabulary_store, hmr_only, units, config, keygen):
    report = _run(seeded_store, vocabulary_store, hmr_only, units, config, keygen, should_cancel=lambda: True)

    assert seeded_store.in_queries == []
    assert seeded_store.batches == []
    assert len(report.failures_by_stage(FailureStage.CANCELLED)) == 525
    assert report.new_count + report.updated_count + len(report.failures) == 650
