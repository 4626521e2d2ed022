# Shared pytest fixtures: in-memory stores, row builders, workbook writer
from __future__ import annotations

import random
from collections.abc import Callable, Mapping, Sequence
from pathlib import Path
from typing import Any

import pandas as pd
import pytest

from asset_import.db.store import StoreLimitError
from asset_import.logging.init import reset_logging
from asset_import.models.config_models import ImportConfig
from asset_import.models.permission import PermissionContext, Unit
from asset_import.models.row_data import RawRow
from asset_import.models.vocabulary import VocabularyCategory, VocabularySnapshot
from asset_import.services.normalizer import SyntheticKeyGenerator


class InMemoryDocumentStore:
    """Document store double recording every query and batch.

    fail_batches maps a 0-based commit_upserts call index to the exception it
    raises (that batch is then not applied).
    """

    def __init__(
        self,
        *,
        max_in_keys: int = 30,
        max_batch_ops: int = 500,
        fail_batches: Mapping[int, Exception] | None = None,
        fail_queries: Exception | None = None,
    ) -> None:
        self.max_in_keys = max_in_keys
        self.max_batch_ops = max_batch_ops
        self.fail_batches = dict(fail_batches or {})
        self.fail_queries = fail_queries
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}
        self.in_queries: list[list[str]] = []
        self.batches: list[list[str]] = []

    def seed(self, collection: str, key: str, data: dict[str, Any]) -> None:
        self.collections.setdefault(collection, {})[key] = dict(data)

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        doc = self.collections.get(collection, {}).get(key)
        return dict(doc) if doc is not None else None

    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        return sorted((k, dict(v)) for k, v in self.collections.get(collection, {}).items())

    def find_existing(self, collection: str, keys: Sequence[str]) -> set[str]:
        if len(keys) > self.max_in_keys:
            raise StoreLimitError(f"{len(keys)} > {self.max_in_keys}")
        self.in_queries.append(list(keys))
        if self.fail_queries is not None:
            raise self.fail_queries
        docs = self.collections.get(collection, {})
        return {k for k in keys if k in docs}

    def commit_upserts(self, collection: str, documents: Sequence[tuple[str, dict[str, Any]]]) -> None:
        if len(documents) > self.max_batch_ops:
            raise StoreLimitError(f"{len(documents)} > {self.max_batch_ops}")
        index = len(self.batches)
        self.batches.append([k for k, _ in documents])
        if index in self.fail_batches:
            raise self.fail_batches[index]
        docs = self.collections.setdefault(collection, {})
        for key, fields in documents:
            docs[key] = {**docs.get(key, {}), **fields}


class InMemoryVocabularyStore:
    """Vocabulary store double; merge is an idempotent ordered union."""

    def __init__(self, lists: Mapping[str, Sequence[str]] | None = None, fail: Exception | None = None) -> None:
        self.lists: dict[str, list[str]] = {k: list(v) for k, v in (lists or {}).items()}
        self.fail = fail
        self.merge_calls: list[dict[str, list[str]]] = []

    def snapshot(self, list_ids: Mapping[VocabularyCategory, str]) -> VocabularySnapshot:
        return VocabularySnapshot.from_lists(
            {cat: list(self.lists.get(list_id, [])) for cat, list_id in list_ids.items()}
        )

    def merge_terms(self, additions: Mapping[str, Sequence[str]]) -> None:
        self.merge_calls.append({k: list(v) for k, v in additions.items()})
        if self.fail is not None:
            raise self.fail
        for list_id, terms in additions.items():
            current = self.lists.setdefault(list_id, [])
            for t in terms:
                if t not in current:
                    current.append(t)


@pytest.fixture(autouse=True)
def _reset_logging():
    yield
    reset_logging()


@pytest.fixture()
def temp_workdir(tmp_path: Path, monkeypatch) -> Path:
    (tmp_path / "config").mkdir()
    (tmp_path / "logs").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path


@pytest.fixture()
def config() -> ImportConfig:
    return ImportConfig()


@pytest.fixture()
def units() -> list[Unit]:
    return [
        Unit(id="u-hmr", code="HMR", name="Hospital Miguel Arraes"),
        Unit(id="u-hss", code="HSS", name="Hospital São Sebastião"),
    ]


@pytest.fixture()
def admin() -> PermissionContext:
    return PermissionContext(user="admin@hospital.org", is_admin=True)


@pytest.fixture()
def hmr_only() -> PermissionContext:
    return PermissionContext(user="tecnico@hospital.org", allowed_units=frozenset({"u-hmr"}))


@pytest.fixture()
def base_vocabulary() -> dict[str, list[str]]:
    return {
        "setores": ["TI", "Recepção", "Farmácia"],
        "pavimentos": ["Térreo", "1º Andar"],
        "salas": ["CPD 01", "Sala de TI"],
        "sistemas_operacionais": ["Windows 10 Pro", "Windows 11 Pro"],
    }


@pytest.fixture()
def document_store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture()
def make_document_store() -> Callable[..., InMemoryDocumentStore]:
    return InMemoryDocumentStore


@pytest.fixture()
def vocabulary_store(base_vocabulary) -> InMemoryVocabularyStore:
    return InMemoryVocabularyStore(base_vocabulary)


@pytest.fixture()
def make_vocabulary_store() -> Callable[..., InMemoryVocabularyStore]:
    return InMemoryVocabularyStore


@pytest.fixture()
def snapshot(vocabulary_store, config) -> VocabularySnapshot:
    return vocabulary_store.snapshot(config.vocabulary_lists)


@pytest.fixture()
def keygen() -> SyntheticKeyGenerator:
    return SyntheticKeyGenerator("SEM-SERIAL", rng=random.Random(1234))


def computer_values(serial: Any = "SN-0001", **overrides: Any) -> dict[str, Any]:
    values: dict[str, Any] = {
        "Tombamento": "CMP-001",
        "Unidade": "HMR",
        "Serial": serial,
        "Status": "Em uso",
        "Setor": "TI",
        "Sala": "CPD 01",
        "Pavimento": "Térreo",
        "Funcionario": "João",
        "Marca": "Dell",
        "Modelo": "Optiplex 3080",
        "Hostname": "HMR-TI-01",
        "Processador": "i5",
        "Memória": "8GB",
        "HD/SSD": "256GB",
        "SO": "Windows 10 Pro",
        "Antivírus": "Kaspersky",
        "MAC": None,
        "Service Tag": None,
    }
    values.update(overrides)
    return values


def printer_values(serial: Any = "PR-0001", **overrides: Any) -> dict[str, Any]:
    values: dict[str, Any] = {
        "Tombamento": "IMP-001",
        "Unidade": "HMR",
        "Serial": serial,
        "Status": "Em uso",
        "Setor": "Recepção",
        "Marca": "Brother",
        "Modelo": "8157",
        "IP": "192.168.0.50",
        "Conectividade": "Rede",
        "Cartucho": "TN-3472",
        "Colorido": "Não",
        "Frente/Verso": "Sim",
    }
    values.update(overrides)
    return values


@pytest.fixture()
def computer_row() -> Callable[..., RawRow]:
    counter = {"n": 1}

    def _make(serial: Any = "SN-0001", sheet: str = "Computadores", **overrides: Any) -> RawRow:
        counter["n"] += 1
        return RawRow(sheet_name=sheet, row_number=counter["n"], values=computer_values(serial, **overrides))

    return _make


@pytest.fixture()
def printer_row() -> Callable[..., RawRow]:
    counter = {"n": 1}

    def _make(serial: Any = "PR-0001", sheet: str = "Impressoras", **overrides: Any) -> RawRow:
        counter["n"] += 1
        return RawRow(sheet_name=sheet, row_number=counter["n"], values=printer_values(serial, **overrides))

    return _make


@pytest.fixture()
def write_workbook(tmp_path: Path) -> Callable[[str, dict[str, list[list[Any]]]], Path]:
    """Create a real .xlsx; each sheet is a list of rows, first row = header."""

    def _write(name: str, sheets: dict[str, list[list[Any]]]) -> Path:
        path = tmp_path / name
        with pd.ExcelWriter(path, engine="openpyxl") as writer:
            for sheet_name, rows in sheets.items():
                pd.DataFrame(rows).to_excel(writer, sheet_name=sheet_name, header=False, index=False)
        return path

    return _write
