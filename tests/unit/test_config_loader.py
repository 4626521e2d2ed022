from __future__ import annotations

from pathlib import Path

import pytest

from asset_import.config.loader import ConfigError, default_config, load_config
from asset_import.models.asset import AssetType
from asset_import.models.vocabulary import VocabularyCategory

SAMPLE = """\
store:
  query_in_limit: 10
  batch_write_limit: 250
  assets_collection: ativos
import:
  synthetic_key_prefix: SN-AUTO
  skip_sheet_patterns: [ajuda]
  placeholder_identifiers: ["N/A", "Sem Serial"]
  status_synonyms:
    Funcionando: Em uso
  statuses:
    printer: [Em uso, Inativo]
vocabulary:
  lists:
    os: so_lista
admin_roles: [admin_geral, ti_central]
database:
  host: db.local
  port: 6543
"""


@pytest.fixture()
def write_config(temp_workdir: Path) -> Path:
    path = temp_workdir / "config" / "import.yml"
    path.write_text(SAMPLE, encoding="utf-8")
    return path


def test_load_config_success(write_config: Path):
    cfg = load_config(write_config)
    assert cfg.store.query_in_limit == 10
    assert cfg.store.batch_write_limit == 250
    assert cfg.store.assets_collection == "ativos"
    assert cfg.store.units_collection == "units"
    assert cfg.rules.synthetic_key_prefix == "SN-AUTO"
    assert cfg.rules.skip_sheet_patterns == ("ajuda",)
    assert cfg.rules.placeholder_identifiers == frozenset({"n/a", "sem serial"})
    assert cfg.rules.status_synonyms["funcionando"] == "Em uso"
    assert cfg.rules.statuses_for(AssetType.PRINTER) == ("Em uso", "Inativo")
    assert "Estoque" in cfg.rules.statuses_for(AssetType.COMPUTER)
    assert cfg.vocabulary_lists[VocabularyCategory.OS] == "so_lista"
    assert cfg.vocabulary_lists[VocabularyCategory.SECTOR] == "setores"
    assert cfg.admin_roles == frozenset({"admin_geral", "ti_central"})
    assert cfg.database.host == "db.local"
    assert cfg.database.port == 6543


def test_defaults_match_backend_limits():
    cfg = default_config()
    assert cfg.store.query_in_limit == 30
    assert cfg.store.batch_write_limit == 400
    assert cfg.rules.synthetic_key_prefix == "SEM-SERIAL"
    assert cfg.admin_roles == frozenset({"admin_geral"})


def test_empty_file_gives_defaults(temp_workdir: Path):
    path = temp_workdir / "config" / "empty.yml"
    path.write_text("", encoding="utf-8")
    assert load_config(path) == default_config()


def test_packaged_sample_config_is_valid():
    sample = Path(__file__).resolve().parents[2] / "config" / "import.yml"
    cfg = load_config(sample)
    assert cfg.store.batch_write_limit == 400


def test_load_config_missing_file(temp_workdir: Path):
    with pytest.raises(ConfigError):
        load_config(temp_workdir / "config" / "not_exists.yml")


def test_load_config_invalid_yaml(write_config: Path):
    write_config.write_text("store: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "invalid yaml" in str(e.value)


def test_load_config_root_not_mapping(write_config: Path):
    write_config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        load_config(write_config)


@pytest.mark.parametrize(
    "text",
    [
        "extra_field: not_allowed\n",
        "store:\n  query_in_limit: 0\n",
        "store:\n  batch_write_limit: many\n",
        "import:\n  statuses:\n    scanner: [Em uso]\n",
        "store:\n  options_table: 'drop table'\n",
    ],
)
def test_load_config_schema_violations(write_config: Path, text: str):
    write_config.write_text(text, encoding="utf-8")
    with pytest.raises(ConfigError) as e:
        load_config(write_config)
    assert "config validation failed" in str(e.value)
