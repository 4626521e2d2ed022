from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema
import yaml
from jsonschema.exceptions import ValidationError

from ..models.asset import AssetType
from ..models.config_models import (
    DatabaseConfig,
    ImportConfig,
    ImportRules,
    StoreConfig,
)
from ..models.vocabulary import VocabularyCategory

"""Config loader.

Responsibilities:
- Load YAML config (default location config/import.yml)
- Validate against the packaged JSON schema
- Overlay the provided keys on the built-in defaults
"""

__all__ = [
    "ConfigError",
    "DEFAULT_CONFIG_PATH",
    "SCHEMA_PATH",
    "default_config",
    "load_config",
]

SCHEMA_PATH = Path(__file__).with_name("config_schema.json")
DEFAULT_CONFIG_PATH = Path("config/import.yml")


class ConfigError(Exception):
    pass


def default_config() -> ImportConfig:
    return ImportConfig()


def _validate_config_schema(data: dict[str, Any]) -> None:
    """Validate config data against JSON schema.

    Raises:
        ConfigError: If the schema file is missing or not valid JSON, or the
            config data fails validation (unknown keys, wrong types, ...).
    """
    if not SCHEMA_PATH.exists():
        raise ConfigError(f"config schema not found: {SCHEMA_PATH}")
    try:
        schema = json.loads(SCHEMA_PATH.read_text(encoding="utf-8"))
        jsonschema.validate(data, schema)
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid schema file: {e}") from e
    except ValidationError as e:
        raise ConfigError(f"config validation failed: {e.message}") from e


def _build_store(raw: dict[str, Any]) -> StoreConfig:
    base = StoreConfig()
    return StoreConfig(
        query_in_limit=raw.get("query_in_limit", base.query_in_limit),
        batch_write_limit=raw.get("batch_write_limit", base.batch_write_limit),
        assets_collection=raw.get("assets_collection", base.assets_collection),
        units_collection=raw.get("units_collection", base.units_collection),
        users_collection=raw.get("users_collection", base.users_collection),
        options_table=raw.get("options_table", base.options_table),
    )


def _build_rules(raw: dict[str, Any]) -> ImportRules:
    base = ImportRules()
    statuses = dict(base.statuses)
    for key, values in (raw.get("statuses") or {}).items():
        statuses[AssetType[key.upper()]] = tuple(values)

    synonyms = dict(base.status_synonyms)
    # chaves comparadas em minúsculas
    synonyms.update({k.strip().casefold(): v for k, v in (raw.get("status_synonyms") or {}).items()})

    placeholders = base.placeholder_identifiers
    if "placeholder_identifiers" in raw:
        placeholders = frozenset(p.strip().casefold() for p in raw["placeholder_identifiers"])

    return ImportRules(
        synthetic_key_prefix=raw.get("synthetic_key_prefix", base.synthetic_key_prefix),
        skip_sheet_patterns=tuple(raw.get("skip_sheet_patterns", base.skip_sheet_patterns)),
        placeholder_identifiers=placeholders,
        status_synonyms=synonyms,
        statuses=statuses,
    )


def load_config(path: Path = DEFAULT_CONFIG_PATH) -> ImportConfig:
    if not path.exists():
        raise ConfigError(f"config file not found: {path}")
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"invalid yaml: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError("config root must be a mapping")

    _validate_config_schema(data)

    base = ImportConfig()
    vocab_raw = (data.get("vocabulary") or {}).get("lists") or {}
    vocabulary_lists = dict(base.vocabulary_lists)
    for key, list_id in vocab_raw.items():
        vocabulary_lists[VocabularyCategory(key)] = list_id

    db_raw = data.get("database") or {}
    db = DatabaseConfig(
        host=db_raw.get("host"),
        port=db_raw.get("port"),
        user=db_raw.get("user"),
        password=db_raw.get("password"),
        database=db_raw.get("database"),
        dsn=db_raw.get("dsn"),
    )

    store = _build_store(data.get("store") or {})

    admin_roles = data.get("admin_roles")
    return ImportConfig(
        store=store,
        rules=_build_rules(data.get("import") or {}),
        vocabulary_lists=vocabulary_lists,
        admin_roles=frozenset(admin_roles) if admin_roles is not None else base.admin_roles,
        database=db,
    )
