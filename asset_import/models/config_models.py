from __future__ import annotations

from dataclasses import dataclass, field

from .asset import AssetType
from .vocabulary import VocabularyCategory

"""Config dataclasses for the bulk asset importer.

These are the typed view of config/import.yml produced by config.loader. Every
field has a built-in default so library callers can run without a file.
"""

DEFAULT_STATUSES: tuple[str, ...] = (
    "Em uso",
    "Manutenção",
    "Em manutenção",
    "Inativo",
    "Estoque",
    "Manutenção agendada",
    "Devolução agendada",
    "Devolvido",
    "Reativação agendada",
)

DEFAULT_STATUS_SYNONYMS: dict[str, str] = {
    "ativo": "Em uso",
    "ativa": "Em uso",
    "active": "Em uso",
    "in use": "Em uso",
    "em uso": "Em uso",
    "inativa": "Inativo",
    "em estoque": "Estoque",
    "manutencao": "Manutenção",
    "em manutencao": "Em manutenção",
}

DEFAULT_PLACEHOLDER_IDENTIFIERS: frozenset[str] = frozenset({
    "n/a", "na", "n.a.", "n/d", "nd",
    "s/n", "sn", "s/nº", "s/no",
    "-", "--", "0", "00", "x", "xx", "?",
    "sem", "sem serial", "sem tombamento", "sem numero", "sem número",
    "nao possui", "não possui", "nao informado", "não informado",
    "null", "none", "nan",
    # fabricante digitado no campo de identificação
    "dell", "hp", "lenovo", "positivo", "acer", "samsung", "brother", "epson",
    "generico", "genérico",
})

DEFAULT_SKIP_SHEET_PATTERNS: tuple[str, ...] = (
    "valores",
    "validos",
    "instrucao",
    "instrucoes",
    "lista",
    "listas",
    "legenda",
    "legendas",
)

DEFAULT_VOCABULARY_LISTS: dict[VocabularyCategory, str] = {
    VocabularyCategory.SECTOR: "setores",
    VocabularyCategory.FLOOR: "pavimentos",
    VocabularyCategory.ROOM: "salas",
    VocabularyCategory.OS: "sistemas_operacionais",
}


@dataclass(frozen=True)
class DatabaseConfig:
    """Database connection configuration.

    Used as fallback when environment variables are not set.
    Environment variables take precedence over these values.
    """
    host: str | None = None
    port: int | None = None
    user: str | None = None
    password: str | None = None
    database: str | None = None
    dsn: str | None = None


@dataclass(frozen=True)
class StoreConfig:
    """Backend limits and collection names.

    query_in_limit bounds the keys per existence query, batch_write_limit the
    operations per atomic commit batch. Both are backend specific.
    """
    query_in_limit: int = 30
    batch_write_limit: int = 400
    assets_collection: str = "assets"
    units_collection: str = "units"
    users_collection: str = "users"
    options_table: str = "system_options"


@dataclass(frozen=True)
class ImportRules:
    synthetic_key_prefix: str = "SEM-SERIAL"
    skip_sheet_patterns: tuple[str, ...] = DEFAULT_SKIP_SHEET_PATTERNS
    placeholder_identifiers: frozenset[str] = DEFAULT_PLACEHOLDER_IDENTIFIERS
    status_synonyms: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_STATUS_SYNONYMS))
    statuses: dict[AssetType, tuple[str, ...]] = field(
        default_factory=lambda: {t: DEFAULT_STATUSES for t in AssetType}
    )

    def statuses_for(self, asset_type: AssetType) -> tuple[str, ...]:
        return self.statuses.get(asset_type, DEFAULT_STATUSES)


@dataclass(frozen=True)
class ImportConfig:
    """Root configuration object for the import engine."""
    store: StoreConfig = field(default_factory=StoreConfig)
    rules: ImportRules = field(default_factory=ImportRules)
    vocabulary_lists: dict[VocabularyCategory, str] = field(
        default_factory=lambda: dict(DEFAULT_VOCABULARY_LISTS)
    )
    admin_roles: frozenset[str] = frozenset({"admin_geral"})
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
