from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from typing import Any

import psycopg2
from psycopg2.extras import Json, execute_values

from ..models.vocabulary import VocabularyCategory, VocabularySnapshot
from .store import StoreError, StoreLimitError

"""PostgreSQL-backed document and vocabulary stores.

Documents live in one JSONB table keyed by (collection, id). Upsert-merge is
`data = documents.data || EXCLUDED.data`, so keys absent from the written
fields (createdAt on existing assets, for example) are kept. Each commit batch
runs inside its own explicit BEGIN / COMMIT; the cursor's connection is
expected in autocommit mode so these statements are the transaction
boundaries.

Vocabulary lists live in a small (id, terms jsonb array) table; new terms are
appended server-side only when not already present.
"""

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_MAX_BATCH_OPS",
    "DEFAULT_MAX_IN_KEYS",
    "PostgresDocumentStore",
    "PostgresVocabularyStore",
    "ensure_schema",
]

DEFAULT_MAX_IN_KEYS = 30
DEFAULT_MAX_BATCH_OPS = 500

DOCUMENTS_DDL = """
CREATE TABLE IF NOT EXISTS documents (
    collection text NOT NULL,
    id text NOT NULL,
    data jsonb NOT NULL DEFAULT '{}'::jsonb,
    PRIMARY KEY (collection, id)
)
"""

OPTIONS_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    id text PRIMARY KEY,
    terms jsonb NOT NULL DEFAULT '[]'::jsonb
)
"""

UPSERT_MERGE_SQL = (
    "INSERT INTO documents (collection, id, data) VALUES %s "
    "ON CONFLICT (collection, id) DO UPDATE SET data = documents.data || EXCLUDED.data"
)

MERGE_TERMS_SQL = (
    "INSERT INTO {table} (id, terms) VALUES %s "
    "ON CONFLICT (id) DO UPDATE SET terms = {table}.terms || ("
    "SELECT COALESCE(jsonb_agg(t.value), '[]'::jsonb) "
    "FROM jsonb_array_elements(EXCLUDED.terms) AS t "
    "WHERE NOT {table}.terms @> jsonb_build_array(t.value))"
)


def _rollback(cursor: Any) -> None:
    try:
        cursor.execute("ROLLBACK")
    except psycopg2.Error as e:
        logger.warning(f"rollback failed: {e}")


def ensure_schema(cursor: Any, options_table: str = "system_options") -> None:
    cursor.execute(DOCUMENTS_DDL)
    cursor.execute(OPTIONS_DDL.format(table=options_table))


class PostgresDocumentStore:
    def __init__(
        self,
        cursor: Any,
        *,
        max_in_keys: int = DEFAULT_MAX_IN_KEYS,
        max_batch_ops: int = DEFAULT_MAX_BATCH_OPS,
    ) -> None:
        self.cursor = cursor
        self.max_in_keys = max_in_keys
        self.max_batch_ops = max_batch_ops

    def get(self, collection: str, key: str) -> dict[str, Any] | None:
        try:
            self.cursor.execute(
                "SELECT data FROM documents WHERE collection = %s AND id = %s",
                (collection, key),
            )
            row = self.cursor.fetchone()
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e
        return row[0] if row else None

    def list_documents(self, collection: str) -> list[tuple[str, dict[str, Any]]]:
        try:
            self.cursor.execute(
                "SELECT id, data FROM documents WHERE collection = %s ORDER BY id",
                (collection,),
            )
            return [(r[0], r[1]) for r in self.cursor.fetchall()]
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

    def find_existing(self, collection: str, keys: Sequence[str]) -> set[str]:
        if len(keys) > self.max_in_keys:
            raise StoreLimitError(f"IN query with {len(keys)} keys exceeds limit {self.max_in_keys}")
        if not keys:
            return set()
        try:
            self.cursor.execute(
                "SELECT id FROM documents WHERE collection = %s AND id = ANY(%s)",
                (collection, list(keys)),
            )
            return {r[0] for r in self.cursor.fetchall()}
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e

    def commit_upserts(self, collection: str, documents: Sequence[tuple[str, dict[str, Any]]]) -> None:
        if len(documents) > self.max_batch_ops:
            raise StoreLimitError(
                f"batch with {len(documents)} operations exceeds limit {self.max_batch_ops}"
            )
        if not documents:
            return
        rows = [(collection, key, Json(fields)) for key, fields in documents]
        try:
            self.cursor.execute("BEGIN")
            execute_values(self.cursor, UPSERT_MERGE_SQL, rows, page_size=len(rows))
            self.cursor.execute("COMMIT")
        except psycopg2.Error as e:
            _rollback(self.cursor)
            raise StoreError(str(e)) from e


class PostgresVocabularyStore:
    def __init__(self, cursor: Any, table: str = "system_options") -> None:
        self.cursor = cursor
        self.table = table

    def snapshot(self, list_ids: Mapping[VocabularyCategory, str]) -> VocabularySnapshot:
        try:
            self.cursor.execute(
                f"SELECT id, terms FROM {self.table} WHERE id = ANY(%s)",
                (list(list_ids.values()),),
            )
            by_id = {r[0]: list(r[1] or []) for r in self.cursor.fetchall()}
        except psycopg2.Error as e:
            raise StoreError(str(e)) from e
        return VocabularySnapshot.from_lists(
            {cat: by_id.get(list_id, []) for cat, list_id in list_ids.items()}
        )

    def merge_terms(self, additions: Mapping[str, Sequence[str]]) -> None:
        rows = [(list_id, Json(list(terms))) for list_id, terms in additions.items() if terms]
        if not rows:
            return
        try:
            self.cursor.execute("BEGIN")
            execute_values(self.cursor, MERGE_TERMS_SQL.format(table=self.table), rows)
            self.cursor.execute("COMMIT")
        except psycopg2.Error as e:
            _rollback(self.cursor)
            raise StoreError(str(e)) from e
