from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from ..config.loader import DEFAULT_CONFIG_PATH, ConfigError, default_config, load_config
from ..db.postgres_store import PostgresDocumentStore, PostgresVocabularyStore, ensure_schema
from ..errors import ImportAbortedError
from ..excel.reader import WorkbookError, read_workbook
from ..excel.template import write_template
from ..logging.error_log import ErrorLogBuffer
from ..logging.init import log_summary, setup_logging
from ..models.asset import AssetType
from ..models.config_models import DatabaseConfig, ImportConfig
from ..models.permission import PermissionContext
from ..services.orchestrator import ValidationBlockedError, preview_import, run_import
from ..services.permissions import load_units, resolve_permissions
from ..services.progress import ChunkProgress
from ..services.report import render_summary_line

"""CLI entrypoint: python -m asset_import.cli WORKBOOK --type computador --user UID
Template: python -m asset_import.cli modelo.xlsx --write-template

Exit codes: 0 every row written, 2 some rows failed / were rejected,
1 fatal (config, workbook, database, aborted run).
"""

EXIT_SUCCESS_ALL = 0
EXIT_FATAL = 1
EXIT_PARTIAL_FAILURE = 2


def _resolve_dsn(db_cfg: DatabaseConfig) -> str:
    """Environment first (DATABASE_URL / PGDSN / PG*), config file as fallback."""
    dsn = os.getenv("DATABASE_URL") or os.getenv("PGDSN") or db_cfg.dsn
    if dsn:
        return dsn
    host = os.getenv("PGHOST", db_cfg.host or "localhost")
    port = os.getenv("PGPORT", str(db_cfg.port) if db_cfg.port else "5432")
    user = os.getenv("PGUSER", db_cfg.user or "postgres")
    password = os.getenv("PGPASSWORD", db_cfg.password or "")
    database = os.getenv("PGDATABASE", db_cfg.database or "postgres")
    dsn = f"host={host} port={port} user={user} dbname={database}"
    if password:
        dsn += f" password={password}"
    return dsn


@contextmanager
def _db_cursor(cfg: ImportConfig) -> Iterator[Any]:  # pragma: no cover (thin wrapper)
    import psycopg2

    conn = psycopg2.connect(_resolve_dsn(cfg.database))
    # stores issue explicit BEGIN/COMMIT per batch
    conn.autocommit = True
    try:
        with conn.cursor() as cur:
            yield cur
    finally:
        conn.close()


def _parse_args(argv: list[str]) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Bulk asset import (spreadsheet -> asset registry)")
    p.add_argument("workbook", type=Path, help="Workbook (.xlsx/.xls) to import")
    p.add_argument(
        "--type",
        dest="asset_type",
        default=AssetType.COMPUTER.value,
        choices=[t.value for t in AssetType],
        help="Asset type of every row in the workbook",
    )
    p.add_argument("--user", help="User id whose unit permissions apply")
    p.add_argument("--config", type=Path, default=None, help=f"Config file (default {DEFAULT_CONFIG_PATH})")
    p.add_argument("--dry-run", action="store_true", help="Validate and show the preview, write nothing")
    p.add_argument("--strict", action="store_true", help="Abort when any row has a blocking error")
    p.add_argument("--inspect-data", action="store_true", help="Print sheet headers & first rows then exit")
    p.add_argument("--write-template", action="store_true", help="Write a blank import template to WORKBOOK then exit")
    p.add_argument("--template-unit", default="HMR", help="Unit code used in the template example rows")
    p.add_argument("--init-schema", action="store_true", help="Create store tables if missing")
    p.add_argument("--debug", action="store_true", help="Enable debug logging")
    return p.parse_args(argv)


def _load_cfg(path: Path | None, logger: Any) -> ImportConfig:
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            logger.info(f"{DEFAULT_CONFIG_PATH} not found, using built-in defaults")
            return default_config()
        path = DEFAULT_CONFIG_PATH
    return load_config(path)


def _inspect_data(workbook: Path, cfg: ImportConfig) -> int:
    sheets = read_workbook(workbook, cfg.rules.skip_sheet_patterns)
    for sheet in sheets:
        print(f"SHEET: {sheet.sheet_name} cols={sheet.columns} rows={len(sheet.rows)}")
        for row in sheet.rows[:3]:
            safe = {k: (v.isoformat() if hasattr(v, "isoformat") else v) for k, v in row.values.items()}
            print(f"  {row.row_number}: {safe}")
    return EXIT_SUCCESS_ALL


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]
    args = _parse_args(argv)
    logger = setup_logging(debug=args.debug)
    load_dotenv(dotenv_path=Path(".env"), override=True)

    if args.write_template:
        path = write_template(args.workbook, unit=args.template_unit)
        logger.info(f"template written to {path}")
        return EXIT_SUCCESS_ALL

    try:
        cfg = _load_cfg(args.config, logger)
    except ConfigError as e:
        logger.error(f"config: {e}")
        return EXIT_FATAL

    try:
        if args.inspect_data:
            return _inspect_data(args.workbook, cfg)
        sheets = read_workbook(args.workbook, cfg.rules.skip_sheet_patterns)
    except WorkbookError as e:
        logger.error(f"workbook: {e}")
        return EXIT_FATAL
    rows = [row for sheet in sheets for row in sheet.rows]
    asset_type = AssetType.parse(args.asset_type)
    logger.info(f"{len(rows)} rows read from {len(sheets)} sheets of {args.workbook.name}")

    error_log = ErrorLogBuffer()
    try:
        with _db_cursor(cfg) as cur:
            if args.init_schema:
                ensure_schema(cur, cfg.store.options_table)
            documents = PostgresDocumentStore(cur)
            vocabulary = PostgresVocabularyStore(cur, cfg.store.options_table)
            units = load_units(documents, cfg.store.units_collection)
            if args.user:
                permissions = resolve_permissions(
                    documents,
                    args.user,
                    users_collection=cfg.store.users_collection,
                    admin_roles=cfg.admin_roles,
                )
            else:
                logger.warning("no --user given: no unit permissions, every row will be rejected")
                permissions = PermissionContext()

            if args.dry_run:
                snapshot = vocabulary.snapshot(cfg.vocabulary_lists)
                preview = preview_import(rows, asset_type, permissions, units, snapshot, cfg)
                for message in preview.blocking_errors:
                    logger.warning(message)
                stats = preview.stats()
                logger.info(
                    f"dry-run: {stats['importable']} importable, "
                    f"{stats['duplicates']} duplicates, "
                    f"{stats['blocking_errors']} blocking errors, "
                    f"{stats['synthetic_keys']} synthesized keys, "
                    f"{stats['new_terms']} new vocabulary terms"
                )
                return EXIT_SUCCESS_ALL if preview.ready else EXIT_PARTIAL_FAILURE

            with ChunkProgress(len(rows)) as progress:
                report = run_import(
                    rows,
                    asset_type,
                    permissions,
                    units,
                    document_store=documents,
                    vocabulary_store=vocabulary,
                    config=cfg,
                    require_clean=args.strict,
                    metrics_callback=progress,
                    commit_started=progress.set_total,
                )
    except ValidationBlockedError as e:
        for message in e.preview.blocking_errors:
            logger.error(message)
        logger.error(f"import blocked: {e}")
        return EXIT_FATAL
    except ImportAbortedError as e:
        logger.error(f"import aborted: {e}")
        return EXIT_FATAL
    except Exception as e:
        logger.error(f"database: {e}")
        return EXIT_FATAL

    error_log.extend(report.failures)
    log_path = error_log.flush()
    if log_path is not None:
        logger.info(f"failure ledger written to {log_path}")

    summary_line = render_summary_line(report)
    log_summary(summary_line.removeprefix("SUMMARY "))

    return EXIT_SUCCESS_ALL if report.is_complete_success else EXIT_PARTIAL_FAILURE


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
