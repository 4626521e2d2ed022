from __future__ import annotations

import pytest

from asset_import.excel.reader import read_workbook
from asset_import.excel.template import TEMPLATE_FILENAME, TEMPLATE_SHEETS, template_rows, write_template
from asset_import.models.asset import AssetType
from asset_import.models.config_models import DEFAULT_SKIP_SHEET_PATTERNS
from asset_import.services.normalizer import canonical_header
from asset_import.services.orchestrator import preview_import


def test_template_has_one_sheet_per_asset_type(tmp_path):
    path = write_template(tmp_path / TEMPLATE_FILENAME)
    sheets = read_workbook(path, DEFAULT_SKIP_SHEET_PATTERNS)

    assert [s.sheet_name for s in sheets] == ["Computadores", "Impressoras"]
    assert all(len(s.rows) == 1 and s.rows[0].row_number == 2 for s in sheets)


@pytest.mark.parametrize("asset_type", list(AssetType))
def test_filled_template_is_ready_to_import(tmp_path, asset_type, admin, units, snapshot, config, keygen):
    path = write_template(tmp_path / TEMPLATE_FILENAME)
    sheet = next(s for s in read_workbook(path) if s.sheet_name == TEMPLATE_SHEETS[asset_type])

    preview = preview_import(sheet.rows, asset_type, admin, units, snapshot, config, keygen)

    assert preview.blocking_errors == []
    assert preview.ready is True
    assert preview.stats()["importable"] == 1
    assert preview.dedup.unique[0].unit_id == "u-hmr"


def test_template_unit_is_configurable(tmp_path, admin, units, snapshot, config, keygen):
    path = write_template(tmp_path / "hss.xlsx", unit="HSS")
    sheet = read_workbook(path)[0]

    preview = preview_import(sheet.rows, AssetType.COMPUTER, admin, units, snapshot, config, keygen)
    assert preview.dedup.unique[0].unit_id == "u-hss"


def test_template_headers_are_recognized():
    computer_fields = {canonical_header(h) for h in template_rows(AssetType.COMPUTER)[0]}
    printer_fields = {canonical_header(h) for h in template_rows(AssetType.PRINTER)[0]}

    assert {"unit", "serial", "hd_ssd", "service_tag", "observacao"} <= computer_fields
    assert {"unit", "serial", "ip", "frente_verso", "conectividade"} <= printer_fields
