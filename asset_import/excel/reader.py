from __future__ import annotations

import io
import re
import unicodedata
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, BinaryIO

import pandas as pd

from ..models.row_data import RawRow

"""Workbook reader: the spreadsheet-parser boundary.

The first row of each sheet is the header row; every following non-blank row
becomes a RawRow. Auxiliary sheets ("valores válidos", "instruções", ...) are
skipped by name. pandas (openpyxl engine) does the actual parsing.
"""

__all__ = [
    "WorkbookError",
    "SheetData",
    "is_auxiliary_sheet",
    "read_workbook",
    "rows_from_frame",
]


_WORD = re.compile(r"[0-9a-z]+")


class WorkbookError(Exception):
    """Raised when the workbook cannot be read or has no importable sheet."""


@dataclass
class SheetData:
    sheet_name: str
    columns: list[str]
    rows: list[RawRow] = field(default_factory=list)


def _name_words(name: str) -> list[str]:
    decomposed = unicodedata.normalize("NFKD", name)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c)).casefold()
    return _WORD.findall(folded)


def is_auxiliary_sheet(sheet_name: str, patterns: Iterable[str]) -> bool:
    """True when the sheet name suggests lookup values or instructions.

    Patterns match whole words of the folded name ("lista" skips "Lista de
    setores" but not "Listagem HMR"); a multi-word pattern must appear as a
    contiguous run of words.
    """
    words = _name_words(sheet_name)
    for pattern in patterns:
        wanted = _name_words(pattern)
        if not wanted:
            continue
        n = len(wanted)
        if any(words[i : i + n] == wanted for i in range(len(words) - n + 1)):
            return True
    return False


def _cell(value: Any) -> Any:
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):  # list-like cells
        return value
    if isinstance(value, str):
        stripped = value.replace("\xa0", " ").strip()
        return stripped or None
    return value


def rows_from_frame(df: pd.DataFrame, sheet_name: str) -> SheetData:
    """Convert a header-less DataFrame into SheetData.

    Row 0 holds the header. Data rows are numbered as in the spreadsheet
    (header = 1, first data row = 2). Fully blank rows are dropped.
    """
    if df.shape[0] == 0:
        return SheetData(sheet_name=sheet_name, columns=[])
    header = df.iloc[0].tolist()
    columns = ["" if _cell(h) is None else str(h).strip() for h in header]
    rows: list[RawRow] = []
    for offset, raw in enumerate(df.iloc[1:].itertuples(index=False, name=None), start=2):
        values: dict[str, Any] = {}
        for col, val in zip(columns, raw, strict=False):
            if not col:
                continue
            values[col] = _cell(val)
        row = RawRow(sheet_name=sheet_name, row_number=offset, values=values)
        if row.is_blank():
            continue
        rows.append(row)
    return SheetData(sheet_name=sheet_name, columns=[c for c in columns if c], rows=rows)


def read_workbook(
    source: Path | str | bytes | BinaryIO,
    skip_patterns: Iterable[str] = (),
) -> list[SheetData]:
    """Read every importable sheet of a workbook.

    Parameters
    ----------
    source: path, raw bytes or binary file object (.xlsx / .xls)
    skip_patterns: sheet-name fragments marking auxiliary sheets

    Raises
    ------
    WorkbookError: unreadable file, or no sheet left after skipping
    """
    if isinstance(source, bytes):
        source = io.BytesIO(source)
    patterns = list(skip_patterns)
    try:
        xls = pd.ExcelFile(source)
    except Exception as e:
        raise WorkbookError(f"cannot read workbook: {e}") from e

    sheets: list[SheetData] = []
    with xls:
        for name in xls.sheet_names:
            sheet_name = str(name)
            if is_auxiliary_sheet(sheet_name, patterns):
                continue
            # dtype=object mantém seriais numéricos sem conversão para float
            df = xls.parse(name, header=None, dtype=object)
            sheets.append(rows_from_frame(df, sheet_name))

    if not sheets:
        raise WorkbookError("workbook has no importable sheets")
    return sheets
