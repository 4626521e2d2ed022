from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""RawRow model: one spreadsheet data row before normalization.

RawRow is ephemeral. It is produced by the workbook reader and discarded once
the normalizer has turned it into a NormalizedAsset.
"""

__all__ = [
    "RawRow",
]


@dataclass(frozen=True)
class RawRow:
    """Header -> cell value mapping for a single data row.

    row_number refers to the spreadsheet row (header is row 1, so the first
    data row is 2).
    """
    sheet_name: str
    row_number: int
    values: dict[str, Any]  # original header text -> cell value (None for blank cells)

    def is_blank(self) -> bool:
        return all(v is None or (isinstance(v, str) and not v.strip()) for v in self.values.values())
