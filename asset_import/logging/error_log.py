from __future__ import annotations

from collections.abc import Iterable
from datetime import UTC, datetime
from pathlib import Path

from ..models.import_report import FailureRecord

"""Failure ledger persistence (JSON Lines).

One `logs/import-errors-YYYYMMDD-HHMMSS.log` (UTC) per run, created lazily on
the first flush that has records. Each line is FailureRecord.to_json_line().
"""

__all__ = [
    "ErrorLogBuffer",
]

LOGS_DIR = Path("./logs")
TIMESTAMP_FMT = "%Y%m%d-%H%M%S"


class ErrorLogBuffer:
    """In-memory buffer of failure records; flush() appends them to the log file.

    Not thread safe (imports run serially).
    """

    def __init__(self, logs_dir: Path = LOGS_DIR) -> None:
        self.logs_dir = logs_dir
        self._records: list[FailureRecord] = []
        self._file_path: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._file_path is None:
            stamp = datetime.now(UTC).strftime(TIMESTAMP_FMT)
            self._file_path = self.logs_dir / f"import-errors-{stamp}.log"
        return self._file_path

    def append(self, record: FailureRecord) -> None:
        self._records.append(record)

    def extend(self, records: Iterable[FailureRecord]) -> None:
        self._records.extend(records)

    def __len__(self) -> int:
        return len(self._records)

    def flush(self) -> Path | None:
        """Write buffered records; returns the file path, or None when empty."""
        if not self._records:
            return None
        fp = self.file_path
        fp.parent.mkdir(parents=True, exist_ok=True)
        with fp.open("a", encoding="utf-8") as f:
            for r in self._records:
                f.write(r.to_json_line() + "\n")
        self._records.clear()
        return fp
