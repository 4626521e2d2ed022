from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm

from .commit import ChunkMetrics

"""Commit progress display with tqdm (TTY only).

One tqdm bar counts rows over the commit chunks. In non-TTY environments (CI,
the wizard backend) no bar is created, so no ANSI sequences are emitted.
"""

__all__ = [
    "ChunkProgress",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ChunkProgress:
    """Row progress over commit chunks; usable as a ChunkMetrics callback."""

    def __init__(self, total_rows: int, *, description: str = "Committing assets", enabled: bool | None = None) -> None:
        self.total_rows = total_rows
        self.description = description
        self.committed = 0
        self.failed = 0
        self.enabled = is_tty_enabled() if enabled is None else enabled
        self.pbar: tqdm[Any] | None = None
        if self.enabled:
            self.pbar = tqdm(
                total=total_rows,
                desc=description,
                unit="row",
                leave=True,
                ncols=80,
                ascii=True,
            )

    def set_total(self, total_rows: int) -> None:
        """Resize the bar once the number of rows to commit is known."""
        self.total_rows = total_rows
        if self.pbar is not None:
            self.pbar.total = total_rows
            self.pbar.refresh()

    def __call__(self, metrics: ChunkMetrics) -> None:
        if metrics.ok:
            self.committed += metrics.size
        else:
            self.failed += metrics.size
        if self.pbar is not None:
            self.pbar.update(metrics.size)
            self.pbar.set_postfix(ok=self.committed, failed=self.failed)

    def close(self) -> None:
        if self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ChunkProgress:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
