from __future__ import annotations


class ImportAbortedError(Exception):
    """The whole import run stopped before (or without) writing assets."""
