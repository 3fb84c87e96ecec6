"""Exception hierarchy for depgraph.

Per-file problems (``FileAccessError``, ``ExtractionError``) are caught by
the batch layers and logged; run-level problems (``ScanRootError``,
``ReportWriteError``, ``ConfigError``, ``BackupError``) propagate to
the CLI.
"""

from __future__ import annotations


class DepgraphError(Exception):
    """Base class for all depgraph errors."""


class FileAccessError(DepgraphError):
    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason


class ExtractionError(DepgraphError):
    pass


class ScanRootError(DepgraphError):
    pass


class ReportWriteError(DepgraphError):
    pass


class ConfigError(DepgraphError):
    pass


class BackupError(DepgraphError):
    pass
