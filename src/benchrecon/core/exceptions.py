"""BenchRecon exception hierarchy."""

from __future__ import annotations


class BenchReconError(Exception):
    """Base exception for all BenchRecon errors."""


class CorpusUnavailableError(BenchReconError):
    """The corpus as a whole could not be read (row store or mapping store down)."""

    def __init__(self, operation: str, cause: BaseException) -> None:
        self.operation = operation
        self.cause = cause
        super().__init__(f"Corpus unavailable during {operation}: {cause}")


class SourceProcessingError(BenchReconError):
    """A single survey source could not be processed."""

    def __init__(self, source_id: str, message: str) -> None:
        self.source_id = source_id
        super().__init__(f"Source {source_id!r} failed: {message}")


class PassCancelledError(BenchReconError):
    """A discovery or aggregation pass was cancelled at a chunk boundary."""

    def __init__(self, stage: str) -> None:
        self.stage = stage
        super().__init__(f"Pass cancelled during {stage}")


class RowStoreError(BenchReconError):
    """Row store read failed."""


class MappingStoreError(BenchReconError):
    """Mapping store read failed."""


class CacheError(BenchReconError):
    """Redis cache operation failed."""
