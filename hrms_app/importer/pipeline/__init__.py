"""Importer pipeline: normalize, validate, derive and commit rows chunk by chunk."""

from __future__ import annotations

from .chunk import SKIPPED, ChunkResult, ChunkState, TwoPassChunkProcessor
from .context import ImportContext
from .duplicates import DuplicateKey, DuplicateSource, DuplicateTracker
from .issues import RowIssue, Severity
from .loader import CandidateRecord, EntityLoader, RowValidation, WriteCounts
from .lookups import LookupSnapshot
from .normalize import NormalizedRow, RowNormalizer
from .session import (
    DatabaseImportSessionStore,
    ImportSessionSnapshot,
    ImportSessionStore,
    RedisImportSessionStore,
    build_session_store,
)
from .store import RecordStore
from .summary import DatabaseNotifier, ImportNotifier, ImportSummary, LoggingNotifier
from .validators import ValidationResult, ZeroPolicy

__all__ = [
    "SKIPPED",
    "CandidateRecord",
    "ChunkResult",
    "ChunkState",
    "DatabaseImportSessionStore",
    "DatabaseNotifier",
    "DuplicateKey",
    "DuplicateSource",
    "DuplicateTracker",
    "EntityLoader",
    "ImportContext",
    "ImportNotifier",
    "ImportSessionSnapshot",
    "ImportSessionStore",
    "ImportSummary",
    "LoggingNotifier",
    "LookupSnapshot",
    "NormalizedRow",
    "RecordStore",
    "RedisImportSessionStore",
    "RowIssue",
    "RowNormalizer",
    "RowValidation",
    "Severity",
    "TwoPassChunkProcessor",
    "ValidationResult",
    "WriteCounts",
    "ZeroPolicy",
    "build_session_store",
]
