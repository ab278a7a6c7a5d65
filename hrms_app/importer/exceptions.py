"""Exceptions raised by the importer outside of row validation."""

from __future__ import annotations


class ImporterError(Exception):
    """Base exception for importer infrastructure failures."""


class UnknownImportKind(ImporterError, ValueError):
    """Raised when an import is requested for an entity kind with no loader."""

    def __init__(self, kind: str, known: tuple[str, ...] = ()) -> None:
        message = f"Unknown import kind '{kind}'."
        if known:
            message += " Expected one of: " + ", ".join(known) + "."
        super().__init__(message)
        self.kind = kind


class ImportSessionError(ImporterError):
    """Raised when the session state store cannot be read or written."""


class ImportSessionNotFound(ImportSessionError, LookupError):
    """Raised when session state is missing, cleared or expired."""

    def __init__(self, import_id: str) -> None:
        super().__init__(f"Import session '{import_id}' was not found or has expired.")
        self.import_id = import_id
