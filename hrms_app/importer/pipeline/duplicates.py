"""Composite-key duplicate detection across one import and the existing store."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable

KEY_SEPARATOR = "|"


@dataclass(frozen=True)
class DuplicateKey:
    """``scope`` narrows the identifier, e.g. organization for staff ids."""

    scope: str
    identifier: str

    @classmethod
    def of(cls, scope: object, identifier: object) -> "DuplicateKey":
        return cls(scope=str(scope or "").strip().upper(), identifier=str(identifier or "").strip())

    def encode(self) -> str:
        return f"{self.scope}{KEY_SEPARATOR}{self.identifier}"

    @classmethod
    def decode(cls, token: str) -> "DuplicateKey":
        scope, _, identifier = token.partition(KEY_SEPARATOR)
        return cls(scope=scope, identifier=identifier)


class DuplicateSource(str, enum.Enum):
    FILE = "file"
    STORE = "store"


class DuplicateTracker:
    """
    Check keys against (a) what this import already accepted and (b) the
    prefetched keys of stored records, in that order.

    Keys accepted while validating a chunk stay pending until the chunk
    commits; only then does the caller record them in session state, so an
    aborted chunk never blocks its rows from being fixed and resubmitted.
    """

    def __init__(self, seen: Iterable[str] = (), existing: Iterable[str] = ()) -> None:
        self._seen = set(seen)
        self._existing = set(existing)
        self._pending: list[str] = []
        self._pending_set: set[str] = set()

    def check(self, key: DuplicateKey) -> DuplicateSource | None:
        token = key.encode()
        if token in self._seen or token in self._pending_set:
            return DuplicateSource.FILE
        if token in self._existing:
            return DuplicateSource.STORE
        return None

    def accept(self, key: DuplicateKey) -> None:
        token = key.encode()
        if token not in self._pending_set:
            self._pending.append(token)
            self._pending_set.add(token)

    @property
    def pending(self) -> list[str]:
        return list(self._pending)


__all__ = ["DuplicateKey", "DuplicateSource", "DuplicateTracker", "KEY_SEPARATOR"]
