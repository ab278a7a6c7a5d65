"""Read-only reference data prefetched once per import."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class LookupSnapshot:
    """
    Name -> value tables plus the encoded duplicate keys already in the store.

    The snapshot is stored in session state as JSON when an import starts and
    restored for every later chunk; it is never refreshed mid-import, so rows
    referencing records created after the start are reported as not found.
    Table values must therefore stay JSON-friendly (ids, strings, lists).
    """

    kind: str
    tables: Mapping[str, Mapping[str, Any]] = field(default_factory=dict)
    existing_keys: tuple[str, ...] = ()

    def table(self, name: str) -> Mapping[str, Any]:
        return self.tables.get(name, {})

    def lookup(self, name: str, key: Any) -> Any:
        if key is None:
            return None
        return self.table(name).get(str(key))

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "tables": {name: dict(values) for name, values in self.tables.items()},
            "existing_keys": list(self.existing_keys),
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "LookupSnapshot":
        return cls(
            kind=payload["kind"],
            tables={name: dict(values) for name, values in (payload.get("tables") or {}).items()},
            existing_keys=tuple(payload.get("existing_keys") or ()),
        )


__all__ = ["LookupSnapshot"]
