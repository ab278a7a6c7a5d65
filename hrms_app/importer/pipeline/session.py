"""
Cross-chunk import session state.

One logical import is processed as many chunk invocations, possibly by
different worker processes, so its accumulators (errors, warnings, seen
duplicate keys, counts) live in a shared keyed store with a bounded lifetime
rather than in process memory. Every key is namespaced by import id; nothing
here is process-global.

Two backends are provided: Redis (native lists, sets and hashes, atomic per
operation) and the relational database (one JSON document per slot, updated
under a row lock).
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Mapping, Sequence

import redis
from redis.exceptions import RedisError
from sqlalchemy import delete, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hrms_app.importer.exceptions import ImportSessionError, ImportSessionNotFound
from hrms_app.models import ImportStateEntry, db

from .duplicates import DuplicateKey

logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS = 3600
DEFAULT_RESULT_TTL_SECONDS = 300

PROCESSED = "processed"
UPDATED = "updated"

_SLOTS = ("meta", "errors", "warnings", "failures", "seen", "counts", "first_row", "lookups")


def session_key(import_id: str, slot: str) -> str:
    return f"import:{import_id}:{slot}"


def result_key(import_id: str) -> str:
    return f"import_result:{import_id}"


@dataclass
class ImportSessionSnapshot:
    """Full accumulated state of one import at a point in time."""

    import_id: str
    owner_id: int | None
    kind: str
    started_at: str | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    validation_failures: list[dict[str, Any]] = field(default_factory=list)
    counts: dict[str, int] = field(default_factory=dict)
    seen_keys: dict[str, list[str]] = field(default_factory=dict)
    first_row: dict[str, Any] | None = None

    @property
    def processed_count(self) -> int:
        return int(self.counts.get(PROCESSED, 0))

    @property
    def updated_count(self) -> int:
        return int(self.counts.get(UPDATED, 0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "import_id": self.import_id,
            "owner_id": self.owner_id,
            "kind": self.kind,
            "started_at": self.started_at,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "validation_failures": list(self.validation_failures),
            "processed_count": self.processed_count,
            "updated_count": self.updated_count,
            "counts": dict(self.counts),
            "seen_keys": {scope: list(ids) for scope, ids in self.seen_keys.items()},
            "first_row": self.first_row,
        }


def _group_seen(tokens: Iterable[str]) -> dict[str, list[str]]:
    grouped: dict[str, list[str]] = {}
    for token in sorted(tokens):
        key = DuplicateKey.decode(token)
        grouped.setdefault(key.scope, []).append(key.identifier)
    return grouped


class ImportSessionStore(ABC):
    """Keyed, expiring accumulator store for import sessions."""

    def __init__(
        self,
        *,
        ttl_seconds: int = DEFAULT_SESSION_TTL_SECONDS,
        result_ttl_seconds: int = DEFAULT_RESULT_TTL_SECONDS,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.result_ttl_seconds = result_ttl_seconds

    @abstractmethod
    def init(self, import_id: str, *, owner_id: int | None, kind: str) -> None:
        """Create empty state for ``import_id`` (replacing any leftovers)."""

    @abstractmethod
    def exists(self, import_id: str) -> bool:
        ...

    @abstractmethod
    def append_errors(self, import_id: str, messages: Sequence[str]) -> None:
        ...

    @abstractmethod
    def append_warnings(self, import_id: str, messages: Sequence[str]) -> None:
        ...

    @abstractmethod
    def append_validation_failures(self, import_id: str, failures: Sequence[Mapping[str, Any]]) -> None:
        ...

    @abstractmethod
    def mark_seen(self, import_id: str, keys: Iterable[str]) -> None:
        ...

    @abstractmethod
    def seen_keys(self, import_id: str) -> set[str]:
        ...

    def is_seen(self, import_id: str, key: str) -> bool:
        return key in self.seen_keys(import_id)

    @abstractmethod
    def increment_counts(self, import_id: str, field_name: str, delta: int) -> int:
        """Add ``delta`` to a named counter and return the new total."""

    @abstractmethod
    def capture_first_row(self, import_id: str, row: Mapping[str, Any]) -> bool:
        """Store ``{columns, values}`` once; return ``True`` only for the first call."""

    @abstractmethod
    def put_lookups(self, import_id: str, payload: Mapping[str, Any]) -> None:
        ...

    @abstractmethod
    def get_lookups(self, import_id: str) -> dict[str, Any] | None:
        ...

    @abstractmethod
    def snapshot(self, import_id: str) -> ImportSessionSnapshot:
        ...

    @abstractmethod
    def clear(self, import_id: str) -> None:
        ...

    @abstractmethod
    def store_result(self, import_id: str, summary: Mapping[str, Any]) -> None:
        """Keep the final summary for the short result lifetime."""

    @abstractmethod
    def get_result(self, import_id: str) -> dict[str, Any] | None:
        ...

    def purge_expired(self) -> int:
        """Delete state left behind by abandoned or finished imports; returns the number of entries removed."""
        return 0


def _first_row_payload(row: Mapping[str, Any]) -> dict[str, Any]:
    values = {}
    for key, value in row.items():
        values[str(key)] = value if value is None or isinstance(value, (str, int, float, bool)) else str(value)
    return {"columns": list(values.keys()), "values": values}


class RedisImportSessionStore(ImportSessionStore):
    """
    Redis backend; each slot is a native structure under ``import:<id>:<slot>``.

    Every key carries a Redis TTL, so ``purge_expired`` has nothing to do.
    """

    def __init__(self, client: redis.Redis, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.client = client

    @classmethod
    def from_url(cls, url: str, **kwargs: Any) -> "RedisImportSessionStore":
        return cls(redis.Redis.from_url(url, decode_responses=True), **kwargs)

    def _touch(self, pipe: Any, import_id: str) -> None:
        for slot in _SLOTS:
            pipe.expire(session_key(import_id, slot), self.ttl_seconds)

    def _require(self, import_id: str) -> None:
        if not self.client.exists(session_key(import_id, "meta")):
            raise ImportSessionNotFound(import_id)

    def _wrap(self, action: str, import_id: str, exc: RedisError) -> ImportSessionError:
        logger.error(
            "Import session %s failed for %s: %s",
            action,
            import_id,
            exc,
            extra={"importer_import_id": import_id, "importer_session_backend": "redis"},
        )
        return ImportSessionError(f"Could not {action} import session '{import_id}': {exc}")

    def init(self, import_id: str, *, owner_id: int | None, kind: str) -> None:
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.delete(*(session_key(import_id, slot) for slot in _SLOTS))
            pipe.hset(
                session_key(import_id, "meta"),
                mapping={
                    "owner_id": "" if owner_id is None else str(owner_id),
                    "kind": kind,
                    "started_at": datetime.now(timezone.utc).isoformat(),
                },
            )
            pipe.hset(session_key(import_id, "counts"), mapping={PROCESSED: 0, UPDATED: 0})
            self._touch(pipe, import_id)
            pipe.execute()
        except RedisError as exc:
            raise self._wrap("initialise", import_id, exc) from exc

    def exists(self, import_id: str) -> bool:
        try:
            return bool(self.client.exists(session_key(import_id, "meta")))
        except RedisError as exc:
            raise self._wrap("read", import_id, exc) from exc

    def _push(self, import_id: str, slot: str, values: Sequence[str]) -> None:
        if not values:
            return
        try:
            self._require(import_id)
            pipe = self.client.pipeline(transaction=True)
            pipe.rpush(session_key(import_id, slot), *values)
            self._touch(pipe, import_id)
            pipe.execute()
        except RedisError as exc:
            raise self._wrap("update", import_id, exc) from exc

    def append_errors(self, import_id: str, messages: Sequence[str]) -> None:
        self._push(import_id, "errors", list(messages))

    def append_warnings(self, import_id: str, messages: Sequence[str]) -> None:
        self._push(import_id, "warnings", list(messages))

    def append_validation_failures(self, import_id: str, failures: Sequence[Mapping[str, Any]]) -> None:
        self._push(import_id, "failures", [json.dumps(dict(item), default=str) for item in failures])

    def mark_seen(self, import_id: str, keys: Iterable[str]) -> None:
        keys = list(keys)
        if not keys:
            return
        try:
            self._require(import_id)
            pipe = self.client.pipeline(transaction=True)
            pipe.sadd(session_key(import_id, "seen"), *keys)
            self._touch(pipe, import_id)
            pipe.execute()
        except RedisError as exc:
            raise self._wrap("update", import_id, exc) from exc

    def seen_keys(self, import_id: str) -> set[str]:
        try:
            return set(self.client.smembers(session_key(import_id, "seen")))
        except RedisError as exc:
            raise self._wrap("read", import_id, exc) from exc

    def is_seen(self, import_id: str, key: str) -> bool:
        try:
            return bool(self.client.sismember(session_key(import_id, "seen"), key))
        except RedisError as exc:
            raise self._wrap("read", import_id, exc) from exc

    def increment_counts(self, import_id: str, field_name: str, delta: int) -> int:
        try:
            self._require(import_id)
            pipe = self.client.pipeline(transaction=True)
            pipe.hincrby(session_key(import_id, "counts"), field_name, delta)
            self._touch(pipe, import_id)
            total, *_ = pipe.execute()
            return int(total)
        except RedisError as exc:
            raise self._wrap("update", import_id, exc) from exc

    def capture_first_row(self, import_id: str, row: Mapping[str, Any]) -> bool:
        try:
            self._require(import_id)
            stored = self.client.set(
                session_key(import_id, "first_row"),
                json.dumps(_first_row_payload(row)),
                nx=True,
                ex=self.ttl_seconds,
            )
            return bool(stored)
        except RedisError as exc:
            raise self._wrap("update", import_id, exc) from exc

    def put_lookups(self, import_id: str, payload: Mapping[str, Any]) -> None:
        try:
            self._require(import_id)
            self.client.set(session_key(import_id, "lookups"), json.dumps(dict(payload)), ex=self.ttl_seconds)
        except RedisError as exc:
            raise self._wrap("update", import_id, exc) from exc

    def get_lookups(self, import_id: str) -> dict[str, Any] | None:
        try:
            raw = self.client.get(session_key(import_id, "lookups"))
        except RedisError as exc:
            raise self._wrap("read", import_id, exc) from exc
        return json.loads(raw) if raw else None

    def snapshot(self, import_id: str) -> ImportSessionSnapshot:
        try:
            pipe = self.client.pipeline(transaction=True)
            pipe.hgetall(session_key(import_id, "meta"))
            pipe.lrange(session_key(import_id, "errors"), 0, -1)
            pipe.lrange(session_key(import_id, "warnings"), 0, -1)
            pipe.lrange(session_key(import_id, "failures"), 0, -1)
            pipe.hgetall(session_key(import_id, "counts"))
            pipe.smembers(session_key(import_id, "seen"))
            pipe.get(session_key(import_id, "first_row"))
            meta, errors, warnings, failures, counts, seen, first_row = pipe.execute()
        except RedisError as exc:
            raise self._wrap("read", import_id, exc) from exc
        if not meta:
            raise ImportSessionNotFound(import_id)
        owner = meta.get("owner_id") or None
        return ImportSessionSnapshot(
            import_id=import_id,
            owner_id=int(owner) if owner is not None else None,
            kind=meta.get("kind", ""),
            started_at=meta.get("started_at"),
            errors=list(errors),
            warnings=list(warnings),
            validation_failures=[json.loads(item) for item in failures],
            counts={name: int(value) for name, value in counts.items()},
            seen_keys=_group_seen(seen),
            first_row=json.loads(first_row) if first_row else None,
        )

    def clear(self, import_id: str) -> None:
        try:
            self.client.delete(*(session_key(import_id, slot) for slot in _SLOTS))
        except RedisError as exc:
            raise self._wrap("clear", import_id, exc) from exc

    def store_result(self, import_id: str, summary: Mapping[str, Any]) -> None:
        try:
            self.client.set(result_key(import_id), json.dumps(dict(summary), default=str), ex=self.result_ttl_seconds)
        except RedisError as exc:
            raise self._wrap("store result for", import_id, exc) from exc

    def get_result(self, import_id: str) -> dict[str, Any] | None:
        try:
            raw = self.client.get(result_key(import_id))
        except RedisError as exc:
            raise self._wrap("read result for", import_id, exc) from exc
        return json.loads(raw) if raw else None


class DatabaseImportSessionStore(ImportSessionStore):
    """
    Relational backend storing one :class:`ImportStateEntry` per slot.

    Read-modify-write updates lock the slot row (``SELECT ... FOR UPDATE``)
    and commit immediately. Expiry is an epoch timestamp checked on read;
    expired rows are treated as absent. Rows of imports that are never read
    again are removed by ``purge_expired``, which every new import runs.
    """

    def __init__(
        self,
        session: Session | None = None,
        *,
        clock: Callable[[], float] = time.time,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._session = session
        self.clock = clock

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else db.session

    def _fail(self, action: str, import_id: str, exc: SQLAlchemyError) -> ImportSessionError:
        self.session.rollback()
        logger.error(
            "Import session %s failed for %s: %s",
            action,
            import_id,
            exc,
            extra={"importer_import_id": import_id, "importer_session_backend": "database"},
        )
        return ImportSessionError(f"Could not {action} import session '{import_id}': {exc}")

    def _live(self, key: str, *, lock: bool = False) -> ImportStateEntry | None:
        stmt = select(ImportStateEntry).where(ImportStateEntry.key == key)
        if lock:
            stmt = stmt.with_for_update()
        entry = self.session.execute(stmt).scalar_one_or_none()
        if entry is not None and entry.expires_at <= self.clock():
            self.session.delete(entry)
            self.session.flush()
            return None
        return entry

    def _read(self, import_id: str, slot: str, default: Any = None) -> Any:
        entry = self._live(session_key(import_id, slot))
        return default if entry is None else entry.value_json

    def _write(self, import_id: str, key: str, value: Any, ttl: int) -> None:
        entry = self.session.get(ImportStateEntry, key)
        expires_at = self.clock() + ttl
        if entry is None:
            self.session.add(ImportStateEntry(key=key, import_id=import_id, value_json=value, expires_at=expires_at))
        else:
            entry.value_json = value
            entry.expires_at = expires_at

    def _touch(self, import_id: str) -> None:
        expires_at = self.clock() + self.ttl_seconds
        for entry in self.session.scalars(
            select(ImportStateEntry).where(
                ImportStateEntry.import_id == import_id,
                ImportStateEntry.key != result_key(import_id),
            )
        ):
            entry.expires_at = expires_at

    def _require(self, import_id: str) -> None:
        if self._live(session_key(import_id, "meta")) is None:
            raise ImportSessionNotFound(import_id)

    def _mutate(self, import_id: str, slot: str, default: Any, change: Callable[[Any], Any]) -> Any:
        try:
            self._require(import_id)
            entry = self._live(session_key(import_id, slot), lock=True)
            current = default if entry is None else entry.value_json
            updated = change(current)
            self._write(import_id, session_key(import_id, slot), updated, self.ttl_seconds)
            self._touch(import_id)
            self.session.commit()
            return updated
        except SQLAlchemyError as exc:
            raise self._fail("update", import_id, exc) from exc

    def init(self, import_id: str, *, owner_id: int | None, kind: str) -> None:
        try:
            self.session.execute(
                delete(ImportStateEntry).where(
                    ImportStateEntry.import_id == import_id, ImportStateEntry.key != result_key(import_id)
                )
            )
            meta = {"owner_id": owner_id, "kind": kind, "started_at": datetime.now(timezone.utc).isoformat()}
            self._write(import_id, session_key(import_id, "meta"), meta, self.ttl_seconds)
            self._write(import_id, session_key(import_id, "counts"), {PROCESSED: 0, UPDATED: 0}, self.ttl_seconds)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("initialise", import_id, exc) from exc

    def exists(self, import_id: str) -> bool:
        try:
            return self._live(session_key(import_id, "meta")) is not None
        except SQLAlchemyError as exc:
            raise self._fail("read", import_id, exc) from exc

    def append_errors(self, import_id: str, messages: Sequence[str]) -> None:
        if messages:
            self._mutate(import_id, "errors", [], lambda current: [*current, *messages])

    def append_warnings(self, import_id: str, messages: Sequence[str]) -> None:
        if messages:
            self._mutate(import_id, "warnings", [], lambda current: [*current, *messages])

    def append_validation_failures(self, import_id: str, failures: Sequence[Mapping[str, Any]]) -> None:
        if failures:
            encoded = [json.loads(json.dumps(dict(item), default=str)) for item in failures]
            self._mutate(import_id, "failures", [], lambda current: [*current, *encoded])

    def mark_seen(self, import_id: str, keys: Iterable[str]) -> None:
        keys = list(keys)
        if keys:
            self._mutate(import_id, "seen", [], lambda current: sorted({*current, *keys}))

    def seen_keys(self, import_id: str) -> set[str]:
        try:
            return set(self._read(import_id, "seen", []))
        except SQLAlchemyError as exc:
            raise self._fail("read", import_id, exc) from exc

    def increment_counts(self, import_id: str, field_name: str, delta: int) -> int:
        updated = self._mutate(
            import_id,
            "counts",
            {},
            lambda current: {**current, field_name: int(current.get(field_name, 0)) + delta},
        )
        return updated[field_name]

    def capture_first_row(self, import_id: str, row: Mapping[str, Any]) -> bool:
        try:
            self._require(import_id)
            if self._live(session_key(import_id, "first_row"), lock=True) is not None:
                return False
            self._write(import_id, session_key(import_id, "first_row"), _first_row_payload(row), self.ttl_seconds)
            self.session.commit()
            return True
        except SQLAlchemyError as exc:
            raise self._fail("update", import_id, exc) from exc

    def put_lookups(self, import_id: str, payload: Mapping[str, Any]) -> None:
        self._mutate(import_id, "lookups", None, lambda _current: dict(payload))

    def get_lookups(self, import_id: str) -> dict[str, Any] | None:
        try:
            return self._read(import_id, "lookups")
        except SQLAlchemyError as exc:
            raise self._fail("read", import_id, exc) from exc

    def snapshot(self, import_id: str) -> ImportSessionSnapshot:
        try:
            meta = self._read(import_id, "meta")
            if meta is None:
                raise ImportSessionNotFound(import_id)
            return ImportSessionSnapshot(
                import_id=import_id,
                owner_id=meta.get("owner_id"),
                kind=meta.get("kind", ""),
                started_at=meta.get("started_at"),
                errors=list(self._read(import_id, "errors", [])),
                warnings=list(self._read(import_id, "warnings", [])),
                validation_failures=list(self._read(import_id, "failures", [])),
                counts={name: int(value) for name, value in self._read(import_id, "counts", {}).items()},
                seen_keys=_group_seen(self._read(import_id, "seen", [])),
                first_row=self._read(import_id, "first_row"),
            )
        except SQLAlchemyError as exc:
            raise self._fail("read", import_id, exc) from exc

    def clear(self, import_id: str) -> None:
        try:
            self.session.execute(
                delete(ImportStateEntry).where(
                    ImportStateEntry.import_id == import_id, ImportStateEntry.key != result_key(import_id)
                )
            )
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("clear", import_id, exc) from exc

    def store_result(self, import_id: str, summary: Mapping[str, Any]) -> None:
        try:
            payload = json.loads(json.dumps(dict(summary), default=str))
            self._write(import_id, result_key(import_id), payload, self.result_ttl_seconds)
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("store result for", import_id, exc) from exc

    def get_result(self, import_id: str) -> dict[str, Any] | None:
        try:
            entry = self._live(result_key(import_id))
        except SQLAlchemyError as exc:
            raise self._fail("read result for", import_id, exc) from exc
        return None if entry is None else entry.value_json

    def purge_expired(self) -> int:
        """Delete every expired entry; returns the number removed."""

        try:
            result = self.session.execute(delete(ImportStateEntry).where(ImportStateEntry.expires_at <= self.clock()))
            self.session.commit()
        except SQLAlchemyError as exc:
            raise self._fail("purge", "*", exc) from exc
        return result.rowcount or 0


def build_session_store(config: Mapping[str, Any]) -> ImportSessionStore:
    """Create the backend named by ``IMPORTER_SESSION_BACKEND``."""

    ttl = int(config.get("IMPORTER_SESSION_TTL_SECONDS") or DEFAULT_SESSION_TTL_SECONDS)
    result_ttl = int(config.get("IMPORTER_RESULT_TTL_SECONDS") or DEFAULT_RESULT_TTL_SECONDS)
    backend = (config.get("IMPORTER_SESSION_BACKEND") or "database").lower()
    if backend == "redis":
        return RedisImportSessionStore.from_url(
            config.get("IMPORTER_REDIS_URL") or "redis://localhost:6379/0",
            ttl_seconds=ttl,
            result_ttl_seconds=result_ttl,
        )
    if backend == "database":
        return DatabaseImportSessionStore(ttl_seconds=ttl, result_ttl_seconds=result_ttl)
    raise ValueError(f"Unknown importer session backend '{backend}'.")


__all__ = [
    "DatabaseImportSessionStore",
    "ImportSessionSnapshot",
    "ImportSessionStore",
    "PROCESSED",
    "RedisImportSessionStore",
    "UPDATED",
    "build_session_store",
    "result_key",
    "session_key",
]
