"""
One logical import, processed as a sequence of chunks.

``ImportJob.start`` allocates the import id, initialises session state and
stores the lookup snapshot next to it. Any later process, such as a Celery
worker handling one chunk, rebuilds the job with ``ImportJob.resume`` and
reuses that snapshot instead of querying reference tables again.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime, timezone
from itertools import islice
from typing import Any, Iterable, Iterator, Mapping, Sequence
from uuid import uuid4

from hrms_app.importer.exceptions import ImportSessionNotFound
from hrms_app.importer.registry import ImportKindDescriptor, resolve_kind

from .chunk import ChunkResult, TwoPassChunkProcessor
from .context import ImportContext
from .loader import EntityLoader
from .lookups import LookupSnapshot
from .session import ImportSessionStore
from .store import RecordStore
from .summary import ImportNotifier, ImportSummary

logger = logging.getLogger(__name__)


def iter_chunks(rows: Iterable[Mapping[str, Any]], size: int) -> Iterator[list[Mapping[str, Any]]]:
    iterator = iter(rows)
    while True:
        chunk = list(islice(iterator, size))
        if not chunk:
            return
        yield chunk


class ImportJob:
    def __init__(
        self,
        *,
        import_id: str,
        descriptor: ImportKindDescriptor,
        loader: EntityLoader,
        snapshot: LookupSnapshot,
        sessions: ImportSessionStore,
        store: RecordStore | None = None,
        chunk_size: int | None = None,
    ) -> None:
        self.import_id = import_id
        self.descriptor = descriptor
        self.loader = loader
        self.snapshot = snapshot
        self.sessions = sessions
        self.store = store or RecordStore()
        self.chunk_size = chunk_size or loader.chunk_size

    @property
    def kind(self) -> str:
        return self.descriptor.name

    @property
    def context(self) -> ImportContext:
        return self.loader.context

    @classmethod
    def start(
        cls,
        kind: str,
        *,
        sessions: ImportSessionStore,
        context: ImportContext | None = None,
        store: RecordStore | None = None,
        chunk_size: int | None = None,
        import_id: str | None = None,
    ) -> "ImportJob":
        descriptor = resolve_kind(kind)
        context = context or ImportContext.current()
        loader = descriptor.loader_class(context)
        store = store or RecordStore()
        import_id = import_id or uuid4().hex

        purged = sessions.purge_expired()
        if purged:
            logger.info("Purged %s expired import session entries", purged, extra={"importer_purged": purged})
        sessions.init(import_id, owner_id=context.user_id, kind=descriptor.name)
        snapshot = loader.prefetch(store.session)
        sessions.put_lookups(import_id, {"context": context.to_dict(), "snapshot": snapshot.to_dict()})
        logger.info(
            "Started %s import %s",
            descriptor.name,
            import_id,
            extra={
                "importer_import_id": import_id,
                "importer_kind": descriptor.name,
                "importer_owner_id": context.user_id,
                "importer_existing_keys": len(snapshot.existing_keys),
            },
        )
        return cls(
            import_id=import_id,
            descriptor=descriptor,
            loader=loader,
            snapshot=snapshot,
            sessions=sessions,
            store=store,
            chunk_size=chunk_size,
        )

    @classmethod
    def resume(
        cls,
        import_id: str,
        *,
        sessions: ImportSessionStore,
        store: RecordStore | None = None,
        chunk_size: int | None = None,
        now: datetime | None = None,
    ) -> "ImportJob":
        """
        Rebuild a started job from session state; raises if it expired or finished.

        The actor and zero-value policies come from the stored context, but date
        checks run against ``now`` (the current time unless given).
        """

        payload = sessions.get_lookups(import_id)
        if payload is None:
            raise ImportSessionNotFound(import_id)
        snapshot = LookupSnapshot.from_dict(payload["snapshot"])
        descriptor = resolve_kind(snapshot.kind)
        context = replace(ImportContext.from_dict(payload["context"]), now=now or datetime.now(timezone.utc))
        return cls(
            import_id=import_id,
            descriptor=descriptor,
            loader=descriptor.loader_class(context),
            snapshot=snapshot,
            sessions=sessions,
            store=store,
            chunk_size=chunk_size,
        )

    def process_chunk(self, rows: Sequence[Mapping[str, Any]], start_row: int) -> ChunkResult:
        processor = TwoPassChunkProcessor(
            self.loader,
            self.snapshot,
            self.sessions,
            self.import_id,
            store=self.store,
        )
        return processor.process(rows, start_row)

    def run(self, rows: Iterable[Mapping[str, Any]], *, start_row: int | None = None) -> list[ChunkResult]:
        """Process every row, ``chunk_size`` at a time, numbering from the template's first data row."""

        row_number = start_row if start_row is not None else self.loader.contract.data_start_row
        results = []
        for chunk in iter_chunks(rows, self.chunk_size):
            results.append(self.process_chunk(chunk, row_number))
            row_number += len(chunk)
        return results

    def finish(self, notifier: ImportNotifier | None = None) -> ImportSummary:
        """Summarize, keep the result briefly, clear session state and notify the owner."""

        snapshot = self.sessions.snapshot(self.import_id)
        summary = ImportSummary.from_snapshot(
            snapshot,
            title=self.loader.title,
            finished_at=datetime.now(timezone.utc).isoformat(),
        )
        self.sessions.store_result(self.import_id, summary.to_dict())
        self.sessions.clear(self.import_id)
        logger.info(
            summary.message,
            extra={
                "importer_import_id": self.import_id,
                "importer_kind": self.kind,
                "importer_processed": summary.processed,
                "importer_updated": summary.updated,
                "importer_error_count": len(summary.errors),
                "importer_skipped": summary.skipped,
            },
        )
        if notifier is not None:
            notifier.notify(summary)
        return summary


__all__ = ["ImportJob", "iter_chunks"]
