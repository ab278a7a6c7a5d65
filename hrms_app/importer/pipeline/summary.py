"""Final import summary and the notifiers it is handed to."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hrms_app.models import ImportNotification, NotificationCategory, db

from .chunk import SKIPPED
from .session import ImportSessionSnapshot

logger = logging.getLogger(__name__)


@dataclass
class ImportSummary:
    import_id: str
    kind: str
    title: str
    owner_id: int | None
    processed: int = 0
    updated: int = 0
    skipped: int = 0
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    validation_failures: list[dict[str, Any]] = field(default_factory=list)
    started_at: str | None = None
    finished_at: str | None = None

    @classmethod
    def from_snapshot(
        cls, snapshot: ImportSessionSnapshot, *, title: str, finished_at: str | None = None
    ) -> "ImportSummary":
        return cls(
            import_id=snapshot.import_id,
            kind=snapshot.kind,
            title=title,
            owner_id=snapshot.owner_id,
            processed=snapshot.processed_count,
            updated=snapshot.updated_count,
            skipped=int(snapshot.counts.get(SKIPPED, 0)),
            errors=list(snapshot.errors),
            warnings=list(snapshot.warnings),
            validation_failures=list(snapshot.validation_failures),
            started_at=snapshot.started_at,
            finished_at=finished_at,
        )

    @property
    def succeeded(self) -> bool:
        return not self.errors

    @property
    def message(self) -> str:
        return (
            f"{self.title} import finished! Processed: {self.processed}, Updated: {self.updated}, "
            f"Errors: {len(self.errors)}, Warnings: {len(self.warnings)}, Skipped: {self.skipped}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "import_id": self.import_id,
            "kind": self.kind,
            "owner_id": self.owner_id,
            "message": self.message,
            "processed": self.processed,
            "updated": self.updated,
            "skipped": self.skipped,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "validation_failures": list(self.validation_failures),
            "started_at": self.started_at,
            "finished_at": self.finished_at,
        }

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any], *, title: str | None = None) -> "ImportSummary":
        return cls(
            import_id=payload["import_id"],
            kind=payload.get("kind", ""),
            title=title or str(payload.get("kind", "")).replace("_", " ").capitalize(),
            owner_id=payload.get("owner_id"),
            processed=int(payload.get("processed", 0)),
            updated=int(payload.get("updated", 0)),
            skipped=int(payload.get("skipped", 0)),
            errors=list(payload.get("errors") or []),
            warnings=list(payload.get("warnings") or []),
            validation_failures=list(payload.get("validation_failures") or []),
            started_at=payload.get("started_at"),
            finished_at=payload.get("finished_at"),
        )


class ImportNotifier(ABC):
    """Delivers a finished import's summary to its owner."""

    @abstractmethod
    def notify(self, summary: ImportSummary) -> None:
        ...


class LoggingNotifier(ImportNotifier):
    def __init__(self, log: logging.Logger | None = None) -> None:
        self.log = log or logger

    def notify(self, summary: ImportSummary) -> None:
        level = logging.INFO if summary.succeeded else logging.WARNING
        self.log.log(
            level,
            summary.message,
            extra={
                "importer_import_id": summary.import_id,
                "importer_kind": summary.kind,
                "importer_owner_id": summary.owner_id,
                "importer_processed": summary.processed,
                "importer_updated": summary.updated,
                "importer_skipped": summary.skipped,
            },
        )


class DatabaseNotifier(ImportNotifier):
    """Writes an :class:`ImportNotification` row to the owner's inbox."""

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else db.session

    def notify(self, summary: ImportSummary) -> None:
        if summary.owner_id is None:
            logger.info(
                "Import %s has no owner; skipping notification",
                summary.import_id,
                extra={"importer_import_id": summary.import_id},
            )
            return
        notification = ImportNotification(
            user_id=summary.owner_id,
            import_id=summary.import_id,
            category=NotificationCategory.IMPORT,
            message=summary.message,
            payload_json={
                "processed": summary.processed,
                "updated": summary.updated,
                "skipped": summary.skipped,
                "errors": summary.errors,
                "warnings": summary.warnings,
            },
        )
        try:
            self.session.add(notification)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            raise


__all__ = ["DatabaseNotifier", "ImportNotifier", "ImportSummary", "LoggingNotifier"]
