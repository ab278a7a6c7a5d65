"""Transactional boundary around the relational store."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session

from hrms_app.models import db


class RecordStore:
    """
    Scoped transaction over the Flask-SQLAlchemy session.

    ``transaction()`` commits when the block exits cleanly and rolls back on
    any exception before re-raising it, so a batch write either lands whole
    or not at all.
    """

    def __init__(self, session: Session | None = None) -> None:
        self._session = session

    @property
    def session(self) -> Session:
        return self._session if self._session is not None else db.session

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        session = self.session
        try:
            yield session
            session.commit()
        except BaseException:
            session.rollback()
            raise
