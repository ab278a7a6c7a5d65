"""
SQLAlchemy models backing importer bookkeeping.

``ImportStateEntry`` is the keyed, expiring record the database session
backend stores cross-chunk state in; ``ImportNotification`` is the inbox the
database notifier writes completion summaries to.
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import Enum, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ..base import BaseModel, db


class ImportStateEntry(BaseModel):
    """One expiring JSON document keyed by ``import:<id>:<slot>``."""

    __tablename__ = "import_state_entries"

    key: Mapped[str] = mapped_column(db.String(200), primary_key=True)
    import_id: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    value_json: Mapped[dict | list | None] = mapped_column(db.JSON, nullable=True)
    # Epoch seconds; comparing floats avoids naive/aware datetime mismatches on SQLite
    expires_at: Mapped[float] = mapped_column(db.Float, nullable=False, index=True)

    def __repr__(self):
        return f"<ImportStateEntry {self.key}>"


class NotificationCategory(str, enum.Enum):
    IMPORT = "import"
    SYSTEM = "system"


class ImportNotification(BaseModel):
    """Completion notice delivered to the user who started an import."""

    __tablename__ = "import_notifications"

    id: Mapped[int] = mapped_column(primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey("users.id"), nullable=False, index=True)
    import_id: Mapped[str] = mapped_column(db.String(64), nullable=False, index=True)
    category: Mapped[NotificationCategory] = mapped_column(
        Enum(NotificationCategory, name="notification_category_enum"),
        nullable=False,
        default=NotificationCategory.IMPORT,
    )
    message: Mapped[str] = mapped_column(db.Text, nullable=False)
    payload_json: Mapped[dict | None] = mapped_column(db.JSON, nullable=True)
    read_at: Mapped[datetime | None] = mapped_column(db.DateTime(timezone=True), nullable=True)

    user = relationship("User")
