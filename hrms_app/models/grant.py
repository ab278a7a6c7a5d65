# hrms_app/models/grant.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class Grant(BaseModel):
    __tablename__ = "grants"

    id: Mapped[int] = mapped_column(primary_key=True)
    code: Mapped[str] = mapped_column(db.String(50), unique=True, nullable=False, index=True)
    name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    organization: Mapped[str] = mapped_column(db.String(10), nullable=False)
    end_date: Mapped[date | None] = mapped_column(db.Date)
    description: Mapped[str | None] = mapped_column(db.Text)
    created_by: Mapped[str | None] = mapped_column(db.String(255))
    updated_by: Mapped[str | None] = mapped_column(db.String(255))

    items = relationship("GrantItem", back_populates="grant", cascade="all, delete-orphan")


class GrantItem(BaseModel):
    """Budgeted position funded by a grant."""

    __tablename__ = "grant_items"
    __table_args__ = (
        UniqueConstraint("grant_id", "grant_position", "budgetline_code", name="uq_grant_items_position_budgetline"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    grant_id: Mapped[int] = mapped_column(ForeignKey("grants.id"), nullable=False, index=True)
    grant_position: Mapped[str] = mapped_column(db.String(255), nullable=False)
    budgetline_code: Mapped[str | None] = mapped_column(db.String(50))
    grant_salary: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    grant_benefit: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    grant_level_of_effort: Mapped[Decimal | None] = mapped_column(db.Numeric(5, 4))
    grant_position_number: Mapped[int] = mapped_column(db.Integer, default=1, nullable=False)
    created_by: Mapped[str | None] = mapped_column(db.String(255))
    updated_by: Mapped[str | None] = mapped_column(db.String(255))

    grant = relationship("Grant", back_populates="items")
