# hrms_app/models/funding.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, db


class EmployeeFundingAllocation(BaseModel):
    """Share of an employment's salary charged to a grant item."""

    __tablename__ = "employee_funding_allocations"
    __table_args__ = (
        UniqueConstraint(
            "employee_id",
            "employment_id",
            "grant_item_id",
            "allocation_type",
            name="uq_funding_allocation_target",
        ),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False, index=True)
    employment_id: Mapped[int] = mapped_column(ForeignKey("employments.id"), nullable=False, index=True)
    grant_item_id: Mapped[int] = mapped_column(ForeignKey("grant_items.id"), nullable=False)
    fte: Mapped[Decimal] = mapped_column(db.Numeric(5, 4), nullable=False)
    allocation_type: Mapped[str] = mapped_column(db.String(20), nullable=False, default="grant")
    allocated_amount: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    salary_type: Mapped[str | None] = mapped_column(db.String(30))
    status: Mapped[str] = mapped_column(db.String(20), nullable=False, default="active")
    start_date: Mapped[date] = mapped_column(db.Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(db.Date)
    created_by: Mapped[str | None] = mapped_column(db.String(255))
    updated_by: Mapped[str | None] = mapped_column(db.String(255))
