# hrms_app/models/employment.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class Employment(BaseModel):
    """Contract terms for an employee; one active record per employee."""

    __tablename__ = "employments"

    id: Mapped[int] = mapped_column(primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id"), nullable=False, index=True)
    employment_type: Mapped[str] = mapped_column(db.String(30), nullable=False)
    start_date: Mapped[date] = mapped_column(db.Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(db.Date)
    pass_probation_date: Mapped[date | None] = mapped_column(db.Date)
    pay_method: Mapped[str | None] = mapped_column(db.String(30))
    site_id: Mapped[int | None] = mapped_column(ForeignKey("sites.id"))
    department_id: Mapped[int | None] = mapped_column(ForeignKey("departments.id"))
    section_department_id: Mapped[int | None] = mapped_column(ForeignKey("section_departments.id"))
    position_id: Mapped[int | None] = mapped_column(ForeignKey("positions.id"))
    pass_probation_salary: Mapped[Decimal] = mapped_column(db.Numeric(12, 2), nullable=False)
    probation_salary: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    health_welfare: Mapped[bool] = mapped_column(db.Boolean, default=False, nullable=False)
    pvd: Mapped[bool] = mapped_column(db.Boolean, default=False, nullable=False)
    saving_fund: Mapped[bool] = mapped_column(db.Boolean, default=False, nullable=False)
    status: Mapped[bool] = mapped_column(db.Boolean, default=True, nullable=False, index=True)
    created_by: Mapped[str | None] = mapped_column(db.String(255))
    updated_by: Mapped[str | None] = mapped_column(db.String(255))

    employee = relationship("Employee", back_populates="employments")

    def is_on_probation(self, today: date) -> bool:
        return self.pass_probation_date is not None and self.pass_probation_date > today
