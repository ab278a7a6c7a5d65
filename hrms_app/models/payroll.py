# hrms_app/models/payroll.py

from __future__ import annotations

from datetime import date
from decimal import Decimal

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from .base import BaseModel, db

PAYROLL_AMOUNT_COLUMNS = (
    "gross_salary",
    "gross_salary_by_fte",
    "compensation_refund",
    "thirteen_month_salary",
    "pvd",
    "saving_fund",
    "employer_social_security",
    "employee_social_security",
    "employer_health_welfare",
    "employee_health_welfare",
    "tax",
    "net_salary",
    "total_salary",
    "total_income",
    "total_deduction",
)


class Payroll(BaseModel):
    __tablename__ = "payrolls"

    id: Mapped[int] = mapped_column(primary_key=True)
    employment_id: Mapped[int] = mapped_column(ForeignKey("employments.id"), nullable=False, index=True)
    employee_funding_allocation_id: Mapped[int] = mapped_column(
        ForeignKey("employee_funding_allocations.id"), nullable=False, index=True
    )
    pay_period_date: Mapped[date] = mapped_column(db.Date, nullable=False, index=True)
    gross_salary: Mapped[Decimal] = mapped_column(db.Numeric(12, 2), nullable=False)
    gross_salary_by_fte: Mapped[Decimal] = mapped_column(db.Numeric(12, 2), nullable=False)
    compensation_refund: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    thirteen_month_salary: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    pvd: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    saving_fund: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    employer_social_security: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    employee_social_security: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    employer_health_welfare: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    employee_health_welfare: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    tax: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    net_salary: Mapped[Decimal] = mapped_column(db.Numeric(12, 2), nullable=False)
    total_salary: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    total_income: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    total_deduction: Mapped[Decimal | None] = mapped_column(db.Numeric(12, 2))
    notes: Mapped[str | None] = mapped_column(db.Text)
