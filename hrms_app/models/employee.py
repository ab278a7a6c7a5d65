# hrms_app/models/employee.py

from __future__ import annotations

from datetime import date

from sqlalchemy import ForeignKey, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel, db


class Employee(BaseModel):
    """Personnel record; ``(staff_id, organization)`` is unique."""

    __tablename__ = "employees"
    __table_args__ = (UniqueConstraint("staff_id", "organization", name="uq_employees_staff_org"),)

    id: Mapped[int] = mapped_column(primary_key=True)
    organization: Mapped[str] = mapped_column(db.String(10), nullable=False, index=True)
    staff_id: Mapped[str] = mapped_column(db.String(50), nullable=False, index=True)
    initial_en: Mapped[str | None] = mapped_column(db.String(10))
    first_name_en: Mapped[str] = mapped_column(db.String(255), nullable=False)
    last_name_en: Mapped[str | None] = mapped_column(db.String(255))
    initial_th: Mapped[str | None] = mapped_column(db.String(20))
    first_name_th: Mapped[str | None] = mapped_column(db.String(255))
    last_name_th: Mapped[str | None] = mapped_column(db.String(255))
    gender: Mapped[str] = mapped_column(db.String(1), nullable=False)
    date_of_birth: Mapped[date] = mapped_column(db.Date, nullable=False)
    status: Mapped[str | None] = mapped_column(db.String(50))
    nationality: Mapped[str | None] = mapped_column(db.String(100))
    religion: Mapped[str | None] = mapped_column(db.String(100))
    identification_type: Mapped[str | None] = mapped_column(db.String(50))
    identification_number: Mapped[str | None] = mapped_column(db.String(50))
    identification_issue_date: Mapped[date | None] = mapped_column(db.Date)
    identification_expiry_date: Mapped[date | None] = mapped_column(db.Date)
    social_security_number: Mapped[str | None] = mapped_column(db.String(50))
    tax_number: Mapped[str | None] = mapped_column(db.String(50))
    driver_license_number: Mapped[str | None] = mapped_column(db.String(100))
    bank_name: Mapped[str | None] = mapped_column(db.String(100))
    bank_branch: Mapped[str | None] = mapped_column(db.String(100))
    bank_account_name: Mapped[str | None] = mapped_column(db.String(100))
    bank_account_number: Mapped[str | None] = mapped_column(db.String(100))
    mobile_phone: Mapped[str | None] = mapped_column(db.String(50))
    marital_status: Mapped[str | None] = mapped_column(db.String(20))
    spouse_name: Mapped[str | None] = mapped_column(db.String(255))
    spouse_phone_number: Mapped[str | None] = mapped_column(db.String(50))
    emergency_contact_person_name: Mapped[str | None] = mapped_column(db.String(255))
    emergency_contact_person_relationship: Mapped[str | None] = mapped_column(db.String(100))
    emergency_contact_person_phone: Mapped[str | None] = mapped_column(db.String(50))
    father_name: Mapped[str | None] = mapped_column(db.String(255))
    father_occupation: Mapped[str | None] = mapped_column(db.String(255))
    father_phone_number: Mapped[str | None] = mapped_column(db.String(50))
    mother_name: Mapped[str | None] = mapped_column(db.String(255))
    mother_occupation: Mapped[str | None] = mapped_column(db.String(255))
    mother_phone_number: Mapped[str | None] = mapped_column(db.String(50))
    military_status: Mapped[bool | None] = mapped_column(db.Boolean, nullable=True)
    remark: Mapped[str | None] = mapped_column(db.Text)
    current_address: Mapped[str | None] = mapped_column(db.Text)
    permanent_address: Mapped[str | None] = mapped_column(db.Text)
    created_by: Mapped[str | None] = mapped_column(db.String(255))
    updated_by: Mapped[str | None] = mapped_column(db.String(255))

    beneficiaries = relationship(
        "EmployeeBeneficiary",
        back_populates="employee",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    employments = relationship("Employment", back_populates="employee")

    def __repr__(self):
        return f"<Employee {self.organization}:{self.staff_id}>"


class EmployeeBeneficiary(BaseModel):
    __tablename__ = "employee_beneficiaries"

    id: Mapped[int] = mapped_column(primary_key=True)
    employee_id: Mapped[int] = mapped_column(ForeignKey("employees.id", ondelete="CASCADE"), nullable=False, index=True)
    beneficiary_name: Mapped[str] = mapped_column(db.String(255), nullable=False)
    beneficiary_relationship: Mapped[str] = mapped_column(db.String(100), nullable=False)
    phone_number: Mapped[str | None] = mapped_column(db.String(50))
    created_by: Mapped[str | None] = mapped_column(db.String(255))
    updated_by: Mapped[str | None] = mapped_column(db.String(255))

    employee = relationship("Employee", back_populates="beneficiaries")
