# hrms_app/models/__init__.py
"""
Database models package
"""

from .base import BaseModel, db
from .employee import Employee, EmployeeBeneficiary
from .employment import Employment
from .funding import EmployeeFundingAllocation
from .grant import Grant, GrantItem
from .importer import ImportNotification, ImportStateEntry, NotificationCategory
from .organization import Department, Position, SectionDepartment, Site
from .payroll import PAYROLL_AMOUNT_COLUMNS, Payroll
from .user import User

__all__ = [
    "db",
    "BaseModel",
    "User",
    "Site",
    "Department",
    "SectionDepartment",
    "Position",
    "Employee",
    "EmployeeBeneficiary",
    "Employment",
    "Grant",
    "GrantItem",
    "EmployeeFundingAllocation",
    "Payroll",
    "PAYROLL_AMOUNT_COLUMNS",
    "ImportStateEntry",
    "ImportNotification",
    "NotificationCategory",
]
