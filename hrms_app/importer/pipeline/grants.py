"""
Grant import: one row per budgeted position, grant header repeated per row.

A grant code already in the store when the import starts is rejected with all
of its items. Rows of a grant created earlier in the same import keep adding
items to it, since the snapshot is never refreshed. Items are keyed by (grant
code, position, budget line); a key repeated anywhere in the file is a
duplicate.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal
from typing import Any, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from hrms_app.importer.contracts.grant import GRANT_CONTRACT
from hrms_app.models import Grant, GrantItem

from .duplicates import DuplicateKey, DuplicateSource
from .employees import ORGANIZATIONS
from .issues import cell_reference
from .loader import CandidateRecord, EntityLoader, RowValidation, WriteCounts
from .lookups import LookupSnapshot
from .normalize import NormalizedRow
from .validators import DateValue, Length, NumberRange, OneOf, Pattern, Percentage, ZeroPolicy

GRANT_CODE_PATTERN = re.compile(r"^[A-Za-z0-9._-]+$")
AMOUNT_MAX = Decimal("99999999.99")
END_DATE_HORIZON_YEARS = 10


def item_key(grant_code: Any, position: Any, budget_line_code: Any) -> DuplicateKey:
    return DuplicateKey.of(grant_code, f"{str(position).strip()}|{str(budget_line_code or '').strip()}")


def _years_after(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year + years)
    except ValueError:
        # 29 February
        return day.replace(year=day.year + years, day=28)


class GrantLoader(EntityLoader):
    kind = "grants"
    title = "Grant"
    contract = GRANT_CONTRACT
    chunk_size = 40

    def prefetch(self, session: Session) -> LookupSnapshot:
        # Items of stored grants need no key list: their rows are rejected by grant code
        grants = {code: grant_id for grant_id, code in session.execute(select(Grant.id, Grant.code)).all()}
        return LookupSnapshot(kind=self.kind, tables={"grants": grants})

    def validate_row(self, row: NormalizedRow, snapshot: LookupSnapshot) -> RowValidation:
        data = row.row
        col = self.column
        check = RowValidation(row_number=row.row_number)

        check.check(
            "grant_code",
            data.grant_code,
            Length("Grant code", maximum=50, column=col("grant_code")),
            Pattern(
                "Grant code",
                GRANT_CODE_PATTERN,
                "contains invalid characters. Only alphanumeric, dot, dash, and underscore allowed",
                column=col("grant_code"),
            ),
            required=True,
            label="Grant code",
            column=col("grant_code"),
        )
        code = check.values.get("grant_code")
        if code is not None and snapshot.lookup("grants", code) is not None:
            cell = cell_reference(col("grant_code"), row.row_number)
            check.error("grant_code", f"Grant '{code}' already exists - items skipped{cell}")
        check.check(
            "grant_name",
            data.grant_name,
            Length("Grant name", 3, 255, column=col("grant_name")),
            required=True,
            label="Grant name",
            column=col("grant_name"),
        )
        check.check(
            "organization",
            data.organization,
            OneOf("organization", ORGANIZATIONS, threshold=2, column=col("organization")),
            required=True,
            label="Organization",
            column=col("organization"),
        )
        end_date = check.check("end_date", data.end_date, DateValue("end_date", column=col("end_date")))
        if end_date is not None:
            cell = cell_reference(col("end_date"), row.row_number)
            today = self.context.today
            if end_date < today:
                check.warn("end_date", f"Grant end date '{end_date.isoformat()}' is in the past{cell}")
            elif end_date > _years_after(today, END_DATE_HORIZON_YEARS):
                check.warn(
                    "end_date",
                    f"Grant end date '{end_date.isoformat()}' is more than "
                    f"{END_DATE_HORIZON_YEARS} years in the future{cell}",
                )
        check.check("description", data.description, Length("Description", maximum=1000, column=col("description")))

        check.check(
            "budget_line_code",
            data.budget_line_code,
            Length("Budget line code", maximum=50, column=col("budget_line_code")),
        )
        check.check(
            "position",
            data.position,
            Length("Grant position", 2, 255, column=col("position")),
            required=True,
            label="Grant position",
            column=col("position"),
        )
        check.check(
            "salary",
            data.salary,
            NumberRange(
                "Grant salary",
                minimum=Decimal(0),
                maximum=AMOUNT_MAX,
                zero_policy=self.zero_policy("grant_salary", ZeroPolicy.WARN),
            ),
        )
        check.check(
            "benefit",
            data.benefit,
            NumberRange(
                "Grant benefit",
                minimum=Decimal(0),
                maximum=AMOUNT_MAX,
                zero_policy=self.zero_policy("grant_benefit", ZeroPolicy.WARN),
            ),
        )
        check.check(
            "level_of_effort",
            data.level_of_effort,
            Percentage("Level of effort", zero_policy=self.zero_policy("grant_level_of_effort", ZeroPolicy.WARN)),
        )
        position_number = check.check(
            "position_number",
            data.position_number,
            NumberRange("Position number", minimum=Decimal(1), maximum=Decimal(1000), integer=True),
        )
        if position_number is None and "position_number" not in {issue.field for issue in check.errors}:
            check.values["position_number"] = 1
        return check

    def duplicate_key(self, validation: RowValidation) -> DuplicateKey | None:
        code = validation.values.get("grant_code")
        position = validation.values.get("position")
        if not code or not position:
            return None
        if any(issue.field == "grant_code" for issue in validation.errors):
            return None
        return item_key(code, position, validation.values.get("budget_line_code"))

    def duplicate_field(self) -> str:
        return "position"

    def duplicate_message(self, key: DuplicateKey, source: DuplicateSource, row: int) -> str:
        position, _, budget_line = key.identifier.rpartition("|")
        cell = cell_reference(self.column("position"), row)
        return (
            f"Duplicate - Position '{position}' with budget line '{budget_line}' "
            f"appears more than once for grant '{key.scope}' in import file{cell}"
        )

    def compute_derived(self, candidate: CandidateRecord, snapshot: LookupSnapshot) -> dict[str, Any]:
        values = candidate.values
        grant = {
            "code": values["grant_code"],
            "name": values["grant_name"],
            "organization": values["organization"],
            "end_date": values.get("end_date"),
            "description": values.get("description"),
        }
        item = {
            "grant_position": values["position"],
            "budgetline_code": values.get("budget_line_code"),
            "grant_salary": values.get("salary"),
            "grant_benefit": values.get("benefit"),
            "grant_level_of_effort": values.get("level_of_effort"),
            "grant_position_number": values.get("position_number") or 1,
            **self.audit_fields(),
        }
        return {"grant": grant, "item": item}

    def write(self, session: Session, candidates: Sequence[CandidateRecord], snapshot: LookupSnapshot) -> WriteCounts:
        grants: dict[str, Grant] = {}
        for candidate in candidates:
            header = candidate.payload["grant"]
            code = header["code"]
            grant = grants.get(code)
            if grant is None:
                # Only grants created by an earlier chunk of this import can already exist here
                grant = session.scalar(select(Grant).where(Grant.code == code))
                if grant is None:
                    grant = Grant(created_by=self.context.actor, **header)
                    session.add(grant)
                grants[code] = grant
            # The last row of a grant in the chunk decides its header values
            for name, value in header.items():
                setattr(grant, name, value)
            grant.updated_by = self.context.actor
            grant.items.append(GrantItem(**candidate.payload["item"]))
        session.flush()
        return WriteCounts(created=len(candidates))


__all__ = ["AMOUNT_MAX", "GRANT_CODE_PATTERN", "GrantLoader", "item_key"]
