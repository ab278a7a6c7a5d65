"""
Grant import template contract.

Every row names its grant (code, name, organization, end date and
description repeat on each item row of the same grant) followed by the
budgeted position the row describes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Tuple

from .fields import FieldKind, FieldSpec, ImportContract, with_template_columns


@dataclass(frozen=True)
class GrantRow:
    grant_code: Any = None
    grant_name: Any = None
    organization: Any = None
    end_date: Any = None
    description: Any = None
    budget_line_code: Any = None
    position: Any = None
    salary: Any = None
    benefit: Any = None
    level_of_effort: Any = None
    position_number: Any = None


GRANT_FIELDS: Tuple[FieldSpec, ...] = with_template_columns(
    (
        FieldSpec("grant_code", "Unique grant code.", required=True, aliases=("code",)),
        FieldSpec("grant_name", "Grant name.", required=True, aliases=("name",)),
        FieldSpec("organization", "SMRU or BHF.", required=True, aliases=("subsidiary", "org")),
        FieldSpec("end_date", "Grant end date.", FieldKind.DATE),
        FieldSpec("description", "Grant description."),
        FieldSpec("budget_line_code", "Budget line code.", aliases=("budgetline_code",)),
        FieldSpec("position", "Funded position title.", required=True, aliases=("grant_position",)),
        FieldSpec("salary", "Budgeted monthly salary.", FieldKind.MONEY, aliases=("grant_salary",)),
        FieldSpec("benefit", "Budgeted monthly benefit.", FieldKind.MONEY, aliases=("grant_benefit",)),
        FieldSpec(
            "level_of_effort", "Level of effort, 0-100 or a fraction.", FieldKind.PERCENT, aliases=("loe",)
        ),
        FieldSpec("position_number", "Number of people in the position.", FieldKind.INTEGER),
    )
)

GRANT_CONTRACT: ImportContract[GrantRow] = ImportContract(
    kind="grants",
    fields=GRANT_FIELDS,
    row_type=GrantRow,
)
