"""Row normalizer: turns raw spreadsheet cell text into canonical values.

Every coercion is total. A value that cannot be converted is passed through
(trimmed) so the validators can report a precise message instead of the
normalizer silently nulling it. The only exception is currency text, where an
unparseable value becomes ``None``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Generic, Mapping, TypeVar

from hrms_app.importer.contracts.fields import FieldKind, ImportContract

RowT = TypeVar("RowT")

# Serial 1 is 1900-01-01. Serial 60 is the non-existent 1900-02-29 that the
# spreadsheet format inherited from Lotus, so serials from 61 on are offset by
# one day and use an epoch of 1899-12-30.
_SERIAL_EPOCH_BEFORE_BUG = date(1899, 12, 31)
_SERIAL_EPOCH = date(1899, 12, 30)
_FICTITIOUS_LEAP_DAY_SERIAL = 60
_MAX_SERIAL = 2958465  # 9999-12-31

_SERIAL_PATTERN = re.compile(r"^\d+(\.\d+)?$")
_NUMBER_PATTERN = re.compile(r"^[+-]?(\d+(\.\d*)?|\.\d+)$")
_MONEY_STRIP_PATTERN = re.compile(r"[^0-9.\-]")

# Display labels used in the employee template -> stored identification codes.
ID_TYPE_LABELS: Mapping[str, str] = {
    "10 years id": "10YearsID",
    "burmese id": "BurmeseID",
    "ci": "CI",
    "borderpass": "Borderpass",
    "thai id": "ThaiID",
    "passport": "Passport",
    "other": "Other",
}
ID_TYPE_CODES: tuple[str, ...] = tuple(dict.fromkeys(ID_TYPE_LABELS.values()))


def _clean(value: Any) -> Any:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


def is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and value.strip() == "")


def excel_serial_to_date(serial: float) -> date:
    """Convert a spreadsheet day serial to a calendar date (fraction = time, ignored)."""

    whole = int(serial)
    if whole < 1 or whole > _MAX_SERIAL:
        raise ValueError(f"Date serial {serial} is out of range.")
    if whole == _FICTITIOUS_LEAP_DAY_SERIAL:
        raise ValueError("Date serial 60 refers to 1900-02-29, which does not exist.")
    if whole < _FICTITIOUS_LEAP_DAY_SERIAL:
        return _SERIAL_EPOCH_BEFORE_BUG + timedelta(days=whole)
    return _SERIAL_EPOCH + timedelta(days=whole)


def date_to_excel_serial(value: date) -> int:
    """Inverse of :func:`excel_serial_to_date` for real calendar dates."""

    if value < date(1900, 3, 1):
        serial = (value - _SERIAL_EPOCH_BEFORE_BUG).days
    else:
        serial = (value - _SERIAL_EPOCH).days
    if serial < 1:
        raise ValueError(f"{value.isoformat()} predates the spreadsheet date epoch.")
    return serial


def normalize_date(value: Any) -> Any:
    """Numeric serials become ISO ``YYYY-MM-DD``; everything else is passed through."""

    value = _clean(value)
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    token = str(value)
    if not _SERIAL_PATTERN.match(token):
        return value
    try:
        return excel_serial_to_date(float(token)).isoformat()
    except (ValueError, OverflowError):
        return value


def _to_decimal(value: Any) -> Decimal | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))
    token = str(value).strip()
    if not _NUMBER_PATTERN.match(token):
        return None
    try:
        return Decimal(token)
    except InvalidOperation:
        return None


def normalize_percentage(value: Any) -> Any:
    """
    Return a fraction for percentage input.

    ``"75"``, ``"75%"`` and ``"0.75"`` all yield ``Decimal("0.75")``. Values
    outside ``[0, 100]`` keep their numeric value so range validation can
    reject them; non-numeric text is passed through.
    """

    value = _clean(value)
    if value is None:
        return None
    token = value.rstrip("%").strip() if isinstance(value, str) else value
    number = _to_decimal(token)
    if number is None:
        return value
    if 1 < number <= 100:
        return number / Decimal(100)
    return number


def normalize_money(value: Any) -> Decimal | None:
    """Strip everything except digits, ``.`` and ``-``; unparseable text is ``None``."""

    value = _clean(value)
    if value is None:
        return None
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return _to_decimal(value)
    stripped = _MONEY_STRIP_PATTERN.sub("", str(value))
    if not stripped:
        return None
    return _to_decimal(stripped)


def normalize_integer(value: Any) -> Any:
    value = _clean(value)
    if value is None or isinstance(value, bool):
        return value
    number = _to_decimal(value)
    if number is None or number != number.to_integral_value():
        return value
    return int(number)


def normalize_id_type(value: Any) -> Any:
    """Map template display labels to stored codes; unknown text passes through."""

    value = _clean(value)
    if not isinstance(value, str):
        return value
    code = ID_TYPE_LABELS.get(value.lower())
    if code is not None:
        return code
    for known in ID_TYPE_CODES:
        if known.lower() == value.lower():
            return known
    return value


def normalize_text(value: Any) -> Any:
    value = _clean(value)
    if isinstance(value, float) and value.is_integer():
        # Cells such as staff ids or phone numbers may arrive as 1234.0
        return str(int(value))
    if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
        return str(value)
    return value


_NORMALIZERS = {
    FieldKind.TEXT: normalize_text,
    FieldKind.DATE: normalize_date,
    FieldKind.PERCENT: normalize_percentage,
    FieldKind.MONEY: normalize_money,
    FieldKind.INTEGER: normalize_integer,
    FieldKind.ID_TYPE: normalize_id_type,
    FieldKind.FLAG: normalize_text,
}


@dataclass(frozen=True)
class NormalizedRow(Generic[RowT]):
    """Typed row plus the raw canonical values it was built from."""

    row_number: int
    row: RowT
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def is_blank(self) -> bool:
        return all(is_blank(value) for value in self.raw.values())


class RowNormalizer(Generic[RowT]):
    """Apply each contract field's coercion to a raw row dictionary."""

    def __init__(self, contract: ImportContract[RowT]) -> None:
        self.contract = contract

    def normalize(self, raw: Mapping[str, Any], row_number: int) -> NormalizedRow[RowT]:
        canonical = self.contract.canonicalize(raw)
        values: dict[str, Any] = {}
        for spec in self.contract.fields:
            values[spec.name] = _NORMALIZERS[spec.kind](canonical.get(spec.name))
        return NormalizedRow(row_number=row_number, row=self.contract.build_row(values), raw=canonical)


__all__ = [
    "ID_TYPE_CODES",
    "ID_TYPE_LABELS",
    "NormalizedRow",
    "RowNormalizer",
    "date_to_excel_serial",
    "excel_serial_to_date",
    "is_blank",
    "normalize_date",
    "normalize_id_type",
    "normalize_integer",
    "normalize_money",
    "normalize_percentage",
    "normalize_text",
]
