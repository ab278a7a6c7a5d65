"""Column-mapping contracts shared by every entity import.

A contract maps spreadsheet column headers (and their aliases) onto the
attributes of a typed row record, records which template column letter each
field lives in so messages can point at a cell, and declares how the row
normalizer should coerce each raw value.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields as dataclass_fields, replace
from typing import Any, Generic, Mapping, Sequence, Tuple, Type, TypeVar

RowT = TypeVar("RowT")


class FieldKind(str, enum.Enum):
    """Coercion applied by the row normalizer."""

    TEXT = "text"
    DATE = "date"
    PERCENT = "percent"
    MONEY = "money"
    INTEGER = "integer"
    ID_TYPE = "id_type"
    FLAG = "flag"


@dataclass(frozen=True)
class FieldSpec:
    """Metadata describing one column of an import template."""

    name: str
    description: str
    kind: FieldKind = FieldKind.TEXT
    required: bool = False
    aliases: Tuple[str, ...] = ()
    column: str | None = None

    def headers(self) -> Tuple[str, ...]:
        """Return the canonical header plus aliases for validation."""

        return (self.name, *self.aliases)


def normalize_header(header: str) -> str:
    """Normalize a header for comparison (case/space/punctuation agnostic)."""

    token = (header or "").strip().lstrip("\ufeff").lower()
    for char in (" ", "-", ".", "/"):
        token = token.replace(char, "_")
    while "__" in token:
        token = token.replace("__", "_")
    return token.strip("_")


def column_letter(index: int) -> str:
    """Return the spreadsheet column letter for a zero-based column index."""

    if index < 0:
        raise ValueError("Column index must be non-negative.")
    letters = ""
    number = index + 1
    while number:
        number, remainder = divmod(number - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def with_template_columns(specs: Sequence[FieldSpec]) -> Tuple[FieldSpec, ...]:
    """Assign column letters by template position unless a spec pins its own."""

    return tuple(
        spec if spec.column else replace(spec, column=column_letter(index)) for index, spec in enumerate(specs)
    )


@dataclass(frozen=True)
class ImportContract(Generic[RowT]):
    """Field-mapping table for one entity kind."""

    kind: str
    fields: Tuple[FieldSpec, ...]
    row_type: Type[RowT]
    data_start_row: int = 2

    def __post_init__(self) -> None:
        row_attributes = {item.name for item in dataclass_fields(self.row_type)}
        missing = [spec.name for spec in self.fields if spec.name not in row_attributes]
        if missing:
            raise ValueError(
                f"{self.row_type.__name__} is missing attributes for contract fields: {', '.join(missing)}"
            )

    def field(self, name: str) -> FieldSpec:
        for spec in self.fields:
            if spec.name == name:
                return spec
        raise KeyError(name)

    def column_of(self, name: str) -> str | None:
        return self.field(name).column

    def required_headers(self) -> Tuple[str, ...]:
        return tuple(spec.name for spec in self.fields if spec.required)

    def alias_map(self) -> Mapping[str, str]:
        """Map normalized header tokens to canonical names (includes aliases)."""

        mapping: dict[str, str] = {}
        for spec in self.fields:
            for header in spec.headers():
                mapping[normalize_header(header)] = spec.name
        return mapping

    def canonicalize(self, raw: Mapping[str, Any]) -> dict[str, Any]:
        """Re-key a raw row by canonical field name, dropping unknown columns."""

        alias_map = self.alias_map()
        canonical: dict[str, Any] = {}
        for raw_key, value in raw.items():
            name = alias_map.get(normalize_header(str(raw_key)))
            if name is None or name in canonical:
                continue
            canonical[name] = value
        return canonical

    def build_row(self, values: Mapping[str, Any]) -> RowT:
        """Populate the typed row record from canonical values."""

        return self.row_type(**{spec.name: values.get(spec.name) for spec in self.fields})
