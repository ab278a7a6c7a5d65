"""
Registry of importable entity kinds.

Each kind maps to the loader class that knows its template, lookups and
write, plus the metadata the CLI lists without touching the database.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence, Tuple, Type

from .exceptions import UnknownImportKind
from .pipeline.employees import EmployeeLoader
from .pipeline.employments import EmploymentLoader
from .pipeline.funding import FundingAllocationLoader
from .pipeline.grants import GrantLoader
from .pipeline.loader import EntityLoader
from .pipeline.payrolls import PayrollLoader


@dataclass(frozen=True)
class ImportKindDescriptor:
    """Metadata describing an importable entity kind."""

    name: str
    title: str
    loader_class: Type[EntityLoader]
    summary: str | None = None

    @property
    def chunk_size(self) -> int:
        return self.loader_class.chunk_size

    @property
    def required_headers(self) -> Tuple[str, ...]:
        return self.loader_class.contract.required_headers()


def get_import_registry() -> Mapping[str, ImportKindDescriptor]:
    """Return the supported import kinds in the order they depend on each other."""

    return OrderedDict(
        (descriptor.name, descriptor)
        for descriptor in (
            ImportKindDescriptor(
                name="employees",
                title="Employees",
                loader_class=EmployeeLoader,
                summary="Personal records and beneficiaries.",
            ),
            ImportKindDescriptor(
                name="employments",
                title="Employments",
                loader_class=EmploymentLoader,
                summary="Contract terms; updates the active employment when one exists.",
            ),
            ImportKindDescriptor(
                name="grants",
                title="Grants",
                loader_class=GrantLoader,
                summary="Grant headers and budgeted positions.",
            ),
            ImportKindDescriptor(
                name="funding_allocations",
                title="Funding allocations",
                loader_class=FundingAllocationLoader,
                summary="Salary shares charged to grant items.",
            ),
            ImportKindDescriptor(
                name="payrolls",
                title="Payroll",
                loader_class=PayrollLoader,
                summary="Monthly pay lines; insert only.",
            ),
        )
    )


def resolve_kind(
    name: str,
    registry: Mapping[str, ImportKindDescriptor] | None = None,
) -> ImportKindDescriptor:
    """Map a kind name to its descriptor, raising on unknown names."""

    registry = registry or get_import_registry()
    key = (name or "").strip().lower()
    if key not in registry:
        raise UnknownImportKind(name, tuple(registry))
    return registry[key]


def resolve_kinds(
    configured: Sequence[str],
    registry: Mapping[str, ImportKindDescriptor] | None = None,
) -> Iterable[ImportKindDescriptor]:
    registry = registry or get_import_registry()
    return tuple(resolve_kind(name, registry) for name in configured)


__all__ = ["ImportKindDescriptor", "get_import_registry", "resolve_kind", "resolve_kinds"]
