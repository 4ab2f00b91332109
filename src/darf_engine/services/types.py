"""Value types shared by the validator, query engine and record store."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields, replace
from datetime import date
from decimal import Decimal
from enum import Enum
from math import ceil
from typing import TYPE_CHECKING, Generic, TypeVar

from darf_engine.calculators.types import ZERO, DocumentStatus, OrgUnit, quantize_money

if TYPE_CHECKING:
    from darf_engine.models import FiscalDocument

T = TypeVar("T")

_YEAR_MONTH_RE = re.compile(r"^\s*(\d{4})-(\d{1,2})\s*$")


@dataclass
class DocumentDraft:
    """Caller-supplied candidate for creating or updating a document.

    Carries no status, rate or amount fields: those are always derived.
    ``fiscal_code`` may be omitted, in which case the income nature's code
    is used.
    """

    org_unit: OrgUnit
    document_number: str
    payer_id: str
    invoice_number: int
    invoice_date: date
    income_nature_code: str
    gross_amount: Decimal
    payment_date: date | None = None
    fiscal_code: str | None = None

    @classmethod
    def from_document(cls, document: FiscalDocument) -> DocumentDraft:
        """Rebuild a draft from a stored document (for re-running the pipeline)."""
        return cls(
            org_unit=OrgUnit(document.org_unit),
            document_number=document.document_number,
            payer_id=document.payer_id,
            invoice_number=document.invoice_number,
            invoice_date=document.invoice_date,
            income_nature_code=document.income_nature_code,
            gross_amount=document.withholding.gross_amount,
            payment_date=document.payment_date,
            fiscal_code=document.withholding.fiscal_code,
        )


@dataclass(frozen=True)
class YearMonth:
    """A calendar month, e.g. the fiscal period 2024-03."""

    year: int
    month: int

    @classmethod
    def parse(cls, value: str) -> YearMonth:
        """Parse 'YYYY-MM'. Range checks are left to the query engine."""
        match = _YEAR_MONTH_RE.match(value or "")
        if match is None:
            raise ValueError(f"Invalid year-month {value!r}, expected YYYY-MM")
        return cls(int(match.group(1)), int(match.group(2)))

    def __str__(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class DocumentSort(str, Enum):
    """Result ordering understood by the record store."""

    NEWEST = "newest"
    DOCUMENT_NUMBER = "document_number"


@dataclass(frozen=True)
class PageRequest:
    """Zero-based page request."""

    page: int = 0
    size: int = 20
    sort: DocumentSort = DocumentSort.NEWEST

    @property
    def offset(self) -> int:
        return self.page * self.size


@dataclass
class Page(Generic[T]):
    """One page of results plus the total match count."""

    items: list[T]
    page: int
    size: int
    total: int

    @property
    def is_empty(self) -> bool:
        return not self.items

    @property
    def total_pages(self) -> int:
        if self.size <= 0:
            return 0
        return ceil(self.total / self.size)


@dataclass(frozen=True)
class DocumentFilter:
    """Store-level predicate: every set field must match (AND)."""

    payer_id: str | None = None
    status: DocumentStatus | None = None
    org_unit: OrgUnit | None = None
    document_number: str | None = None
    document_number_prefix: str | None = None
    invoice_number: int | None = None
    fiscal_code: str | None = None
    income_nature_code: str | None = None
    invoice_year: int | None = None
    invoice_month: int | None = None
    payment_year: int | None = None
    payment_month: int | None = None
    invoice_period: YearMonth | None = None

    def with_org_unit(self, org_unit: OrgUnit | None) -> DocumentFilter:
        return replace(self, org_unit=org_unit)


@dataclass(frozen=True)
class FilterCriteria:
    """Optional criteria for filtered retrieval; any combination is allowed.

    ``period`` applies to the invoice date and is ignored when both
    ``invoice_year`` and ``invoice_month`` are given.
    """

    payer_id: str | None = None
    status: DocumentStatus | None = None
    org_unit: OrgUnit | None = None
    document_number: str | None = None
    invoice_number: int | None = None
    fiscal_code: str | None = None
    income_nature_code: str | None = None
    invoice_year: int | None = None
    invoice_month: int | None = None
    payment_year: int | None = None
    payment_month: int | None = None
    period: YearMonth | None = None

    def describe(self) -> str:
        """Human-readable list of the criteria that are set."""
        return describe_criteria(self)


@dataclass(frozen=True)
class AggregateCriteria:
    """Optional criteria for aggregation."""

    org_unit: OrgUnit | None = None
    invoice_year: int | None = None
    invoice_month: int | None = None
    payment_year: int | None = None
    payment_month: int | None = None
    status: DocumentStatus | None = None

    def describe(self) -> str:
        return describe_criteria(self)


def describe_criteria(criteria: object) -> str:
    parts = []
    for f in fields(criteria):  # type: ignore[arg-type]
        value = getattr(criteria, f.name)
        if value is None:
            continue
        if isinstance(value, Enum):
            value = value.value
        parts.append(f"{f.name}={value}")
    return ", ".join(parts)


@dataclass(frozen=True)
class AggregateTotals:
    """Count and monetary sums over a set of documents."""

    document_count: int = 0
    total_withheld: Decimal = ZERO
    gross_amount: Decimal = ZERO
    net_amount: Decimal = ZERO

    @classmethod
    def from_row(
        cls,
        count: int | None,
        withheld: Decimal | float | None,
        gross: Decimal | float | None,
        net: Decimal | float | None,
    ) -> AggregateTotals:
        return cls(
            document_count=int(count or 0),
            total_withheld=quantize_money(withheld),
            gross_amount=quantize_money(gross),
            net_amount=quantize_money(net),
        )

    @property
    def is_empty(self) -> bool:
        return self.document_count == 0


@dataclass
class AggregateReport:
    """Totals per requested org unit."""

    criteria: AggregateCriteria
    totals: dict[OrgUnit, AggregateTotals] = field(default_factory=dict)

    @property
    def document_count(self) -> int:
        return sum(t.document_count for t in self.totals.values())


@dataclass
class MonthlyTotals:
    """Totals for one month of a yearly report."""

    month: int
    totals: dict[OrgUnit, AggregateTotals]


@dataclass
class YearlyReport:
    """Month-by-month totals for a year; empty months are omitted."""

    year: int
    months: list[MonthlyTotals] = field(default_factory=list)
