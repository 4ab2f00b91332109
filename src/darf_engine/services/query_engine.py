"""Filtered retrieval, aggregation and document-number lookup."""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING, Union

from darf_engine.calculators.types import DocumentStatus, OrgUnit
from darf_engine.errors import (
    AmbiguousDocumentNumber,
    InvalidFilterRange,
    InvalidSearchCriteria,
    NoMatchingRecords,
    RecordNotFound,
)
from darf_engine.services.record_validator import normalize_document_number
from darf_engine.services.types import (
    AggregateCriteria,
    AggregateReport,
    AggregateTotals,
    DocumentFilter,
    DocumentSort,
    FilterCriteria,
    MonthlyTotals,
    Page,
    PageRequest,
    YearlyReport,
    YearMonth,
)

if TYPE_CHECKING:
    from darf_engine.models import FiscalDocument
    from darf_engine.repositories.base import RecordStore

logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100

AUTOCOMPLETE_DEFAULT_SIZE = 10
AUTOCOMPLETE_MAX_SIZE = 50


# =============================================================================
# Document-number lookup results
# =============================================================================


@dataclass(frozen=True)
class Unique:
    """Exactly one document carries the number."""

    document: FiscalDocument


@dataclass(frozen=True)
class Ambiguous:
    """Several documents carry the number (normally one per org unit)."""

    document_number: str
    candidates: tuple[FiscalDocument, ...]

    @property
    def org_units(self) -> list[str]:
        return sorted({d.org_unit for d in self.candidates})

    def in_org_unit(self, org_unit: OrgUnit) -> list[FiscalDocument]:
        return [d for d in self.candidates if d.org_unit == OrgUnit(org_unit).value]


@dataclass(frozen=True)
class NotFound:
    """No document carries the number."""

    document_number: str


LookupResult = Union[Unique, Ambiguous, NotFound]


class QueryEngine:
    """Read side of the engine.

    Validates partially-specified criteria before touching the store,
    translates them into a DocumentFilter, and turns empty results into
    NoMatchingRecords where an empty answer is not a valid result.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    # =========================================================================
    # Listing and filtered retrieval
    # =========================================================================

    async def list_documents(
        self, page_request: PageRequest | None = None
    ) -> Page[FiscalDocument]:
        """All documents, newest first. An empty page is a valid result."""
        return await self.store.find_page(DocumentFilter(), page_request or PageRequest())

    async def list_by_status(
        self, status: DocumentStatus, page_request: PageRequest | None = None
    ) -> Page[FiscalDocument]:
        status = DocumentStatus(status)
        page = await self.store.find_page(
            DocumentFilter(status=status), page_request or PageRequest()
        )
        if page.is_empty:
            raise NoMatchingRecords(f"status={status.value}")
        return page

    async def filter_documents(
        self,
        criteria: FilterCriteria,
        page_request: PageRequest | None = None,
    ) -> Page[FiscalDocument]:
        """Return one page of documents matching every criterion set.

        Raises:
            InvalidFilterRange: If a year or month is out of range
            InvalidSearchCriteria: If a text criterion is blank or the
                invoice number is not positive
            NoMatchingRecords: If the page is empty
        """
        self._validate_filter(criteria)
        effective = self._effective_criteria(criteria)

        page = await self.store.find_page(
            self._to_document_filter(effective), page_request or PageRequest()
        )
        if page.is_empty:
            raise NoMatchingRecords(effective.describe())
        return page

    # =========================================================================
    # Aggregation
    # =========================================================================

    async def aggregate(self, criteria: AggregateCriteria) -> AggregateReport:
        """Totals per org unit (both when none is requested).

        Raises:
            InvalidFilterRange: If a year or month is out of range
            NoMatchingRecords: If every requested org unit has no documents
        """
        self._check_year("invoice_year", criteria.invoice_year)
        self._check_month("invoice_month", criteria.invoice_month)
        self._check_year("payment_year", criteria.payment_year)
        self._check_month("payment_month", criteria.payment_month)

        base = DocumentFilter(
            status=criteria.status,
            invoice_year=criteria.invoice_year,
            invoice_month=criteria.invoice_month,
            payment_year=criteria.payment_year,
            payment_month=criteria.payment_month,
        )
        org_units = [OrgUnit(criteria.org_unit)] if criteria.org_unit else list(OrgUnit)

        report = AggregateReport(criteria=criteria)
        for org_unit in org_units:
            report.totals[org_unit] = await self.store.find_aggregates(
                base.with_org_unit(org_unit)
            )

        if report.document_count == 0:
            raise NoMatchingRecords(criteria.describe())
        return report

    async def aggregate_year(self, year: int) -> YearlyReport:
        """Month-by-month totals for both org units over one invoice year."""
        if year is None:
            raise InvalidSearchCriteria("year", "is required")
        self._check_year("year", year)

        report = YearlyReport(year=year)
        for month in range(1, 13):
            base = DocumentFilter(invoice_year=year, invoice_month=month)
            totals = {
                org_unit: await self.store.find_aggregates(base.with_org_unit(org_unit))
                for org_unit in OrgUnit
            }
            if any(not t.is_empty for t in totals.values()):
                report.months.append(MonthlyTotals(month=month, totals=totals))

        if not report.months:
            raise NoMatchingRecords(f"invoice_year={year}")
        return report

    async def total_withheld_for_period(
        self, year: int, month: int, org_unit: OrgUnit
    ) -> AggregateTotals:
        """Totals of paid documents invoiced in a month; zero is a valid answer."""
        self._check_year("year", year)
        self._check_month("month", month)
        return await self.store.find_aggregates(
            DocumentFilter(
                status=DocumentStatus.PAID,
                org_unit=OrgUnit(org_unit),
                invoice_year=year,
                invoice_month=month,
            )
        )

    async def paid_payers(
        self,
        period: YearMonth,
        org_unit: OrgUnit,
        page_request: PageRequest | None = None,
    ) -> Page[str]:
        """Distinct payers with documents paid during a period in an org unit."""
        self._check_period("period", period)
        org_unit = OrgUnit(org_unit)

        page = await self.store.find_paid_payer_ids(
            org_unit, period, page_request or PageRequest()
        )
        if page.is_empty:
            raise NoMatchingRecords(
                f"status=PAID, org_unit={org_unit.value}, payment_period={period}"
            )
        return page

    # =========================================================================
    # Document-number lookup
    # =========================================================================

    async def lookup_document_number(self, document_number: str) -> LookupResult:
        """Classify the documents carrying a number without choosing one."""
        if document_number is None or not document_number.strip():
            raise InvalidSearchCriteria("document_number", "is required")
        normalized = normalize_document_number(document_number)

        documents = await self.store.find_all_by_document_number(normalized)
        if not documents:
            return NotFound(normalized)
        if len(documents) == 1:
            return Unique(documents[0])
        return Ambiguous(normalized, tuple(documents))

    async def find_by_document_number(
        self, document_number: str, org_unit: OrgUnit | None = None
    ) -> FiscalDocument:
        """Resolve a document number, using org_unit to break ties.

        Raises:
            RecordNotFound: If no document carries the number
            AmbiguousDocumentNumber: If the hint is missing or does not
                single out one document
        """
        result = await self.lookup_document_number(document_number)

        if isinstance(result, NotFound):
            raise RecordNotFound("document_number", result.document_number)
        if isinstance(result, Unique):
            return result.document

        hint = OrgUnit(org_unit) if org_unit is not None else None
        if hint is not None:
            matches = result.in_org_unit(hint)
            if len(matches) == 1:
                return matches[0]

        logger.warning(
            "Ambiguous document number %s (hint=%s, found in %s)",
            result.document_number,
            hint.value if hint else None,
            result.org_units,
        )
        raise AmbiguousDocumentNumber(
            result.document_number,
            hint.value if hint else None,
            result.org_units,
        )

    async def autocomplete(
        self,
        term: str,
        org_unit: OrgUnit | None = None,
        page: int | None = None,
        size: int | None = None,
        limit: int | None = None,
    ) -> Page[FiscalDocument]:
        """Documents whose number starts with ``term``, ordered by number.

        ``limit`` is accepted as an alias of ``size`` when size is absent.
        """
        if term is None or not term.strip():
            raise InvalidSearchCriteria("term", "is required")

        if size is None and limit is not None:
            size = limit
        if size is None or size <= 0:
            size = AUTOCOMPLETE_DEFAULT_SIZE
        size = min(size, AUTOCOMPLETE_MAX_SIZE)
        page = max(page or 0, 0)

        return await self.store.find_page(
            DocumentFilter(
                document_number_prefix=normalize_document_number(term),
                org_unit=OrgUnit(org_unit) if org_unit is not None else None,
            ),
            PageRequest(page=page, size=size, sort=DocumentSort.DOCUMENT_NUMBER),
        )

    # =========================================================================
    # Criteria handling
    # =========================================================================

    def _validate_filter(self, criteria: FilterCriteria) -> None:
        self._check_month("invoice_month", criteria.invoice_month)
        self._check_month("payment_month", criteria.payment_month)
        self._check_year("invoice_year", criteria.invoice_year)
        self._check_year("payment_year", criteria.payment_year)
        self._check_period("period", criteria.period)

        if criteria.invoice_number is not None and criteria.invoice_number <= 0:
            raise InvalidSearchCriteria("invoice_number", "must be greater than zero")
        for name in ("payer_id", "document_number", "fiscal_code", "income_nature_code"):
            value = getattr(criteria, name)
            if value is not None and not value.strip():
                raise InvalidSearchCriteria(name, "must not be blank")

    def _effective_criteria(self, criteria: FilterCriteria) -> FilterCriteria:
        """Drop the period when invoice year and month are both explicit."""
        if criteria.invoice_year is not None and criteria.invoice_month is not None:
            return replace(criteria, period=None)
        return criteria

    def _to_document_filter(self, criteria: FilterCriteria) -> DocumentFilter:
        def stripped(value: str | None) -> str | None:
            return value.strip() if value is not None else None

        return DocumentFilter(
            payer_id=stripped(criteria.payer_id),
            status=criteria.status,
            org_unit=criteria.org_unit,
            document_number=(
                normalize_document_number(criteria.document_number)
                if criteria.document_number is not None
                else None
            ),
            invoice_number=criteria.invoice_number,
            fiscal_code=stripped(criteria.fiscal_code),
            income_nature_code=stripped(criteria.income_nature_code),
            invoice_year=criteria.invoice_year,
            invoice_month=criteria.invoice_month,
            payment_year=criteria.payment_year,
            payment_month=criteria.payment_month,
            invoice_period=criteria.period,
        )

    def _check_month(self, field: str, month: int | None) -> None:
        if month is not None and not 1 <= month <= 12:
            raise InvalidFilterRange(field, month, 1, 12)

    def _check_year(self, field: str, year: int | None) -> None:
        if year is not None and not MIN_YEAR <= year <= MAX_YEAR:
            raise InvalidFilterRange(field, year, MIN_YEAR, MAX_YEAR)

    def _check_period(self, field: str, period: YearMonth | None) -> None:
        if period is None:
            return
        self._check_year(f"{field}.year", period.year)
        self._check_month(f"{field}.month", period.month)
