"""Tests for QueryEngine: filtering, aggregation and lookup."""

from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

from darf_engine.calculators.types import DocumentStatus, OrgUnit
from darf_engine.errors import (
    AmbiguousDocumentNumber,
    InvalidFilterRange,
    InvalidSearchCriteria,
    NoMatchingRecords,
    RecordNotFound,
)
from darf_engine.services.query_engine import Ambiguous, NotFound, QueryEngine, Unique
from darf_engine.services.types import (
    AggregateCriteria,
    AggregateTotals,
    DocumentSort,
    FilterCriteria,
    Page,
    YearMonth,
)
from tests.conftest import PAYER_A, PAYER_B


def numbers(page: Page) -> list[tuple[str, str]]:
    return [(d.document_number, d.org_unit) for d in page.items]


# =============================================================================
# Criteria validation (no database)
# =============================================================================


class TestCriteriaValidation:
    """Invalid criteria fail before the store is consulted."""

    @pytest.mark.parametrize(
        "criteria",
        [
            FilterCriteria(invoice_month=13),
            FilterCriteria(invoice_month=0),
            FilterCriteria(payment_month=13),
            FilterCriteria(invoice_year=1999),
            FilterCriteria(payment_year=2101),
            FilterCriteria(period=YearMonth(2024, 13)),
        ],
    )
    async def test_out_of_range_filter(self, criteria):
        store = AsyncMock()

        with pytest.raises(InvalidFilterRange):
            await QueryEngine(store).filter_documents(criteria)

        store.find_page.assert_not_awaited()

    @pytest.mark.parametrize(
        "criteria",
        [
            FilterCriteria(payer_id="  "),
            FilterCriteria(document_number=""),
            FilterCriteria(fiscal_code=" "),
            FilterCriteria(invoice_number=0),
        ],
    )
    async def test_unusable_search_criteria(self, criteria):
        store = AsyncMock()

        with pytest.raises(InvalidSearchCriteria):
            await QueryEngine(store).filter_documents(criteria)

        store.find_page.assert_not_awaited()

    async def test_out_of_range_aggregate(self):
        store = AsyncMock()

        with pytest.raises(InvalidFilterRange) as exc_info:
            await QueryEngine(store).aggregate(AggregateCriteria(payment_month=14))

        assert exc_info.value.field == "payment_month"
        store.find_aggregates.assert_not_awaited()

    async def test_aggregate_fails_only_when_every_partition_is_empty(self):
        store = AsyncMock()
        store.find_aggregates.return_value = AggregateTotals()

        with pytest.raises(NoMatchingRecords):
            await QueryEngine(store).aggregate(AggregateCriteria(invoice_year=2024))

        assert store.find_aggregates.await_count == 2


# =============================================================================
# Filtered retrieval
# =============================================================================


class TestFilterDocuments:
    async def test_filter_by_payer(self, query_engine, seeded_documents):
        page = await query_engine.filter_documents(FilterCriteria(payer_id=PAYER_A))

        assert page.total == 2
        assert {d.payer_id for d in page.items} == {PAYER_A}

    async def test_filter_by_fiscal_code(self, query_engine, seeded_documents):
        page = await query_engine.filter_documents(FilterCriteria(fiscal_code="6147"))

        assert numbers(page) == [("202NS000002", "PRIMARY")]

    async def test_period_applies_to_invoice_date(self, query_engine, seeded_documents):
        page = await query_engine.filter_documents(
            FilterCriteria(period=YearMonth(2024, 3))
        )

        assert page.total == 2
        assert {d.org_unit for d in page.items} == {"PRIMARY"}

    async def test_explicit_year_and_month_override_period(
        self, query_engine, seeded_documents
    ):
        page = await query_engine.filter_documents(
            FilterCriteria(invoice_year=2024, invoice_month=4, period=YearMonth(2024, 3))
        )

        assert page.total == 2
        assert {d.org_unit for d in page.items} == {"SECONDARY"}

    async def test_period_kept_when_only_year_given(self, query_engine, seeded_documents):
        page = await query_engine.filter_documents(
            FilterCriteria(invoice_year=2024, period=YearMonth(2024, 3))
        )

        assert {d.invoice_date.month for d in page.items} == {3}

    async def test_payment_month_matches_paid_documents_only(
        self, query_engine, seeded_documents
    ):
        page = await query_engine.filter_documents(
            FilterCriteria(payment_year=2024, payment_month=4)
        )

        assert page.total == 2
        assert {d.status for d in page.items} == {"PAID"}

    async def test_document_number_is_case_insensitive(
        self, query_engine, seeded_documents
    ):
        page = await query_engine.filter_documents(
            FilterCriteria(document_number="202ns000001", org_unit=OrgUnit.SECONDARY)
        )

        assert numbers(page) == [("202NS000001", "SECONDARY")]

    async def test_no_match_describes_criteria(self, query_engine, seeded_documents):
        with pytest.raises(NoMatchingRecords) as exc_info:
            await query_engine.filter_documents(
                FilterCriteria(payer_id=PAYER_B, status=DocumentStatus.PAID, invoice_month=3)
            )

        assert "payer_id=98765432000110" in exc_info.value.criteria
        assert "status=PAID" in exc_info.value.criteria
        assert "invoice_month=3" in exc_info.value.criteria

    async def test_list_documents_newest_first(self, query_engine, seeded_documents):
        page = await query_engine.list_documents()

        assert page.total == 4
        assert numbers(page)[:2] == [
            ("202NS000003", "SECONDARY"),
            ("202NS000001", "SECONDARY"),
        ]

    async def test_list_documents_empty_is_valid(self, query_engine):
        page = await query_engine.list_documents()

        assert page.is_empty
        assert page.total == 0

    async def test_list_by_status(self, query_engine, seeded_documents):
        page = await query_engine.list_by_status(DocumentStatus.SETTLED)

        assert page.total == 2
        assert {d.status for d in page.items} == {"SETTLED"}

    async def test_list_by_status_empty_raises(self, query_engine):
        with pytest.raises(NoMatchingRecords):
            await query_engine.list_by_status(DocumentStatus.PAID)


# =============================================================================
# Aggregation
# =============================================================================


class TestAggregation:
    async def test_both_org_units_by_default(self, query_engine, seeded_documents):
        report = await query_engine.aggregate(AggregateCriteria())

        primary = report.totals[OrgUnit.PRIMARY]
        assert primary.document_count == 2
        assert primary.total_withheld == Decimal("123.75")
        assert primary.gross_amount == Decimal("1500.00")
        assert primary.net_amount == Decimal("1376.25")

        secondary = report.totals[OrgUnit.SECONDARY]
        assert secondary.document_count == 2
        assert secondary.total_withheld == Decimal("198.45")
        assert secondary.gross_amount == Decimal("2100.00")
        assert secondary.net_amount == Decimal("1901.55")

        assert report.document_count == 4

    async def test_empty_partition_reports_zero(self, query_engine, seeded_documents):
        report = await query_engine.aggregate(
            AggregateCriteria(invoice_year=2024, invoice_month=3)
        )

        assert report.totals[OrgUnit.PRIMARY].document_count == 2
        assert report.totals[OrgUnit.SECONDARY] == AggregateTotals(
            document_count=0,
            total_withheld=Decimal("0.00"),
            gross_amount=Decimal("0.00"),
            net_amount=Decimal("0.00"),
        )

    async def test_single_org_unit(self, query_engine, seeded_documents):
        report = await query_engine.aggregate(
            AggregateCriteria(org_unit=OrgUnit.SECONDARY, status=DocumentStatus.PAID)
        )

        assert list(report.totals) == [OrgUnit.SECONDARY]
        assert report.totals[OrgUnit.SECONDARY].total_withheld == Decimal("9.45")

    async def test_no_matches_anywhere_raises(self, query_engine, seeded_documents):
        with pytest.raises(NoMatchingRecords):
            await query_engine.aggregate(AggregateCriteria(invoice_year=2023))

    async def test_yearly_report_skips_empty_months(self, query_engine, seeded_documents):
        report = await query_engine.aggregate_year(2024)

        assert [m.month for m in report.months] == [3, 4]
        march = report.months[0]
        assert march.totals[OrgUnit.PRIMARY].document_count == 2
        assert march.totals[OrgUnit.SECONDARY].is_empty

    async def test_yearly_report_empty_year_raises(self, query_engine, seeded_documents):
        with pytest.raises(NoMatchingRecords):
            await query_engine.aggregate_year(2023)

    async def test_yearly_report_out_of_range(self, query_engine):
        with pytest.raises(InvalidFilterRange):
            await query_engine.aggregate_year(1999)

    async def test_total_withheld_counts_paid_only(self, query_engine, seeded_documents):
        totals = await query_engine.total_withheld_for_period(2024, 3, OrgUnit.PRIMARY)

        assert totals.document_count == 1
        assert totals.total_withheld == Decimal("94.50")

    async def test_total_withheld_zero_is_valid(self, query_engine, seeded_documents):
        totals = await query_engine.total_withheld_for_period(2024, 3, OrgUnit.SECONDARY)

        assert totals.is_empty
        assert totals.total_withheld == Decimal("0.00")

    async def test_paid_payers(self, query_engine, seeded_documents):
        primary = await query_engine.paid_payers(YearMonth(2024, 4), OrgUnit.PRIMARY)
        secondary = await query_engine.paid_payers(YearMonth(2024, 4), OrgUnit.SECONDARY)

        assert primary.items == [PAYER_A]
        assert secondary.items == [PAYER_B]

    async def test_paid_payers_empty_raises(self, query_engine, seeded_documents):
        with pytest.raises(NoMatchingRecords):
            await query_engine.paid_payers(YearMonth(2024, 5), OrgUnit.PRIMARY)


# =============================================================================
# Document-number lookup
# =============================================================================


class TestDocumentNumberLookup:
    async def test_lookup_classifies_results(self, query_engine, seeded_documents):
        ambiguous = await query_engine.lookup_document_number("202ns000001")
        unique = await query_engine.lookup_document_number("202NS000002")
        missing = await query_engine.lookup_document_number("202NS999999")

        assert isinstance(ambiguous, Ambiguous)
        assert ambiguous.org_units == ["PRIMARY", "SECONDARY"]
        assert isinstance(unique, Unique)
        assert unique.document.payer_id == PAYER_B
        assert missing == NotFound("202NS999999")

    async def test_ambiguous_without_hint_lists_both_org_units(
        self, query_engine, seeded_documents
    ):
        with pytest.raises(AmbiguousDocumentNumber) as exc_info:
            await query_engine.find_by_document_number("202NS000001")

        assert exc_info.value.org_unit_hint is None
        assert exc_info.value.org_units_found == ["PRIMARY", "SECONDARY"]

    async def test_hint_resolves_ambiguity(self, query_engine, seeded_documents):
        document = await query_engine.find_by_document_number(
            "202NS000001", OrgUnit.SECONDARY
        )

        assert document.org_unit == "SECONDARY"
        assert document.invoice_number == 3

    async def test_unique_match_ignores_hint(self, query_engine, seeded_documents):
        document = await query_engine.find_by_document_number(
            "202NS000003", OrgUnit.PRIMARY
        )

        assert document.org_unit == "SECONDARY"

    async def test_hint_matching_nothing_is_ambiguous(self):
        first = SimpleNamespace(org_unit="PRIMARY")
        second = SimpleNamespace(org_unit="PRIMARY")
        store = AsyncMock()
        store.find_all_by_document_number.return_value = [first, second]

        with pytest.raises(AmbiguousDocumentNumber) as exc_info:
            await QueryEngine(store).find_by_document_number(
                "202NS000001", OrgUnit.SECONDARY
            )

        assert exc_info.value.org_unit_hint == "SECONDARY"
        assert exc_info.value.org_units_found == ["PRIMARY"]

    async def test_not_found(self, query_engine, seeded_documents):
        with pytest.raises(RecordNotFound):
            await query_engine.find_by_document_number("202NS999999")

    async def test_blank_key(self, query_engine):
        with pytest.raises(InvalidSearchCriteria):
            await query_engine.find_by_document_number("   ")


# =============================================================================
# Autocomplete
# =============================================================================


class TestAutocomplete:
    async def test_prefix_ordered_by_number(self, query_engine, seeded_documents):
        page = await query_engine.autocomplete("202ns00000")

        assert numbers(page) == [
            ("202NS000001", "PRIMARY"),
            ("202NS000001", "SECONDARY"),
            ("202NS000002", "PRIMARY"),
            ("202NS000003", "SECONDARY"),
        ]

    async def test_org_unit_filter(self, query_engine, seeded_documents):
        page = await query_engine.autocomplete("202NS", org_unit=OrgUnit.PRIMARY)

        assert page.total == 2

    async def test_no_match_is_empty_page(self, query_engine, seeded_documents):
        page = await query_engine.autocomplete("999")

        assert page.is_empty

    async def test_blank_term(self, query_engine):
        with pytest.raises(InvalidSearchCriteria):
            await query_engine.autocomplete(" ")

    @pytest.mark.parametrize(
        "size,limit,expected",
        [
            (None, None, 10),
            (None, 5, 5),
            (7, 5, 7),
            (0, None, 10),
            (-3, None, 10),
            (None, 0, 10),
            (500, None, 50),
            (None, 51, 50),
        ],
    )
    async def test_page_size(self, size, limit, expected):
        store = AsyncMock()
        store.find_page.return_value = Page(items=[], page=0, size=expected, total=0)

        await QueryEngine(store).autocomplete("202", size=size, limit=limit)

        page_request = store.find_page.await_args.args[1]
        assert page_request.size == expected
        assert page_request.sort == DocumentSort.DOCUMENT_NUMBER
