"""Tests for DocumentService: the create/update/pay/delete pipeline."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from darf_engine.calculators.types import DocumentStatus, OrgUnit
from darf_engine.errors import (
    DuplicateDocumentNumber,
    DuplicateInvoice,
    IncomeNatureMismatch,
    InvalidFiscalCode,
    InvalidGrossAmount,
    InvalidPaymentDate,
    RecordNotFound,
    UnknownIncomeNature,
)


class TestCreate:
    async def test_create_calculates_withholding(self, document_service, make_draft):
        document = await document_service.create(make_draft(document_number="202ns000001"))

        assert document.id is not None
        assert document.document_number == "202NS000001"
        assert document.status_enum == DocumentStatus.SETTLED

        withholding = document.withholding
        assert withholding.fiscal_code == "6190"
        assert withholding.rate_ir == Decimal("4.80")
        assert withholding.withheld_ir == Decimal("48.00")
        assert withholding.withheld_csll == Decimal("10.00")
        assert withholding.withheld_cofins == Decimal("30.00")
        assert withholding.withheld_pis == Decimal("6.50")
        assert withholding.net_amount == Decimal("905.50")

    async def test_create_with_payment_date_is_paid(self, document_service, make_draft):
        document = await document_service.create(make_draft(payment_date=date(2024, 4, 1)))

        assert document.status == "PAID"

    async def test_explicit_matching_fiscal_code_accepted(
        self, document_service, make_draft
    ):
        document = await document_service.create(
            make_draft(income_nature_code="17009", fiscal_code="6147")
        )

        assert document.withholding.fiscal_code == "6147"
        assert document.income_nature_description == "Goods and merchandise in general"

    async def test_fiscal_code_must_match_income_nature(
        self, document_service, make_draft, query_engine
    ):
        with pytest.raises(IncomeNatureMismatch) as exc_info:
            await document_service.create(
                make_draft(income_nature_code="17040", fiscal_code="6147")
            )

        assert isinstance(exc_info.value, InvalidFiscalCode)
        assert exc_info.value.expected == "6190"
        assert (await query_engine.list_documents()).total == 0

    async def test_unknown_income_nature(self, document_service, make_draft):
        with pytest.raises(UnknownIncomeNature):
            await document_service.create(make_draft(income_nature_code="99999"))

    async def test_invalid_gross_amount(self, document_service, make_draft):
        with pytest.raises(InvalidGrossAmount):
            await document_service.create(make_draft(gross_amount=Decimal("0")))

    async def test_sub_cent_gross_rejected(
        self, document_service, make_draft, query_engine
    ):
        """A gross that rounds to 0.00 is not positive."""
        with pytest.raises(InvalidGrossAmount):
            await document_service.create(make_draft(gross_amount=Decimal("0.004")))

        assert (await query_engine.list_documents()).total == 0

    async def test_sub_cent_remainder_rounds_half_up(self, document_service, make_draft):
        document = await document_service.create(make_draft(gross_amount=Decimal("0.005")))

        assert document.withholding.gross_amount == Decimal("0.01")
        assert document.withholding.net_amount == Decimal("0.01")

    async def test_invalid_payment_date(self, document_service, make_draft):
        with pytest.raises(InvalidPaymentDate):
            await document_service.create(
                make_draft(invoice_date=date(2024, 3, 10), payment_date=date(2024, 3, 1))
            )

    async def test_duplicates(self, document_service, make_draft):
        await document_service.create(make_draft())

        with pytest.raises(DuplicateInvoice):
            await document_service.create(make_draft(document_number="202NS000050"))
        with pytest.raises(DuplicateDocumentNumber):
            await document_service.create(make_draft(invoice_number=50))

    async def test_same_number_in_both_org_units(self, document_service, make_draft):
        primary = await document_service.create(make_draft())
        secondary = await document_service.create(make_draft(org_unit=OrgUnit.SECONDARY))

        assert primary.id != secondary.id
        assert primary.document_number == secondary.document_number


class TestUpdate:
    async def test_update_recalculates(self, document_service, make_draft):
        document = await document_service.create(make_draft())

        updated = await document_service.update(
            document.id,
            make_draft(gross_amount=Decimal("2000.00"), income_nature_code="17009"),
        )

        assert updated.id == document.id
        assert updated.withholding.fiscal_code == "6147"
        assert updated.withholding.withheld_ir == Decimal("24.00")
        assert updated.withholding.net_amount == Decimal("1883.00")

    async def test_update_keeps_own_keys(self, document_service, make_draft):
        document = await document_service.create(make_draft())

        updated = await document_service.update(
            document.id, make_draft(invoice_date=date(2024, 3, 1))
        )

        assert updated.invoice_date == date(2024, 3, 1)

    async def test_update_collision_with_other_document(self, document_service, make_draft):
        await document_service.create(make_draft())
        other = await document_service.create(
            make_draft(document_number="202NS000002", invoice_number=2)
        )

        with pytest.raises(DuplicateDocumentNumber):
            await document_service.update(
                other.id, make_draft(document_number="202NS000001", invoice_number=2)
            )

    async def test_failed_update_leaves_document_untouched(
        self, document_service, make_draft
    ):
        document = await document_service.create(make_draft())

        with pytest.raises(InvalidFiscalCode):
            await document_service.update(document.id, make_draft(fiscal_code="1234"))

        assert document.withholding.fiscal_code == "6190"
        assert document.withholding.net_amount == Decimal("905.50")

    async def test_removing_payment_date_settles(self, document_service, make_draft):
        document = await document_service.create(make_draft(payment_date=date(2024, 4, 1)))

        updated = await document_service.update(document.id, make_draft())

        assert updated.status == "SETTLED"

    async def test_update_missing_document(self, document_service, make_draft):
        with pytest.raises(RecordNotFound):
            await document_service.update(uuid4(), make_draft())


class TestPaymentAndDeletion:
    async def test_mark_as_paid(self, document_service, make_draft):
        document = await document_service.create(make_draft())

        paid = await document_service.mark_as_paid(document.id, date(2024, 4, 2))

        assert paid.status == "PAID"
        assert paid.payment_date == date(2024, 4, 2)
        assert paid.withholding.net_amount == Decimal("905.50")

    async def test_mark_as_paid_defaults_to_today(self, document_service, make_draft):
        document = await document_service.create(make_draft())

        paid = await document_service.mark_as_paid(document.id)

        assert paid.payment_date == date.today()

    async def test_mark_as_paid_before_invoice_date(self, document_service, make_draft):
        document = await document_service.create(make_draft())

        with pytest.raises(InvalidPaymentDate):
            await document_service.mark_as_paid(document.id, date(2024, 1, 1))

        assert document.status == "SETTLED"

    async def test_delete(self, document_service, make_draft):
        document = await document_service.create(make_draft())

        await document_service.delete(document.id)

        with pytest.raises(RecordNotFound):
            await document_service.get(document.id)

    async def test_delete_missing(self, document_service):
        with pytest.raises(RecordNotFound):
            await document_service.delete(uuid4())
