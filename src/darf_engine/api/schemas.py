"""Pydantic schemas for API request/response models."""

from __future__ import annotations

import calendar
from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from darf_engine.calculators.types import DocumentStatus, OrgUnit
from darf_engine.services.types import (
    AggregateReport,
    AggregateTotals,
    DocumentDraft,
    Page,
    YearlyReport,
)

DOCUMENT_NUMBER_PATTERN = r"^\s*\d{3}[A-Za-z]{2}\d{6}\s*$"
PAYER_ID_PATTERN = r"^\d{14}$"


# ============================================================================
# Document schemas
# ============================================================================


class WithholdingInput(BaseModel):
    """Caller-supplied withholding inputs; rates and amounts are derived."""

    gross_amount: Decimal
    fiscal_code: str | None = Field(default=None, max_length=4)


class DocumentCreate(BaseModel):
    """Schema for creating or replacing a document."""

    org_unit: OrgUnit
    document_number: str = Field(pattern=DOCUMENT_NUMBER_PATTERN)
    payer_id: str = Field(pattern=PAYER_ID_PATTERN)
    invoice_number: int = Field(gt=0)
    invoice_date: date
    payment_date: date | None = None
    income_nature_code: str = Field(min_length=5, max_length=5)
    withholding: WithholdingInput

    def to_draft(self) -> DocumentDraft:
        return DocumentDraft(
            org_unit=self.org_unit,
            document_number=self.document_number,
            payer_id=self.payer_id,
            invoice_number=self.invoice_number,
            invoice_date=self.invoice_date,
            payment_date=self.payment_date,
            income_nature_code=self.income_nature_code,
            gross_amount=self.withholding.gross_amount,
            fiscal_code=self.withholding.fiscal_code,
        )


class PaymentRequest(BaseModel):
    """Schema for marking a document as paid."""

    payment_date: date | None = None


class WithholdingResponse(BaseModel):
    """Schema for a document's withholding breakdown."""

    model_config = ConfigDict(from_attributes=True)

    fiscal_code: str
    gross_amount: Decimal
    rate_ir: Decimal
    rate_csll: Decimal
    rate_cofins: Decimal
    rate_pis: Decimal
    withheld_ir: Decimal
    withheld_csll: Decimal
    withheld_cofins: Decimal
    withheld_pis: Decimal
    total_withheld: Decimal
    net_amount: Decimal


class DocumentResponse(BaseModel):
    """Schema for document response."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    org_unit: OrgUnit
    org_unit_number: int
    document_number: str
    payer_id: str
    invoice_number: int
    invoice_date: date
    payment_date: date | None = None
    status: DocumentStatus
    income_nature_code: str
    income_nature_description: str
    withholding: WithholdingResponse
    created_at: datetime


class DocumentPageResponse(BaseModel):
    """Schema for a page of documents."""

    items: list[DocumentResponse]
    total: int
    page: int
    page_size: int
    total_pages: int

    @classmethod
    def from_page(cls, page: Page[Any]) -> DocumentPageResponse:
        return cls(
            items=[DocumentResponse.model_validate(d) for d in page.items],
            total=page.total,
            page=page.page,
            page_size=page.size,
            total_pages=page.total_pages,
        )


# ============================================================================
# Aggregation schemas
# ============================================================================


class AggregateTotalsResponse(BaseModel):
    """Totals for one org unit."""

    model_config = ConfigDict(from_attributes=True)

    document_count: int
    total_withheld: Decimal
    gross_amount: Decimal
    net_amount: Decimal


class AggregateReportResponse(BaseModel):
    """Totals keyed by org unit."""

    totals: dict[OrgUnit, AggregateTotalsResponse]
    document_count: int

    @classmethod
    def from_report(cls, report: AggregateReport) -> AggregateReportResponse:
        return cls(
            totals={
                org_unit: AggregateTotalsResponse.model_validate(totals)
                for org_unit, totals in report.totals.items()
            },
            document_count=report.document_count,
        )


class MonthlyTotalsResponse(BaseModel):
    month: int
    month_name: str
    totals: dict[OrgUnit, AggregateTotalsResponse]


class YearlyReportResponse(BaseModel):
    """Month-by-month totals for one year."""

    year: int
    months: list[MonthlyTotalsResponse]

    @classmethod
    def from_report(cls, report: YearlyReport) -> YearlyReportResponse:
        return cls(
            year=report.year,
            months=[
                MonthlyTotalsResponse(
                    month=m.month,
                    month_name=calendar.month_name[m.month],
                    totals={
                        org_unit: AggregateTotalsResponse.model_validate(totals)
                        for org_unit, totals in m.totals.items()
                    },
                )
                for m in report.months
            ],
        )


class PeriodTotalsResponse(AggregateTotalsResponse):
    """Totals of paid documents for one invoice month and org unit."""

    year: int
    month: int
    org_unit: OrgUnit

    @classmethod
    def from_totals(
        cls, totals: AggregateTotals, year: int, month: int, org_unit: OrgUnit
    ) -> PeriodTotalsResponse:
        return cls(
            year=year,
            month=month,
            org_unit=org_unit,
            document_count=totals.document_count,
            total_withheld=totals.total_withheld,
            gross_amount=totals.gross_amount,
            net_amount=totals.net_amount,
        )


class PayerPageResponse(BaseModel):
    """Schema for a page of payer ids."""

    items: list[str]
    total: int
    page: int
    page_size: int
    total_pages: int


# ============================================================================
# Error schemas
# ============================================================================


class ErrorResponse(BaseModel):
    """Schema for error response."""

    detail: str
    code: str | None = None
    context: dict[str, Any] | None = None
