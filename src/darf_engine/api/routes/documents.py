"""Fiscal document API endpoints."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Body, Path, Query, Response, status

from darf_engine.api.dependencies import DocumentServiceDep, QueryEngineDep
from darf_engine.api.schemas import (
    AggregateReportResponse,
    DocumentCreate,
    DocumentPageResponse,
    DocumentResponse,
    ErrorResponse,
    PayerPageResponse,
    PaymentRequest,
    PeriodTotalsResponse,
    YearlyReportResponse,
)
from darf_engine.calculators.types import DocumentStatus, OrgUnit
from darf_engine.errors import InvalidSearchCriteria
from darf_engine.services.types import (
    AggregateCriteria,
    FilterCriteria,
    PageRequest,
    YearMonth,
)

router = APIRouter(prefix="/documents", tags=["documents"])

PageParam = Annotated[int, Query(ge=0)]
SizeParam = Annotated[int, Query(ge=1, le=100)]

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    422: {"model": ErrorResponse},
}


def _parse_period(value: str | None, field: str = "period") -> YearMonth | None:
    if value is None:
        return None
    try:
        return YearMonth.parse(value)
    except ValueError as exc:
        raise InvalidSearchCriteria(field, str(exc)) from None


# ============================================================================
# Document CRUD
# ============================================================================


@router.post(
    "",
    response_model=DocumentResponse,
    status_code=status.HTTP_201_CREATED,
    responses=ERROR_RESPONSES,
)
async def create_document(
    service: DocumentServiceDep,
    payload: DocumentCreate,
) -> DocumentResponse:
    """Register a document and calculate its withholding."""
    document = await service.create(payload.to_draft())
    return DocumentResponse.model_validate(document)


@router.get("", response_model=DocumentPageResponse, responses=ERROR_RESPONSES)
async def list_documents(
    engine: QueryEngineDep,
    page: PageParam = 0,
    size: SizeParam = 20,
    status_filter: Annotated[DocumentStatus | None, Query(alias="status")] = None,
) -> DocumentPageResponse:
    """List documents, newest first, optionally restricted to one status."""
    page_request = PageRequest(page=page, size=size)
    if status_filter is not None:
        result = await engine.list_by_status(status_filter, page_request)
    else:
        result = await engine.list_documents(page_request)
    return DocumentPageResponse.from_page(result)


# ============================================================================
# Queries (declared before /{document_id})
# ============================================================================


@router.get("/filter", response_model=DocumentPageResponse, responses=ERROR_RESPONSES)
async def filter_documents(
    engine: QueryEngineDep,
    payer_id: str | None = None,
    status_filter: Annotated[DocumentStatus | None, Query(alias="status")] = None,
    org_unit: OrgUnit | None = None,
    document_number: str | None = None,
    invoice_number: int | None = None,
    fiscal_code: str | None = None,
    income_nature_code: str | None = None,
    invoice_year: int | None = None,
    invoice_month: int | None = None,
    payment_year: int | None = None,
    payment_month: int | None = None,
    period: Annotated[str | None, Query(description="YYYY-MM")] = None,
    page: PageParam = 0,
    size: SizeParam = 20,
) -> DocumentPageResponse:
    """Filter documents by any combination of criteria."""
    criteria = FilterCriteria(
        payer_id=payer_id,
        status=status_filter,
        org_unit=org_unit,
        document_number=document_number,
        invoice_number=invoice_number,
        fiscal_code=fiscal_code,
        income_nature_code=income_nature_code,
        invoice_year=invoice_year,
        invoice_month=invoice_month,
        payment_year=payment_year,
        payment_month=payment_month,
        period=_parse_period(period),
    )
    result = await engine.filter_documents(criteria, PageRequest(page=page, size=size))
    return DocumentPageResponse.from_page(result)


@router.get(
    "/aggregates", response_model=AggregateReportResponse, responses=ERROR_RESPONSES
)
async def aggregate_documents(
    engine: QueryEngineDep,
    org_unit: OrgUnit | None = None,
    invoice_year: int | None = None,
    invoice_month: int | None = None,
    payment_year: int | None = None,
    payment_month: int | None = None,
    status_filter: Annotated[DocumentStatus | None, Query(alias="status")] = None,
) -> AggregateReportResponse:
    """Totals per org unit (both when org_unit is omitted)."""
    report = await engine.aggregate(
        AggregateCriteria(
            org_unit=org_unit,
            invoice_year=invoice_year,
            invoice_month=invoice_month,
            payment_year=payment_year,
            payment_month=payment_month,
            status=status_filter,
        )
    )
    return AggregateReportResponse.from_report(report)


@router.get(
    "/aggregates/yearly/{year}",
    response_model=YearlyReportResponse,
    responses=ERROR_RESPONSES,
)
async def aggregate_year(
    engine: QueryEngineDep,
    year: Annotated[int, Path()],
) -> YearlyReportResponse:
    """Month-by-month totals of one invoice year."""
    report = await engine.aggregate_year(year)
    return YearlyReportResponse.from_report(report)


@router.get(
    "/withheld-totals", response_model=PeriodTotalsResponse, responses=ERROR_RESPONSES
)
async def withheld_totals(
    engine: QueryEngineDep,
    year: int,
    month: int,
    org_unit: OrgUnit,
) -> PeriodTotalsResponse:
    """Totals of paid documents invoiced in a month."""
    totals = await engine.total_withheld_for_period(year, month, org_unit)
    return PeriodTotalsResponse.from_totals(totals, year, month, org_unit)


@router.get("/paid-payers", response_model=PayerPageResponse, responses=ERROR_RESPONSES)
async def paid_payers(
    engine: QueryEngineDep,
    period: Annotated[str, Query(description="YYYY-MM")],
    org_unit: OrgUnit,
    page: PageParam = 0,
    size: SizeParam = 20,
) -> PayerPageResponse:
    """Distinct payers with documents paid during a period."""
    result = await engine.paid_payers(
        _parse_period(period), org_unit, PageRequest(page=page, size=size)
    )
    return PayerPageResponse(
        items=result.items,
        total=result.total,
        page=result.page,
        page_size=result.size,
        total_pages=result.total_pages,
    )


@router.get(
    "/by-number/{document_number}",
    response_model=DocumentResponse,
    responses=ERROR_RESPONSES,
)
async def get_by_document_number(
    engine: QueryEngineDep,
    document_number: Annotated[str, Path()],
    org_unit: OrgUnit | None = None,
) -> DocumentResponse:
    """Resolve a document number; org_unit disambiguates duplicates."""
    document = await engine.find_by_document_number(document_number, org_unit)
    return DocumentResponse.model_validate(document)


@router.get(
    "/autocomplete", response_model=DocumentPageResponse, responses=ERROR_RESPONSES
)
async def autocomplete(
    engine: QueryEngineDep,
    term: str,
    org_unit: OrgUnit | None = None,
    page: int | None = None,
    size: int | None = None,
    limit: int | None = None,
) -> DocumentPageResponse:
    """Documents whose number starts with the term."""
    result = await engine.autocomplete(
        term, org_unit=org_unit, page=page, size=size, limit=limit
    )
    return DocumentPageResponse.from_page(result)


# ============================================================================
# Single document
# ============================================================================


@router.get(
    "/{document_id}", response_model=DocumentResponse, responses=ERROR_RESPONSES
)
async def get_document(
    service: DocumentServiceDep,
    document_id: Annotated[UUID, Path()],
) -> DocumentResponse:
    document = await service.get(document_id)
    return DocumentResponse.model_validate(document)


@router.put(
    "/{document_id}", response_model=DocumentResponse, responses=ERROR_RESPONSES
)
async def update_document(
    service: DocumentServiceDep,
    document_id: Annotated[UUID, Path()],
    payload: DocumentCreate,
) -> DocumentResponse:
    """Replace a document and recalculate its withholding."""
    document = await service.update(document_id, payload.to_draft())
    return DocumentResponse.model_validate(document)


@router.patch(
    "/{document_id}/pay", response_model=DocumentResponse, responses=ERROR_RESPONSES
)
async def pay_document(
    service: DocumentServiceDep,
    document_id: Annotated[UUID, Path()],
    payload: Annotated[PaymentRequest | None, Body()] = None,
) -> DocumentResponse:
    """Mark a document as paid (today unless a payment date is given)."""
    paid_on = payload.payment_date if payload is not None else None
    document = await service.mark_as_paid(document_id, paid_on)
    return DocumentResponse.model_validate(document)


@router.delete(
    "/{document_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses=ERROR_RESPONSES,
)
async def delete_document(
    service: DocumentServiceDep,
    document_id: Annotated[UUID, Path()],
) -> Response:
    await service.delete(document_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
