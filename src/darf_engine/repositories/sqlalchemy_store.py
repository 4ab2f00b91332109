"""SQLAlchemy implementation of the record store."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from sqlalchemy import ColumnElement, Select, extract, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from darf_engine.calculators.types import DocumentStatus, OrgUnit
from darf_engine.errors import (
    DarfEngineError,
    DuplicateDocumentNumber,
    DuplicateInvoice,
)
from darf_engine.models import FiscalDocument, Withholding
from darf_engine.services.types import (
    AggregateTotals,
    DocumentFilter,
    DocumentSort,
    Page,
    PageRequest,
    YearMonth,
)

logger = logging.getLogger(__name__)

# Unique constraint name -> constrained columns
UNIQUE_KEYS = {
    "fiscal_document_number_org_unit_key": ("document_number", "org_unit"),
    "fiscal_document_invoice_key": ("payer_id", "invoice_number", "org_unit"),
}


def violated_unique_key(exc: IntegrityError) -> str | None:
    """Name of the fiscal_document unique key an insert collided with.

    PostgreSQL reports the constraint name; SQLite only lists the columns.
    """
    message = str(exc.orig)
    for name, columns in UNIQUE_KEYS.items():
        column_list = ", ".join(f"fiscal_document.{c}" for c in columns)
        if name in message or column_list in message:
            return name
    return None


def conflict_for(document: FiscalDocument, key: str) -> DarfEngineError:
    if key == "fiscal_document_invoice_key":
        return DuplicateInvoice(
            document.payer_id, document.invoice_number, document.org_unit
        )
    return DuplicateDocumentNumber(document.document_number, document.org_unit)


class SqlAlchemyRecordStore:
    """Record store backed by an async SQLAlchemy session.

    Writes are flushed, not committed; the session owner decides the unit
    of work. Uniqueness races are stopped by the unique constraints on
    ``fiscal_document``.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def exists_invoice_triple(
        self,
        payer_id: str,
        invoice_number: int,
        org_unit: OrgUnit,
        exclude_id: UUID | None = None,
    ) -> bool:
        conditions = [
            FiscalDocument.payer_id == payer_id,
            FiscalDocument.invoice_number == invoice_number,
            FiscalDocument.org_unit == OrgUnit(org_unit).value,
        ]
        return await self._exists(conditions, exclude_id)

    async def exists_document_number(
        self,
        document_number: str,
        org_unit: OrgUnit,
        exclude_id: UUID | None = None,
    ) -> bool:
        conditions = [
            func.upper(FiscalDocument.document_number) == document_number.strip().upper(),
            FiscalDocument.org_unit == OrgUnit(org_unit).value,
        ]
        return await self._exists(conditions, exclude_id)

    async def find_all_by_document_number(
        self, document_number: str
    ) -> list[FiscalDocument]:
        result = await self.session.execute(
            select(FiscalDocument)
            .where(
                func.upper(FiscalDocument.document_number)
                == document_number.strip().upper()
            )
            .order_by(FiscalDocument.org_unit)
        )
        return list(result.scalars().all())

    async def find_page(
        self, document_filter: DocumentFilter, page_request: PageRequest
    ) -> Page[FiscalDocument]:
        query = (
            select(FiscalDocument)
            .join(Withholding, Withholding.document_id == FiscalDocument.document_id)
            .where(*self._conditions(document_filter))
        )

        total = await self._count(query)

        query = query.order_by(*self._ordering(page_request.sort))
        query = query.offset(page_request.offset).limit(page_request.size)
        result = await self.session.execute(query)

        return Page(
            items=list(result.scalars().all()),
            page=page_request.page,
            size=page_request.size,
            total=total,
        )

    async def find_aggregates(self, document_filter: DocumentFilter) -> AggregateTotals:
        withheld = (
            Withholding.withheld_ir
            + Withholding.withheld_csll
            + Withholding.withheld_cofins
            + Withholding.withheld_pis
        )
        query = (
            select(
                func.count(FiscalDocument.document_id),
                func.coalesce(func.sum(withheld), 0),
                func.coalesce(func.sum(Withholding.gross_amount), 0),
                func.coalesce(func.sum(Withholding.net_amount), 0),
            )
            .select_from(FiscalDocument)
            .join(Withholding, Withholding.document_id == FiscalDocument.document_id)
            .where(*self._conditions(document_filter))
        )
        result = await self.session.execute(query)
        count, total_withheld, gross, net = result.one()
        return AggregateTotals.from_row(count, total_withheld, gross, net)

    async def find_paid_payer_ids(
        self, org_unit: OrgUnit, period: YearMonth, page_request: PageRequest
    ) -> Page[str]:
        query = (
            select(FiscalDocument.payer_id)
            .where(
                FiscalDocument.status == DocumentStatus.PAID.value,
                FiscalDocument.org_unit == OrgUnit(org_unit).value,
                FiscalDocument.payment_date.is_not(None),
                extract("year", FiscalDocument.payment_date) == period.year,
                extract("month", FiscalDocument.payment_date) == period.month,
            )
            .distinct()
        )

        total = await self._count(query)

        query = query.order_by(FiscalDocument.payer_id)
        query = query.offset(page_request.offset).limit(page_request.size)
        result = await self.session.execute(query)

        return Page(
            items=list(result.scalars().all()),
            page=page_request.page,
            size=page_request.size,
            total=total,
        )

    async def save(self, document: FiscalDocument) -> FiscalDocument:
        """Flush a new or changed document.

        Raises:
            DuplicateInvoice, DuplicateDocumentNumber: If a concurrent writer
                registered the same keys after validation passed
        """
        self.session.add(document)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            key = violated_unique_key(exc)
            if key is None:
                raise
            logger.warning(
                "Lost uniqueness race on %s for document %s in %s",
                key,
                document.document_number,
                document.org_unit,
            )
            raise conflict_for(document, key) from exc
        return document

    async def delete_by_id(self, document_id: UUID) -> None:
        document = await self.find_by_id(document_id)
        if document is None:
            return
        await self.session.delete(document)
        await self.session.flush()
        logger.debug("Deleted document %s", document_id)

    async def find_by_id(self, document_id: UUID) -> FiscalDocument | None:
        return await self.session.get(FiscalDocument, document_id)

    async def _exists(
        self, conditions: list[ColumnElement[bool]], exclude_id: UUID | None
    ) -> bool:
        """Indexed existence probe; never loads the candidate rows."""
        if exclude_id is not None:
            conditions.append(FiscalDocument.document_id != exclude_id)
        found = await self.session.scalar(
            select(FiscalDocument.document_id).where(*conditions).limit(1)
        )
        return found is not None

    async def _count(self, query: Select[Any]) -> int:
        total = await self.session.scalar(
            select(func.count()).select_from(query.subquery())
        )
        return total or 0

    def _ordering(self, sort: DocumentSort) -> list[Any]:
        if sort == DocumentSort.DOCUMENT_NUMBER:
            return [FiscalDocument.document_number.asc(), FiscalDocument.org_unit.asc()]
        return [
            FiscalDocument.invoice_date.desc(),
            FiscalDocument.created_at.desc(),
            FiscalDocument.document_number.asc(),
        ]

    def _conditions(self, flt: DocumentFilter) -> list[ColumnElement[bool]]:
        """Translate a filter into AND-ed where clauses."""
        conditions: list[ColumnElement[bool]] = []

        if flt.payer_id is not None:
            conditions.append(FiscalDocument.payer_id == flt.payer_id)
        if flt.status is not None:
            conditions.append(FiscalDocument.status == DocumentStatus(flt.status).value)
        if flt.org_unit is not None:
            conditions.append(FiscalDocument.org_unit == OrgUnit(flt.org_unit).value)
        if flt.document_number is not None:
            conditions.append(
                func.upper(FiscalDocument.document_number)
                == flt.document_number.strip().upper()
            )
        if flt.document_number_prefix is not None:
            conditions.append(
                func.upper(FiscalDocument.document_number).startswith(
                    flt.document_number_prefix.strip().upper(), autoescape=True
                )
            )
        if flt.invoice_number is not None:
            conditions.append(FiscalDocument.invoice_number == flt.invoice_number)
        if flt.fiscal_code is not None:
            conditions.append(Withholding.fiscal_code == flt.fiscal_code)
        if flt.income_nature_code is not None:
            conditions.append(FiscalDocument.income_nature_code == flt.income_nature_code)

        # Invoice date dimension
        if flt.invoice_year is not None:
            conditions.append(extract("year", FiscalDocument.invoice_date) == flt.invoice_year)
        if flt.invoice_month is not None:
            conditions.append(
                extract("month", FiscalDocument.invoice_date) == flt.invoice_month
            )
        if flt.invoice_period is not None:
            conditions.append(
                extract("year", FiscalDocument.invoice_date) == flt.invoice_period.year
            )
            conditions.append(
                extract("month", FiscalDocument.invoice_date) == flt.invoice_period.month
            )

        # Payment date dimension: only documents that have been paid
        if flt.payment_year is not None or flt.payment_month is not None:
            conditions.append(FiscalDocument.payment_date.is_not(None))
        if flt.payment_year is not None:
            conditions.append(extract("year", FiscalDocument.payment_date) == flt.payment_year)
        if flt.payment_month is not None:
            conditions.append(
                extract("month", FiscalDocument.payment_date) == flt.payment_month
            )

        return conditions
