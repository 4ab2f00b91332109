"""Record store protocol consumed by the validator and query engine.

Implementations must provide atomic single-record writes and consistent
reads, and must reject colliding uniqueness keys at write time (for
example through unique constraints): the validator's existence probes
followed by a separate save are not serialized by the engine.
"""

from __future__ import annotations

from typing import Protocol
from uuid import UUID

from darf_engine.calculators.types import OrgUnit
from darf_engine.models import FiscalDocument
from darf_engine.services.types import (
    AggregateTotals,
    DocumentFilter,
    Page,
    PageRequest,
    YearMonth,
)


class RecordStore(Protocol):
    """Persistence collaborator for fiscal documents."""

    async def exists_invoice_triple(
        self,
        payer_id: str,
        invoice_number: int,
        org_unit: OrgUnit,
        exclude_id: UUID | None = None,
    ) -> bool:
        """Exact-match probe on (payer id, invoice number, org unit)."""
        ...

    async def exists_document_number(
        self,
        document_number: str,
        org_unit: OrgUnit,
        exclude_id: UUID | None = None,
    ) -> bool:
        """Case-insensitive probe on (document number, org unit)."""
        ...

    async def find_all_by_document_number(
        self, document_number: str
    ) -> list[FiscalDocument]:
        """All documents sharing a document number, in any org unit."""
        ...

    async def find_page(
        self, document_filter: DocumentFilter, page_request: PageRequest
    ) -> Page[FiscalDocument]:
        """One page of documents matching the filter."""
        ...

    async def find_aggregates(self, document_filter: DocumentFilter) -> AggregateTotals:
        """Count, withheld, gross and net sums over matching documents."""
        ...

    async def find_paid_payer_ids(
        self, org_unit: OrgUnit, period: YearMonth, page_request: PageRequest
    ) -> Page[str]:
        """Distinct payer ids with paid documents in a payment period."""
        ...

    async def save(self, document: FiscalDocument) -> FiscalDocument:
        ...

    async def delete_by_id(self, document_id: UUID) -> None:
        ...

    async def find_by_id(self, document_id: UUID) -> FiscalDocument | None:
        ...
