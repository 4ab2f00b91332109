"""Document service - write side of the withholding engine."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from darf_engine.calculators.income_nature import get_income_nature
from darf_engine.calculators.types import WithholdingDetail
from darf_engine.calculators.withholding_calculator import WithholdingCalculator
from darf_engine.errors import IncomeNatureMismatch, RecordNotFound
from darf_engine.models import FiscalDocument, Withholding
from darf_engine.services.record_validator import RecordValidator
from darf_engine.services.status_resolver import StatusResolver
from darf_engine.services.types import DocumentDraft

if TYPE_CHECKING:
    from darf_engine.repositories.base import RecordStore

logger = logging.getLogger(__name__)


class DocumentService:
    """Creates, updates, pays and deletes fiscal documents.

    Every write runs the same pipeline:
    validate → resolve income nature → calculate → derive status → save

    Nothing is written to the stored document until validation and
    calculation have both succeeded.
    """

    def __init__(
        self,
        store: RecordStore,
        validator: RecordValidator | None = None,
        calculator: WithholdingCalculator | None = None,
    ):
        self.store = store
        self.validator = validator or RecordValidator(store)
        self.calculator = calculator or WithholdingCalculator()

    async def create(self, draft: DocumentDraft) -> FiscalDocument:
        """Validate, calculate and persist a new document.

        Raises:
            ValidationError, ConflictError, DomainLookupError subclasses
        """
        await self.validator.validate(draft)
        detail = self._calculate(draft)

        document = FiscalDocument(document_id=uuid4())
        document.assign_draft(draft)
        document.withholding = Withholding.from_detail(detail)
        StatusResolver.apply(document)

        document = await self.store.save(document)
        logger.info(
            "Created document %s in %s (fiscal code %s, withheld %s)",
            document.document_number,
            document.org_unit,
            detail.fiscal_code,
            detail.total_withheld,
        )
        return document

    async def get(self, document_id: UUID) -> FiscalDocument:
        document = await self.store.find_by_id(document_id)
        if document is None:
            raise RecordNotFound("id", document_id)
        return document

    async def update(self, document_id: UUID, draft: DocumentDraft) -> FiscalDocument:
        """Replace a document's fields and recalculate its withholding.

        Raises:
            RecordNotFound: If no document has this id
            ValidationError, ConflictError, DomainLookupError subclasses
        """
        document = await self.get(document_id)

        await self.validator.validate(draft, is_update=True, exclude_id=document_id)
        detail = self._calculate(draft)

        document.assign_draft(draft)
        if document.withholding is None:
            document.withholding = Withholding.from_detail(detail)
        else:
            document.withholding.apply_detail(detail)
        previous_status = document.status
        StatusResolver.apply(document)

        document = await self.store.save(document)
        if previous_status != document.status:
            logger.info(
                "Document %s status %s -> %s",
                document.document_number,
                previous_status,
                document.status,
            )
        logger.info("Updated document %s", document_id)
        return document

    async def mark_as_paid(
        self, document_id: UUID, paid_on: date | None = None
    ) -> FiscalDocument:
        """Record a payment date and re-run the update pipeline."""
        document = await self.get(document_id)
        draft = DocumentDraft.from_document(document)
        draft.payment_date = paid_on or date.today()
        return await self.update(document_id, draft)

    async def delete(self, document_id: UUID) -> None:
        await self.get(document_id)
        await self.store.delete_by_id(document_id)
        logger.info("Deleted document %s", document_id)

    def _calculate(self, draft: DocumentDraft) -> WithholdingDetail:
        """Resolve the fiscal code from the income nature, then calculate.

        Raises:
            UnknownIncomeNature: If the nature code is not in the catalog
            IncomeNatureMismatch: If an explicit fiscal code disagrees
                with the nature's code
            InvalidFiscalCode: If the fiscal code has no rate entry
        """
        nature = get_income_nature(draft.income_nature_code)

        fiscal_code = (draft.fiscal_code or "").strip() or nature.fiscal_code
        if fiscal_code != nature.fiscal_code:
            raise IncomeNatureMismatch(fiscal_code, nature.code, nature.fiscal_code)

        return self.calculator.apply(replace(draft, fiscal_code=fiscal_code))
