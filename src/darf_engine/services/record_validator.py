"""Business-rule validation gating document creation and update."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID

from darf_engine.calculators.types import OrgUnit, quantize_money
from darf_engine.errors import (
    DuplicateDocumentNumber,
    DuplicateInvoice,
    InvalidGrossAmount,
    InvalidPaymentDate,
)

if TYPE_CHECKING:
    from darf_engine.repositories.base import RecordStore
    from darf_engine.services.types import DocumentDraft

logger = logging.getLogger(__name__)


def normalize_document_number(document_number: str) -> str:
    """Document numbers compare trimmed and case-insensitively."""
    return document_number.strip().upper()


class RecordValidator:
    """Validates a candidate document before it is calculated and saved.

    Rules, in order (first failure wins):
    1. Gross amount must be strictly positive once rounded to cents
    2. No other document with the same payer, invoice number and org unit
    3. No other document with the same document number and org unit;
       on success the candidate's document number is normalized in place
    4. Payment date, if any, must not precede the invoice date

    Duplicate checks are exact-match existence probes against the store.
    """

    def __init__(self, store: RecordStore):
        self.store = store

    async def validate(
        self,
        candidate: DocumentDraft,
        is_update: bool = False,
        exclude_id: UUID | None = None,
    ) -> None:
        """Run every rule against a candidate.

        Args:
            candidate: The draft being created or updated
            is_update: True when the candidate replaces a stored document
            exclude_id: The stored document's id (required on update)

        Raises:
            InvalidGrossAmount, DuplicateInvoice, DuplicateDocumentNumber,
            InvalidPaymentDate
        """
        if is_update and exclude_id is None:
            raise ValueError("exclude_id is required when validating an update")
        if not is_update:
            exclude_id = None

        self._check_gross_amount(candidate.gross_amount)
        await self._check_invoice_unique(candidate, exclude_id)
        await self._check_document_number_unique(candidate, exclude_id)
        self._check_payment_date(candidate)

    def _check_gross_amount(self, gross_amount: Decimal | None) -> None:
        # Compared at cent precision, the scale it is stored at
        if gross_amount is None or quantize_money(gross_amount) <= 0:
            logger.info("Rejected document: gross amount %s", gross_amount)
            raise InvalidGrossAmount(gross_amount)

    async def _check_invoice_unique(
        self, candidate: DocumentDraft, exclude_id: UUID | None
    ) -> None:
        org_unit = OrgUnit(candidate.org_unit)
        duplicated = await self.store.exists_invoice_triple(
            candidate.payer_id,
            candidate.invoice_number,
            org_unit,
            exclude_id=exclude_id,
        )
        if duplicated:
            logger.info(
                "Rejected document: invoice %s of payer %s already registered in %s",
                candidate.invoice_number,
                candidate.payer_id,
                org_unit.value,
            )
            raise DuplicateInvoice(
                candidate.payer_id, candidate.invoice_number, org_unit.value
            )

    async def _check_document_number_unique(
        self, candidate: DocumentDraft, exclude_id: UUID | None
    ) -> None:
        org_unit = OrgUnit(candidate.org_unit)
        normalized = normalize_document_number(candidate.document_number)
        duplicated = await self.store.exists_document_number(
            normalized, org_unit, exclude_id=exclude_id
        )
        if duplicated:
            logger.info(
                "Rejected document: number %s already registered in %s",
                normalized,
                org_unit.value,
            )
            raise DuplicateDocumentNumber(normalized, org_unit.value)

        candidate.document_number = normalized

    def _check_payment_date(self, candidate: DocumentDraft) -> None:
        if candidate.payment_date is None:
            return
        if candidate.payment_date < candidate.invoice_date:
            logger.info(
                "Rejected document %s: paid %s before invoice date %s",
                candidate.document_number,
                candidate.payment_date,
                candidate.invoice_date,
            )
            raise InvalidPaymentDate(candidate.invoice_date, candidate.payment_date)
