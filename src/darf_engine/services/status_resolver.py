"""Document status derivation from the payment date."""

from __future__ import annotations

from datetime import date
from typing import TYPE_CHECKING, Protocol

from darf_engine.calculators.types import DocumentStatus

if TYPE_CHECKING:
    from darf_engine.models import FiscalDocument


class HasPaymentDate(Protocol):
    payment_date: date | None


class StatusResolver:
    """Derives a document's lifecycle status.

    - payment date present → PAID
    - payment date absent → SETTLED (amount recognized, not yet paid)

    Status supplied by callers is never trusted; apply() always overwrites it.
    """

    @classmethod
    def resolve(cls, record: HasPaymentDate) -> DocumentStatus:
        """Return the status implied by a record's payment date."""
        if record.payment_date is not None:
            return DocumentStatus.PAID
        return DocumentStatus.SETTLED

    @classmethod
    def apply(cls, document: FiscalDocument) -> DocumentStatus:
        """Overwrite a document's status with the derived one."""
        status = cls.resolve(document)
        document.status = status.value
        return status

    @classmethod
    def is_paid(cls, record: HasPaymentDate) -> bool:
        return cls.resolve(record) == DocumentStatus.PAID
