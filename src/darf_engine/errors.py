"""Business error taxonomy for the withholding engine.

Every error carries a stable ``code`` and the offending keys so the
presentation layer can render a precise message. Nothing here is retried
by the engine.
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID


class DarfEngineError(Exception):
    """Base class for all engine errors."""

    code = "ENGINE_ERROR"

    def context(self) -> dict[str, Any]:
        """Return the keys that produced this error."""
        return {}


# =============================================================================
# Validation errors (caller-correctable)
# =============================================================================


class ValidationError(DarfEngineError):
    """Input was well-formed but violates a business rule."""

    code = "VALIDATION_ERROR"


class InvalidGrossAmount(ValidationError):
    """Raised when the gross amount is missing, zero or negative."""

    code = "INVALID_GROSS_AMOUNT"

    def __init__(self, gross_amount: Decimal | None):
        self.gross_amount = gross_amount
        super().__init__(
            f"Gross amount must be greater than zero (got {gross_amount})"
        )

    def context(self) -> dict[str, Any]:
        return {"gross_amount": str(self.gross_amount)}


class InvalidPaymentDate(ValidationError):
    """Raised when the payment date precedes the invoice date."""

    code = "INVALID_PAYMENT_DATE"

    def __init__(self, invoice_date: date, payment_date: date):
        self.invoice_date = invoice_date
        self.payment_date = payment_date
        super().__init__(
            f"Payment date {payment_date} cannot be earlier than "
            f"invoice date {invoice_date}"
        )

    def context(self) -> dict[str, Any]:
        return {
            "invoice_date": self.invoice_date.isoformat(),
            "payment_date": self.payment_date.isoformat(),
        }


class InvalidFilterRange(ValidationError):
    """Raised when a year or month filter falls outside its allowed range."""

    code = "INVALID_FILTER_RANGE"

    def __init__(self, field: str, value: int, minimum: int, maximum: int):
        self.field = field
        self.value = value
        self.minimum = minimum
        self.maximum = maximum
        super().__init__(
            f"{field} must be between {minimum} and {maximum} (got {value})"
        )

    def context(self) -> dict[str, Any]:
        return {
            "field": self.field,
            "value": self.value,
            "minimum": self.minimum,
            "maximum": self.maximum,
        }


class InvalidSearchCriteria(ValidationError):
    """Raised when a search criterion is present but unusable."""

    code = "INVALID_SEARCH_CRITERIA"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"{field}: {reason}")

    def context(self) -> dict[str, Any]:
        return {"field": self.field, "reason": self.reason}


# =============================================================================
# Conflict errors (business-state conflicts)
# =============================================================================


class ConflictError(DarfEngineError):
    """The request collides with records already stored."""

    code = "CONFLICT"


class DuplicateInvoice(ConflictError):
    """Raised when payer, invoice number and org unit are already registered."""

    code = "DUPLICATE_INVOICE"

    def __init__(self, payer_id: str, invoice_number: int, org_unit: str):
        self.payer_id = payer_id
        self.invoice_number = invoice_number
        self.org_unit = org_unit
        super().__init__(
            f"A document already exists for payer {payer_id} with invoice "
            f"number {invoice_number} in org unit {org_unit}"
        )

    def context(self) -> dict[str, Any]:
        return {
            "payer_id": self.payer_id,
            "invoice_number": self.invoice_number,
            "org_unit": self.org_unit,
        }


class DuplicateDocumentNumber(ConflictError):
    """Raised when a document number is already used in the org unit."""

    code = "DUPLICATE_DOCUMENT_NUMBER"

    def __init__(self, document_number: str, org_unit: str):
        self.document_number = document_number
        self.org_unit = org_unit
        super().__init__(
            f"Document number '{document_number}' is already registered "
            f"in org unit {org_unit}"
        )

    def context(self) -> dict[str, Any]:
        return {"document_number": self.document_number, "org_unit": self.org_unit}


class AmbiguousDocumentNumber(ConflictError):
    """Raised when a document number lookup cannot pick a single record."""

    code = "AMBIGUOUS_DOCUMENT_NUMBER"

    def __init__(
        self,
        document_number: str,
        org_unit_hint: str | None,
        org_units_found: Sequence[str],
    ):
        self.document_number = document_number
        self.org_unit_hint = org_unit_hint
        self.org_units_found = list(org_units_found)
        found = ", ".join(self.org_units_found)
        if org_unit_hint is None:
            msg = (
                f"Document number '{document_number}' exists in more than one "
                f"org unit ({found}); specify the org unit"
            )
        else:
            msg = (
                f"Document number '{document_number}' could not be resolved "
                f"for org unit {org_unit_hint} (found in: {found})"
            )
        super().__init__(msg)

    def context(self) -> dict[str, Any]:
        return {
            "document_number": self.document_number,
            "org_unit_hint": self.org_unit_hint,
            "org_units_found": self.org_units_found,
        }


# =============================================================================
# Not-found errors
# =============================================================================


class NotFoundError(DarfEngineError):
    """Nothing matched; distinct from an empty successful result."""

    code = "NOT_FOUND"


class RecordNotFound(NotFoundError):
    """Raised when a single record lookup finds nothing."""

    code = "RECORD_NOT_FOUND"

    def __init__(self, key: str, value: UUID | str):
        self.key = key
        self.value = value
        super().__init__(f"Document with {key} '{value}' not found")

    def context(self) -> dict[str, Any]:
        return {self.key: str(self.value)}


class NoMatchingRecords(NotFoundError):
    """Raised when a filtered query or aggregation matched nothing."""

    code = "NO_MATCHING_RECORDS"

    def __init__(self, criteria: str):
        self.criteria = criteria
        if criteria:
            msg = f"No documents found matching: {criteria}"
        else:
            msg = "No documents found"
        super().__init__(msg)

    def context(self) -> dict[str, Any]:
        return {"criteria": self.criteria}


# =============================================================================
# Domain lookup errors (catalog integrity)
# =============================================================================


class DomainLookupError(DarfEngineError):
    """A catalog key did not resolve; always fatal to the operation."""

    code = "DOMAIN_LOOKUP_ERROR"


class InvalidFiscalCode(DomainLookupError):
    """Raised when a fiscal code is not in the rate table."""

    code = "INVALID_FISCAL_CODE"

    def __init__(self, fiscal_code: str | None, message: str | None = None):
        self.fiscal_code = fiscal_code
        super().__init__(message or f"Invalid fiscal code: {fiscal_code!r}")

    def context(self) -> dict[str, Any]:
        return {"fiscal_code": self.fiscal_code}


class IncomeNatureMismatch(InvalidFiscalCode):
    """Raised when an explicit fiscal code disagrees with the income nature."""

    code = "INCOME_NATURE_MISMATCH"

    def __init__(self, fiscal_code: str, income_nature_code: str, expected: str):
        self.income_nature_code = income_nature_code
        self.expected = expected
        super().__init__(
            fiscal_code,
            f"Fiscal code {fiscal_code} does not match income nature "
            f"{income_nature_code} (expected {expected})",
        )

    def context(self) -> dict[str, Any]:
        return {
            "fiscal_code": self.fiscal_code,
            "income_nature_code": self.income_nature_code,
            "expected_fiscal_code": self.expected,
        }


class UnknownIncomeNature(DomainLookupError):
    """Raised when an income-nature code is not in the catalog."""

    code = "UNKNOWN_INCOME_NATURE"

    def __init__(self, income_nature_code: str):
        self.income_nature_code = income_nature_code
        super().__init__(f"Unknown income nature code: {income_nature_code!r}")

    def context(self) -> dict[str, Any]:
        return {"income_nature_code": self.income_nature_code}
