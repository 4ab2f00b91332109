"""Withholding engine services."""

from darf_engine.services.document_service import DocumentService
from darf_engine.services.query_engine import (
    Ambiguous,
    LookupResult,
    NotFound,
    QueryEngine,
    Unique,
)
from darf_engine.services.record_validator import RecordValidator
from darf_engine.services.status_resolver import StatusResolver

__all__ = [
    "DocumentService",
    "QueryEngine",
    "LookupResult",
    "Unique",
    "Ambiguous",
    "NotFound",
    "RecordValidator",
    "StatusResolver",
]
