"""ORM models."""

from darf_engine.models.base import Base, TimestampMixin
from darf_engine.models.document import FiscalDocument, Withholding

__all__ = [
    "Base",
    "TimestampMixin",
    "FiscalDocument",
    "Withholding",
]
