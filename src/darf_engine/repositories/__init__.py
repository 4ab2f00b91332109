"""Record store contract and implementations."""

from darf_engine.repositories.base import RecordStore
from darf_engine.repositories.sqlalchemy_store import SqlAlchemyRecordStore

__all__ = ["RecordStore", "SqlAlchemyRecordStore"]
