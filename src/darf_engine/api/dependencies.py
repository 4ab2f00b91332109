"""FastAPI dependencies for dependency injection."""

from collections.abc import AsyncGenerator
from typing import Annotated

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from darf_engine.database import get_session
from darf_engine.repositories import SqlAlchemyRecordStore
from darf_engine.services import DocumentService, QueryEngine


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get database session dependency; commits when the request succeeds."""
    async with get_session() as session:
        yield session


# Type aliases for cleaner dependency injection
DbSession = Annotated[AsyncSession, Depends(get_db_session)]


def get_document_service(db: DbSession) -> DocumentService:
    return DocumentService(SqlAlchemyRecordStore(db))


def get_query_engine(db: DbSession) -> QueryEngine:
    return QueryEngine(SqlAlchemyRecordStore(db))


DocumentServiceDep = Annotated[DocumentService, Depends(get_document_service)]
QueryEngineDep = Annotated[QueryEngine, Depends(get_query_engine)]
