"""Pytest fixtures for withholding engine tests."""

from __future__ import annotations

from collections.abc import Callable
from datetime import date
from decimal import Decimal
from typing import AsyncGenerator

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from darf_engine.calculators.types import OrgUnit
from darf_engine.models import Base, FiscalDocument
from darf_engine.repositories import SqlAlchemyRecordStore
from darf_engine.services import DocumentService, QueryEngine
from darf_engine.services.types import DocumentDraft

# In-memory SQLite shared by every connection of one engine
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

PAYER_A = "12345678000190"
PAYER_B = "98765432000110"


@pytest.fixture
async def engine():
    """Create a fresh test database per test."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
async def session(engine) -> AsyncGenerator[AsyncSession, None]:
    """Create a database session for each test."""
    session_factory = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )

    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def store(session: AsyncSession) -> SqlAlchemyRecordStore:
    return SqlAlchemyRecordStore(session)


@pytest.fixture
def document_service(store: SqlAlchemyRecordStore) -> DocumentService:
    return DocumentService(store)


@pytest.fixture
def query_engine(store: SqlAlchemyRecordStore) -> QueryEngine:
    return QueryEngine(store)


@pytest.fixture
def make_draft() -> Callable[..., DocumentDraft]:
    """Build a valid draft; keyword arguments override single fields.

    Defaults: PRIMARY org unit, income nature 17040 (fiscal code 6190),
    gross 1000.00, invoiced 2024-03-10, unpaid.
    """

    def _make(**overrides) -> DocumentDraft:
        values = {
            "org_unit": OrgUnit.PRIMARY,
            "document_number": "202NS000001",
            "payer_id": PAYER_A,
            "invoice_number": 1,
            "invoice_date": date(2024, 3, 10),
            "income_nature_code": "17040",
            "gross_amount": Decimal("1000.00"),
            "payment_date": None,
            "fiscal_code": None,
        }
        values.update(overrides)
        return DocumentDraft(**values)

    return _make


@pytest.fixture
async def seeded_documents(
    document_service: DocumentService,
    make_draft: Callable[..., DocumentDraft],
) -> list[FiscalDocument]:
    """Four documents across both org units, months and statuses.

    - 202NS000001 PRIMARY   payer A, March 2024, paid 2024-04-05, 1000.00 (6190)
    - 202NS000002 PRIMARY   payer B, March 2024, unpaid, 500.00 (6147)
    - 202NS000001 SECONDARY payer A, April 2024, unpaid, 2000.00 (6190)
    - 202NS000003 SECONDARY payer B, April 2024, paid 2024-04-20, 100.00 (6190)
    """
    drafts = [
        make_draft(payment_date=date(2024, 4, 5)),
        make_draft(
            document_number="202ns000002",
            payer_id=PAYER_B,
            invoice_number=2,
            income_nature_code="17009",
            gross_amount=Decimal("500.00"),
        ),
        make_draft(
            org_unit=OrgUnit.SECONDARY,
            invoice_number=3,
            invoice_date=date(2024, 4, 1),
            gross_amount=Decimal("2000.00"),
        ),
        make_draft(
            org_unit=OrgUnit.SECONDARY,
            document_number="202NS000003",
            payer_id=PAYER_B,
            invoice_number=4,
            invoice_date=date(2024, 4, 15),
            payment_date=date(2024, 4, 20),
            gross_amount=Decimal("100.00"),
        ),
    ]
    return [await document_service.create(draft) for draft in drafts]
