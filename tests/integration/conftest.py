"""Integration test fixtures: the ASGI app bound to the test session."""

from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from darf_engine.api.app import create_app
from darf_engine.api.dependencies import get_db_session


@pytest.fixture
async def client(session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client whose requests share the test database session."""
    app = create_app()

    async def override_db_session() -> AsyncGenerator[AsyncSession, None]:
        yield session

    app.dependency_overrides[get_db_session] = override_db_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


def document_payload(**overrides) -> dict:
    """JSON body for POST/PUT /api/v1/documents."""
    payload = {
        "org_unit": "PRIMARY",
        "document_number": "202NS000001",
        "payer_id": "12345678000190",
        "invoice_number": 1,
        "invoice_date": "2024-03-10",
        "payment_date": None,
        "income_nature_code": "17040",
        "withholding": {"gross_amount": "1000.00"},
    }
    payload.update(overrides)
    return payload
