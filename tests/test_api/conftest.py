"""
Fixtures for the HTTP API tests.
"""

import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from caretree.api.app import app
from caretree.api.dependencies import get_async_session


@pytest_asyncio.fixture
async def client(session_manager, database):
    async def get_test_session():
        async with session_manager.session() as session:
            async with session.begin():
                yield session

    app.dependency_overrides[get_async_session] = get_test_session

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as client:
        yield client

    app.dependency_overrides.clear()
