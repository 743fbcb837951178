"""
Core configuration
"""

import os

import pytest_asyncio
import structlog

from caretree.config.settings import Settings


@pytest_asyncio.fixture(scope="session")
def database_container(tmp_path_factory):
    # SQLite by default; set CARETREE_TEST_POSTGRES=1 to run against a real
    # PostgreSQL server in a container.
    if os.environ.get("CARETREE_TEST_POSTGRES"):
        from testcontainers.postgres import PostgresContainer

        with PostgresContainer() as container:
            yield {
                "database_type": "postgres",
                "database_user": container.username,
                "database_password": container.password,
                "database_port": container.get_exposed_port(container.port),
                "database_host": "localhost",
                "database_db": container.dbname,
                "database_echo": False,
            }
    else:
        yield {
            "database_type": "sqlite",
            "database_db": str(tmp_path_factory.mktemp("database") / "caretree.db"),
            "database_echo": False,
        }


@pytest_asyncio.fixture(scope="session")
def server_settings(database_container):
    yield Settings(**database_container)


@pytest_asyncio.fixture(scope="session")
async def session_manager(server_settings: Settings):
    manager = server_settings.async_manager()
    yield manager
    await manager.dispose()


@pytest_asyncio.fixture(scope="session")
def logger():
    yield structlog.get_logger()


@pytest_asyncio.fixture
async def database(session_manager):
    """
    A fresh, empty schema for every test.
    """
    await session_manager.drop_all()
    await session_manager.create_all()
    yield
