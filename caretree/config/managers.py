"""
Core client, including session management.
"""

from sqlalchemy import URL, Engine, event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import sessionmaker
from sqlmodel import SQLModel, create_engine

from caretree.database.meta import ALL_TABLES


def _tables():
    return [table.__table__ for table in ALL_TABLES]


def _engine_options(isolation_level: str | None) -> dict:
    if isolation_level is None:
        return {}
    return {"isolation_level": isolation_level}


def _use_explicit_sqlite_transactions(engine: Engine):
    """
    The sqlite drivers defer BEGIN until the first write, which breaks
    SAVEPOINT handling and lets two writers interleave. Take over transaction
    control so that every transaction starts with an explicit BEGIN.
    """

    @event.listens_for(engine, "connect")
    def do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def do_begin(conn):
        conn.exec_driver_sql("BEGIN")


class SyncSessionManager:
    """
    A manager for synchronous sessions. Expected usage of this class to interact:

    manager = SyncSessionManager(conn_url)

    with manager.session() as conn:
        group = conn.get(Group, 1)
    """

    connection_url: URL
    engine: Engine
    session: sessionmaker

    def __init__(
        self,
        connection_url: URL,
        echo: bool = False,
        isolation_level: str | None = None,
    ):
        self.connection_url = connection_url
        self.engine = create_engine(
            self.connection_url, echo=echo, **_engine_options(isolation_level)
        )
        if self.connection_url.get_backend_name() == "sqlite":
            _use_explicit_sqlite_transactions(self.engine)
        self.session = sessionmaker(self.engine)

    def create_all(self):
        """
        Run the `SQLModel.metadata.create_all` migration tool. Required
        to set up the table schema.
        """
        with self.engine.begin() as conn:
            SQLModel.metadata.create_all(conn, tables=_tables())

    def drop_all(self):
        """
        Run the `SQLModel.metadata.drop_all` deletion method. WARNING: this
        will delete all data in your database; you probably don't want to do this
        unless you are writing a test.
        """
        with self.engine.begin() as conn:
            SQLModel.metadata.drop_all(conn, tables=_tables())


class AsyncSessionManager:
    """
    A manager for asynchronous sessions. Expected usage of this class to interact:

    manager = AsyncSessionManager(conn_url)

    async with manager.session() as conn:
        async with conn.begin():
            group = await groups_service.read_by_id(group_id=3, conn=conn, log=log)
    """

    connection_url: URL
    engine: AsyncEngine
    session: async_sessionmaker

    def __init__(
        self,
        connection_url: URL,
        echo: bool = False,
        isolation_level: str | None = None,
    ):
        self.connection_url = connection_url
        self.engine = create_async_engine(
            self.connection_url, echo=echo, **_engine_options(isolation_level)
        )
        if self.connection_url.get_backend_name() == "sqlite":
            _use_explicit_sqlite_transactions(self.engine.sync_engine)
        self.session = async_sessionmaker(self.engine, expire_on_commit=False)

    async def create_all(self):
        """
        Run the `SQLModel.metadata.create_all` migration tool. Required
        to set up the table schema.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all, tables=_tables())

    async def drop_all(self):
        """
        Run the `SQLModel.metadata.drop_all` deletion method. WARNING: this
        will delete all data in your database; you probably don't want to do this
        unless you are writing a test.
        """
        async with self.engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.drop_all, tables=_tables())

    async def dispose(self):
        await self.engine.dispose()
