"""
Main settings object.
"""

from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import URL

from .managers import AsyncSessionManager, SyncSessionManager


class Settings(BaseSettings):
    database_type: Literal["sqlite", "postgres"] = "sqlite"
    database_user: str | None = None
    database_password: str | None = None
    database_port: int | None = None
    database_host: str | None = None
    database_db: str = "caretree.db"

    database_echo: bool = False

    # Concurrent re-parents must not both pass the cycle check, so PostgreSQL
    # runs SERIALIZABLE unless told otherwise. SQLite already serializes
    # writers through its explicit BEGIN.
    database_isolation_level: str | None = None

    # Create the table schema when the API starts up. Schema migrations are
    # not handled; this only creates missing tables.
    create_tables: bool = False

    # Server setup, used by the CLI runner
    hostname: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(env_prefix="CARETREE_", env_file=".env")

    @property
    def sync_driver(self) -> str:
        match self.database_type:
            case "sqlite":
                return "sqlite"
            case "postgres":
                return "postgresql+psycopg"
            case _:
                raise ValueError

    @property
    def async_driver(self) -> str:
        match self.database_type:
            case "sqlite":
                return "sqlite+aiosqlite"
            case "postgres":
                return "postgresql+asyncpg"
            case _:
                raise ValueError

    @property
    def isolation_level(self) -> str | None:
        if self.database_isolation_level is not None:
            return self.database_isolation_level
        if self.database_type == "postgres":
            return "SERIALIZABLE"
        return None

    @property
    def sync_uri(self) -> URL:
        return URL.create(
            drivername=self.sync_driver,
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_db,
        )

    def sync_manager(self) -> SyncSessionManager:
        return SyncSessionManager(
            connection_url=self.sync_uri,
            echo=self.database_echo,
            isolation_level=self.isolation_level,
        )

    @property
    def async_uri(self) -> URL:
        return URL.create(
            drivername=self.async_driver,
            username=self.database_user,
            password=self.database_password,
            host=self.database_host,
            port=self.database_port,
            database=self.database_db,
        )

    def async_manager(self) -> AsyncSessionManager:
        return AsyncSessionManager(
            connection_url=self.async_uri,
            echo=self.database_echo,
            isolation_level=self.isolation_level,
        )
