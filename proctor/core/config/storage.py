from __future__ import annotations

import typing as t

import pydantic as p

from .base import BaseSettings


class StorageSettings(BaseSettings):
    persistent: PersistentSettings


class PersistentSettings(BaseSettings):
    database: DatabaseSettings
    # echo every statement through the sqlalchemy.engine logger
    echo: bool = False


class DatabaseSettings(BaseSettings):
    driver: t.Literal["postgresql+psycopg", "sqlite+pysqlite"] = "postgresql+psycopg"
    host: p.IPvAnyAddress | str | None = None
    port: int | None = None
    # a file path for SQLite, or `:memory:`
    database: str

    @property
    def is_sqlite(self) -> bool:
        return self.driver.startswith("sqlite")


class DatabaseSecrets(BaseSettings):
    # not needed for SQLite
    username: p.Secret[str] | None = None
    password: p.Secret[str] | None = None
