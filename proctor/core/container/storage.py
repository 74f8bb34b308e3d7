from __future__ import annotations

import typing as t
from pathlib import Path

import alembic.config
import sqlalchemy
import sqlalchemy.orm
import sqlalchemy.pool
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Container, Factory, Object, Provider, Resource, Singleton
from sqlalchemy.engine.url import URL as DSN

import proctor.lib.json as json

from ..config.storage import DatabaseSecrets, DatabaseSettings, PersistentSettings, StorageSettings
from ..di import NotReady
from ..provider import LoggingProvider


def render_dsn(config: DatabaseSettings, secrets: DatabaseSecrets) -> DSN:
    if config.is_sqlite:
        return DSN.create(config.driver, database=config.database)
    return DSN.create(
        config.driver,
        port=config.port,
        host=str(config.host) if config.host else None,
        username=secrets.username.get_secret_value() if secrets.username else None,
        password=secrets.password.get_secret_value() if secrets.password else None,
        database=config.database,
    )


def provide_alembic_conf(
    migration_path: Path, config: DatabaseSettings, secrets: DatabaseSecrets, root: Path | NotReady
) -> alembic.config.Config:
    if isinstance(root, NotReady):
        raise RuntimeError("root path is unavailable")

    escaped_str = render_dsn(config, secrets).render_as_string(hide_password=False).replace("%", "%%")

    ac = alembic.config.Config()
    ac.set_main_option("script_location", str(root / migration_path))
    ac.set_section_option("alembic", "sqlalchemy.url", escaped_str)
    ac.set_section_option("alembic", "file_template", "%%(year)d-%%(month).2d-%%(day).2d-%%(slug)s-%%(rev)s")
    return ac


def provide_engine(
    config: PersistentSettings, secrets: DatabaseSecrets, logging: LoggingProvider
) -> sqlalchemy.Engine:
    logger = logging.get_logger()
    db = config.database

    kwargs: dict[str, t.Any] = {}
    if db.is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if db.database == ":memory:":
            # every session must see the same in-memory database
            kwargs["poolclass"] = sqlalchemy.pool.StaticPool

    engine = sqlalchemy.create_engine(
        render_dsn(db, secrets),
        echo=config.echo,
        json_serializer=json.dumps,
        json_deserializer=json.loads,
        **kwargs,
    )
    logger.info(
        "initialized SQLAlchemy engine",
        extra={
            "driver": db.driver,
            "database": db.database,
            "host": db.host,
            "port": db.port,
        },
    )
    return engine


def provide_session_factory(engine: sqlalchemy.Engine) -> sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]:
    return sqlalchemy.orm.sessionmaker(engine, expire_on_commit=False, autoflush=False, autobegin=False)


def provide_session(
    session_factory: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
) -> sqlalchemy.orm.Session:
    """A new session; whoever asked for it closes it."""
    return session_factory()


class PersistentContainer(DeclarativeContainer):
    config = Configuration()
    secrets = Configuration()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    alembic_config: Provider[alembic.config.Config] = Singleton(
        provide_alembic_conf,
        migration_path=Path("migrations/"),
        config=config.database.as_(DatabaseSettings),
        secrets=secrets.database.as_(DatabaseSecrets),
        root=root,
    )
    engine: Provider[sqlalchemy.Engine] = Singleton(
        provide_engine,
        config=config.as_(PersistentSettings),
        secrets=secrets.database.as_(DatabaseSecrets),
        logging=logging,
    )
    session_factory: Provider[sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]] = Singleton(
        provide_session_factory, engine=engine
    )
    session: Provider[sqlalchemy.orm.Session] = Factory(provide_session, session_factory=session_factory)


class StorageContainer(DeclarativeContainer):
    config: Provider[StorageSettings] = Configuration(strict=True)
    secrets = Configuration()
    logging: Provider[LoggingProvider] = Resource()
    root: Provider[Path | NotReady] = Object()

    persistent: Provider[PersistentContainer] = Container(
        PersistentContainer, config=config.persistent, secrets=secrets, logging=logging, root=root
    )
