from __future__ import annotations

import alembic.command
import alembic.config

import proctor.lib.cli as click
from proctor.core import di


@click.group("schema")
def schema():
    """Inspect and migrate the database schema (see migrations/)."""
    ...


@schema.command()
@click.option("--verbose", "-v", is_flag=True, default=False)
@di.inject
def current(verbose: bool, conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    """Show the revision the database is at."""
    alembic.command.current(conf, verbose=verbose)


@schema.command()
@click.argument("revision", default="head")
@click.option("--sql", is_flag=True, default=False, help="print the DDL instead of running it")
@di.inject
def upgrade(revision: str, sql: bool, conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.upgrade(conf, revision, sql=sql)


@schema.command()
@click.argument("revision")
@click.option("--sql", is_flag=True, default=False, help="print the DDL instead of running it")
@di.inject
def downgrade(
    revision: str, sql: bool, conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]
):
    alembic.command.downgrade(conf, revision, sql=sql)


@schema.command()
@di.inject
def history(conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    alembic.command.history(conf, indicate_current=True)


@schema.command()
@click.argument("message")
@click.option("--autogenerate", is_flag=True, default=False, help="diff the tables against the database")
@di.inject
def revision(
    message: str, autogenerate: bool, conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]
):
    """Create a new migration script."""
    alembic.command.revision(conf, message, autogenerate=autogenerate)


@schema.command()
@click.argument("revision")
@di.inject
def stamp(revision: str, conf: alembic.config.Config = di.Provide["storage.persistent.alembic_config"]):
    """Record `revision` as current without running any migration."""
    alembic.command.stamp(conf, revision)
