from __future__ import annotations

import importlib
import sys
import threading
import traceback
import types
import typing as t
from pathlib import Path

import pydantic as p

import proctor
import proctor.lib.cli as click
import proctor.lib.json as json
from proctor.core import di, ProctorContainer
from proctor.model import DeploymentEnvironment

_configured = False
_ProctorRoot = Path(proctor.__file__).resolve().parents[1]

_wiring: list[types.ModuleType] = []


class ProctorMultiCommand(click.Group):
    def list_commands(self, ctx: click.Context) -> t.List[str]:
        return ["attempt", "grade", "schema", "sweep"]

    def get_command(self, ctx: click.Context, cmd_name: str) -> click.Command | None:
        global _wiring
        if cmd_name not in self.list_commands(ctx):
            return None
        mod = importlib.import_module(f"proctor.cli.{cmd_name}")
        _wiring.append(mod)
        return getattr(mod, cmd_name)


def echo_json(obj: t.Any) -> None:
    click.echo(json.dumps(obj, indent=2, sort_keys=True))


@click.group(cls=ProctorMultiCommand)
@click.option("-E", "--env", default=DeploymentEnvironment.Local, type=click.EnumType(DeploymentEnvironment))
@click.option("-c", "--config-root", default=_ProctorRoot / "config", type=click.DirectoryURLType())
@click.option(
    "-o",
    "--override",
    multiple=True,
    help="configuration path parameter-value pairs to override config with, e.g., -o quiz.sweep.max_workers=4",
)
@click.option("-D", "--debug", is_flag=True, default=False)
@click.pass_obj
def main(
    ct: ProctorContainer,
    env: DeploymentEnvironment,
    config_root: p.FileUrl,
    override: tuple[str, ...],
    debug: bool,
):
    global _configured, _wiring
    ProctorContainer.boot(
        ct,
        debug=debug,
        env=env,
        config_root=config_root,
        override=override,
        wiring=tuple(_wiring),
    )
    _configured = True


def execute_command(*_args: str) -> None:
    threading.current_thread().name = "proctor-0"
    args = list(_args or sys.argv)

    # Strip away full path to fix program name in help message
    args[0] = Path(args[0]).name
    container = ProctorContainer()

    try:
        with main.make_context(args[0], args=args[1:]) as ctx:
            ctx.obj = container
            rs = t.cast(int | None, main.invoke(ctx))
            sys.exit(rs or 0)
    except (EOFError, KeyboardInterrupt, click.Abort):
        click.echo("Aborted!", err=True)
        sys.exit(1)
    except click.exceptions.Exit as ex:
        sys.exit(ex.exit_code)
    except click.ClickException as ex:
        ex.show()
        sys.exit(ex.exit_code)
    except Exception as ex:
        click.echo(click.style("ERROR ", fg="red"), nl=False, err=True)
        click.echo(str(ex), err=True)

        if (_configured and container.debug()) or (not _configured and "-D" in args[1:]):
            traceback.print_exc()
        sys.exit(-1)
    finally:
        container.shutdown_resources()


def run() -> None:
    execute_command(*sys.argv)


__all__ = ["di", "echo_json", "execute_command", "main", "run"]
