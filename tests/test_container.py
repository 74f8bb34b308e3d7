from __future__ import annotations

import subprocess
import sys
import typing as t
from pathlib import Path

import pydantic as p
import pytest
from click.testing import CliRunner
from pydantic_settings import SettingsError

import proctor
from proctor.cli import main
from proctor.core import ProctorContainer
from proctor.core.config import LoggingSettings, Settings
from proctor.model import Activity, AttemptState, DeploymentEnvironment, UserID
from proctor.storage.table import metadata

from .conftest import Clock

ConfigRoot = p.FileUrl(f"file://{Path(proctor.__file__).resolve().parents[1] / 'config'}")


@pytest.fixture
def container(clock: Clock) -> t.Generator[ProctorContainer]:
    ct = ProctorContainer()
    ProctorContainer.boot(ct, debug=False, env=DeploymentEnvironment.Test, config_root=ConfigRoot)
    ct.now.override(clock)
    metadata.create_all(ct.storage.persistent.engine())
    yield ct
    ct.shutdown_resources()
    ct.unwire()


class TestImports(object):
    """Each entry point imports cleanly in a fresh interpreter, whatever is loaded first."""

    @pytest.mark.parametrize(
        "module",
        [
            "proctor.storage.repository",
            "proctor.storage.activity",
            "proctor.core",
            "proctor.cli",
        ],
    )
    def test_import_first(self, module: str) -> None:
        result = subprocess.run(
            [sys.executable, "-c", f"import {module}"],
            cwd=Path(proctor.__file__).resolve().parents[1],
            capture_output=True,
            text=True,
        )
        assert result.returncode == 0, result.stderr


class TestSettings(object):
    """Configuration comes from config/*.yaml, then config/env.d/<env>/, then `-o` overrides."""

    def test_environment_files_win_over_root(self) -> None:
        settings = Settings(env=DeploymentEnvironment.Test, root=ConfigRoot, override=())

        assert settings.storage.persistent.database.driver == "sqlite+pysqlite"
        assert settings.storage.persistent.database.database == ":memory:"
        assert settings.quiz.sweep.max_workers == 1
        # untouched keys survive the merge
        assert "console" in settings.logging.handlers

    def test_root_only_for_local(self) -> None:
        settings = Settings(env=DeploymentEnvironment.Local, root=ConfigRoot, override=())

        assert settings.storage.persistent.database.driver == "postgresql+psycopg"
        assert settings.quiz.sweep.max_workers == 4

    def test_overrides_win_over_files(self) -> None:
        settings = Settings(
            env=DeploymentEnvironment.Test,
            root=ConfigRoot,
            override=("quiz.sweep.max_workers=3", "storage.persistent.echo=true"),
        )

        assert settings.quiz.sweep.max_workers == 3
        assert settings.storage.persistent.echo is True
        assert settings.storage.persistent.database.driver == "sqlite+pysqlite"

    def test_malformed_override(self) -> None:
        with pytest.raises(SettingsError):
            Settings(env=DeploymentEnvironment.Test, root=ConfigRoot, override=("quiz.sweep.max_workers",))

    def test_logging_references_are_checked(self) -> None:
        with pytest.raises(p.ValidationError):
            LoggingSettings(
                formatters={},
                handlers={"console": {"class": "logging.StreamHandler", "formatter": "plain"}},
                root={"handlers": ["console"]},
            )


class TestContainer(object):
    def test_attempt_lifecycle(
        self, container: ProctorContainer, clock: Clock, activity_factory: t.Callable[..., Activity]
    ) -> None:
        service = container.quiz.service()
        activity = activity_factory(time_limit_seconds=600, max_attempts=1)
        service.save_activity(activity)
        user_id = UserID()

        started = service.start_attempt(activity.activity_id, user_id)
        assert started.attempt is not None
        assert started.attempt.check_time == clock.now + 600

        clock.advance(700)
        assert service.sweep().transitioned == 1

        attempt = service.get_attempt(started.attempt.attempt_id)
        assert attempt.state is AttemptState.Abandoned
        assert not service.start_attempt(activity.activity_id, user_id).started

    def test_sweeper_uses_configured_workers(self, container: ProctorContainer) -> None:
        assert container.quiz.sweeper().max_workers == 1


class TestCommandLine(object):
    def test_migrate_then_sweep(self, tmp_path: Path) -> None:
        database = tmp_path / "proctor.db"
        common = ["-E", "test", "-o", f"storage.persistent.database.database={database}"]
        runner = CliRunner()

        result = runner.invoke(main, [*common, "schema", "upgrade"], obj=ProctorContainer())
        assert result.exit_code == 0, result.output
        assert database.exists()

        result = runner.invoke(main, [*common, "sweep", "run", "--now", "1700000000"], obj=ProctorContainer())
        assert result.exit_code == 0, result.output
        assert '"processed": 0' in result.output
