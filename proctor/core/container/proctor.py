from __future__ import annotations

import os
import types
import typing as t
from pathlib import Path

import pydantic as p
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Container, Object, Provider, Resource, Singleton

import proctor
from proctor.model import BaseModel, DeploymentEnvironment

from ..config import Secrets, Settings
from ..di import NotReady
from ..provider import LoggingProvider, TimestampProvider, unix_now
from .quiz import QuizContainer
from .storage import StorageContainer

BaseWiring: t.Final[tuple[str, ...]] = ("proctor.storage",)


class BootConfiguration(BaseModel):
    debug: bool
    env: DeploymentEnvironment
    config_root: p.AnyUrl
    override: tuple[str, ...]


class ProctorContainer(DeclarativeContainer):
    config: Configuration = Configuration()
    secrets: Configuration = Configuration()

    debug: Provider[bool] = Singleton(bool)
    env: Provider[DeploymentEnvironment] = Singleton(DeploymentEnvironment)
    root: Object[NotReady | Path] = Object(NotReady())

    logging: Provider[LoggingProvider] = Resource(LoggingProvider, config=config.logging, debug=debug)
    storage: Provider[StorageContainer] = Container(
        StorageContainer, config=config.storage, secrets=secrets, logging=logging, root=root
    )

    now: Provider[TimestampProvider] = Object(unix_now)

    quiz: Provider[QuizContainer] = Container(
        QuizContainer,
        config=config.quiz,
        session_factory=storage.provided.persistent.session_factory.call(),
        now=now,
    )

    _boot_config: Provider[BootConfiguration | NotReady] = Object(NotReady())

    @staticmethod
    def boot(
        ct: ProctorContainer,
        /,
        debug: bool,
        env: DeploymentEnvironment,
        config_root: p.FileUrl,
        override: tuple[str, ...] | None = None,
        wiring: tuple[str | types.ModuleType, ...] | None = None,
    ):
        if config_root.scheme != "file":
            raise ValueError(f"unsupported scheme for config root: {config_root.scheme}")
        ps = Settings(env=env, root=config_root, override=override or ())
        ct.config.from_pydantic(ps)
        ct.secrets.from_pydantic(Secrets(env=env, root=config_root))

        ct.debug.override(debug)
        ct.env.override(env)
        ct.root.override(Path(os.path.dirname(proctor.__file__)).parent)

        ct.wire(packages=list(BaseWiring))
        if wiring:
            ct.wire(modules=wiring)

        logger = ct.logging().get_logger()
        for ov in ps.override:
            k, v = ov.split("=", 1)
            logger.info("overriding configuration parameter", extra={"key": k, "value": v})

        logger.debug("configuration finished", extra={"config": str(config_root), "env": env.value})
        ct._boot_config.override(
            BootConfiguration(debug=debug, env=env, config_root=config_root, override=override or ())
        )
