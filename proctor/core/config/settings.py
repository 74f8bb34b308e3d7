import pydantic as p
from pydantic_settings import BaseSettings as PydanticBaseSettings
from pydantic_settings import PydanticBaseSettingsSource

from proctor.model import DeploymentEnvironment

from .base import BaseSettings
from .logging import LoggingSettings
from .quiz import QuizSettings
from .source import OverrideSettingsSource, YAMLCascadingSettingsSource, YAMLSecretsSource
from .storage import DatabaseSecrets, StorageSettings

SettingsField = p.Field(default=..., validate_default=True)


class RootedSettings(BaseSettings):
    """Settings read from YAML files under `root`, layered for `env`."""

    root: p.FileUrl
    env: DeploymentEnvironment


class Settings(RootedSettings):
    # `-o key.path=value` pairs from the command line
    override: tuple[str, ...] = ()

    logging: LoggingSettings = SettingsField
    storage: StorageSettings = SettingsField
    quiz: QuizSettings = QuizSettings()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[PydanticBaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # earlier sources win, so command line overrides go before the files they override
        return init_settings, OverrideSettingsSource(settings_cls), YAMLCascadingSettingsSource(settings_cls)


class Secrets(RootedSettings):
    """Credentials from `secrets.yaml`, kept apart from `Settings` so they are never logged with it."""

    database: DatabaseSecrets = DatabaseSecrets()

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[PydanticBaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return init_settings, YAMLSecretsSource(settings_cls)
