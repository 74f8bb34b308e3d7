import typing as t

from pydantic_settings import BaseSettings as PydanticBaseSettings
from pydantic_settings import PydanticBaseSettingsSource

from proctor.model import BaseModel


class BaseSettings(PydanticBaseSettings, BaseModel):  # pyright: ignore [reportIncompatibleVariableOverride]
    """
    A section of the configuration. Only the top-level `Settings` and
    `Secrets` read from files; a section is validated from the mapping it is
    given, which may also be passed positionally.
    """

    def __init__(self, cf: dict[str, t.Any] | None = None, **kwargs: t.Any):
        super().__init__(**{**(cf or {}), **kwargs})

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[PydanticBaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        # process environment variables never leak into defaults
        return (init_settings,)
