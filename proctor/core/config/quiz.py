import pydantic as p

from .base import BaseSettings


class SweepSettings(BaseSettings):
    # activities swept concurrently; the attempts of one activity never are
    max_workers: int = p.Field(default=1, ge=1)


class QuizSettings(BaseSettings):
    sweep: SweepSettings = SweepSettings()
