from __future__ import annotations

import proctor.lib.cli as click
from proctor.core import di
from proctor.quiz import QuizService

from . import echo_json


@click.group("sweep")
def sweep(): ...


@sweep.command("run")
@click.option("--now", type=int, default=None, help="Unix time to sweep as of; defaults to the current time")
@di.inject
def sweep_run(now: int | None, service: QuizService = di.Provide["quiz.service"]) -> int:
    """Close every attempt whose deadline has passed.

    Exits non-zero when any attempt could not be processed; the others are
    still committed.
    """
    result = service.sweep(now=now)
    echo_json(
        {
            "processed": result.processed,
            "transitioned": result.transitioned,
            "failed": result.failed,
            "activities": result.activities,
            "failed_attempts": [str(a) for a in result.failed_attempts],
        }
    )
    return 1 if result.failed else 0
