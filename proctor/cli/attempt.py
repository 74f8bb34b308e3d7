"""Act on a single attempt the way the sweep or a page load would."""

from __future__ import annotations

import proctor.lib.cli as click
from proctor.core import di
from proctor.model import AttemptID
from proctor.quiz import QuizService, TransitionOutcome

from . import echo_json

NowOption = click.option("--now", type=int, default=None, help="Unix time to act as of; defaults to the current time")


def report(outcome: TransitionOutcome) -> None:
    echo_json(
        {
            "attempt": outcome.attempt,
            "previous_state": outcome.previous_state,
            "changed": outcome.changed,
            "events": [e.event_type for e in outcome.events],
        }
    )


@click.group("attempt")
def attempt(): ...


@attempt.command("check")
@click.argument("attempt_id", type=click.KeyParamType(AttemptID))
@click.option("--ip-address", default=None, help="Address the request came from, for subnet restrictions")
@NowOption
@di.inject
def attempt_check(
    attempt_id: AttemptID,
    ip_address: str | None,
    now: int | None,
    service: QuizService = di.Provide["quiz.service"],
) -> int:
    """Apply any deadline that has passed, then report whether the attempt may continue."""
    result = service.process_page(attempt_id, ip_address=ip_address, now=now)
    echo_json(
        {
            "attempt": result.attempt,
            "previous_state": result.outcome.previous_state,
            "may_continue": result.may_continue,
            "messages": result.messages,
            "time_left": result.time_left,
        }
    )
    return 0


@attempt.command("finish")
@click.argument("attempt_id", type=click.KeyParamType(AttemptID))
@NowOption
@di.inject
def attempt_finish(attempt_id: AttemptID, now: int | None, service: QuizService = di.Provide["quiz.service"]) -> int:
    report(service.finish_attempt(attempt_id, now=now))
    return 0


@attempt.command("abandon")
@click.argument("attempt_id", type=click.KeyParamType(AttemptID))
@NowOption
@di.inject
def attempt_abandon(attempt_id: AttemptID, now: int | None, service: QuizService = di.Provide["quiz.service"]) -> int:
    report(service.abandon_attempt(attempt_id, now=now))
    return 0
