from __future__ import annotations

import typing as t

import sqlalchemy.orm
from dependency_injector.containers import DeclarativeContainer
from dependency_injector.providers import Configuration, Dependency, Provider, Singleton

from proctor.lib.lock import KeyedLock
from proctor.quiz import AccessManager, AttemptStateMachine, GradeAggregator, LoggingNotifier, \
    OverdueAttemptSweeper, QuizService

from ..provider import TimestampProvider

if t.TYPE_CHECKING:
    from proctor.storage.repository import SQLRepository
    from proctor.storage.response import SQLResponseEngine

SessionFactory = sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]


# proctor.storage imports proctor.core for `di`; it is loaded when a provider is first called
def provide_repository(session_factory: SessionFactory, clock: TimestampProvider) -> SQLRepository:
    from proctor.storage.repository import SQLRepository

    return SQLRepository(session_factory, clock=clock)


def provide_response_engine(session_factory: SessionFactory) -> SQLResponseEngine:
    from proctor.storage.response import SQLResponseEngine

    return SQLResponseEngine(session_factory)


class QuizContainer(DeclarativeContainer):
    config = Configuration()
    session_factory: Provider[SessionFactory] = Dependency()
    now: Provider[TimestampProvider] = Dependency()

    repository: Provider[SQLRepository] = Singleton(provide_repository, session_factory=session_factory, clock=now)
    responses: Provider[SQLResponseEngine] = Singleton(provide_response_engine, session_factory=session_factory)
    notifications: Provider[LoggingNotifier] = Singleton(LoggingNotifier)

    # one lock table per process; transitions of an attempt and grade writes of a user never interleave
    attempt_locks: Provider[KeyedLock[t.Any]] = Singleton(KeyedLock)
    grade_locks: Provider[KeyedLock[t.Any]] = Singleton(KeyedLock)

    grades: Provider[GradeAggregator] = Singleton(GradeAggregator, repository=repository, locks=grade_locks)
    machine: Provider[AttemptStateMachine] = Singleton(
        AttemptStateMachine,
        repository=repository,
        responses=responses,
        notifications=notifications,
        grades=grades,
        locks=attempt_locks,
    )
    sweeper: Provider[OverdueAttemptSweeper] = Singleton(
        OverdueAttemptSweeper, machine=machine, repository=repository, max_workers=config.sweep.max_workers
    )
    access: Provider[AccessManager] = Singleton(AccessManager)
    service: Provider[QuizService] = Singleton(
        QuizService,
        repository=repository,
        machine=machine,
        sweeper=sweeper,
        grades=grades,
        access=access,
        clock=now,
    )
