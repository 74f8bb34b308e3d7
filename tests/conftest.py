"""Fixtures shared by the quiz and storage tests.

Storage tests run against a fresh in-memory SQLite database per test; the
schema is created from the table metadata, so no migration step is needed.
"""

from __future__ import annotations

import itertools
import typing as t

import pytest
import sqlalchemy
import sqlalchemy.orm
import sqlalchemy.pool

from proctor.model import Activity, ActivityID, Attempt, AttemptID, AttemptState, FeedbackBand, GroupID, Override, \
    OverrideID, UserID
from proctor.storage.repository import SQLRepository
from proctor.storage.table import metadata

T0 = 1_700_000_000


class Clock(object):
    """A settable clock in unix seconds."""

    def __init__(self, now: int = T0):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, seconds: int) -> int:
        self.now += seconds
        return self.now


@pytest.fixture
def clock() -> Clock:
    return Clock()


@pytest.fixture
def engine() -> t.Generator[sqlalchemy.Engine]:
    engine = sqlalchemy.create_engine(
        "sqlite+pysqlite:///:memory:",
        poolclass=sqlalchemy.pool.StaticPool,
        connect_args={"check_same_thread": False},
    )
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine: sqlalchemy.Engine) -> sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session]:
    return sqlalchemy.orm.sessionmaker(engine, expire_on_commit=False, autoflush=False, autobegin=False)


@pytest.fixture
def session(
    session_factory: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session],
) -> t.Generator[sqlalchemy.orm.Session]:
    """A session with an open transaction, for calling the storage functions directly."""
    with session_factory() as session:
        with session.begin():
            yield session


@pytest.fixture
def sql_repository(
    session_factory: sqlalchemy.orm.sessionmaker[sqlalchemy.orm.Session], clock: Clock
) -> SQLRepository:
    return SQLRepository(session_factory, clock=clock)


# factories


def _make_activity(**kwargs: t.Any) -> Activity:
    params: dict[str, t.Any] = {
        "activity_id": ActivityID(),
        "name": "Weekly quiz",
        "max_grade": 10.0,
        "sum_of_part_marks": 100.0,
    }
    params.update(kwargs)
    return Activity(**params)


_attempt_numbers = itertools.count(1)


def _make_attempt(activity: Activity, user_id: UserID, **kwargs: t.Any) -> Attempt:
    params: dict[str, t.Any] = {
        "attempt_id": AttemptID(),
        "activity_id": activity.activity_id,
        "user_id": user_id,
        "attempt_number": next(_attempt_numbers),
        "start_time": T0,
        "state": AttemptState.InProgress,
    }
    params.update(kwargs)
    return Attempt(**params)


def _make_user_override(activity: Activity, user_id: UserID, **kwargs: t.Any) -> Override:
    return Override(override_id=OverrideID(), activity_id=activity.activity_id, user_id=user_id, **kwargs)


def _make_group_override(activity: Activity, group_id: GroupID, **kwargs: t.Any) -> Override:
    return Override(override_id=OverrideID(), activity_id=activity.activity_id, group_id=group_id, **kwargs)


def _make_bands(*edges: float, texts: t.Sequence[str] | None = None) -> tuple[FeedbackBand, ...]:
    """Bands between consecutive edges, e.g. `make_bands(0, 5, 10)` gives [0, 5) and [5, 10]."""
    texts = texts or [f"band {i}" for i in range(len(edges) - 1)]
    return tuple(
        FeedbackBand(min_grade=lo, max_grade=hi, text=text) for lo, hi, text in zip(edges, edges[1:], texts)
    )


@pytest.fixture
def user_id() -> UserID:
    return UserID()


@pytest.fixture
def t0() -> int:
    return T0


@pytest.fixture
def activity_factory() -> t.Callable[..., Activity]:
    return _make_activity


@pytest.fixture
def attempt_factory() -> t.Callable[..., Attempt]:
    return _make_attempt


@pytest.fixture
def user_override_factory() -> t.Callable[..., Override]:
    return _make_user_override


@pytest.fixture
def group_override_factory() -> t.Callable[..., Override]:
    return _make_group_override


@pytest.fixture
def band_factory() -> t.Callable[..., tuple[FeedbackBand, ...]]:
    return _make_bands
