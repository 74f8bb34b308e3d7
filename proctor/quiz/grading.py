"""Combine finished attempts into one grade per user, and keep stored grades consistent."""

from __future__ import annotations

import logging
import statistics
import typing as t

from proctor.lib.lock import KeyedLock
from proctor.model import Activity, ActivityID, Attempt, BandCount, FeedbackBand, GradeSummary, GradingStrategy, \
    UserID

from .errors import ConfigurationError
from .ports import Repository

logger = logging.getLogger(__name__)

# below this, a sum of marks or grade counts as zero
MarkEpsilon = 0.000005
# grades closer than this are considered unchanged
GradeEpsilon = 1e-7


def best_grade(strategy: GradingStrategy, attempts: t.Sequence[Attempt]) -> float | None:
    """The raw mark representing `attempts`, which must be ordered by attempt number."""
    if not attempts:
        return None

    match strategy:
        case GradingStrategy.First:
            return attempts[0].sum_of_marks

        case GradingStrategy.Last:
            return attempts[-1].sum_of_marks

        case GradingStrategy.Average:
            marks = [a.sum_of_marks for a in attempts if a.sum_of_marks is not None]
            if not marks:
                return None
            return sum(marks) / len(marks)

        case GradingStrategy.Highest:
            marks = [a.sum_of_marks for a in attempts if a.sum_of_marks is not None]
            return max(marks) if marks else None


def best_attempt(strategy: GradingStrategy, attempts: t.Sequence[Attempt]) -> Attempt | None:
    """The attempt that counts towards the grade.

    For Highest, ties go to the earliest attempt. Average has no single
    counting attempt, so the last one is reported.
    """
    if not attempts:
        return None

    match strategy:
        case GradingStrategy.First:
            return attempts[0]

        case GradingStrategy.Last | GradingStrategy.Average:
            return attempts[-1]

        case GradingStrategy.Highest:
            best: Attempt | None = None
            for attempt in attempts:
                if attempt.sum_of_marks is None:
                    continue
                if best is None or attempt.sum_of_marks > t.cast(float, best.sum_of_marks):
                    best = attempt
            return best


@t.overload
def rescale(raw: float, sum_of_part_marks: float, max_grade: float) -> float: ...


@t.overload
def rescale(raw: None, sum_of_part_marks: float, max_grade: float) -> None: ...


def rescale(raw: float | None, sum_of_part_marks: float, max_grade: float) -> float | None:
    """Convert a raw mark out of `sum_of_part_marks` into a grade out of `max_grade`."""
    if raw is None:
        return None
    if sum_of_part_marks >= MarkEpsilon:
        return raw * max_grade / sum_of_part_marks
    return 0.0


def validate_feedback_bands(bands: t.Sequence[FeedbackBand], max_grade: float) -> None:
    if not bands:
        return

    if abs(bands[0].min_grade) > MarkEpsilon:
        raise ConfigurationError(f"the lowest feedback band must start at 0, not {bands[0].min_grade}")

    previous: FeedbackBand | None = None
    for band in bands:
        if band.max_grade <= band.min_grade:
            raise ConfigurationError(f"feedback band [{band.min_grade}, {band.max_grade}) is empty or inverted")
        if previous is not None:
            if band.min_grade < previous.max_grade - MarkEpsilon:
                raise ConfigurationError(
                    f"feedback bands overlap at [{band.min_grade}, {previous.max_grade})"
                )
            if band.min_grade > previous.max_grade + MarkEpsilon:
                raise ConfigurationError(f"gap between feedback bands at [{previous.max_grade}, {band.min_grade})")
        previous = band

    if bands[-1].max_grade < max_grade - MarkEpsilon:
        raise ConfigurationError(
            f"feedback bands stop at {bands[-1].max_grade}, short of the maximum grade {max_grade}"
        )


def feedback_for_grade(grade: float | None, bands: t.Sequence[FeedbackBand]) -> FeedbackBand | None:
    if grade is None or not bands:
        return None

    # negative marking can push a grade below zero
    grade = max(grade, 0.0)

    for band in bands:
        if band.min_grade <= grade < band.max_grade:
            return band

    top = bands[-1]
    if top.min_grade <= grade <= top.max_grade + MarkEpsilon:
        return top
    return None


def scale_bands(bands: t.Sequence[FeedbackBand], factor: float) -> tuple[FeedbackBand, ...]:
    return tuple(
        b.model_copy(update={"min_grade": b.min_grade * factor, "max_grade": b.max_grade * factor}) for b in bands
    )


class GradeAggregator(object):
    """Keeps the stored per-user grades of an activity in step with its attempts."""

    def __init__(self, repository: Repository, locks: KeyedLock[tuple[ActivityID, UserID]] | None = None):
        self.repository = repository
        self.locks = locks if locks is not None else KeyedLock()

    def calculate(self, activity: Activity, attempts: t.Sequence[Attempt]) -> float | None:
        raw = best_grade(activity.grading_strategy, attempts)
        return rescale(raw, activity.sum_of_part_marks, activity.max_grade)

    def save_best_grade(self, activity: Activity, user_id: UserID, *, now: int) -> float | None:
        """Recompute and store one user's grade.

        Two attempts finishing together for the same user are serialized here,
        so the stored value always reflects every finished attempt.
        """
        with self.locks.hold((activity.activity_id, user_id)):
            attempts = self.repository.get_finished_attempts(activity.activity_id, user_id)
            grade = self.calculate(activity, attempts)
            self.repository.upsert_grade(activity.activity_id, user_id, grade, now=now)

        logger.debug(
            "saved best grade",
            extra={
                "activity_id": activity.activity_id,
                "user_id": user_id,
                "attempts": len(attempts),
                "grade": grade,
            },
        )
        return grade

    def update_all_final_grades(self, activity: Activity, *, now: int) -> int:
        """Recompute every user's grade from raw marks; returns how many grades changed."""
        if not activity.sum_of_part_marks:
            return 0

        stored = {g.user_id: g.grade for g in self.repository.get_grades(activity.activity_id)}
        changed = 0
        for user_id in self.repository.list_graded_users(activity.activity_id):
            with self.locks.hold((activity.activity_id, user_id)):
                attempts = self.repository.get_finished_attempts(activity.activity_id, user_id)
                grade = self.calculate(activity, attempts)
                old = stored.get(user_id)
                if old is None and grade is None:
                    continue
                if old is not None and grade is not None and abs(grade - old) <= MarkEpsilon:
                    continue
                self.repository.upsert_grade(activity.activity_id, user_id, grade, now=now)
                changed += 1

        logger.info(
            "recomputed final grades",
            extra={
                "activity_id": activity.activity_id,
                "changed": changed,
            },
        )
        return changed

    def set_max_grade(self, new_max: float, activity: Activity, *, now: int) -> Activity:
        """Change the activity's maximum grade and bring stored grades and bands along.

        Stored grades are multiplied by `new_max / old_max` so they stay
        consistent with what users have already seen. A maximum below one is
        too small to scale from safely, so grades are recomputed from raw
        marks instead.
        """
        if new_max < 0:
            raise ConfigurationError(f"maximum grade must not be negative: {new_max}")

        old_max = activity.max_grade
        if abs(old_max - new_max) < GradeEpsilon:
            return activity

        bands = activity.feedback_bands
        if old_max > GradeEpsilon:
            bands = scale_bands(bands, new_max / old_max)
        updated = activity.model_copy(update={"max_grade": new_max, "feedback_bands": bands})
        self.repository.save_activity(updated)

        if old_max < 1:
            self.update_all_final_grades(updated, now=now)
        else:
            factor = new_max / old_max
            for grade in self.repository.get_grades(activity.activity_id):
                with self.locks.hold((activity.activity_id, grade.user_id)):
                    self.repository.upsert_grade(activity.activity_id, grade.user_id, grade.grade * factor, now=now)

        logger.info(
            "changed maximum grade",
            extra={
                "activity_id": activity.activity_id,
                "old_max": old_max,
                "new_max": new_max,
                "recomputed": old_max < 1,
            },
        )
        return updated

    def summarize(self, activity: Activity) -> GradeSummary:
        grades = [g.grade for g in self.repository.get_grades(activity.activity_id)]
        bands = tuple(
            BandCount(
                min_grade=b.min_grade,
                max_grade=b.max_grade,
                count=sum(1 for g in grades if feedback_for_grade(g, activity.feedback_bands) == b),
            )
            for b in activity.feedback_bands
        )
        if not grades:
            return GradeSummary(activity_id=activity.activity_id, count=0, bands=bands)

        return GradeSummary(
            activity_id=activity.activity_id,
            count=len(grades),
            mean=statistics.fmean(grades),
            median=statistics.median(grades),
            minimum=min(grades),
            maximum=max(grades),
            standard_deviation=statistics.pstdev(grades) if len(grades) > 1 else 0.0,
            bands=bands,
        )
