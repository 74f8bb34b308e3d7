from __future__ import annotations

import proctor.lib.cli as click
from proctor.core import di
from proctor.model import ActivityID
from proctor.quiz import QuizService

from . import echo_json


@click.group("grade")
def grade():
    """Recompute, rescale and summarize activity grades."""
    ...


@grade.command("recompute")
@click.argument("activity_id", type=click.KeyParamType(ActivityID))
@di.inject
def grade_recompute(activity_id: ActivityID, service: QuizService = di.Provide["quiz.service"]) -> int:
    changed = service.recompute_grades(activity_id)
    echo_json({"activity_id": activity_id, "changed": changed})
    return 0


@grade.command("set-max")
@click.argument("activity_id", type=click.KeyParamType(ActivityID))
@click.argument("max_grade", type=click.FloatRange(min=0))
@di.inject
def grade_set_max(activity_id: ActivityID, max_grade: float, service: QuizService = di.Provide["quiz.service"]) -> int:
    """Change the activity's maximum grade, rescaling stored grades and feedback bands."""
    activity = service.set_max_grade(activity_id, max_grade)
    echo_json({"activity_id": activity.activity_id, "max_grade": activity.max_grade, "bands": activity.feedback_bands})
    return 0


@grade.command("summary")
@click.argument("activity_id", type=click.KeyParamType(ActivityID))
@di.inject
def grade_summary(activity_id: ActivityID, service: QuizService = di.Provide["quiz.service"]) -> int:
    echo_json(service.summarize(activity_id))
    return 0
