"""
Syllabus-progress comparator.

Compares the lesson actually taught on a date with the lesson the plan expects
by that date. Positions in the plan's lesson list decide the status:
taught after expected is ahead, before is behind.
"""

import logging
from typing import Iterable, Optional

from ..dates import DateLike, parse_date
from ..models import SyllabusLesson, SyllabusPlan, SyllabusProgress

logger = logging.getLogger(__name__)


def find_plan(
    plans: Iterable[SyllabusPlan],
    subject: str,
    grade: str,
    school: Optional[str] = None
) -> Optional[SyllabusPlan]:
    """First plan for the subject and grade (and school, when given) that has lessons."""
    for plan in plans:
        if plan.subject != subject or plan.grade != grade:
            continue
        if school and plan.school_tag and plan.school_tag != school:
            continue
        if plan.lessons:
            return plan
    return None


def expected_lesson_index(plan: SyllabusPlan, observed: DateLike) -> Optional[int]:
    """Index of the lesson with the latest planned date on or before ``observed``.

    Among lessons sharing that date, the last one in plan order wins.
    """
    day = parse_date(observed)
    if day is None:
        return None

    best_index = None
    best_date = None
    for index, lesson in enumerate(plan.lessons):
        planned = parse_date(lesson.planned_date)
        if planned is None or planned > day:
            continue
        if best_date is None or planned >= best_date:
            best_index, best_date = index, planned
    return best_index


def taught_lesson_index(plan: SyllabusPlan, lesson_name: str) -> Optional[int]:
    """Exact (trimmed) title match first, then containment either way."""
    name = (lesson_name or "").strip()
    if not name:
        return None
    titles = [lesson.title.strip() for lesson in plan.lessons]
    for index, title in enumerate(titles):
        if title == name:
            return index
    for index, title in enumerate(titles):
        if title and (name in title or title in name):
            return index
    return None


def compare_progress(plan: SyllabusPlan, observed_date: DateLike, taught_lesson: str) -> Optional[SyllabusProgress]:
    """
    Status of the taught lesson against the plan on ``observed_date``.

    Returns None when it cannot be computed: no lesson is planned on or before
    the date, the lesson name is empty, or it matches no lesson title.
    """
    expected = expected_lesson_index(plan, observed_date)
    if expected is None:
        return None
    taught = taught_lesson_index(plan, taught_lesson)
    if taught is None:
        logger.debug(f"Lesson {taught_lesson!r} not found in plan {plan.id}")
        return None

    difference = taught - expected
    if difference == 0:
        status = "on_track"
    elif difference > 0:
        status = "ahead"
    else:
        status = "behind"
    return SyllabusProgress(
        status=status,
        planned_lesson=plan.lessons[expected].title,
        lesson_difference=abs(difference),
    )


def planned_lesson_for(plan: SyllabusPlan, observed_date: DateLike) -> Optional[SyllabusLesson]:
    """The lesson planned exactly on the date, else the latest one planned before it."""
    day = parse_date(observed_date)
    if day is None:
        return None
    for lesson in plan.lessons:
        if parse_date(lesson.planned_date) == day:
            return lesson
    index = expected_lesson_index(plan, day)
    return plan.lessons[index] if index is not None else None
