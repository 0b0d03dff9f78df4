"""Syllabus plans: progress comparison and coverage reports."""

from .comparator import (
    find_plan,
    expected_lesson_index,
    taught_lesson_index,
    compare_progress,
    planned_lesson_for,
)
from .coverage import (
    default_branches,
    add_branch,
    new_coverage_report,
    inherit_branch,
    filter_coverage_reports,
)

__all__ = [
    "find_plan",
    "expected_lesson_index",
    "taught_lesson_index",
    "compare_progress",
    "planned_lesson_for",
    "default_branches",
    "add_branch",
    "new_coverage_report",
    "inherit_branch",
    "filter_coverage_reports",
]
