"""
Dashboard analytics: criterion analysis, key metrics and usage statistics.
"""

import re
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from ..dates import DateLike, within
from ..models import Teacher
from ..models.reports import MAX_CRITERION_SCORE
from .percentages import score_of

ALL = "all"
DEFICIENCY_THRESHOLD = 50.0
UNKNOWN_TEACHER = "Unknown"

USAGE_FIELDS = ("strategies", "tools", "sources", "programs")


@dataclass
class TeacherCriterionDetail:
    name: str
    percentage: float
    count: int
    branch: str = ""


@dataclass
class CriterionAnalysis:
    """Overall and per-teacher performance on one criterion label."""
    label: str
    percentage: float
    count: int
    teacher_details: List[TeacherCriterionDetail] = field(default_factory=list)


@dataclass
class KeyMetrics:
    total_teachers: int
    total_reports: int
    overall_average: float


@dataclass
class UsageStatistics:
    """
    Share of reports mentioning strategies, tools, sources and programs.

    ``details`` maps each field to ``{item: {teacher name: count}}``.
    """
    total_reports: int
    percentages: Dict[str, float]
    details: Dict[str, Dict[str, Dict[str, int]]]


def _matches_sub_type(report, sub_type: Optional[str]) -> bool:
    if not sub_type or sub_type == ALL:
        return True
    if sub_type == "general":
        return report.evaluation_type == "general"
    return report.evaluation_type == "class_session" and getattr(report, "sub_type", None) == sub_type


def analyze_criteria(
    reports: Sequence,
    teachers: Sequence[Teacher],
    sub_type: Optional[str] = None,
    start_date: DateLike = None,
    end_date: DateLike = None,
    branch: Optional[str] = None,
    deficiency_only: bool = False,
    descending: bool = False
) -> List[CriterionAnalysis]:
    """
    Per criterion label, the overall percentage and every teacher's.

    ``sub_type`` is ``all``/None, ``general`` or a class-session sub type.
    With ``deficiency_only`` only teachers under 50% are listed and criteria
    left without teachers are dropped. Teacher details are always ascending;
    criteria are ascending (worst first) unless ``descending``.
    """
    teacher_map = {t.id: t for t in teachers}
    tallies: "OrderedDict[str, Dict]" = OrderedDict()

    for report in reports:
        if not _matches_sub_type(report, sub_type):
            continue
        if not within(report.date, start_date, end_date):
            continue
        teacher = teacher_map.get(report.teacher_id) if isinstance(report.teacher_id, str) else None
        if branch and branch != ALL and (teacher is None or teacher.branch != branch):
            continue

        for criterion in report.criterion_items():
            entry = tallies.setdefault(criterion.label, {"sum": 0, "count": 0, "teachers": OrderedDict()})
            entry["sum"] += criterion.score
            entry["count"] += 1
            per_teacher = entry["teachers"].setdefault(report.teacher_id, {
                "sum": 0,
                "count": 0,
                "name": teacher.name if teacher else UNKNOWN_TEACHER,
                "branch": (teacher.branch or "") if teacher else "",
            })
            per_teacher["sum"] += criterion.score
            per_teacher["count"] += 1

    results = []
    for label, data in tallies.items():
        details = [
            TeacherCriterionDetail(
                name=t["name"],
                percentage=t["sum"] / (t["count"] * MAX_CRITERION_SCORE) * 100,
                count=t["count"],
                branch=t["branch"],
            )
            for t in data["teachers"].values()
        ]
        if deficiency_only:
            details = [d for d in details if d.percentage < DEFICIENCY_THRESHOLD]
            if not details:
                continue
        details.sort(key=lambda d: d.percentage)
        results.append(CriterionAnalysis(
            label=label,
            percentage=data["sum"] / (data["count"] * MAX_CRITERION_SCORE) * 100,
            count=data["count"],
            teacher_details=details,
        ))

    results.sort(key=lambda item: item.percentage, reverse=descending)
    return results


def key_metrics(reports: Sequence, teachers: Sequence[Teacher]) -> KeyMetrics:
    total = len(reports)
    average = sum(score_of(r) for r in reports) / total if total else 0.0
    return KeyMetrics(total_teachers=len(teachers), total_reports=total, overall_average=average)


def split_items(value: Optional[str]) -> List[str]:
    """Split a free-text list: one ``- item`` per line, or comma separated."""
    if not value:
        return []
    if "\n" in value:
        lines = (re.sub(r"^- ", "", line).strip() for line in value.split("\n"))
        return [line for line in lines if line]
    return [item.strip() for item in re.split(r"[,،]\s*", value) if item.strip()]


def usage_statistics(
    reports: Sequence,
    teachers: Sequence[Teacher],
    start_date: DateLike = None,
    end_date: DateLike = None
) -> UsageStatistics:
    names = {t.id: t.name for t in teachers}
    selected = [r for r in reports if within(r.date, start_date, end_date)]
    total = len(selected)

    percentages: Dict[str, float] = {}
    details: Dict[str, Dict[str, Dict[str, int]]] = {}
    for name in USAGE_FIELDS:
        using = 0
        per_item: Dict[str, Dict[str, int]] = {}
        for report in selected:
            items = split_items(getattr(report, name, None))
            if not items:
                continue
            using += 1
            teacher_name = names.get(report.teacher_id, UNKNOWN_TEACHER) if isinstance(report.teacher_id, str) else UNKNOWN_TEACHER
            for item in items:
                counts = per_item.setdefault(item, {})
                counts[teacher_name] = counts.get(teacher_name, 0) + 1
        percentages[name] = using / total * 100 if total else 0.0
        details[name] = per_item

    return UsageStatistics(total_reports=total, percentages=percentages, details=details)
