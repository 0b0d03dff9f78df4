"""Report list filtering and ordering."""

from dataclasses import dataclass
from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence

from ..dates import DateLike, parse_date, within
from ..models import Teacher
from .percentages import round_half_up, score_of


@dataclass
class ReportFilter:
    """Criteria for the report list. Unset fields match everything."""
    evaluation_type: Optional[str] = None
    sub_type: Optional[str] = None
    teacher_id: Optional[str] = None
    search: Optional[str] = None
    school: Optional[str] = None
    branch: Optional[str] = None
    visit_type: Optional[str] = None
    semester: Optional[str] = None
    start_date: DateLike = None
    end_date: DateLike = None

    def matches(self, report, teacher_names: Mapping[str, str]) -> bool:
        if self.evaluation_type and report.evaluation_type != self.evaluation_type:
            return False
        if self.sub_type and getattr(report, "sub_type", None) != self.sub_type:
            return False
        if self.teacher_id and report.teacher_id != self.teacher_id:
            return False
        if self.search:
            name = teacher_names.get(report.teacher_id, "") if isinstance(report.teacher_id, str) else ""
            if self.search.strip().lower() not in name.lower():
                return False
        if self.school and report.school != self.school:
            return False
        if self.branch and getattr(report, "branch", None) != self.branch:
            return False
        if self.visit_type and getattr(report, "visit_type", None) != self.visit_type:
            return False
        if self.semester and getattr(report, "semester", None) != self.semester:
            return False
        return within(report.date, self.start_date, self.end_date)


def sort_by_date_desc(records: Iterable) -> List:
    """Most recent first. Stable, so equal dates keep their stored order."""
    # undated records sort last
    return sorted(records, key=lambda r: parse_date(getattr(r, "date", None)) or date.min, reverse=True)


def filter_reports(
    reports: Iterable,
    report_filter: Optional[ReportFilter] = None,
    teachers: Sequence[Teacher] = ()
) -> List:
    """Apply a filter and return the matches most recent first."""
    report_filter = report_filter or ReportFilter()
    names = {t.id: t.name for t in teachers}
    return sort_by_date_desc(r for r in reports if report_filter.matches(r, names))


def average_score(reports: Sequence) -> float:
    """Mean report percentage, rounded to 2 decimals; 0 for an empty list."""
    if not reports:
        return 0.0
    return round_half_up(sum(score_of(r) for r in reports) / len(reports), 2)
