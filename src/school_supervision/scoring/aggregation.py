"""
Per-teacher aggregation of evaluation reports (the final report table).

For every teacher, each criterion label gets the mean of its scores across the
teacher's reports in which it occurs. A teacher's percentage is
``100 * sum(means) / (4 * active criteria)`` where only labels that actually
occurred count as active. Column footers follow the same rule across
teachers, and the school average is the mean of teacher percentages.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..dates import DateLike, within
from ..models import ClassSessionReport, Teacher, branch_label
from ..models.reports import MAX_CRITERION_SCORE

logger = logging.getLogger(__name__)

PLACEHOLDER = "---"


@dataclass
class CriterionTally:
    total: float = 0.0
    count: int = 0

    def add(self, score: float) -> None:
        self.total += score
        self.count += 1

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0


@dataclass
class TeacherRow:
    """One teacher's line in the final report."""
    teacher_id: str
    name: str
    subject: str
    grade: str
    branch: str
    criteria_averages: Dict[str, float]
    criteria_active: Dict[str, bool]
    total_score: float
    percentage: float
    visit_count: int
    supervisor: str


@dataclass
class ColumnStat:
    total: float = 0.0
    count: int = 0

    @property
    def mean(self) -> float:
        return self.total / self.count if self.count else 0.0

    @property
    def percentage(self) -> float:
        return self.mean / MAX_CRITERION_SCORE * 100


@dataclass
class FinalReport:
    criteria_labels: List[str]
    rows: List[TeacherRow] = field(default_factory=list)
    column_stats: Dict[str, ColumnStat] = field(default_factory=dict)

    @property
    def school_average(self) -> float:
        """Mean of teacher percentages; 0 with no rows."""
        if not self.rows:
            return 0.0
        return sum(row.percentage for row in self.rows) / len(self.rows)

    @property
    def first_supervisor(self) -> str:
        return self.rows[0].supervisor if self.rows else PLACEHOLDER


@dataclass
class FinalReportFilter:
    """Selection of class-session reports feeding the final report."""
    school: Optional[str] = None
    sub_type: str = "brief"
    branch: Optional[str] = None
    teacher_id: Optional[str] = None
    subject: Optional[str] = None
    visit_type: Optional[str] = None
    semester: Optional[str] = None
    start_date: DateLike = None
    end_date: DateLike = None

    def matches(self, report, teacher: Optional[Teacher]) -> bool:
        if not isinstance(report, ClassSessionReport):
            return False
        if self.school and report.school != self.school:
            return False
        if report.sub_type != self.sub_type:
            return False
        if self.branch and (teacher is None or teacher.branch != self.branch):
            return False
        if self.teacher_id and report.teacher_id != self.teacher_id:
            return False
        if self.subject and report.subject != self.subject:
            return False
        if self.visit_type and report.visit_type != self.visit_type:
            return False
        if self.semester and report.semester != self.semester:
            return False
        return within(report.date, self.start_date, self.end_date)


def criteria_labels_of(reports: Iterable) -> List[str]:
    """Distinct criterion labels in first-seen order."""
    seen: Dict[str, None] = {}
    for report in reports:
        for criterion in report.criterion_items():
            seen.setdefault(criterion.label, None)
    return list(seen)


def aggregate_by_teacher(
    reports: Sequence,
    criteria_universe: Optional[Sequence[str]] = None,
    teachers: Iterable[Teacher] = ()
) -> FinalReport:
    """
    Build the final report table.

    ``criteria_universe`` lists the columns (template labels); scores for labels
    outside it are ignored. Without it, every label seen in the reports is a
    column. Reports whose teacher is not in ``teachers`` are skipped.
    """
    labels = list(dict.fromkeys(criteria_universe)) if criteria_universe is not None else criteria_labels_of(reports)
    teacher_map: Mapping[str, Teacher] = {t.id: t for t in teachers}

    tallies: Dict[str, Dict[str, CriterionTally]] = {}
    visits: Dict[str, int] = {}
    supervisors: Dict[str, str] = {}
    skipped = 0

    for report in reports:
        if report.teacher_id not in teacher_map:
            skipped += 1
            continue
        teacher_tallies = tallies.setdefault(report.teacher_id, {label: CriterionTally() for label in labels})
        for criterion in report.criterion_items():
            tally = teacher_tallies.get(criterion.label)
            if tally is not None:
                tally.add(criterion.score)
        visits[report.teacher_id] = visits.get(report.teacher_id, 0) + 1
        if report.teacher_id not in supervisors:
            supervisors[report.teacher_id] = getattr(report, "supervisor_name", None) or PLACEHOLDER

    if skipped:
        logger.debug(f"Skipped {skipped} report(s) for teachers outside the table")

    rows = []
    for teacher_id, teacher_tallies in tallies.items():
        teacher = teacher_map[teacher_id]
        averages = {label: teacher_tallies[label].mean for label in labels}
        active = {label: teacher_tallies[label].count > 0 for label in labels}
        total = sum(averages.values())
        active_count = sum(1 for is_active in active.values() if is_active)
        rows.append(TeacherRow(
            teacher_id=teacher_id,
            name=teacher.name,
            subject=teacher.subjects or PLACEHOLDER,
            grade=teacher.grades_taught or PLACEHOLDER,
            branch=branch_label(teacher.branch if teacher.branch in ("boys", "girls") else "main"),
            criteria_averages=averages,
            criteria_active=active,
            total_score=total,
            percentage=total / (active_count * MAX_CRITERION_SCORE) * 100 if active_count else 0.0,
            visit_count=visits[teacher_id],
            supervisor=supervisors[teacher_id],
        ))

    column_stats = {label: ColumnStat() for label in labels}
    for row in rows:
        for label in labels:
            if row.criteria_active[label]:
                column_stats[label].total += row.criteria_averages[label]
                column_stats[label].count += 1

    return FinalReport(criteria_labels=labels, rows=rows, column_stats=column_stats)


def build_final_report(
    reports: Sequence,
    teachers: Sequence[Teacher],
    report_filter: FinalReportFilter,
    criteria_universe: Optional[Sequence[str]] = None
) -> FinalReport:
    """Filter class-session reports, then aggregate them per teacher."""
    teacher_map = {t.id: t for t in teachers}
    selected = [r for r in reports if report_filter.matches(r, teacher_map.get(getattr(r, "teacher_id", None)))]
    return aggregate_by_teacher(selected, criteria_universe, teachers)
