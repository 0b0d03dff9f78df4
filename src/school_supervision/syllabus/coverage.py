"""Helpers for syllabus coverage reports."""

from datetime import date
from typing import Iterable, List, Mapping, Optional, Sequence

from ..dates import parse_date
from ..models import Branch, BranchCoverage, CoverageStatus, SessionContext, SyllabusCoverageReport, Teacher
from ..storage import new_record_id


def default_branches(subject: str, branch_map: Mapping[str, Sequence[str]]) -> List[BranchCoverage]:
    """Fresh on-track rows for every branch of a subject."""
    return [
        BranchCoverage(branch_name=name, status=CoverageStatus.ON_TRACK, percentage=100)
        for name in branch_map.get(subject, ())
    ]


def add_branch(report: SyllabusCoverageReport, branch_name: str) -> SyllabusCoverageReport:
    name = branch_name.strip()
    if not name:
        return report
    row = BranchCoverage(branch_name=name, status=CoverageStatus.ON_TRACK, percentage=100)
    return report.model_copy(update={"branches": [*report.branches, row]})


def new_coverage_report(
    session: SessionContext,
    semester: str = "الأول",
    today: Optional[date] = None,
    taken_ids: Iterable[str] = ()
) -> SyllabusCoverageReport:
    """Empty report owned by the session's school, year and user."""
    today = today or date.today()
    return SyllabusCoverageReport(
        id=new_record_id("scr", taken_ids),
        school_name=session.selected_school,
        academic_year=session.academic_year,
        author_id=session.current_user.id if session.current_user else None,
        semester=semester,
        date=today.isoformat(),
        meetings_attended="0",
    )


def inherit_branch(
    report: SyllabusCoverageReport,
    teacher_id: str,
    reports: Iterable[SyllabusCoverageReport]
) -> SyllabusCoverageReport:
    """Assign a teacher, taking the branch from that teacher's latest other report."""
    previous = [r for r in reports if r.teacher_id == teacher_id and r.id != report.id]
    previous.sort(key=lambda r: parse_date(r.date) or date.min, reverse=True)
    branch = (previous[0].branch if previous else None) or report.branch or Branch.MAIN.value
    return report.model_copy(update={"teacher_id": teacher_id, "branch": branch})


def filter_coverage_reports(
    reports: Iterable[SyllabusCoverageReport],
    teachers: Sequence[Teacher],
    name: str = "",
    subject: str = "",
    grade: str = "",
    status: str = "all"
) -> List[SyllabusCoverageReport]:
    """
    Substring filters on teacher name, subject and grade, and a branch status
    filter (``all`` or a status any branch must have).
    """
    names = {t.id: t.name for t in teachers}
    selected = []
    for report in reports:
        if name and name not in names.get(report.teacher_id, ""):
            continue
        if subject and subject not in report.subject:
            continue
        if grade and grade not in report.grade:
            continue
        if status != "all" and not any(b.status == status for b in report.branches):
            continue
        selected.append(report)
    return selected
