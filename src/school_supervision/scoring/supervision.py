"""
Summaries of the supervisory records: tasks, meeting outcomes, peer visits,
delivery sheets and syllabus coverage.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from ..dates import DateLike, within
from ..models import (
    CoverageStatus,
    DeliverySheet,
    Meeting,
    PeerVisit,
    SyllabusCoverageReport,
    Task,
    Teacher,
    VisitStatus,
    WorkStatus,
)


@dataclass
class StatusBreakdown:
    """Counts of done / in progress / not done items with their percentages."""
    total: int = 0
    done: int = 0
    in_progress: int = 0
    not_done: int = 0

    def _share(self, count: int) -> float:
        return count / self.total * 100 if self.total else 0.0

    @property
    def done_percentage(self) -> float:
        return self._share(self.done)

    @property
    def in_progress_percentage(self) -> float:
        return self._share(self.in_progress)

    @property
    def not_done_percentage(self) -> float:
        return self._share(self.not_done)


@dataclass
class PeerVisitStats(StatusBreakdown):
    visits_by_teacher: Dict[str, int] = field(default_factory=dict)


@dataclass
class DeliveryStats:
    name: str
    delivered: int
    total: int

    @property
    def percentage(self) -> float:
        return self.delivered / self.total * 100 if self.total else 0.0


@dataclass
class SyllabusTeacherStats:
    name: str
    reports_count: int = 0
    ahead: int = 0
    behind: int = 0
    on_track: int = 0


def _breakdown(statuses: Sequence[str], done: str, in_progress: str) -> StatusBreakdown:
    total = len(statuses)
    done_count = sum(1 for s in statuses if s == done)
    in_progress_count = sum(1 for s in statuses if s == in_progress)
    return StatusBreakdown(
        total=total,
        done=done_count,
        in_progress=in_progress_count,
        not_done=total - done_count - in_progress_count,
    )


def task_completion(tasks: Sequence[Task]) -> StatusBreakdown:
    """Tasks by status."""
    return _breakdown([t.status for t in tasks], WorkStatus.DONE.value, WorkStatus.IN_PROGRESS.value)


def meeting_outcome_stats(
    meetings: Sequence[Meeting],
    start_date: DateLike = None,
    end_date: DateLike = None
) -> StatusBreakdown:
    """Non-empty outcomes of the meetings held in the date range, by status."""
    outcomes = [
        outcome
        for meeting in meetings if within(meeting.date, start_date, end_date)
        for outcome in meeting.outcomes if outcome.outcome
    ]
    return _breakdown([o.status for o in outcomes], WorkStatus.DONE.value, WorkStatus.IN_PROGRESS.value)


def peer_visit_stats(visits: Sequence[PeerVisit]) -> PeerVisitStats:
    """Visits with a visiting teacher, by status, plus visits per visiting teacher."""
    counted = [v for v in visits if v.visiting_teacher.strip()]
    base = _breakdown(
        [v.status or "" for v in counted],
        VisitStatus.COMPLETED.value,
        VisitStatus.IN_PROGRESS.value,
    )
    by_teacher: Dict[str, int] = {}
    for visit in counted:
        by_teacher[visit.visiting_teacher] = by_teacher.get(visit.visiting_teacher, 0) + 1
    return PeerVisitStats(
        total=base.total,
        done=base.done,
        in_progress=base.in_progress,
        not_done=base.not_done,
        visits_by_teacher=by_teacher,
    )


def delivery_stats(sheets: Sequence[DeliverySheet]) -> List[DeliveryStats]:
    """Delivered ratio per non-empty sheet; a record counts once it has a delivery date."""
    return [
        DeliveryStats(
            name=sheet.name,
            delivered=sum(1 for record in sheet.records if record.delivery_date),
            total=len(sheet.records),
        )
        for sheet in sheets if sheet.records
    ]


def syllabus_dashboard(
    reports: Sequence[SyllabusCoverageReport],
    teachers: Sequence[Teacher]
) -> List[SyllabusTeacherStats]:
    """Branch status counts per teacher. Branches not ahead or behind count as on track."""
    names = {t.id: t.name for t in teachers}
    stats: Dict[str, SyllabusTeacherStats] = {}
    for report in reports:
        entry = stats.setdefault(report.teacher_id, SyllabusTeacherStats(name=names.get(report.teacher_id, "Unknown")))
        entry.reports_count += 1
        for branch in report.branches:
            if branch.status == CoverageStatus.AHEAD.value:
                entry.ahead += 1
            elif branch.status == CoverageStatus.BEHIND.value:
                entry.behind += 1
            else:
                entry.on_track += 1
    return list(stats.values())
