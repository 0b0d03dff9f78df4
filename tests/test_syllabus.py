"""Tests for the syllabus-progress comparator and coverage report helpers."""

import pytest
from datetime import date

from school_supervision.models import SessionContext, SyllabusCoverageReport, SyllabusLesson, SyllabusPlan
from school_supervision.syllabus import (
    add_branch,
    compare_progress,
    default_branches,
    expected_lesson_index,
    filter_coverage_reports,
    find_plan,
    inherit_branch,
    new_coverage_report,
    planned_lesson_for,
    taught_lesson_index,
)

from conftest import SCHOOL_A, SCHOOL_B


@pytest.fixture
def plan():
    return SyllabusPlan(
        id="plan-1",
        subject="رياضيات",
        grade="السابع",
        school_name=SCHOOL_A,
        lessons=[
            SyllabusLesson(id="l1", title="الأعداد الصحيحة", planned_date="2025-09-01"),
            SyllabusLesson(id="l2", title="الكسور", planned_date="2025-09-08"),
            SyllabusLesson(id="l3", title="الكسور العشرية", planned_date="2025-09-15"),
            SyllabusLesson(id="l4", title="النسبة", planned_date="2025-09-15"),
            SyllabusLesson(id="l5", title="التناسب", planned_date="2025-09-22"),
        ],
    )


class TestComparator:
    """Test the planned-versus-taught comparison."""

    def test_on_track(self, plan):
        progress = compare_progress(plan, "2025-09-09", "الكسور")
        assert progress.status == "on_track"
        assert progress.planned_lesson == "الكسور"
        assert progress.lesson_difference == 0

    def test_ahead(self, plan):
        progress = compare_progress(plan, "2025-09-02", "الكسور العشرية")
        assert progress.status == "ahead"
        assert progress.lesson_difference == 2

    def test_behind(self, plan):
        progress = compare_progress(plan, "2025-09-30", "الكسور")
        assert progress.status == "behind"
        assert progress.planned_lesson == "التناسب"
        assert progress.lesson_difference == 3

    def test_same_day_lessons_last_wins(self, plan):
        assert expected_lesson_index(plan, "2025-09-15") == 3
        assert compare_progress(plan, "2025-09-16", "النسبة").status == "on_track"

    def test_nothing_planned_yet(self, plan):
        assert compare_progress(plan, "2025-08-01", "الأعداد الصحيحة") is None

    @pytest.mark.parametrize("lesson", ["", "   ", "الهندسة"])
    def test_unknown_lesson(self, plan, lesson):
        assert compare_progress(plan, "2025-09-10", lesson) is None

    def test_bad_date(self, plan):
        assert compare_progress(plan, "not a date", "الكسور") is None

    def test_lesson_matching(self, plan):
        assert taught_lesson_index(plan, "  الكسور ") == 1
        # containment when no exact title matches
        assert taught_lesson_index(plan, "درس التناسب الطردي") == 4

    def test_planned_lesson_for(self, plan):
        assert planned_lesson_for(plan, "2025-09-08").id == "l2"
        assert planned_lesson_for(plan, "2025-09-10").id == "l2"
        assert planned_lesson_for(plan, "2025-08-10") is None

    def test_find_plan(self, plan):
        empty = SyllabusPlan(id="empty", subject="رياضيات", grade="السابع")
        other_school = plan.model_copy(update={"id": "plan-b", "school_name": SCHOOL_B})
        assert find_plan([empty, plan], "رياضيات", "السابع").id == "plan-1"
        assert find_plan([other_school, plan], "رياضيات", "السابع", school=SCHOOL_A).id == "plan-1"
        assert find_plan([plan], "علوم", "السابع") is None


class TestCoverageHelpers:
    """Test building and filtering coverage reports."""

    BRANCHES = {"لغة عربية": ["النحو", "الأدب"]}

    def test_default_branches(self):
        rows = default_branches("لغة عربية", self.BRANCHES)
        assert [r.branch_name for r in rows] == ["النحو", "الأدب"]
        assert all(r.status == "on_track" for r in rows)
        assert default_branches("رياضيات", self.BRANCHES) == []

    def test_add_branch(self):
        report = SyllabusCoverageReport(id="c1")
        assert add_branch(report, "  ") is report
        updated = add_branch(report, " البلاغة ")
        assert [b.branch_name for b in updated.branches] == ["البلاغة"]
        assert report.branches == []

    def test_new_report_owned_by_session(self, supervisor):
        session = SessionContext(current_user=supervisor, selected_school=SCHOOL_A, academic_year="2025-2026")
        report = new_coverage_report(session, today=date(2025, 10, 5))
        assert report.id.startswith("scr-")
        assert (report.school_name, report.academic_year, report.author_id) == (SCHOOL_A, "2025-2026", "user-sup")
        assert report.date == "2025-10-05"
        assert report.meetings_attended == "0"

    def test_inherit_branch_from_latest(self):
        history = [
            SyllabusCoverageReport(id="old", teacher_id="t1", branch="boys", date="2025-09-01"),
            SyllabusCoverageReport(id="new", teacher_id="t1", branch="girls", date="2025-10-01"),
        ]
        draft = SyllabusCoverageReport(id="draft")
        assert inherit_branch(draft, "t1", history).branch == "girls"
        assert inherit_branch(draft, "t2", history).branch == "main"

    def test_filter(self, teachers):
        reports = [
            SyllabusCoverageReport(id="a", teacher_id="t1", subject="رياضيات", grade="السابع",
                                   branches=[{"branchName": "الجبر", "status": "behind"}]),
            SyllabusCoverageReport(id="b", teacher_id="t2", subject="علوم", grade="الثامن"),
        ]
        assert [r.id for r in filter_coverage_reports(reports, teachers, name="أحمد")] == ["a"]
        assert [r.id for r in filter_coverage_reports(reports, teachers, subject="علوم")] == ["b"]
        assert [r.id for r in filter_coverage_reports(reports, teachers, status="behind")] == ["a"]
        assert len(filter_coverage_reports(reports, teachers)) == 2
