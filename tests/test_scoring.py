"""
Tests for report percentages and per-teacher aggregation.

Covers the score formula over every report shape, the degrade-to-zero rule
for malformed input, display rounding and the final report table.
"""

import pytest

from school_supervision.models import Criterion, SpecialReport, Teacher, UnrecognizedReport
from school_supervision.scoring import (
    FinalReportFilter,
    PerformanceBand,
    PercentageColor,
    aggregate_by_teacher,
    average_score,
    build_final_report,
    criterion_band,
    criteria_labels_of,
    format_percentage,
    percentage_color,
    round_half_up,
    score_of,
)

from conftest import SCHOOL_A, make_class_session, make_general


class TestScoreOf:
    """Test the report percentage."""

    def test_flat_criteria(self):
        """General reports score over their flat criteria list."""
        report = make_general("r", "t1", [4, 2, 0])
        assert score_of(report) == pytest.approx(50.0)

    def test_grouped_criteria(self):
        """Class-session reports flatten their groups."""
        report = make_class_session("r", "t1", [4, 4, 3, 3, 4, 3, 4, 3])
        assert score_of(report) == pytest.approx(87.5)

    def test_special_report(self):
        report = SpecialReport(
            id="s1", teacher_id="t1", date="2025-10-01", template_name="قالب",
            criteria=[Criterion(id="a", label="أ", score=1), Criterion(id="b", label="ب", score=3)],
        )
        assert score_of(report) == pytest.approx(50.0)

    def test_no_criteria_scores_zero(self):
        assert score_of(make_general("r", "t1", [])) == 0.0
        assert score_of(make_class_session("r", "t1", [])) == 0.0

    def test_order_invariant(self):
        """Reordering criteria never changes the score."""
        a = make_general("r", "t1", [1, 2, 3, 4])
        b = make_general("r", "t1", [4, 3, 2, 1])
        assert score_of(a) == score_of(b)

    def test_bounds(self):
        assert score_of(make_general("r", "t1", [0, 0])) == 0.0
        assert score_of(make_general("r", "t1", [4, 4])) == 100.0

    def test_stored_mapping(self):
        """Raw stored reports score the same way."""
        stored = {
            "evaluationType": "class_session",
            "criterionGroups": [
                {"criteria": [{"score": 4}, {"score": 2}]},
                {"criteria": [{"score": 3}]},
            ],
        }
        assert score_of(stored) == pytest.approx(75.0)

    @pytest.mark.parametrize("malformed", [
        None,
        "report",
        {"evaluationType": "unknown", "criteria": [{"score": 4}]},
        {"evaluationType": "general", "criteria": "not a list"},
        {"evaluationType": "class_session", "criterionGroups": None},
        {"evaluationType": "general", "criteria": [{"score": 9}, {"score": "3"}]},
    ])
    def test_malformed_scores_zero(self, malformed):
        """Malformed shapes degrade to 0 instead of raising."""
        assert score_of(malformed) == 0.0

    def test_unrecognized_report_scores_zero(self):
        report = UnrecognizedReport(id="x", evaluation_type="legacy")
        assert score_of(report) == 0.0


class TestDisplayHelpers:
    """Test rounding, bands and colors."""

    def test_round_half_up(self):
        assert round_half_up(79.165, 2) == 79.17
        assert round_half_up(2.25, 1) == 2.3
        assert round_half_up(0.5, 0) == 1.0

    def test_format_percentage(self):
        assert format_percentage(87.5) == "87.5%"
        assert format_percentage(79.1666, 2) == "79.17%"

    @pytest.mark.parametrize("mean,band", [
        (3.6, PerformanceBand.EXCELLENT),
        (3.0, PerformanceBand.GOOD),
        (2.0, PerformanceBand.AVERAGE),
        (1.0, PerformanceBand.WEAK),
        (0.5, PerformanceBand.DEFICIENT),
    ])
    def test_criterion_band(self, mean, band):
        assert criterion_band(mean) == band

    @pytest.mark.parametrize("percentage,color", [
        (49.9, PercentageColor.RED),
        (75, PercentageColor.ORANGE),
        (89, PercentageColor.BLUE),
        (90, PercentageColor.GREEN),
    ])
    def test_percentage_color(self, percentage, color):
        assert percentage_color(percentage) == color

    def test_average_score(self, reports):
        assert average_score([]) == 0.0
        assert average_score(reports[:3]) == 79.17


class TestAggregation:
    """Test the per-teacher final report."""

    def test_three_visits_average(self, reports, teachers):
        """87.5%, 50% and 100% visits average to 79.17% for the teacher."""
        final = aggregate_by_teacher(reports[:3], teachers=teachers)
        assert len(final.rows) == 1
        row = final.rows[0]
        assert row.teacher_id == "t1"
        assert row.visit_count == 3
        assert round_half_up(row.percentage, 2) == 79.17

    def test_only_active_criteria_count(self, teachers):
        """A label missing from every report of a teacher does not lower the percentage."""
        reports = [
            make_class_session("a", "t1", [4, 4], labels=["أ", "ب"]),
            make_class_session("b", "t2", [2, 2], labels=["ب", "ج"]),
        ]
        final = aggregate_by_teacher(reports, teachers=teachers)
        assert final.criteria_labels == ["أ", "ب", "ج"]

        row_t1 = next(r for r in final.rows if r.teacher_id == "t1")
        assert row_t1.criteria_active == {"أ": True, "ب": True, "ج": False}
        assert row_t1.percentage == pytest.approx(100.0)

        # column "ب" averages over both teachers, "ج" over one
        assert final.column_stats["ب"].mean == pytest.approx(3.0)
        assert final.column_stats["ج"].count == 1

    def test_criterion_mean_over_reports_where_present(self, teachers):
        reports = [
            make_class_session("a", "t1", [4, 2], labels=["أ", "ب"]),
            make_class_session("b", "t1", [2], labels=["أ"]),
        ]
        row = aggregate_by_teacher(reports, teachers=teachers).rows[0]
        assert row.criteria_averages["أ"] == pytest.approx(3.0)
        assert row.criteria_averages["ب"] == pytest.approx(2.0)

    def test_criteria_universe_limits_columns(self, teachers):
        reports = [make_class_session("a", "t1", [4, 0], labels=["أ", "ب"])]
        final = aggregate_by_teacher(reports, criteria_universe=["أ"], teachers=teachers)
        assert final.criteria_labels == ["أ"]
        assert final.rows[0].percentage == pytest.approx(100.0)

    def test_unknown_teacher_skipped(self, teachers):
        reports = [make_class_session("a", "ghost", [4, 4])]
        assert aggregate_by_teacher(reports, teachers=teachers).rows == []

    def test_empty_report_set(self):
        final = aggregate_by_teacher([])
        assert final.rows == []
        assert final.school_average == 0.0
        assert final.first_supervisor == "---"

    def test_row_descriptive_fields(self, teachers):
        reports = [make_class_session("a", "t2", [3, 3], supervisor_name="أ. منى")]
        row = aggregate_by_teacher(reports, teachers=teachers).rows[0]
        assert row.subject == "علوم"
        assert row.grade == "الثامن"
        assert row.branch == "طالبات"
        assert row.supervisor == "أ. منى"

    def test_labels_first_seen_order(self, reports):
        assert criteria_labels_of(reports)[:2] == ["معيار 1", "معيار 2"]


class TestFinalReportFilter:
    """Test report selection for the final report."""

    def test_only_class_sessions_of_sub_type(self, reports, teachers):
        final = build_final_report(reports, teachers, FinalReportFilter(school=SCHOOL_A))
        assert {r.teacher_id for r in final.rows} == {"t1", "t2"}
        assert next(r for r in final.rows if r.teacher_id == "t2").visit_count == 1

        extended = build_final_report(reports, teachers, FinalReportFilter(school=SCHOOL_A, sub_type="extended"))
        assert extended.rows == []

    def test_date_range_and_branch(self, reports, teachers):
        report_filter = FinalReportFilter(school=SCHOOL_A, start_date="2025-10-10", end_date="2025-10-31")
        final = build_final_report(reports, teachers, report_filter)
        row_t1 = next(r for r in final.rows if r.teacher_id == "t1")
        assert row_t1.visit_count == 1

        boys = build_final_report(reports, teachers, FinalReportFilter(school=SCHOOL_A, branch="boys"))
        assert [r.teacher_id for r in boys.rows] == ["t1"]

    def test_school_average(self, reports, teachers):
        final = build_final_report(reports, teachers, FinalReportFilter(school=SCHOOL_A))
        expected = sum(r.percentage for r in final.rows) / len(final.rows)
        assert final.school_average == pytest.approx(expected)

    def test_teacher_filter(self, reports, teachers):
        final = build_final_report(reports, teachers, FinalReportFilter(teacher_id="t3"))
        assert [r.teacher_id for r in final.rows] == ["t3"]

    def test_non_class_session_never_matches(self, teachers):
        report = make_general("g", "t1", [4])
        assert not FinalReportFilter().matches(report, Teacher(id="t1", name="x"))
