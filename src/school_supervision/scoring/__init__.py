"""
Report scoring and analytics.

This package contains:
- Report percentages and performance bands
- Per-teacher aggregation (final report)
- Report list filters
- Criterion analysis and usage statistics
- Supervisory record summaries
"""

from .percentages import (
    PerformanceBand,
    PercentageColor,
    criterion_scores,
    score_of,
    round_half_up,
    format_percentage,
    criterion_band,
    percentage_color,
)
from .aggregation import (
    CriterionTally,
    TeacherRow,
    ColumnStat,
    FinalReport,
    FinalReportFilter,
    criteria_labels_of,
    aggregate_by_teacher,
    build_final_report,
)
from .filters import ReportFilter, filter_reports, sort_by_date_desc, average_score
from .analysis import (
    TeacherCriterionDetail,
    CriterionAnalysis,
    KeyMetrics,
    UsageStatistics,
    analyze_criteria,
    key_metrics,
    usage_statistics,
    split_items,
)
from .supervision import (
    StatusBreakdown,
    PeerVisitStats,
    DeliveryStats,
    SyllabusTeacherStats,
    task_completion,
    meeting_outcome_stats,
    peer_visit_stats,
    delivery_stats,
    syllabus_dashboard,
)

__all__ = [
    "PerformanceBand",
    "PercentageColor",
    "criterion_scores",
    "score_of",
    "round_half_up",
    "format_percentage",
    "criterion_band",
    "percentage_color",

    # Aggregation
    "CriterionTally",
    "TeacherRow",
    "ColumnStat",
    "FinalReport",
    "FinalReportFilter",
    "criteria_labels_of",
    "aggregate_by_teacher",
    "build_final_report",

    # Filters
    "ReportFilter",
    "filter_reports",
    "sort_by_date_desc",
    "average_score",

    # Analysis
    "TeacherCriterionDetail",
    "CriterionAnalysis",
    "KeyMetrics",
    "UsageStatistics",
    "analyze_criteria",
    "key_metrics",
    "usage_statistics",
    "split_items",

    # Supervisory summaries
    "StatusBreakdown",
    "PeerVisitStats",
    "DeliveryStats",
    "SyllabusTeacherStats",
    "task_completion",
    "meeting_outcome_stats",
    "peer_visit_stats",
    "delivery_stats",
    "syllabus_dashboard",
]
