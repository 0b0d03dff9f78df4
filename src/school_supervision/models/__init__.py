"""
Core data models for the supervision toolkit.

This package contains:
- Permission tokens and checks
- Record models for every stored collection
- Evaluation report variants
- The explicit session context
"""

from .permissions import Permission, grants
from .entities import (
    Record,
    ScopedRecord,
    School,
    User,
    Teacher,
    CriterionLabel,
    CustomCriterion,
    SpecialReportTemplate,
    SyllabusLesson,
    SyllabusPlan,
    CoverageStatus,
    BranchCoverage,
    SyllabusCoverageReport,
    Task,
    Meeting,
    MeetingOutcome,
    PeerVisit,
    DeliveryRecord,
    DeliverySheet,
    BulkMessage,
    SupervisoryPlanEntry,
    SupervisoryPlanWrapper,
    BackupVersion,
    WorkStatus,
    VisitStatus,
    Branch,
    branch_label,
)
from .reports import (
    EvaluationType,
    ClassSessionSubType,
    Criterion,
    CriterionGroup,
    SyllabusProgress,
    BaseReport,
    GeneralReport,
    ClassSessionReport,
    SpecialReport,
    UnrecognizedReport,
    Report,
    AnyReport,
    parse_report,
)
from .session import SessionContext

__all__ = [
    "Permission",
    "grants",

    # Records
    "Record",
    "ScopedRecord",
    "School",
    "User",
    "Teacher",
    "CriterionLabel",
    "CustomCriterion",
    "SpecialReportTemplate",
    "SyllabusLesson",
    "SyllabusPlan",
    "CoverageStatus",
    "BranchCoverage",
    "SyllabusCoverageReport",
    "Task",
    "Meeting",
    "MeetingOutcome",
    "PeerVisit",
    "DeliveryRecord",
    "DeliverySheet",
    "BulkMessage",
    "SupervisoryPlanEntry",
    "SupervisoryPlanWrapper",
    "BackupVersion",
    "WorkStatus",
    "VisitStatus",
    "Branch",
    "branch_label",

    # Reports
    "EvaluationType",
    "ClassSessionSubType",
    "Criterion",
    "CriterionGroup",
    "SyllabusProgress",
    "BaseReport",
    "GeneralReport",
    "ClassSessionReport",
    "SpecialReport",
    "UnrecognizedReport",
    "Report",
    "AnyReport",
    "parse_report",

    "SessionContext",
]
