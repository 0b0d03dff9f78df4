"""
Record models for every persisted collection except reports.

Field names are snake_case in Python and camelCase in storage, so documents
written by earlier versions of the application load unchanged. Unknown fields
are preserved and written back.
"""

from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, validator
from pydantic.alias_generators import to_camel

from .permissions import Permission, PermissionLike, grants

Number = Union[int, float, str]


class Record(BaseModel):
    """Base for all stored records."""
    id: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"

    def to_storage(self) -> Dict[str, Any]:
        """Serialize with storage field names."""
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")

    @property
    def school_tag(self) -> Optional[str]:
        """The school this record belongs to, whichever field carries it."""
        return getattr(self, "school_name", None) or getattr(self, "school", None) or None


class ScopedRecord(Record):
    """Record owned by (school, academic year, author)."""
    school_name: Optional[str] = None
    author_id: Optional[str] = None
    academic_year: Optional[str] = None


class WorkStatus(str, Enum):
    """Execution status shared by tasks, meeting outcomes and plan entries."""
    NOT_DONE = "لم يتم"
    IN_PROGRESS = "قيد التنفيذ"
    DONE = "تم التنفيذ"


class VisitStatus(str, Enum):
    """Peer visit status."""
    COMPLETED = "تمت الزيارة"
    IN_PROGRESS = "قيد التنفيذ"
    NOT_COMPLETED = "لم تتم"


class Branch(str, Enum):
    """School branch."""
    MAIN = "main"
    BOYS = "boys"
    GIRLS = "girls"
    OTHER = "other"


BRANCH_LABELS = {
    Branch.MAIN.value: "رئيسي",
    Branch.BOYS.value: "طلاب",
    Branch.GIRLS.value: "طالبات",
    Branch.OTHER.value: "أخرى",
}


def branch_label(branch: Optional[str]) -> str:
    """Display label for a branch code, falling back to the main branch."""
    return BRANCH_LABELS.get(branch or Branch.MAIN.value, branch)


class School(Record):
    name: str


class User(Record):
    """Application user with ordered permission tokens."""
    name: str
    code: str = ""
    permissions: List[str] = []
    managed_teacher_ids: Optional[List[str]] = None
    school_name: Optional[str] = None

    @validator("code")
    def validate_code(cls, v):
        """Login codes are numeric strings."""
        if v and not v.isdigit():
            raise ValueError("code must contain digits only")
        return v

    def has_permission(self, permission: PermissionLike) -> bool:
        return grants(self.permissions, permission)

    @property
    def is_wildcard_admin(self) -> bool:
        """The first-listed wildcard marks the protected main administrator."""
        return bool(self.permissions) and self.permissions[0] == Permission.ALL.value


class Teacher(Record):
    name: str
    school_name: Optional[str] = None
    qualification: Optional[str] = None
    specialization: Optional[str] = None
    subjects: Optional[str] = None
    grades_taught: Optional[str] = None
    sections_taught: Optional[str] = None
    weekly_hours: Optional[Number] = None
    other_school_tasks: Optional[str] = None
    years_of_experience: Optional[Number] = None
    years_in_school: Optional[Number] = None
    phone_number: Optional[str] = None
    branch: Optional[str] = None
    subject: Optional[str] = None
    grades: Optional[str] = None


class CriterionLabel(BaseModel):
    """A criterion without a score, as used by templates and custom criteria."""
    id: str
    label: str

    class Config:
        extra = "allow"


class CustomCriterion(Record):
    """School-specific criterion added on top of the built-in templates.

    Without ``teacher_ids`` it applies to every report of its school and
    evaluation type; otherwise only to the listed teachers.
    """
    school: str
    evaluation_type: str
    sub_type: Optional[str] = None
    group_title: Optional[str] = None
    criterion: CriterionLabel
    teacher_ids: Optional[List[str]] = None

    def applies_to(self, teacher_id: str) -> bool:
        return not self.teacher_ids or teacher_id in self.teacher_ids


class SpecialReportTemplate(Record):
    school_name: Optional[str] = None
    name: str
    criteria: List[CriterionLabel] = []
    placement: List[str] = []


class SyllabusLesson(BaseModel):
    id: str
    title: str
    planned_date: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


class SyllabusPlan(ScopedRecord):
    subject: str
    grade: str
    lessons: List[SyllabusLesson] = []


class CoverageStatus(str, Enum):
    AHEAD = "ahead"
    ON_TRACK = "on_track"
    BEHIND = "behind"
    NOT_SET = "not_set"


class BranchCoverage(BaseModel):
    """Progress of one branch against the ministry plan."""
    branch_name: str
    status: CoverageStatus = CoverageStatus.NOT_SET
    last_lesson: str = ""
    lesson_difference: Number = ""
    percentage: Number = 0

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"
        use_enum_values = True
        validate_default = True


class SyllabusCoverageReport(ScopedRecord):
    semester: str = "الأول"
    subject: str = ""
    grade: str = ""
    branches: List[BranchCoverage] = []
    teacher_id: str = ""
    branch: str = Branch.MAIN.value
    date: str = ""
    meetings_attended: Optional[str] = None
    notebook_correction: Optional[str] = None
    preparation_book: Optional[str] = None
    questions_glossary: Optional[str] = None
    programs_implemented: Optional[str] = None
    strategies_implemented: Optional[str] = None
    tools_used: Optional[str] = None
    sources_used: Optional[str] = None
    tasks_done: Optional[str] = None
    tests_delivered: Optional[str] = None
    peer_visits_done: Optional[str] = None


class Task(ScopedRecord):
    description: str = ""
    type: Union[List[str], str] = []
    due_date: Union[List[str], str] = []
    status: str = WorkStatus.NOT_DONE.value
    completion_percentage: Number = 0
    postponed_to: Optional[str] = None
    notes: str = ""
    is_off_plan: bool = False


class MeetingOutcome(BaseModel):
    id: str
    outcome: str = ""
    assignee: str = ""
    deadline: str = ""
    status: str = WorkStatus.NOT_DONE.value
    completion_percentage: Optional[Number] = None
    notes: str = ""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


class Meeting(ScopedRecord):
    day: str = ""
    date: str = ""
    time: str = ""
    attendees: str = ""
    subject: str = ""
    outcomes: List[MeetingOutcome] = []
    signatures: Dict[str, str] = {}


class PeerVisit(ScopedRecord):
    visiting_teacher: str = ""
    visiting_subject: str = ""
    visiting_grade: str = ""
    visited_teacher: str = ""
    visited_specialization: str = ""
    visited_subject: str = ""
    visited_grade: str = ""
    status: Optional[str] = None


class DeliveryRecord(BaseModel):
    id: str
    grade: str = ""
    subject: str = ""
    form_count: Number = ""
    receive_date: str = ""
    delivery_date: str = ""
    teacher_name: str = ""
    teacher_id: str = ""
    notes: str = ""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


class DeliverySheet(ScopedRecord):
    name: str
    records: List[DeliveryRecord] = []


class BulkMessage(ScopedRecord):
    text: str = ""
    date: str = ""
    recipient_type: str = "all"
    recipients: List[str] = []


class SupervisoryPlanEntry(BaseModel):
    id: str
    domain: str = ""
    objective: str = ""
    executed: Number = ""
    status: str = WorkStatus.NOT_DONE.value
    notes: str = ""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


class SupervisoryPlanWrapper(ScopedRecord):
    title: str = ""
    created_at: str = ""
    semester: str = "الأول"
    supervisor_name: str = ""
    semester_dates: Dict[str, str] = {}
    plan_data: List[SupervisoryPlanEntry] = []
    off_plan_items: List[Dict[str, Any]] = []
    strength_items: List[Dict[str, Any]] = []
    problem_items: List[Dict[str, Any]] = []
    recommendation_items: List[Dict[str, Any]] = []


class BackupVersion(BaseModel):
    """Snapshot of the application keys taken before an import.

    ``data`` is the JSON text of a key to raw-value object.
    """
    id: Union[int, str]
    timestamp: str
    label: str
    data: str = "{}"
