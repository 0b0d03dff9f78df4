"""
Evaluation report models.

Reports are a tagged union on ``evaluationType``:

- ``general``: a flat list of scored criteria
- ``class_session``: criteria grouped under titled headings
- ``special``: a flat list built from a school's special template

Stored reports that match none of the variants are loaded as
:class:`UnrecognizedReport` so they survive a save cycle untouched and score 0.
"""

import logging
from enum import Enum
from typing import Any, List, Literal, Mapping, Optional, Union

from pydantic import BaseModel, Field, ValidationError, validator
from pydantic.alias_generators import to_camel

from .entities import Record

logger = logging.getLogger(__name__)

MAX_CRITERION_SCORE = 4


class EvaluationType(str, Enum):
    GENERAL = "general"
    CLASS_SESSION = "class_session"
    SPECIAL = "special"


class ClassSessionSubType(str, Enum):
    BRIEF = "brief"
    EXTENDED = "extended"
    SUBJECT_SPECIFIC = "subject_specific"


class Semester(str, Enum):
    FIRST = "الأول"
    SECOND = "الثاني"


class Criterion(BaseModel):
    """A scored evaluation criterion (0..4)."""
    id: str
    label: str
    score: int = 0

    class Config:
        extra = "allow"

    @validator("score")
    def validate_score(cls, v):
        if not 0 <= v <= MAX_CRITERION_SCORE:
            raise ValueError(f"score must be between 0 and {MAX_CRITERION_SCORE}")
        return v


class CriterionGroup(BaseModel):
    id: str
    title: str
    criteria: List[Criterion] = []

    class Config:
        extra = "allow"


class SyllabusProgress(BaseModel):
    """Result of comparing a taught lesson against the syllabus plan."""
    status: Literal["ahead", "on_track", "behind"]
    planned_lesson: str = ""
    lesson_difference: int = 0

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "allow"


class BaseReport(Record):
    """Fields shared by every report variant."""
    evaluation_type: str
    teacher_id: str
    date: str
    school: str = ""
    subject: str = ""
    grades: str = ""
    branch: str = "main"
    supervisor_name: Optional[str] = None
    semester: Optional[str] = None
    author_id: Optional[str] = None
    academic_year: Optional[str] = None
    syllabus_progress: Optional[SyllabusProgress] = None
    planned_syllabus_lesson: Optional[str] = None

    def criterion_items(self) -> List[Criterion]:
        """All scored criteria, flattened."""
        return []


class GeneralReport(BaseReport):
    evaluation_type: Literal["general"] = "general"
    criteria: List[Criterion] = []
    strategies: str = ""
    tools: str = ""
    programs: str = ""
    sources: str = ""

    def criterion_items(self) -> List[Criterion]:
        return list(self.criteria)


class ClassSessionReport(BaseReport):
    evaluation_type: Literal["class_session"] = "class_session"
    sub_type: ClassSessionSubType = ClassSessionSubType.BRIEF
    visit_type: str = ""
    class_number: Optional[Union[str, int]] = Field(None, alias="class")
    section: Optional[Union[str, int]] = None
    lesson_number: str = ""
    lesson_name: str = ""
    criterion_groups: List[CriterionGroup] = []
    positives: str = ""
    notes_for_improvement: str = ""
    recommendations: str = ""
    employee_comment: str = ""
    strategies: str = ""
    tools: str = ""
    sources: str = ""
    programs: str = ""

    class Config:
        use_enum_values = True
        validate_default = True

    def criterion_items(self) -> List[Criterion]:
        return [criterion for group in self.criterion_groups for criterion in group.criteria]


class SpecialReport(BaseReport):
    evaluation_type: Literal["special"] = "special"
    template_id: str = ""
    template_name: str = ""
    criteria: List[Criterion] = []

    def criterion_items(self) -> List[Criterion]:
        return list(self.criteria)


class UnrecognizedReport(Record):
    """A stored report that failed validation. Kept verbatim, never scored."""
    id: Any = ""
    evaluation_type: Any = None
    teacher_id: Any = None
    date: Any = None
    school: Any = None
    subject: Any = None
    grades: Any = None
    branch: Any = None
    supervisor_name: Any = None
    semester: Any = None
    author_id: Any = None
    academic_year: Any = None

    def criterion_items(self) -> List[Criterion]:
        return []


Report = Union[GeneralReport, ClassSessionReport, SpecialReport]
AnyReport = Union[GeneralReport, ClassSessionReport, SpecialReport, UnrecognizedReport]

REPORT_MODELS = {
    EvaluationType.GENERAL.value: GeneralReport,
    EvaluationType.CLASS_SESSION.value: ClassSessionReport,
    EvaluationType.SPECIAL.value: SpecialReport,
}


def parse_report(data: Any) -> AnyReport:
    """Validate a stored report into its variant, or keep it as unrecognized."""
    if isinstance(data, (BaseReport, UnrecognizedReport)):
        return data

    if not isinstance(data, Mapping):
        logger.warning("Skipping non-object report entry", extra={"entry_type": type(data).__name__})
        return UnrecognizedReport(payload=data)

    kind = data.get("evaluationType", data.get("evaluation_type"))
    model = REPORT_MODELS.get(kind)
    if model is None:
        logger.warning(f"Unknown evaluation type {kind!r} for report {data.get('id')!r}")
        return UnrecognizedReport.model_validate(dict(data))

    try:
        return model.model_validate(dict(data))
    except ValidationError as e:
        logger.warning(
            f"Report {data.get('id')!r} failed validation, keeping it unscored",
            extra={"errors": e.error_count()}
        )
        return UnrecognizedReport.model_validate(dict(data))
