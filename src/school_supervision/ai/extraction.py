"""
Structured extraction from pasted or uploaded report text.

The model gets an instruction, a target structure whose leaves are hints,
and the raw source text. Its answer is cut down to the outermost JSON object
and validated into a typed partial record before anything is merged.
"""

import io
import json
import logging
import re
import time
from datetime import date
from typing import Any, Dict, List, Optional, Sequence, Union

import pandas as pd
from pydantic import BaseModel, ValidationError, validator
from pydantic.alias_generators import to_camel

from ..errors import ExtractionError
from ..models import Branch, BranchCoverage, SessionContext, SyllabusCoverageReport, Teacher
from .llm import LLMClient, LLMError

logger = logging.getLogger(__name__)

EXTRACTION_RULES = """Rules:
1. Date: Convert "14/12/2025" to "2025-12-14".
2. Status Mapping:
   - "مطابق لخطة الوزارة" -> "on_track"
   - "متقدم عن خطة الوزارة" -> "ahead"
   - "متأخر عن خطة الوزارة" -> "behind"
3. Lesson Difference: Extract numbers (e.g., "بعدد 3 دروس" -> "3").
4. For quantitative stats (e.g. 95%), extract only the number (95).
5. For qualitative fields (Strategies, Programs, etc), extract text as a newline-separated string.
6. Branches: Identify sections starting with "📌 فرع:"."""

COVERAGE_IMPORT_STRUCTURE: Dict[str, Any] = {
    "subject": "",
    "date": "",
    "schoolName": "",
    "teacherName": "",
    "branches": [{"branchName": "", "status": "", "lastLesson": "", "lessonDifference": ""}],
    "meetingsAttended": "",
    "notebookCorrection": "",
    "preparationBook": "",
    "questionsGlossary": "",
    "programsImplemented": "",
    "strategiesImplemented": "",
    "toolsUsed": "",
    "sourcesUsed": "",
    "tasksDone": "",
    "testsDelivered": "",
    "peerVisitsDone": "",
}

_FENCE = re.compile(r"```(?:json)?\s*(.*?)\s*```", re.DOTALL)


def build_extraction_prompt(source_text: str, structure: Dict[str, Any]) -> str:
    return (
        "Extract structured data from this Arabic educational report text.\n"
        f"Format the output as valid JSON matching this schema: {json.dumps(structure, ensure_ascii=False)}.\n\n"
        f"{EXTRACTION_RULES}\n\n"
        f"Text:\n{source_text}"
    )


def extract_json(content: str) -> Optional[str]:
    """Cut a model answer down to its outermost JSON object, if it has one."""
    match = _FENCE.search(content)
    if match:
        content = match.group(1)
    start = content.find("{")
    end = content.rfind("}")
    if start == -1 or end < start:
        return None
    return content[start:end + 1]


async def extract_structured(client: LLMClient, source_text: str, structure: Dict[str, Any]) -> Dict[str, Any]:
    """
    Ask the model to fill ``structure`` from ``source_text``.

    Raises:
        ExtractionError: on empty input, a failed call, or an answer that is
            not a JSON object.
    """
    if not source_text.strip():
        raise ExtractionError("No source text to extract from")

    prompt = build_extraction_prompt(source_text, structure)
    try:
        content = await client.complete(prompt, response_mime_type="application/json")
    except LLMError as e:
        logger.error(f"Extraction call failed: {e}")
        raise ExtractionError(f"Extraction call failed: {e}") from e

    json_str = extract_json(content)
    if json_str is None:
        raise ExtractionError("Model answer contained no JSON object")
    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        raise ExtractionError(f"Model answer is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ExtractionError("Model answer is not a JSON object")

    logger.info("Extracted structured data", extra={"fields": len(data), "source_length": len(source_text)})
    return data


def spreadsheet_to_text(content: bytes) -> str:
    """First sheet of a workbook as CSV text."""
    frame = pd.read_excel(io.BytesIO(content), sheet_name=0, header=None, dtype=str)
    return frame.fillna("").to_csv(index=False, header=False)


def _normalize_name(name: str) -> str:
    return " ".join(name.split())


def names_match(a: Optional[str], b: Optional[str]) -> bool:
    """Whitespace-normalized containment in either direction; blanks never match."""
    left = _normalize_name(a or "")
    right = _normalize_name(b or "")
    if not left or not right:
        return False
    return left in right or right in left


def find_teacher(teachers: Sequence[Teacher], name: Optional[str]) -> Optional[Teacher]:
    for teacher in teachers:
        if names_match(teacher.name, name):
            return teacher
    return None


class _ImportModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True
        extra = "ignore"

    @validator("*", pre=True)
    def numbers_as_text(cls, v):
        # models answer "95" or 95 interchangeably
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class BranchImport(_ImportModel):
    branch_name: str = ""
    status: str = ""
    last_lesson: str = ""
    lesson_difference: str = ""

    @validator("branch_name", "status", "last_lesson", "lesson_difference", pre=True)
    def blank_for_null(cls, v):
        return "" if v is None else v


class CoverageImport(_ImportModel):
    """What the extractor may tell us about one syllabus coverage report."""
    subject: Optional[str] = None
    grade: Optional[str] = None
    date: Optional[str] = None
    school_name: Optional[str] = None
    academic_year: Optional[str] = None
    semester: Optional[str] = None
    teacher_name: Optional[str] = None
    branches: List[BranchImport] = []
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

    @validator("branches", pre=True)
    def drop_malformed_branches(cls, v):
        if not isinstance(v, list):
            return []
        return [b for b in v if isinstance(b, dict)]


TEXT_FIELDS = (
    "notebook_correction",
    "preparation_book",
    "questions_glossary",
    "programs_implemented",
    "strategies_implemented",
    "tools_used",
    "sources_used",
    "tasks_done",
    "tests_delivered",
    "peer_visits_done",
)


def parse_coverage_import(data: Dict[str, Any]) -> CoverageImport:
    try:
        return CoverageImport.model_validate(data)
    except ValidationError as e:
        raise ExtractionError(f"Extracted data does not fit a coverage report: {e.error_count()} error(s)") from e


def _branch_from_import(row: BranchImport) -> BranchCoverage:
    status = row.status if row.status in ("ahead", "on_track", "behind") else "not_set"
    return BranchCoverage(
        branch_name=row.branch_name,
        status=status,
        last_lesson=row.last_lesson,
        lesson_difference=row.lesson_difference,
    )


def merge_coverage_import(
    session: SessionContext,
    teachers: Sequence[Teacher],
    data: Union[CoverageImport, Dict[str, Any]],
    semester: str = "الأول",
    today: Optional[date] = None
) -> SyllabusCoverageReport:
    """
    Build a new coverage report from extracted data.

    Missing values come from the session (school, academic year), the given
    semester, and today's date. An unresolved teacher name leaves the teacher
    blank for the user to pick.
    """
    if not isinstance(data, CoverageImport):
        data = parse_coverage_import(data)
    today = today or date.today()

    teacher = find_teacher(teachers, data.teacher_name)
    if data.teacher_name and teacher is None:
        logger.warning(f"No teacher matches extracted name {data.teacher_name!r}")

    fields = {name: getattr(data, name) or "" for name in TEXT_FIELDS}
    return SyllabusCoverageReport(
        id=f"scr-ai-{int(time.time() * 1000)}",
        school_name=data.school_name or session.selected_school,
        academic_year=data.academic_year or session.academic_year,
        author_id=session.current_user.id if session.current_user else None,
        semester=data.semester or semester,
        subject=data.subject or "",
        grade=data.grade or "",
        branches=[_branch_from_import(b) for b in data.branches],
        teacher_id=teacher.id if teacher else "",
        branch=Branch.MAIN.value,
        date=data.date or today.isoformat(),
        meetings_attended=data.meetings_attended or "0",
        **fields,
    )


async def import_coverage_report(
    client: LLMClient,
    source_text: str,
    session: SessionContext,
    teachers: Sequence[Teacher],
    semester: str = "الأول",
    today: Optional[date] = None
) -> SyllabusCoverageReport:
    """Extract and merge in one step."""
    data = await extract_structured(client, source_text, COVERAGE_IMPORT_STRUCTURE)
    return merge_coverage_import(session, teachers, data, semester=semester, today=today)
