"""Tests for AI-assisted extraction of syllabus coverage reports."""

import io
import json
import pytest
from datetime import date
from unittest.mock import AsyncMock

import pandas as pd

from school_supervision.ai import (
    COVERAGE_IMPORT_STRUCTURE,
    LLMClient,
    LLMError,
    build_extraction_prompt,
    extract_json,
    extract_structured,
    find_teacher,
    import_coverage_report,
    merge_coverage_import,
    names_match,
    parse_coverage_import,
    spreadsheet_to_text,
)
from school_supervision.errors import ExtractionError

from conftest import SCHOOL_A

SOURCE_TEXT = """تقرير سير المنهج
المعلم: أحمد علي
التاريخ: 14/12/2025
📌 فرع: الجبر
متأخر عن خطة الوزارة بعدد 3 دروس"""

MODEL_ANSWER = {
    "subject": "رياضيات",
    "date": "2025-12-14",
    "teacherName": "أحمد  علي",
    "branches": [
        {"branchName": "الجبر", "status": "behind", "lastLesson": "المعادلات", "lessonDifference": 3},
        {"branchName": "الهندسة", "status": "متقدم", "lastLesson": None},
        "not a branch",
    ],
    "meetingsAttended": 2,
    "strategiesImplemented": "التعلم التعاوني\nالعصف الذهني",
}


@pytest.fixture
def client():
    mock_client = AsyncMock(spec=LLMClient)
    mock_client.complete.return_value = "```json\n" + json.dumps(MODEL_ANSWER, ensure_ascii=False) + "\n```"
    return mock_client


class TestExtractJson:
    """Test cutting model answers down to JSON."""

    @pytest.mark.parametrize("content,expected", [
        ('{"a": 1}', '{"a": 1}'),
        ('```json\n{"a": 1}\n```', '{"a": 1}'),
        ('```\n{"a": {"b": 2}}\n```', '{"a": {"b": 2}}'),
        ('Here you go: {"a": 1} hope it helps', '{"a": 1}'),
        ("no json here", None),
        ("} backwards {", None),
    ])
    def test_extract_json(self, content, expected):
        assert extract_json(content) == expected

    def test_prompt_carries_structure_and_text(self):
        prompt = build_extraction_prompt(SOURCE_TEXT, COVERAGE_IMPORT_STRUCTURE)
        assert '"branchName"' in prompt
        assert "📌 فرع:" in prompt
        assert prompt.endswith(SOURCE_TEXT)


class TestExtractStructured:
    """Test the model call and its failure modes."""

    @pytest.mark.asyncio
    async def test_success(self, client):
        data = await extract_structured(client, SOURCE_TEXT, COVERAGE_IMPORT_STRUCTURE)
        assert data["subject"] == "رياضيات"
        client.complete.assert_awaited_once()
        assert client.complete.call_args.kwargs["response_mime_type"] == "application/json"

    @pytest.mark.asyncio
    async def test_empty_text(self, client):
        with pytest.raises(ExtractionError):
            await extract_structured(client, "   ", COVERAGE_IMPORT_STRUCTURE)
        client.complete.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["sorry, I cannot", "{not: valid}", "```json\n[1, 2]\n```"])
    async def test_unusable_answer(self, client, answer):
        client.complete.return_value = answer
        with pytest.raises(ExtractionError) as exc_info:
            await extract_structured(client, SOURCE_TEXT, COVERAGE_IMPORT_STRUCTURE)
        assert exc_info.value.user_message

    @pytest.mark.asyncio
    async def test_provider_error(self, client):
        client.complete.side_effect = LLMError("quota exceeded")
        with pytest.raises(ExtractionError, match="quota exceeded"):
            await extract_structured(client, SOURCE_TEXT, COVERAGE_IMPORT_STRUCTURE)


class TestTeacherMatching:
    """Test fuzzy teacher name matching."""

    @pytest.mark.parametrize("a,b,expected", [
        ("أحمد علي", "أحمد  علي", True),
        ("أحمد", "أحمد علي", True),
        ("أحمد علي الحارثي", " أحمد علي ", True),
        ("سارة", "أحمد", False),
        ("", "أحمد", False),
        (None, "أحمد", False),
    ])
    def test_names_match(self, a, b, expected):
        assert names_match(a, b) is expected

    def test_find_teacher(self, teachers):
        assert find_teacher(teachers, "سارة").id == "t2"
        assert find_teacher(teachers, "غير موجود") is None


class TestMerge:
    """Test merging extracted data into a new coverage report."""

    def test_parse_coerces_numbers_and_drops_junk(self):
        data = parse_coverage_import(MODEL_ANSWER)
        assert data.meetings_attended == "2"
        assert len(data.branches) == 2
        assert data.branches[0].lesson_difference == "3"
        assert data.branches[1].last_lesson == ""

    def test_parse_rejects_wrong_shapes(self):
        with pytest.raises(ExtractionError):
            parse_coverage_import({"subject": {"nested": True}})

    def test_merge(self, supervisor_session, teachers):
        report = merge_coverage_import(supervisor_session, teachers, MODEL_ANSWER, today=date(2025, 12, 20))
        assert report.id.startswith("scr-ai-")
        assert report.teacher_id == "t1"
        assert report.school_name == SCHOOL_A
        assert report.academic_year == "2025-2026"
        assert report.author_id == "user-sup"
        assert report.date == "2025-12-14"
        assert report.branch == "main"
        assert [b.status for b in report.branches] == ["behind", "not_set"]
        assert report.strategies_implemented == "التعلم التعاوني\nالعصف الذهني"
        assert report.tools_used == ""

    def test_merge_defaults(self, supervisor_session, teachers):
        report = merge_coverage_import(supervisor_session, teachers, {"teacherName": "مجهول"}, today=date(2025, 12, 20))
        assert report.teacher_id == ""
        assert report.date == "2025-12-20"
        assert report.meetings_attended == "0"
        assert report.semester == "الأول"
        assert report.branches == []

    @pytest.mark.asyncio
    async def test_import_in_one_step(self, client, supervisor_session, teachers):
        report = await import_coverage_report(client, SOURCE_TEXT, supervisor_session, teachers, semester="الثاني")
        assert report.semester == "الثاني"
        assert report.subject == "رياضيات"


class TestSpreadsheetText:
    """Test flattening uploaded workbooks."""

    def test_first_sheet_as_csv(self):
        buffer = io.BytesIO()
        with pd.ExcelWriter(buffer, engine="openpyxl") as writer:
            pd.DataFrame([["المعلم", "أحمد علي"], ["المادة", None]]).to_excel(
                writer, sheet_name="Report", index=False, header=False
            )
            pd.DataFrame([["ignored"]]).to_excel(writer, sheet_name="Other", index=False, header=False)

        text = spreadsheet_to_text(buffer.getvalue())
        assert text.splitlines() == ["المعلم,أحمد علي", "المادة,"]
