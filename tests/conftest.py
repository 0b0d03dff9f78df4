"""Shared fixtures: users, teachers, reports and in-memory workspaces."""

import json
from typing import Dict, List, Optional, Sequence

import pytest

from school_supervision.models import (
    ClassSessionReport,
    Criterion,
    CriterionGroup,
    GeneralReport,
    School,
    SessionContext,
    Teacher,
    User,
)
from school_supervision.storage import InMemoryStorage, PersistentStore, Workspace

SCHOOL_A = "مدرسة الأمل"
SCHOOL_B = "مدرسة النور"


def make_class_session(
    report_id: str,
    teacher_id: str,
    scores: Sequence[int],
    date: str = "2025-10-01",
    school: str = SCHOOL_A,
    labels: Optional[Sequence[str]] = None,
    **extra
) -> ClassSessionReport:
    """A class-session report with one criterion per score, split in two groups."""
    labels = list(labels) if labels is not None else [f"معيار {i + 1}" for i in range(len(scores))]
    criteria = [Criterion(id=f"c{i}", label=label, score=score) for i, (label, score) in enumerate(zip(labels, scores))]
    half = len(criteria) // 2
    groups = [
        CriterionGroup(id="g1", title="التخطيط", criteria=criteria[:half]),
        CriterionGroup(id="g2", title="التنفيذ", criteria=criteria[half:]),
    ]
    return ClassSessionReport(
        id=report_id,
        teacher_id=teacher_id,
        date=date,
        school=school,
        criterion_groups=groups,
        **extra
    )


def make_general(
    report_id: str,
    teacher_id: str,
    scores: Sequence[int],
    date: str = "2025-10-01",
    school: str = SCHOOL_A,
    **extra
) -> GeneralReport:
    criteria = [Criterion(id=f"c{i}", label=f"معيار {i + 1}", score=s) for i, s in enumerate(scores)]
    return GeneralReport(id=report_id, teacher_id=teacher_id, date=date, school=school, criteria=criteria, **extra)


def build_storage(collections: Dict[str, List]) -> InMemoryStorage:
    """Storage holding each key's list as JSON text, models serialized with storage names."""
    data = {}
    for key, items in collections.items():
        data[key] = json.dumps(
            [item.to_storage() if hasattr(item, "to_storage") else item for item in items],
            ensure_ascii=False,
        )
    return InMemoryStorage(data)


@pytest.fixture
def schools():
    return [School(id="school-1", name=SCHOOL_A), School(id="school-2", name=SCHOOL_B)]


@pytest.fixture
def admin():
    return User(id="user-admin", name="المدير", code="1234", permissions=["all"])


@pytest.fixture
def supervisor():
    return User(
        id="user-sup",
        name="المشرف",
        code="5678",
        permissions=["view_teachers", "create_class_session_report", "view_task_plan"],
        school_name=SCHOOL_A,
    )


@pytest.fixture
def restricted_supervisor():
    return User(
        id="user-restricted",
        name="مشرف مادة",
        code="9012",
        permissions=["view_teachers", "view_reports_for_specific_teachers"],
        managed_teacher_ids=["t1"],
    )


@pytest.fixture
def teachers():
    return [
        Teacher(id="t1", name="أحمد علي", school_name=SCHOOL_A, subjects="رياضيات", grades_taught="السابع",
                branch="boys", phone_number="+968 9123 4567"),
        Teacher(id="t2", name="سارة محمد", school_name=SCHOOL_A, subjects="علوم", grades_taught="الثامن",
                branch="girls"),
        Teacher(id="t3", name="خالد سالم", school_name=SCHOOL_B, subjects="لغة عربية"),
    ]


@pytest.fixture
def reports():
    return [
        make_class_session("r1", "t1", [4, 4, 3, 3, 4, 3, 4, 3], date="2025-10-01"),
        make_class_session("r2", "t1", [2, 2, 2, 2, 2, 2, 2, 2], date="2025-10-15"),
        make_class_session("r3", "t1", [4, 4, 4, 4, 4, 4, 4, 4], date="2025-11-01"),
        make_class_session("r4", "t2", [1, 2, 1, 2, 1, 2, 1, 2], date="2025-10-20"),
        make_general("r5", "t2", [3, 3, 3], date="2025-09-10"),
        make_class_session("r6", "t3", [4, 4, 4, 4, 4, 4, 4, 4], school=SCHOOL_B),
    ]


@pytest.fixture
def storage(schools, admin, supervisor, restricted_supervisor, teachers, reports):
    return build_storage({
        "schools": schools,
        "users": [admin, supervisor, restricted_supervisor],
        "teachers": teachers,
        "reports": reports,
    })


@pytest.fixture
def workspace(storage):
    return Workspace(PersistentStore(storage))


@pytest.fixture
def admin_session(admin, schools):
    return SessionContext(current_user=admin, selected_school=SCHOOL_A, academic_year="2025-2026", schools=tuple(schools))


@pytest.fixture
def supervisor_session(supervisor, schools):
    return SessionContext(current_user=supervisor, selected_school=SCHOOL_A, academic_year="2025-2026", schools=tuple(schools))
