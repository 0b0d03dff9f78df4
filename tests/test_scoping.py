"""
Tests for the scoped-filtering engine.

Covers the closed-world default for missing sessions, school matching with the
legacy first-school rule, author scoping against the wildcard, managed-teacher
lists and memoization on the workspace revision.
"""

import itertools
import pytest
from unittest.mock import patch

from school_supervision.models import SessionContext, Task, Teacher, User
from school_supervision.scoping import ScopedFilteringEngine, ViewCache, matches_school, scope_collections
from school_supervision.storage import PersistentStore, Workspace

from conftest import SCHOOL_A, SCHOOL_B, build_storage, make_class_session


@pytest.fixture
def engine(workspace):
    return ScopedFilteringEngine(workspace)


class TestClosedWorld:
    """Test that an incomplete session sees nothing."""

    def test_no_user(self, engine, schools):
        session = SessionContext(current_user=None, selected_school=SCHOOL_A, schools=tuple(schools))
        view = engine.view(session)
        assert view.is_empty
        assert view.reports == ()

    def test_no_school(self, engine, admin):
        view = engine.view(SessionContext(current_user=admin, selected_school=None))
        assert view.is_empty


class TestSchoolMatching:
    """Test school tags and the legacy fallback."""

    def test_tagged_record(self, teachers):
        assert matches_school(teachers[0], SCHOOL_A, SCHOOL_A)
        assert not matches_school(teachers[0], SCHOOL_B, SCHOOL_A)

    def test_untagged_record_goes_to_first_school(self):
        legacy = Teacher(id="old", name="قديم")
        assert matches_school(legacy, SCHOOL_A, SCHOOL_A)
        assert not matches_school(legacy, SCHOOL_B, SCHOOL_A)

    def test_fallback_can_be_disabled(self):
        legacy = Teacher(id="old", name="قديم")
        assert not matches_school(legacy, SCHOOL_A, SCHOOL_A, legacy_fallback=False)

    def test_admin_sees_school_slice(self, engine, admin_session):
        view = engine.view(admin_session)
        assert {t.id for t in view.teachers} == {"t1", "t2"}
        assert {r.id for r in view.reports} == {"r1", "r2", "r3", "r4", "r5"}

    def test_other_school(self, engine, admin, schools):
        view = engine.view(SessionContext(current_user=admin, selected_school=SCHOOL_B, schools=tuple(schools)))
        assert [t.id for t in view.teachers] == ["t3"]
        assert [r.id for r in view.reports] == ["r6"]


class TestAuthorScoping:
    """Test author-scoped collections and managed teachers."""

    @pytest.fixture
    def tasks_workspace(self, schools, admin, supervisor, teachers):
        tasks = [
            Task(id="task-admin", school_name=SCHOOL_A, author_id="user-admin", description="أ"),
            Task(id="task-sup", school_name=SCHOOL_A, author_id="user-sup", description="ب"),
            Task(id="task-other-school", school_name=SCHOOL_B, author_id="user-sup", description="ج"),
        ]
        storage = build_storage({"schools": schools, "users": [admin, supervisor], "teachers": teachers, "tasks": tasks})
        return Workspace(PersistentStore(storage))

    def test_wildcard_sees_all_authors(self, tasks_workspace, admin_session):
        view = ScopedFilteringEngine(tasks_workspace).view(admin_session)
        assert {t.id for t in view.tasks} == {"task-admin", "task-sup"}

    def test_non_admin_sees_own_items(self, tasks_workspace, supervisor_session):
        view = ScopedFilteringEngine(tasks_workspace).view(supervisor_session)
        assert [t.id for t in view.tasks] == ["task-sup"]

    def test_managed_teacher_list(self, engine, restricted_supervisor, schools):
        session = SessionContext(current_user=restricted_supervisor, selected_school=SCHOOL_A, schools=tuple(schools))
        view = engine.view(session)
        assert [t.id for t in view.teachers] == ["t1"]
        assert {r.teacher_id for r in view.reports} == {"t1"}
        assert {t.id for t in view.all_teachers_in_school} == {"t1", "t2"}

    def test_without_view_teachers_permission(self, engine, schools):
        user = User(id="u", name="ضيف", permissions=["view_task_plan"])
        view = engine.view(SessionContext(current_user=user, selected_school=SCHOOL_A, schools=tuple(schools)))
        assert view.teachers == ()
        assert view.reports == ()

    def test_users_in_school(self, engine, admin_session):
        view = engine.view(admin_session)
        assert {u.id for u in view.users_in_school} == {"user-admin", "user-sup", "user-restricted"}


class TestPurityAndMemoization:
    """Test that views are pure and memoized on the workspace revision."""

    def test_pure_function(self, workspace, admin_session):
        collections = workspace.collections()
        first = scope_collections(collections, admin_session)
        second = scope_collections(collections, admin_session)
        assert first == second

    def test_cached_until_revision_changes(self, workspace, admin_session):
        cache = ViewCache()
        engine = ScopedFilteringEngine(workspace, cache=cache)
        first = engine.view(admin_session)
        assert engine.view(admin_session) is first
        assert cache.hits == 1

        workspace.update_record("reports", make_class_session("r7", "t2", [4, 4]))
        refreshed = engine.view(admin_session)
        assert refreshed is not first
        assert "r7" in {r.id for r in refreshed.reports}

    def test_cache_eviction(self):
        cache = ViewCache(max_size=2)
        with patch("school_supervision.scoping.cache.time") as clock:
            clock.time.side_effect = itertools.count(1)
            cache.set("a", 1)
            cache.set("b", 2)
            cache.get("a")
            cache.set("c", 3)
        assert len(cache) == 2
        assert cache.get("a") == 1
        assert cache.get("b") is None
