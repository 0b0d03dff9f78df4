"""Tests for the store adapter, workspace, ownership cascades, migrations and users."""

import json
import random
import pytest
from unittest.mock import AsyncMock

from school_supervision.ai import LLMClient, LLMError, generate_unique_code, random_code
from school_supervision.errors import (
    DeleteRestrictedError,
    PermissionDeniedError,
    ProtectedRecordError,
    RecordNotFoundError,
)
from school_supervision.models import SessionContext, Task, Teacher, UnrecognizedReport
from school_supervision.scoping import scope_collections
from school_supervision.storage import (
    DeletePolicy,
    InMemoryStorage,
    JsonFileStorage,
    OwnershipEdge,
    OwnershipGraph,
    PersistentStore,
    UserDirectory,
    Workspace,
    new_record_id,
)

from conftest import SCHOOL_A, SCHOOL_B, build_storage, make_class_session


class TestPersistentStore:
    """Test JSON encoding over the storage port."""

    def test_default_when_missing(self):
        store = PersistentStore(InMemoryStorage())
        assert store.load("teachers", []) == []

    def test_default_when_invalid_json(self):
        store = PersistentStore(InMemoryStorage({"teachers": "{not json"}))
        assert store.load("teachers", ["fallback"]) == ["fallback"]

    def test_save_and_load(self):
        store = PersistentStore(InMemoryStorage())
        store.save("schools", [{"id": "s", "name": "مدرسة"}])
        assert store.load("schools", []) == [{"id": "s", "name": "مدرسة"}]
        assert "مدرسة" in store.get_raw("schools")

    def test_json_file_storage_persists(self, tmp_path):
        path = tmp_path / "data.json"
        storage = JsonFileStorage(path)
        storage.set("tasks", "[]")
        storage.set("schools", '[{"id": "1"}]')
        storage.remove("tasks")

        reopened = JsonFileStorage(path)
        assert reopened.keys() == ["schools"]
        assert reopened.get("schools") == '[{"id": "1"}]'

    def test_json_file_storage_corrupt_file(self, tmp_path):
        path = tmp_path / "data.json"
        path.write_text("garbage", encoding="utf-8")
        assert JsonFileStorage(path).keys() == []


class TestWorkspace:
    """Test loading, saving and revisions."""

    def test_loads_typed_collections(self, workspace):
        assert len(workspace.teachers) == 3
        assert isinstance(workspace.teachers[0], Teacher)
        assert {r.id for r in workspace.reports} == {"r1", "r2", "r3", "r4", "r5", "r6"}

    def test_unknown_report_kept_unscored(self):
        storage = InMemoryStorage({"reports": json.dumps([{"id": "x", "evaluationType": "legacy", "teacherId": "t1"}])})
        workspace = Workspace(PersistentStore(storage))
        assert isinstance(workspace.reports[0], UnrecognizedReport)

    def test_invalid_entries_survive_writes(self):
        raw = [{"id": "good", "name": "معلم"}, {"name": "بدون معرف"}]
        storage = InMemoryStorage({"teachers": json.dumps(raw, ensure_ascii=False)})
        workspace = Workspace(PersistentStore(storage))
        assert [t.id for t in workspace.teachers] == ["good"]

        workspace.update_record("teachers", Teacher(id="new", name="جديد"))
        stored = json.loads(storage.get("teachers"))
        assert {"name": "بدون معرف"} in stored
        assert len(stored) == 3

    def test_default_school_when_none_stored(self):
        workspace = Workspace(PersistentStore(InMemoryStorage()), default_school_name="المدرسة الرئيسية")
        assert [s.name for s in workspace.schools] == ["المدرسة الرئيسية"]

    def test_unknown_fields_round_trip(self):
        raw = [{"id": "t1", "name": "معلم", "favoriteColor": "blue"}]
        storage = InMemoryStorage({"teachers": json.dumps(raw)})
        workspace = Workspace(PersistentStore(storage))
        workspace.replace("teachers", workspace.teachers)
        assert json.loads(storage.get("teachers"))[0]["favoriteColor"] == "blue"

    def test_save_record_stamps_ownership(self, workspace, supervisor_session):
        saved = workspace.save_record("tasks", Task(id="task-1", description="خطة"), supervisor_session)
        assert saved.author_id == "user-sup"
        assert saved.school_name == SCHOOL_A
        assert saved.academic_year == "2025-2026"

    def test_revision_bumps_on_write(self, workspace):
        before = workspace.revision
        workspace.add_school("مدرسة جديدة")
        assert workspace.revision > before

    def test_add_teacher_fresh_id(self, workspace):
        created = workspace.add_teacher({"id": "t1", "name": "معلم جديد"}, SCHOOL_B)
        assert created.id != "t1"
        assert created.school_name == SCHOOL_B

    def test_camel_case_storage_names(self, workspace, storage):
        workspace.update_record("reports", make_class_session("r9", "t2", [3]))
        stored = json.loads(storage.get("reports"))
        entry = next(r for r in stored if r["id"] == "r9")
        assert entry["teacherId"] == "t2"
        assert entry["evaluationType"] == "class_session"

    def test_find_missing(self, workspace):
        with pytest.raises(RecordNotFoundError):
            workspace.find("teachers", "nobody")

    def test_new_record_id_avoids_taken(self):
        first = new_record_id("task")
        assert new_record_id("task", [first]) != first

    def test_hidden_criteria(self, workspace):
        workspace.hide_criteria(["c1"])
        workspace.hide_criteria(["c2", "c1"], ["t1"])
        assert workspace.hidden_criteria_for("t1") == {"c1", "c2"}
        assert workspace.hidden_criteria_for("t2") == {"c1"}


class TestCascades:
    """Test delete resolution over the ownership graph."""

    def test_deleting_teacher_removes_only_their_reports(self, workspace):
        plan = workspace.delete_record("teachers", "t1")
        assert plan["reports"] == {"r1", "r2", "r3"}
        assert {t.id for t in workspace.teachers} == {"t2", "t3"}
        assert {r.id for r in workspace.reports} == {"r4", "r5", "r6"}

    def test_teacher_without_reports(self, workspace):
        workspace.add_teacher({"name": "بلا تقارير"}, SCHOOL_A)
        created = workspace.teachers[-1]
        plan = workspace.delete_record("teachers", created.id)
        assert plan == {"teachers": {created.id}}
        assert len(workspace.reports) == 6

    def test_restrict_policy(self, storage):
        graph = OwnershipGraph([
            OwnershipEdge(parent="teachers", child="reports", foreign_key="teacher_id", policy=DeletePolicy.RESTRICT),
        ])
        workspace = Workspace(PersistentStore(storage), ownership=graph)
        with pytest.raises(DeleteRestrictedError) as exc_info:
            workspace.delete_record("teachers", "t1")
        assert exc_info.value.dependents == 3
        assert len(workspace.teachers) == 3

    def test_delete_records_no_cascade(self, workspace):
        assert workspace.delete_records("reports", ["r1", "r2", "missing"]) == 2
        assert len(workspace.teachers) == 3


class TestMigration:
    """Test attribution of untagged legacy records."""

    def test_untagged_records_get_first_school(self, schools):
        storage = build_storage({
            "schools": schools,
            "teachers": [Teacher(id="old", name="قديم"), Teacher(id="new", name="جديد", school_name=SCHOOL_B)],
            "tasks": [Task(id="task-old")],
        })
        workspace = Workspace(PersistentStore(storage))
        counts = workspace.migrate_untagged_records()
        assert counts == {"teachers": 1, "tasks": 1}
        assert workspace.find("teachers", "old").school_name == SCHOOL_A
        assert workspace.find("teachers", "new").school_name == SCHOOL_B
        assert workspace.migrate_untagged_records() == {}

    def test_reports_use_school_field(self, schools):
        legacy = make_class_session("legacy", "t1", [3], school="")
        workspace = Workspace(PersistentStore(build_storage({"schools": schools, "reports": [legacy]})))
        workspace.migrate_untagged_records()
        assert workspace.find("reports", "legacy").school == SCHOOL_A

    def test_global_users_stay_global(self, schools, admin, supervisor):
        storage = build_storage({
            "schools": schools,
            "users": [admin, supervisor],
            "teachers": [Teacher(id="old", name="قديم")],
        })
        workspace = Workspace(PersistentStore(storage))
        assert workspace.migrate_untagged_records() == {"teachers": 1}
        assert workspace.find("users", "user-admin").school_name is None

        session = SessionContext(admin, SCHOOL_B, schools=tuple(schools))
        view = scope_collections(workspace.collections(), session, legacy_fallback=False)
        assert [u.id for u in view.users_in_school] == ["user-admin"]


class TestUserDirectory:
    """Test user management and login codes."""

    def test_authenticate(self, workspace):
        directory = UserDirectory(workspace)
        assert directory.authenticate("5678").id == "user-sup"
        assert directory.authenticate("0000") is None

    def test_requires_manage_users(self, workspace, supervisor_session):
        with pytest.raises(PermissionDeniedError):
            UserDirectory(workspace).list_users(supervisor_session)

    def test_create_user(self, workspace, admin_session):
        directory = UserDirectory(workspace)
        user = directory.create_user(admin_session, "مشرف جديد", "4321", ["view_teachers"], managed_teacher_ids=["t2"])
        assert user.id.startswith("user-")
        assert directory.authenticate("4321").managed_teacher_ids == ["t2"]

    def test_main_admin_cannot_be_deleted(self, workspace, admin_session):
        directory = UserDirectory(workspace)
        with pytest.raises(ProtectedRecordError):
            directory.delete_user(admin_session, "user-admin")
        directory.delete_user(admin_session, "user-sup")
        assert {u.id for u in workspace.users} == {"user-admin", "user-restricted"}


class TestLoginCodes:
    """Test code generation with the model and the random fallback."""

    def test_random_code_unused(self):
        rng = random.Random(7)
        code = random_code(["1234"], rng)
        assert len(code) == 4 and code.isdigit() and code != "1234"

    @pytest.mark.asyncio
    async def test_model_code_accepted(self):
        client = AsyncMock(spec=LLMClient)
        client.complete.return_value = "Here it is: 4829"
        assert await generate_unique_code(["1234"], client) == "4829"

    @pytest.mark.asyncio
    async def test_taken_model_code_retried(self):
        client = AsyncMock(spec=LLMClient)
        client.complete.side_effect = ["1234", "no digits", "7351"]
        assert await generate_unique_code(["1234"], client, attempts=3) == "7351"
        assert client.complete.call_count == 3

    @pytest.mark.asyncio
    async def test_fallback_on_provider_error(self):
        client = AsyncMock(spec=LLMClient)
        client.complete.side_effect = LLMError("quota")
        code = await generate_unique_code(["1234"], client, rng=random.Random(1))
        assert len(code) == 4 and code != "1234"

    @pytest.mark.asyncio
    async def test_fallback_without_client(self, workspace):
        code = await UserDirectory(workspace).generate_code()
        assert code not in {"1234", "5678", "9012"}
