"""
In-memory workspace over the persisted collections.

The workspace loads every collection from a :class:`PersistentStore`, exposes
them as immutable tuples of typed records, and writes a collection back in
full whenever it changes. Each write bumps ``revision`` so derived views can be
memoized on it.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Tuple, Union

from pydantic import BaseModel, ValidationError

from ..errors import RecordNotFoundError
from ..models import (
    BulkMessage,
    CustomCriterion,
    DeliverySheet,
    Meeting,
    PeerVisit,
    School,
    SessionContext,
    SpecialReportTemplate,
    SupervisoryPlanWrapper,
    SyllabusCoverageReport,
    SyllabusPlan,
    Task,
    Teacher,
    User,
    parse_report,
)
from .cascade import DEFAULT_OWNERSHIP, OwnershipGraph
from .store import PersistentStore

logger = logging.getLogger(__name__)

HIDDEN_CRITERIA_KEY = "hiddenCriteria"
ALL_TEACHERS = "all"


@dataclass(frozen=True)
class CollectionSpec:
    """How one collection is stored and parsed."""
    name: str
    key: str
    parser: Callable[[Any], Any]
    school_fields: Tuple[str, ...] = ("school_name",)


@dataclass(frozen=True)
class _Unparsed:
    """A stored entry that failed validation, written back untouched."""
    raw: Any


COLLECTIONS: Tuple[CollectionSpec, ...] = (
    CollectionSpec("schools", "schools", School.model_validate, ()),
    # a user without a school is global, so nothing stamps or migrates one
    CollectionSpec("users", "users", User.model_validate, ()),
    CollectionSpec("teachers", "teachers", Teacher.model_validate),
    CollectionSpec("reports", "reports", parse_report, ("school",)),
    CollectionSpec("custom_criteria", "customCriteria", CustomCriterion.model_validate, ("school",)),
    CollectionSpec("special_report_templates", "specialReportTemplates", SpecialReportTemplate.model_validate),
    CollectionSpec("syllabus_plans", "syllabusPlans", SyllabusPlan.model_validate),
    CollectionSpec("syllabus_coverage_reports", "syllabusCoverageReports", SyllabusCoverageReport.model_validate),
    CollectionSpec("tasks", "tasks", Task.model_validate),
    CollectionSpec("meetings", "meetings", Meeting.model_validate),
    CollectionSpec("peer_visits", "peerVisits", PeerVisit.model_validate),
    CollectionSpec("delivery_sheets", "deliverySheets", DeliverySheet.model_validate),
    CollectionSpec("bulk_messages", "bulkMessages", BulkMessage.model_validate),
    CollectionSpec("supervisory_plans", "supervisoryPlans", SupervisoryPlanWrapper.model_validate),
)

COLLECTION_SPECS: Dict[str, CollectionSpec] = {spec.name: spec for spec in COLLECTIONS}


def new_record_id(prefix: str, taken: Iterable[str] = ()) -> str:
    """Millisecond-timestamp id, bumped until it is not already taken."""
    used = set(taken)
    stamp = int(time.time() * 1000)
    while f"{prefix}-{stamp}" in used:
        stamp += 1
    return f"{prefix}-{stamp}"


def _collection_property(name: str):
    def getter(self) -> Tuple:
        return self.collection(name)
    getter.__doc__ = f"Loaded {name} records."
    return property(getter)


class Workspace:
    """All collections of one store, loaded and typed."""

    def __init__(
        self,
        store: PersistentStore,
        ownership: OwnershipGraph = DEFAULT_OWNERSHIP,
        default_school_name: Optional[str] = None
    ):
        self.store = store
        self.ownership = ownership
        self.default_school_name = default_school_name
        self._items: Dict[str, List[Any]] = {}
        self._hidden_criteria: Dict[str, List[str]] = {}
        self._revision = 0
        self.reload()

    schools = _collection_property("schools")
    users = _collection_property("users")
    teachers = _collection_property("teachers")
    reports = _collection_property("reports")
    custom_criteria = _collection_property("custom_criteria")
    special_report_templates = _collection_property("special_report_templates")
    syllabus_plans = _collection_property("syllabus_plans")
    syllabus_coverage_reports = _collection_property("syllabus_coverage_reports")
    tasks = _collection_property("tasks")
    meetings = _collection_property("meetings")
    peer_visits = _collection_property("peer_visits")
    delivery_sheets = _collection_property("delivery_sheets")
    bulk_messages = _collection_property("bulk_messages")
    supervisory_plans = _collection_property("supervisory_plans")

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def hidden_criteria(self) -> Dict[str, List[str]]:
        return {k: list(v) for k, v in self._hidden_criteria.items()}

    def reload(self) -> None:
        """(Re)read every collection from the store."""
        for spec in COLLECTIONS:
            self._items[spec.name] = self._load_collection(spec)

        if not self._items["schools"] and self.default_school_name:
            self._items["schools"] = [School(id="school-1", name=self.default_school_name)]

        hidden = self.store.load(HIDDEN_CRITERIA_KEY, {})
        self._hidden_criteria = hidden if isinstance(hidden, dict) else {}
        self._revision += 1

    def _load_collection(self, spec: CollectionSpec) -> List[Any]:
        raw_items = self.store.load(spec.key, [])
        if not isinstance(raw_items, list):
            logger.warning(f"Key '{spec.key}' does not hold a list, treating it as empty")
            return []

        items: List[Any] = []
        for raw in raw_items:
            try:
                items.append(spec.parser(raw))
            except ValidationError as e:
                logger.warning(
                    f"Invalid entry in '{spec.key}' kept as-is",
                    extra={"record_id": raw.get("id") if isinstance(raw, dict) else None, "errors": e.error_count()}
                )
                items.append(_Unparsed(raw))
        return items

    def collection(self, name: str) -> Tuple:
        if name not in COLLECTION_SPECS:
            raise KeyError(f"Unknown collection: {name}")
        return tuple(item for item in self._items[name] if not isinstance(item, _Unparsed))

    def collections(self) -> Dict[str, Tuple]:
        return {spec.name: self.collection(spec.name) for spec in COLLECTIONS}

    def _persist(self, name: str) -> None:
        spec = COLLECTION_SPECS[name]
        payload = [
            item.raw if isinstance(item, _Unparsed) else item.to_storage()
            for item in self._items[name]
        ]
        self.store.save(spec.key, payload)
        self._revision += 1

    def replace(self, name: str, records: Sequence[Any]) -> None:
        """Replace a whole collection. Entries that never validated are kept."""
        spec = COLLECTION_SPECS[name]
        unparsed = [item for item in self._items[name] if isinstance(item, _Unparsed)]
        self._items[name] = [self._coerce(spec, record) for record in records] + unparsed
        self._persist(name)

    def _coerce(self, spec: CollectionSpec, record: Any) -> Any:
        if isinstance(record, BaseModel):
            return record
        return spec.parser(record)

    def find(self, name: str, record_id: str) -> Any:
        for item in self.collection(name):
            if item.id == record_id:
                return item
        raise RecordNotFoundError(name, record_id)

    def save_record(self, name: str, record: Union[BaseModel, Mapping[str, Any]], session: SessionContext) -> Any:
        """
        Upsert a record by id, stamping ownership from the session.

        The author, academic year and school tags are overwritten with the
        session's values so saved records always land in the current scope.
        """
        spec = COLLECTION_SPECS[name]
        stamped = self._stamp(spec, self._coerce(spec, record), session)
        self._upsert(name, stamped)
        logger.info(f"Saved {name}/{stamped.id}", extra={"school": session.selected_school})
        return stamped

    def update_record(self, name: str, record: Union[BaseModel, Mapping[str, Any]]) -> Any:
        """Upsert a record by id without touching its ownership tags."""
        spec = COLLECTION_SPECS[name]
        coerced = self._coerce(spec, record)
        self._upsert(name, coerced)
        return coerced

    def _upsert(self, name: str, record: Any) -> None:
        items = self._items[name]
        for index, existing in enumerate(items):
            if not isinstance(existing, _Unparsed) and existing.id == record.id:
                items[index] = record
                break
        else:
            items.append(record)
        self._persist(name)

    def _stamp(self, spec: CollectionSpec, record: Any, session: SessionContext) -> Any:
        fields = type(record).model_fields
        update: Dict[str, Any] = {}
        if session.current_user is not None and "author_id" in fields:
            update["author_id"] = session.current_user.id
        if session.academic_year and "academic_year" in fields:
            update["academic_year"] = session.academic_year
        if session.selected_school:
            for field_name in spec.school_fields:
                if field_name in fields:
                    update[field_name] = session.selected_school
        return record.model_copy(update=update) if update else record

    def add_school(self, name: str) -> School:
        school = School(id=new_record_id("school", (s.id for s in self.schools)), name=name)
        self._items["schools"].append(school)
        self._persist("schools")
        return school

    def add_teacher(self, teacher: Union[Teacher, Mapping[str, Any]], school_name: str) -> Teacher:
        """Create a teacher in a school with a fresh id."""
        data = teacher.model_dump() if isinstance(teacher, Teacher) else dict(teacher)
        data.pop("id", None)
        data.pop("school_name", None)
        data.pop("schoolName", None)
        created = Teacher.model_validate({
            **data,
            "id": new_record_id("teacher", (t.id for t in self.teachers)),
            "school_name": school_name,
        })
        self._items["teachers"].append(created)
        self._persist("teachers")
        logger.info(f"Added teacher {created.id} to {school_name}")
        return created

    def delete_record(self, name: str, record_id: str) -> Dict[str, Set[str]]:
        """Delete a record and whatever the ownership graph says goes with it."""
        self.find(name, record_id)
        plan = self.ownership.plan_delete(self.collections(), name, record_id)
        for collection_name, ids in plan.items():
            self._items[collection_name] = [
                item for item in self._items[collection_name]
                if isinstance(item, _Unparsed) or item.id not in ids
            ]
            self._persist(collection_name)
        return plan

    def delete_records(self, name: str, record_ids: Iterable[str]) -> int:
        """Delete several records of one collection by id. No cascades."""
        doomed = set(record_ids)
        before = len(self._items[name])
        self._items[name] = [
            item for item in self._items[name]
            if isinstance(item, _Unparsed) or item.id not in doomed
        ]
        removed = before - len(self._items[name])
        if removed:
            self._persist(name)
        return removed

    def hide_criteria(self, criterion_ids: Sequence[str], teacher_ids: Union[str, Sequence[str]] = ALL_TEACHERS) -> None:
        """Merge criterion ids into the hidden set of each target (or ``all``)."""
        targets = [ALL_TEACHERS] if teacher_ids == ALL_TEACHERS else list(teacher_ids)
        for target in targets:
            existing = self._hidden_criteria.get(target, [])
            self._hidden_criteria[target] = list(dict.fromkeys([*existing, *criterion_ids]))
        self.store.save(HIDDEN_CRITERIA_KEY, self._hidden_criteria)
        self._revision += 1

    def hidden_criteria_for(self, teacher_id: str) -> Set[str]:
        """Criterion ids hidden for one teacher, including school-wide ones."""
        return set(self._hidden_criteria.get(ALL_TEACHERS, [])) | set(self._hidden_criteria.get(teacher_id, []))

    def migrate_untagged_records(self, school_name: Optional[str] = None) -> Dict[str, int]:
        """Attribute records with no school tag to ``school_name`` (default: first school)."""
        from .migrations import attribute_untagged_records

        target = school_name or (self.schools[0].name if self.schools else None)
        if not target:
            return {}
        return attribute_untagged_records(self, target)
