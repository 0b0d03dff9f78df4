"""
Scoped-filtering engine.

Derives, for one session (user, selected school, academic year), the subset of
every collection visible on screen. The derivation is a pure function of the
collections and the session; :class:`ScopedFilteringEngine` memoizes it on the
workspace revision so repeated reads are free until something is written.

Rules:
- a record belongs to the selected school if its ``schoolName``/``school`` tag
  matches; untagged legacy records belong to the first configured school
- teachers need ``view_teachers``; holders of
  ``view_reports_for_specific_teachers`` (without the wildcard) only see the
  teachers they manage, and reports follow the visible teachers
- author-scoped collections additionally require ``authorId`` to be the
  current user unless the user holds the wildcard
"""

import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Sequence, Tuple

from ..models import Permission, SessionContext, Teacher, User
from ..storage import Workspace
from .cache import ViewCache

logger = logging.getLogger(__name__)

AUTHOR_SCOPED = (
    "syllabus_coverage_reports",
    "tasks",
    "meetings",
    "peer_visits",
    "delivery_sheets",
    "bulk_messages",
    "supervisory_plans",
)

SCHOOL_SCOPED = (
    "custom_criteria",
    "special_report_templates",
    "syllabus_plans",
)


@dataclass(frozen=True)
class ScopedView:
    """Visible subset of every collection for one session."""
    teachers: Tuple[Teacher, ...] = ()
    all_teachers_in_school: Tuple[Teacher, ...] = ()
    reports: Tuple = ()
    custom_criteria: Tuple = ()
    special_report_templates: Tuple = ()
    syllabus_plans: Tuple = ()
    syllabus_coverage_reports: Tuple = ()
    tasks: Tuple = ()
    meetings: Tuple = ()
    peer_visits: Tuple = ()
    delivery_sheets: Tuple = ()
    bulk_messages: Tuple = ()
    supervisory_plans: Tuple = ()
    users_in_school: Tuple[User, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not any(getattr(self, name) for name in self.__dataclass_fields__)


def matches_school(
    record: Any,
    selected_school: str,
    first_school_name: Optional[str],
    legacy_fallback: bool = True
) -> bool:
    """True if the record belongs to the selected school.

    Records with no school tag predate multi-school support and are treated
    as belonging to the first school.
    """
    tag = record.school_tag
    if tag:
        return tag == selected_school
    return legacy_fallback and first_school_name is not None and selected_school == first_school_name


def visible_teachers(user: User, school_teachers: Sequence[Teacher]) -> Tuple[Teacher, ...]:
    if not user.has_permission(Permission.VIEW_TEACHERS):
        return ()
    if user.has_permission(Permission.ALL) or Permission.VIEW_REPORTS_FOR_SPECIFIC_TEACHERS.value not in user.permissions:
        return tuple(school_teachers)
    managed = set(user.managed_teacher_ids or ())
    return tuple(t for t in school_teachers if t.id in managed)


def scope_collections(
    collections: Mapping[str, Sequence[Any]],
    session: SessionContext,
    first_school_name: Optional[str] = None,
    legacy_fallback: bool = True
) -> ScopedView:
    """Compute the scoped view. Pure: same inputs, same output."""
    user = session.current_user
    school = session.selected_school
    if user is None or not school:
        return ScopedView()

    first_school_name = first_school_name or session.first_school_name
    is_admin = user.has_permission(Permission.ALL)

    def in_school(record: Any) -> bool:
        return matches_school(record, school, first_school_name, legacy_fallback)

    def by_school(name: str) -> Tuple:
        return tuple(r for r in collections.get(name, ()) if in_school(r))

    def by_author_and_school(name: str) -> Tuple:
        return tuple(
            r for r in collections.get(name, ())
            if in_school(r) and (is_admin or getattr(r, "author_id", None) == user.id)
        )

    all_teachers_in_school = by_school("teachers")
    teachers = visible_teachers(user, all_teachers_in_school)
    teacher_ids = {t.id for t in teachers}

    reports = tuple(
        r for r in collections.get("reports", ())
        if in_school(r) and isinstance(r.teacher_id, str) and r.teacher_id in teacher_ids
    )

    users_in_school = tuple(
        u for u in collections.get("users", ())
        if not u.school_name or u.school_name == school
    )

    scoped = {name: by_school(name) for name in SCHOOL_SCOPED}
    scoped.update({name: by_author_and_school(name) for name in AUTHOR_SCOPED})

    return ScopedView(
        teachers=teachers,
        all_teachers_in_school=all_teachers_in_school,
        reports=reports,
        users_in_school=users_in_school,
        **scoped,
    )


class ScopedFilteringEngine:
    """Memoized scoped views over a workspace."""

    def __init__(self, workspace: Workspace, legacy_fallback: bool = True, cache: Optional[ViewCache] = None):
        self.workspace = workspace
        self.legacy_fallback = legacy_fallback
        self.cache = cache if cache is not None else ViewCache()

    def view(self, session: SessionContext) -> ScopedView:
        schools = session.schools or self.workspace.schools
        first_school_name = schools[0].name if schools else None
        key = (self.workspace.revision, session.cache_key(), first_school_name, self.legacy_fallback)

        cached = self.cache.get(key)
        if cached is not None:
            return cached

        view = scope_collections(
            self.workspace.collections(),
            session,
            first_school_name=first_school_name,
            legacy_fallback=self.legacy_fallback,
        )
        self.cache.set(key, view)
        logger.debug(
            "Computed scoped view",
            extra={"school": session.selected_school, "teachers": len(view.teachers), "reports": len(view.reports)}
        )
        return view
