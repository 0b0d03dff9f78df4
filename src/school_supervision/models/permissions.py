"""
Permission tokens and the checks built on them.

A user carries an ordered list of tokens. ``all`` is the wildcard: it grants
every other token and widens author-scoped collections to the whole school.
"""

from enum import Enum
from typing import Iterable, Union


class Permission(str, Enum):
    """Capability tokens granted to users."""
    ALL = "all"
    MANAGE_USERS = "manage_users"
    CHANGE_SCHOOL = "change_school"
    VIEW_SUPERVISORY_PLAN = "view_supervisory_plan"
    VIEW_TASK_PLAN = "view_task_plan"
    VIEW_SUPERVISORY_TOOLS = "view_supervisory_tools"
    VIEW_MEETING_MINUTES = "view_meeting_minutes"
    VIEW_SCHOOL_CALENDAR = "view_school_calendar"
    VIEW_PEER_VISITS = "view_peer_visits"
    VIEW_DELIVERY_RECORDS = "view_delivery_records"
    VIEW_TEACHERS = "view_teachers"
    ADD_TEACHER = "add_teacher"
    EDIT_TEACHER = "edit_teacher"
    DELETE_TEACHER = "delete_teacher"
    VIEW_REPORTS_FOR_SPECIFIC_TEACHERS = "view_reports_for_specific_teachers"
    CREATE_GENERAL_REPORT = "create_general_report"
    CREATE_CLASS_SESSION_REPORT = "create_class_session_report"
    CREATE_SPECIAL_REPORT = "create_special_report"
    DELETE_REPORT = "delete_report"
    VIEW_SYLLABUS = "view_syllabus"
    VIEW_BULK_MESSAGE = "view_bulk_message"
    VIEW_AGGREGATED_REPORTS = "view_aggregated_reports"
    VIEW_PERFORMANCE_DASHBOARD = "view_performance_dashboard"
    VIEW_SPECIAL_REPORTS_ADMIN = "view_special_reports_admin"
    MANAGE_CRITERIA = "manage_criteria"
    VIEW_SYLLABUS_COVERAGE = "view_syllabus_coverage"


PermissionLike = Union[Permission, str]


def grants(held: Iterable[PermissionLike], required: PermissionLike) -> bool:
    """Return True if the held tokens include ``required`` or the wildcard."""
    wanted = required.value if isinstance(required, Permission) else str(required)
    tokens = {p.value if isinstance(p, Permission) else str(p) for p in held}
    return Permission.ALL.value in tokens or wanted in tokens
