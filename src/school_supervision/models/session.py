"""
Session context passed explicitly to every scoped operation.

Holds the active user, the selected school and academic year, and the ordered
school list (whose first entry receives legacy records with no school tag).
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from .entities import School, User
from .permissions import Permission, PermissionLike


@dataclass(frozen=True)
class SessionContext:
    """Who is looking at what."""
    current_user: Optional[User]
    selected_school: Optional[str]
    academic_year: Optional[str] = None
    schools: Tuple[School, ...] = field(default_factory=tuple)

    @property
    def is_active(self) -> bool:
        return self.current_user is not None and bool(self.selected_school)

    @property
    def first_school_name(self) -> Optional[str]:
        return self.schools[0].name if self.schools else None

    def has_permission(self, permission: PermissionLike) -> bool:
        if self.current_user is None:
            return False
        return self.current_user.has_permission(permission)

    @property
    def is_admin(self) -> bool:
        return self.has_permission(Permission.ALL)

    def cache_key(self) -> Tuple:
        """Identity of everything the scoped view depends on besides the data."""
        user = self.current_user
        user_key = None
        if user is not None:
            user_key = (
                user.id,
                tuple(user.permissions),
                tuple(user.managed_teacher_ids) if user.managed_teacher_ids is not None else None,
            )
        return (
            user_key,
            self.selected_school,
            self.academic_year,
            tuple(school.name for school in self.schools),
        )
