"""
User directory: permission-checked create, update and delete of users.

Only holders of ``manage_users`` (or the wildcard) may change users, and the
main administrator (first permission ``all``) can never be deleted.
"""

import logging
from typing import List, Optional, Sequence

from ..ai.codes import generate_unique_code
from ..ai.llm import LLMClient
from ..errors import PermissionDeniedError, ProtectedRecordError
from ..models import Permission, SessionContext, User
from .workspace import Workspace, new_record_id

logger = logging.getLogger(__name__)


class UserDirectory:
    """User management over a workspace's ``users`` collection."""

    def __init__(self, workspace: Workspace, llm_client: Optional[LLMClient] = None, code_attempts: int = 5):
        self.workspace = workspace
        self.llm_client = llm_client
        self.code_attempts = code_attempts

    def _require_manager(self, session: SessionContext) -> None:
        if not session.has_permission(Permission.MANAGE_USERS):
            user_id = session.current_user.id if session.current_user else None
            raise PermissionDeniedError(Permission.MANAGE_USERS.value, user_id)

    def list_users(self, session: SessionContext) -> List[User]:
        self._require_manager(session)
        return list(self.workspace.users)

    def authenticate(self, code: str) -> Optional[User]:
        """Find the user holding a login code."""
        for user in self.workspace.users:
            if user.code and user.code == code:
                return user
        return None

    async def generate_code(self) -> str:
        existing = [user.code for user in self.workspace.users]
        return await generate_unique_code(existing, self.llm_client, self.code_attempts)

    def save_user(self, session: SessionContext, user: User) -> User:
        """Update an existing user by id, or add a new one under a fresh id."""
        self._require_manager(session)
        known_ids = {u.id for u in self.workspace.users}
        if user.id not in known_ids:
            user = user.model_copy(update={"id": new_record_id("user", known_ids)})
            logger.info(f"Created user {user.id}")
        return self.workspace.update_record("users", user)

    def create_user(
        self,
        session: SessionContext,
        name: str,
        code: str,
        permissions: Sequence[str],
        managed_teacher_ids: Optional[Sequence[str]] = None,
        school_name: Optional[str] = None
    ) -> User:
        user = User(
            id="",
            name=name,
            code=code,
            permissions=[p.value if isinstance(p, Permission) else p for p in permissions],
            managed_teacher_ids=list(managed_teacher_ids) if managed_teacher_ids is not None else None,
            school_name=school_name,
        )
        return self.save_user(session, user)

    def delete_user(self, session: SessionContext, user_id: str) -> None:
        self._require_manager(session)
        user = self.workspace.find("users", user_id)
        if user.is_wildcard_admin:
            raise ProtectedRecordError(f"User '{user.name}' is the main administrator and cannot be deleted")
        self.workspace.delete_record("users", user_id)
        logger.info(f"Deleted user {user_id}")
