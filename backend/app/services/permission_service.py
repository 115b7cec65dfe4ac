"""
Capability checks for design actions.

Replaces hardcoded role checks (``role == 'admin'``) with a lookup of the
role's capabilities in settings.ROLE_PERMISSIONS. Admins hold every
capability.
"""
import logging
from typing import Dict, List, Optional

from fastapi import Depends

from app.config import settings
from app.models.user import User
from app.services.design_errors import PermissionDenied
from app.utils.dependencies import get_current_user

logger = logging.getLogger(__name__)


class Permission:
    """Capability strings"""
    DESIGNS_VIEW = 'designs.view'
    DESIGNS_UPLOAD = 'designs.upload'
    DESIGNS_APPROVE = 'designs.approve'
    DESIGNS_FREEZE = 'designs.freeze'
    DESIGNS_DELETE = 'designs.delete'
    DESIGNS_COMMENT = 'designs.comment'

    ALL = [DESIGNS_VIEW, DESIGNS_UPLOAD, DESIGNS_APPROVE, DESIGNS_FREEZE, DESIGNS_DELETE, DESIGNS_COMMENT]


class PermissionService:
    """Resolves whether a user holds a capability."""

    def __init__(self, role_permissions: Optional[Dict[str, List[str]]] = None):
        self.role_permissions = role_permissions if role_permissions is not None else settings.ROLE_PERMISSIONS

    def has_permission(self, user: Optional[User], action: str) -> bool:
        if user is None or not user.is_active:
            return False
        if user.is_admin:
            return True
        return action in self.role_permissions.get(user.role, [])

    def check(self, user: Optional[User], action: str) -> None:
        """Raise PermissionDenied unless user holds action."""
        if not self.has_permission(user, action):
            logger.info(
                f"[Permissions] {getattr(user, 'email', None)} denied {action}",
                extra={"user_id": getattr(user, 'id', None)}
            )
            raise PermissionDenied(action)


permission_service = PermissionService()


def has_permission(user: Optional[User], action: str) -> bool:
    return permission_service.has_permission(user, action)


def require_permission(action: str):
    """
    Dependency factory guarding a route with a capability.

    Usage:
        @router.post("/{design_id}/freeze")
        async def freeze(..., current_user: User = Depends(require_permission(Permission.DESIGNS_FREEZE))):
            ...
    """
    async def dependency(current_user: User = Depends(get_current_user)) -> User:
        permission_service.check(current_user, action)
        return current_user

    return dependency
