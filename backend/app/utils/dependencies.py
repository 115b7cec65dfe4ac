"""
FastAPI dependencies resolving the calling user.

Tokens are issued by the identity service; this backend verifies the
signature, reads the user id from ``sub`` and loads the User row, whose
role drives the capability checks in permission_service.
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.user import User, UserRole
from app.utils.auth import decode_access_token

logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def _user_id_from_token(token: str) -> int:
    payload = decode_access_token(token)
    if not payload or payload.get("sub") is None:
        raise _unauthorized("Could not validate credentials")
    try:
        return int(payload["sub"])
    except (ValueError, TypeError):
        raise _unauthorized("Could not validate credentials")


def _authenticate_user(token: str, db: Session) -> User:
    """
    Resolve a bearer token to an active user with a known role.

    Raises:
        HTTPException: 401 for bad tokens or unknown users, 403 for
            inactive users or roles outside UserRole.ALL
    """
    user_id = _user_id_from_token(token)
    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise _unauthorized("Could not validate credentials")

    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    if user.role not in UserRole.ALL:
        logger.warning(f"User {user.id} has unknown role '{user.role}'", extra={"user_id": user.id})
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Unknown role")

    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Current user from the Authorization: Bearer header."""
    if credentials is None:
        raise _unauthorized("Missing authentication credentials")
    return _authenticate_user(credentials.credentials, db)
