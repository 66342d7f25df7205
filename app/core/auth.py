import uuid

from fastapi import Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlmodel import Session

from app.core.errors import ForbiddenError, UnauthorizedError
from app.core.security import decode_access_token
from app.core.time_utils import as_utc
from app.database import get_session
from app.models.user import User

# HTTP Bearer scheme:
# - auto_error=False => we raise our own 401 with a readable message
#   instead of FastAPI's default 403 for a missing header.
bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(get_session),
) -> User:
    """
    Resolve the current user from a bearer access token.

    Flow:
      1. No Authorization header => 401.
      2. Decode JWT (signature + exp) => extract 'sub' and 'iat'.
      3. Load the user; missing or deactivated => 401.
      4. Token issued before the last password change => 401 (stale).

    Returns:
        The authenticated User.
    """
    if credentials is None:
        raise UnauthorizedError(
            "You are not logged in! Please log in to get access this route."
        )

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    issued_at = payload.get("iat")
    if not sub or issued_at is None:
        raise UnauthorizedError("Invalid or expired token")

    try:
        user_id = uuid.UUID(sub)
    except ValueError:
        raise UnauthorizedError("Invalid or expired token")

    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise UnauthorizedError(
            "This user is either deactivated or deleted. Please contact support."
        )

    if user.password_changed_at is not None:
        changed_at = int(as_utc(user.password_changed_at).timestamp())
        if changed_at > int(issued_at):
            raise UnauthorizedError(
                "User recently changed password! Please log in again."
            )

    return user


def allowed_roles(*roles: str):
    """
    Dependency factory enforcing a role allow-list.

    Usage:
        @router.put("/{id}/pay", dependencies=[Depends(allowed_roles("admin", "manager"))])

    Raises:
        ForbiddenError(403): if the authenticated user's role is not allowed.
    """

    def _check(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise ForbiddenError("You do not have permission to perform this action")
        return user

    return _check


require_user = allowed_roles("user")
require_staff = allowed_roles("admin", "manager")
require_admin = allowed_roles("admin")
require_any_role = allowed_roles("user", "admin", "manager")
