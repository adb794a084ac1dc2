from uuid import UUID

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlmodel import Session

from tasktracker.core.context import AppContext
from tasktracker.core.errors import AuthError, PermissionDeniedError
from tasktracker.core.security import verify_access_token
from tasktracker.db.session import get_context, get_session
from tasktracker.models.user import User, UserRole

# auto_error=False: 401 응답도 공통 에러 봉투로 내려가도록 직접 처리
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)


def get_current_user(
    token: str | None = Depends(oauth2_scheme),
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
) -> User:
    """Strict auth dependency; raises AuthError when no/invalid token."""
    if not token:
        raise AuthError("Access denied. No token provided")

    payload = verify_access_token(token, ctx.settings)
    try:
        user_id = UUID(str(payload["sub"]))
    except ValueError:
        raise AuthError("Invalid token")

    user = db.get(User, user_id)
    if user is None:
        raise AuthError("User no longer exists")
    return user


def require_admin(user: User = Depends(get_current_user)) -> User:
    if user.role != UserRole.ADMIN:
        raise PermissionDeniedError("Admin access required")
    return user
