from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlmodel import Session

from tasktracker.core.context import AppContext
from tasktracker.core.security import create_access_token
from tasktracker.db.session import get_context, get_session
from tasktracker.dependencies.auth import get_current_user
from tasktracker.models.user import User
from tasktracker.schemas.auth import (
    AuthPayload,
    LoginRequest,
    PasswordChange,
    ProfileUpdate,
    RegisterRequest,
)
from tasktracker.schemas.common import envelope
from tasktracker.schemas.user import UserRead
from tasktracker.services.user_service import UserService

auth_router = APIRouter(prefix="/auth", tags=["auth"])


def _build_auth_payload(user: User, ctx: AppContext) -> AuthPayload:
    return AuthPayload(
        user=UserRead.model_validate(user),
        token=create_access_token(user.user_id, ctx.settings),
        expires_in=ctx.settings.access_token_expire_minutes * 60,
    )


@auth_router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
):
    user = UserService(db, ctx.settings).register(
        email=body.email,
        password=body.password,
        first_name=body.first_name,
        last_name=body.last_name,
    )
    return envelope(_build_auth_payload(user, ctx), "User registered successfully")


@auth_router.post("/login")
def login(
    body: LoginRequest,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
):
    user = UserService(db, ctx.settings).authenticate(body.email, body.password)
    return envelope(_build_auth_payload(user, ctx), "Login successful")


@auth_router.post("/logout")
def logout(user: User = Depends(get_current_user)):
    """Stateless tokens: the client drops its token; nothing to revoke server-side."""
    return envelope(None, "Logged out successfully")


@auth_router.get("/profile")
def get_profile(user: User = Depends(get_current_user)):
    return envelope(UserRead.model_validate(user), "Profile retrieved successfully")


@auth_router.patch("/profile")
def update_profile(
    body: ProfileUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
):
    updated = UserService(db, ctx.settings).update_profile(
        user, body.model_dump(exclude_unset=True)
    )
    return envelope(UserRead.model_validate(updated), "Profile updated successfully")


@auth_router.post("/change-password")
def change_password(
    body: PasswordChange,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
):
    UserService(db, ctx.settings).change_password(
        user, body.current_password, body.new_password
    )
    return envelope(None, "Password changed successfully")


@auth_router.get("/verify")
def verify(user: User = Depends(get_current_user)):
    return envelope(
        {"user": UserRead.model_validate(user), "valid": True},
        "Token is valid",
    )
