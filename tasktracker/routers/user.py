from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from tasktracker.core.context import AppContext
from tasktracker.db.session import get_context, get_session
from tasktracker.dependencies.auth import get_current_user, require_admin
from tasktracker.models.user import User, UserRole
from tasktracker.schemas.common import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, Pagination, envelope
from tasktracker.schemas.user import RoleUpdate, UserRead, UserUpdate
from tasktracker.services.user_service import UserService

user_router = APIRouter(prefix="/users", tags=["Users"])


@user_router.get("")
def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    admin: User = Depends(require_admin),
):
    users, total = UserService(db, ctx.settings).list_users(
        role=role, search=search, page=page, limit=limit
    )
    return envelope(
        [UserRead.model_validate(u) for u in users],
        "Users retrieved successfully",
        Pagination.build(page=page, limit=limit, total=total),
    )


@user_router.get("/dashboard")
def my_dashboard(
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(get_current_user),
):
    data = UserService(db, ctx.settings).dashboard(user)
    return envelope(data, "Dashboard data retrieved successfully")


@user_router.get("/dashboard/{user_id}")
def user_dashboard(
    user_id: UUID,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(get_current_user),
):
    data = UserService(db, ctx.settings).dashboard(user, user_id)
    return envelope(data, "Dashboard data retrieved successfully")


@user_router.get("/{user_id}")
def get_user(
    user_id: UUID,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(get_current_user),
):
    target, task_stats = UserService(db, ctx.settings).get_user_with_stats(user, user_id)
    return envelope(
        {"user": UserRead.model_validate(target), "task_stats": task_stats},
        "User retrieved successfully",
    )


@user_router.patch("/{user_id}")
def update_user(
    user_id: UUID,
    body: UserUpdate,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    user: User = Depends(get_current_user),
):
    updated = UserService(db, ctx.settings).update_user(
        user, user_id, body.model_dump(exclude_unset=True)
    )
    return envelope(UserRead.model_validate(updated), "User updated successfully")


@user_router.patch("/{user_id}/role")
def change_user_role(
    user_id: UUID,
    body: RoleUpdate,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    admin: User = Depends(require_admin),
):
    updated = UserService(db, ctx.settings).change_role(admin, user_id, body.role)
    return envelope(UserRead.model_validate(updated), "User role updated successfully")


@user_router.delete("/{user_id}")
def delete_user(
    user_id: UUID,
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    admin: User = Depends(require_admin),
):
    UserService(db, ctx.settings).delete_user(admin, user_id)
    return envelope(None, "User deleted successfully")
