from fastapi import APIRouter, Depends, Query
from sqlmodel import Session

from tasktracker.core.context import AppContext
from tasktracker.db.session import get_context, get_session
from tasktracker.dependencies.auth import get_current_user, require_admin
from tasktracker.models.user import User
from tasktracker.schemas.common import envelope
from tasktracker.services.stats_service import StatsService

router = APIRouter(prefix="/stats", tags=["Stats"])


@router.get("/overview")
def overview(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return envelope(StatsService(db).overview(user), "Overview statistics retrieved successfully")


@router.get("/analytics")
def analytics(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return envelope(StatsService(db).analytics(user, days), "Analytics retrieved successfully")


@router.get("/user")
def user_stats(
    db: Session = Depends(get_session),
    user: User = Depends(get_current_user),
):
    return envelope(StatsService(db).user_stats(user), "User statistics retrieved successfully")


@router.get("/team")
def team_stats(
    db: Session = Depends(get_session),
    admin: User = Depends(require_admin),
):
    return envelope(StatsService(db).team(), "Team statistics retrieved successfully")


@router.get("/system")
def system_stats(
    db: Session = Depends(get_session),
    ctx: AppContext = Depends(get_context),
    admin: User = Depends(require_admin),
):
    data = StatsService(db).system(
        started_at=ctx.started_at,
        version=ctx.settings.app_version,
        environment=ctx.settings.env,
    )
    return envelope(data, "System statistics retrieved successfully")
