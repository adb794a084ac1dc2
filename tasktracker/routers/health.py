# tasktracker/routers/health.py
import logging

from fastapi import APIRouter, Depends
from sqlmodel import text

from tasktracker.core.context import AppContext
from tasktracker.core.errors import AppError
from tasktracker.core.time_utils import utc_now
from tasktracker.db.session import get_context

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


class DatabaseUnavailableError(AppError):
    status_code = 503
    default_message = "Database connection failed"


@router.get("")
def health_app(ctx: AppContext = Depends(get_context)):
    now = utc_now()
    return {
        "success": True,
        "status": "ok",
        "timestamp": now.isoformat(),
        "uptime": int((now - ctx.started_at).total_seconds()),
        "version": ctx.settings.app_version,
    }


@router.get("/db")
def health_db(ctx: AppContext = Depends(get_context)):
    # 마이그레이션은 배포 단계 몫. 여기선 연결만 확인
    try:
        with ctx.engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except Exception:
        logger.exception("database health check failed")
        raise DatabaseUnavailableError()
    return {"success": True, "status": "ok"}
