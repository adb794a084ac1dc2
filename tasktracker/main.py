# tasktracker/main.py
import logging
import traceback
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.engine import Engine
from starlette.exceptions import HTTPException as StarletteHTTPException

from tasktracker.core.config import Settings, get_settings
from tasktracker.core.context import AppContext
from tasktracker.core.errors import AppError
from tasktracker.core.logging_config import setup_logging
from tasktracker.db.session import build_engine, create_all_tables, session_scope
from tasktracker.routers import auth, health, stats, task, user
from tasktracker.services.user_service import UserService

# 루트 .env 로딩
load_dotenv()

logger = logging.getLogger(__name__)


def _error_body(message: str, error: str, **extra) -> dict:
    return {"success": False, "message": message, "error": error, **extra}


def _field_message(err: dict) -> str:
    loc = [str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path")]
    field = ".".join(loc)
    return f"{field}: {err.get('msg')}" if field else str(err.get("msg"))


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(exc.message, type(exc).__name__, **exc.details()),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [_field_message(e) for e in exc.errors()]
        return JSONResponse(
            status_code=400,
            content=_error_body(", ".join(errors), "ValidationError", validation_errors=errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        message = exc.detail if isinstance(exc.detail, str) else "HTTP error"
        return JSONResponse(
            status_code=exc.status_code,
            content=_error_body(message, "HTTPException"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.exception("unhandled error on %s %s", request.method, request.url.path)
        if settings.is_production:
            body = _error_body("Internal Server Error", "InternalServerError")
        else:
            body = _error_body(
                "Internal Server Error",
                str(exc) or type(exc).__name__,
                error_type=type(exc).__name__,
                traceback=traceback.format_exception(type(exc), exc, exc.__traceback__),
            )
        return JSONResponse(status_code=500, content=body)


def _bootstrap(ctx: AppContext) -> None:
    settings = ctx.settings
    if settings.auto_create_tables:
        create_all_tables(ctx.engine)
        logger.info("tables ensured (AUTO_CREATE_TABLES)")
    if settings.admin_email and settings.admin_password:
        with session_scope(ctx.engine) as s:
            admin = UserService(s, settings).ensure_admin(settings.admin_email, settings.admin_password)
            logger.info("admin account ready: %s", admin.email)


def create_app(settings: Optional[Settings] = None, engine: Optional[Engine] = None) -> FastAPI:
    settings = settings or get_settings()
    setup_logging(settings.log_level)
    ctx = AppContext(settings=settings, engine=engine or build_engine(settings))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _bootstrap(ctx)
        logger.info("tasktracker started (env=%s, version=%s)", settings.env, settings.app_version)
        yield
        if engine is None:
            ctx.engine.dispose()

    app = FastAPI(
        title="Task Tracker API",
        version=settings.app_version,
        lifespan=lifespan,
    )
    app.state.context = ctx

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app, settings)

    # 라우터 등록
    app.include_router(health.router)
    app.include_router(auth.auth_router)
    app.include_router(user.user_router)
    app.include_router(task.router)
    app.include_router(stats.router)
    return app


app = create_app()
