import sys
from pathlib import Path
from typing import Callable, Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, create_engine

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from tasktracker.core.config import Settings  # noqa: E402
from tasktracker.core.security import create_access_token  # noqa: E402
from tasktracker.db.session import create_all_tables, json_dumps  # noqa: E402
from tasktracker.main import create_app  # noqa: E402
from tasktracker.models.user import User, UserRole  # noqa: E402
from tasktracker.services.user_service import UserService  # noqa: E402

PASSWORD = "secret123"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        env="test",
        database_url="sqlite://",
        jwt_secret_key="test-secret",
        bcrypt_rounds=4,
        auto_create_tables=False,
        admin_email=None,
        admin_password=None,
    )


@pytest.fixture
def engine():
    # 인메모리 DB를 모든 세션이 공유하도록 단일 커넥션 사용
    eng = create_engine(
        "sqlite://",
        json_serializer=json_dumps,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    create_all_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    with Session(engine) as s:
        yield s


@pytest.fixture
def client(settings, engine):
    app = create_app(settings, engine)
    with TestClient(app) as c:
        yield c


@pytest.fixture
def make_user(db, settings) -> Callable[..., User]:
    counter = {"n": 0}

    def _make(role: UserRole = UserRole.MEMBER, email: str | None = None, **kwargs) -> User:
        counter["n"] += 1
        n = counter["n"]
        return UserService(db, settings).register(
            email=email or f"user{n}@example.com",
            password=kwargs.pop("password", PASSWORD),
            first_name=kwargs.pop("first_name", f"First{n}"),
            last_name=kwargs.pop("last_name", f"Last{n}"),
            role=role,
        )

    return _make


@pytest.fixture
def admin(make_user) -> User:
    return make_user(UserRole.ADMIN, email="admin@example.com")


@pytest.fixture
def member(make_user) -> User:
    return make_user(UserRole.MEMBER, email="member@example.com")


@pytest.fixture
def other_member(make_user) -> User:
    return make_user(UserRole.MEMBER, email="other@example.com")


@pytest.fixture
def auth_headers(settings) -> Callable[[User], Dict[str, str]]:
    def _headers(user: User) -> Dict[str, str]:
        token = create_access_token(user.user_id, settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers
