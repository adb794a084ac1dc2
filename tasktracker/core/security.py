from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Dict
from uuid import UUID

import bcrypt
from jose import jwt, JWTError
from jose.exceptions import ExpiredSignatureError

from tasktracker.core.config import Settings
from tasktracker.core.errors import AuthError


# ---- 공통 ----
def _utcnow() -> datetime:
    return datetime.now(tz=timezone.utc)


def _make_jwt(payload: Dict[str, Any], settings: Settings, exp: datetime) -> str:
    to_encode = payload.copy()
    to_encode["iat"] = int(_utcnow().timestamp())
    to_encode["exp"] = int(exp.timestamp())
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


# ---- Access Token ----
def create_access_token(
    sub: UUID,
    settings: Settings,
    expires_delta: timedelta | None = None,
) -> str:
    expire = _utcnow() + (expires_delta or timedelta(minutes=settings.access_token_expire_minutes))
    payload = {"sub": str(sub), "typ": "access"}
    return _make_jwt(payload, settings, expire)


def verify_access_token(token: str, settings: Settings) -> Dict[str, Any]:
    """
    유효한 Access Token이면 payload(dict)를 반환,
    서명 불일치·만료·type 오류는 AuthError로 바꿔서 던진다.
    """
    try:
        payload = jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except ExpiredSignatureError:
        raise AuthError("Token expired")
    except JWTError:
        raise AuthError("Invalid token")
    if payload.get("typ") != "access" or "sub" not in payload:
        raise AuthError("Invalid token")
    return payload


# ---- 비밀번호 ----
def hash_password(password: str, rounds: int = 12) -> str:
    hashed = bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds))
    return hashed.decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        return False
