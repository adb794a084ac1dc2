# tasktracker/core/config.py
from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

ALLOWED_ENVS = {"dev", "prod", "test"}


class Settings(BaseSettings):
    # 기본 앱 설정
    env: str = Field("dev", alias="ENV")
    app_version: str = Field("0.1.0", alias="APP_VERSION")
    log_level: str = Field("INFO", alias="LOG_LEVEL")
    cors_allow_origins: str = Field(
        "http://localhost:5173,http://localhost:3000",
        alias="CORS_ALLOW_ORIGINS",
    )

    # DB
    database_url: str = Field("sqlite:///./tasktracker.db", alias="DATABASE_URL")
    sql_echo: bool = Field(False, alias="SQL_ECHO")
    auto_create_tables: bool = Field(False, alias="AUTO_CREATE_TABLES")

    # 인증
    jwt_secret_key: str = Field("tasktracker-dev-secret", alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(60 * 24 * 7, alias="ACCESS_TOKEN_EXPIRE_MINUTES")
    bcrypt_rounds: int = Field(12, alias="BCRYPT_ROUNDS")

    # 초기 관리자 계정 (둘 다 설정된 경우에만 생성)
    admin_email: Optional[str] = Field(None, alias="ADMIN_EMAIL")
    admin_password: Optional[str] = Field(None, alias="ADMIN_PASSWORD")

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    @field_validator("env")
    @classmethod
    def _check_env(cls, v: str) -> str:
        v = (v or "").strip().lower()
        if v not in ALLOWED_ENVS:
            allowed = "|".join(sorted(ALLOWED_ENVS))
            raise ValueError(f"ENV must be one of {allowed}")
        return v

    @property
    def is_production(self) -> bool:
        return self.env == "prod"

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.cors_allow_origins.split(",") if o.strip()]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
