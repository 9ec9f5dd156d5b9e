from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    database_url: str = Field("sqlite+aiosqlite:///./school.db", alias="DATABASE_URL")

    jwt_secret_key: str = Field(..., alias="JWT_SECRET_KEY")
    jwt_algorithm: str = Field("HS256", alias="JWT_ALGORITHM")
    access_token_expire_minutes: int = Field(30, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Upper bound for every identity store / credential verifier call
    collaborator_timeout_seconds: float = Field(5.0, alias="COLLABORATOR_TIMEOUT_SECONDS")
    record_last_login: bool = Field(True, alias="RECORD_LAST_LOGIN")

    log_level: str = Field("INFO", alias="LOG_LEVEL")

    bootstrap_admin_username: Optional[str] = Field(None, alias="BOOTSTRAP_ADMIN_USERNAME")
    bootstrap_admin_password: Optional[str] = Field(None, alias="BOOTSTRAP_ADMIN_PASSWORD")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"
        populate_by_name = True


settings = Settings()
