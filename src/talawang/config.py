from __future__ import annotations

from typing import Literal

from pydantic import ConfigDict
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    POSTGRES_USER: str
    POSTGRES_PASSWORD: str
    POSTGRES_DB: str
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432

    DB_POOL_SIZE: int = 10
    DB_MAX_OVERFLOW: int = 20
    DB_POOL_RECYCLE: int = 300

    REDIS_URL: str = "redis://localhost:6379/0"

    JWT_SECRET: str = ""
    JWT_VERIFY_MODE: Literal["hs256", "jwks"] = "jwks"
    JWT_ALGORITHM: str = "HS256"
    JWKS_URL: str | None = None
    JWT_AUDIENCE: str | None = None

    KEYCLOAK_SERVER_URL: str = "http://localhost:8080"
    KEYCLOAK_REALM: str = "talawang"
    KEYCLOAK_ADMIN_USERNAME: str = ""
    KEYCLOAK_ADMIN_PASSWORD: str = ""
    KEYCLOAK_TIMEOUT: float = 10.0

    DIRECTORY_CACHE_BACKEND: Literal["memory", "redis"] = "memory"
    DIRECTORY_CACHE_TTL_SECONDS: int = 600

    SEARCH_DEFAULT_LIMIT: int = 50
    SEARCH_MAX_LIMIT: int = 200

    ENVIRONMENT: Literal["development", "staging", "production"] = "production"
    EXPOSE_ERROR_DETAILS: bool | None = None

    CORS_ORIGINS: list[str] = ["http://localhost:3000"]
    LOG_LEVEL: str = "info"

    APP_HOST: str = "0.0.0.0"
    APP_PORT: int = 8000
    FORWARDED_ALLOW_IPS: str = "127.0.0.1"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def jwks_url(self) -> str:
        return self.JWKS_URL or (
            f"{self.KEYCLOAK_SERVER_URL}/realms/{self.KEYCLOAK_REALM}/protocol/openid-connect/certs"
        )

    @property
    def expose_error_details(self) -> bool:
        if self.EXPOSE_ERROR_DETAILS is not None:
            return self.EXPOSE_ERROR_DETAILS
        return self.ENVIRONMENT == "development"

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
