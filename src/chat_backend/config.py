from __future__ import annotations

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
    DB_CREATE_SCHEMA: bool = True

    JWT_SECRET: str = "dev_secret"
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRES_DAYS: int = 7

    CORS_ORIGINS: list[str] = ["*"]

    HTTP_HOST: str = "0.0.0.0"
    HTTP_PORT: int = 3000

    WS_HOST: str = "0.0.0.0"
    WS_PORT: int = 8080
    WS_HEARTBEAT_SECONDS: float = 30.0
    WS_PING_TIMEOUT_SECONDS: float = 10.0
    WS_SEND_TIMEOUT_SECONDS: float = 5.0
    WS_SHUTDOWN_DRAIN_SECONDS: float = 5.0

    LOG_LEVEL: str = "INFO"

    @property
    def database_url(self) -> str:
        return (
            f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.POSTGRES_DB}"
        )

    model_config = ConfigDict(
        env_file=".env",
        extra="ignore",
    )


settings = Settings()  # type: ignore[call-arg]
