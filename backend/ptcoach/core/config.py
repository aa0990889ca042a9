from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field
from typing import Optional
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent.parent.parent.parent
ENV_FILE = BASE_DIR / ".env"

class Settings(BaseSettings):
    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "ptcoach"

    # Полный DSN имеет приоритет над отдельными параметрами (тесты, sqlite)
    DATABASE_URL: Optional[str] = None

    @computed_field
    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return f"postgresql+asyncpg://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}@{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"

    REDIS_HOST: str
    REDIS_PORT: int
    SECRET_KEY: str
    ENCRYPTION_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24 * 7
    ALLOWED_ORIGINS: str = "http://localhost:3000"

    APP_URL: str = "http://localhost:3000"
    APP_NAME: str = "PT Coach"
    RESEND_API_KEY: Optional[str] = None
    MAIL_FROM: str = "PT Coach <noreply@example.com>"

    PAYTR_TOKEN_URL: str = "https://www.paytr.com/odeme/api/get-token"
    PAYTR_IFRAME_URL: str = "https://www.paytr.com/odeme/guvenli"
    PAYTR_REQUEST_TIMEOUT: int = 20

    # Часовой пояс расписания arq-воркера
    CRON_TIMEZONE: str = "Europe/Istanbul"

    model_config = SettingsConfigDict(
        env_file=ENV_FILE,
        env_file_encoding='utf-8',
        extra='ignore'
    )

    @property
    def app_base_url(self) -> str:
        return self.APP_URL.rstrip("/")

settings = Settings()
