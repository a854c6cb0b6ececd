from pydantic_settings import BaseSettings
from typing import List, Optional
from datetime import timedelta


class Settings(BaseSettings):
    ENV: str = "development"
    SECRET_KEY: str = "change-me-in-production"
    DATABASE_URL: str = "sqlite:///./nixyah.db"
    LOG_LEVEL: str = "INFO"

    # CORS
    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # JWT
    JWT_ACCESS_EXPIRES_DAYS: int = 7

    # Публикация объявлений
    EMAIL_VERIFICATION_REQUIRED: bool = True
    PUBLISHING_CONFIG_PATH: Optional[str] = None  # JSON с таблицей тарифов

    @property
    def cors_origins_list(self) -> List[str]:
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",")]

    @property
    def jwt_expires_delta(self) -> timedelta:
        return timedelta(days=self.JWT_ACCESS_EXPIRES_DAYS)

    class Config:
        env_file = ".env"


settings = Settings()
