"""
Конфигурация приложения.
Всё берется из переменных окружения и .env файла.
"""
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Pydantic Settings конфиг
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    # Database
    DATABASE_URL: str
    CREATE_TABLES: bool = False # Миграции живут отдельно, это для dev и тестов

    # Redis (необязателен: без него кэш просто отключен)
    REDIS_URL: Optional[str] = None
    POSTS_CACHE_TTL: int = 300

    # JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Server
    DEBUG: bool = False
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]

    # RATE-LIMITS
    REGISTER_RATE_LIMIT: str = "5/minute" # Значения по-умолчанию, на случай
    LOGIN_RATE_LIMIT: str = "10/minute"   # если в .env не указаны иные значения

# Создаем глобальный объект settings
settings = Settings()
