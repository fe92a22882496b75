# src/config/loader.py
"""
Загрузчик конфигурации проекта.
Единственный источник истины — config/config.json.
Секреты и адреса хостов переопределяются из переменных окружения.
"""

from __future__ import annotations

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# =============================================================================
# ОПРЕДЕЛЕНИЕ ПУТЕЙ
# =============================================================================

def get_project_root() -> Path:
    """Возвращает корневую директорию проекта."""
    return Path(__file__).parent.parent.parent


def get_config_path() -> Path:
    """Возвращает путь к файлу конфигурации."""
    return get_project_root() / "config" / "config.json"


def load_config_json(path: Path | None = None) -> dict[str, Any]:
    """Загружает config.json и возвращает словарь без ключей-комментариев."""
    config_path = path or get_config_path()
    if not config_path.exists():
        raise FileNotFoundError(f"Файл конфигурации не найден: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    return {k: v for k, v in data.items() if not k.startswith("_comment_")}


# =============================================================================
# PYDANTIC МОДЕЛИ КОНФИГУРАЦИИ
# =============================================================================

class SystemSettings(BaseModel):
    """Системные настройки."""
    PROJECT_NAME: str = "pharmacy_dispatch"
    VERSION: str = "1.0.0"
    DEBUG: bool = True
    ENVIRONMENT: str = "development"


class DeploymentSettings(BaseModel):
    """Адреса и порты сервисов."""
    ORDERS_API_HOST: str = "0.0.0.0"
    ORDERS_API_PORT: int = 8092
    REALTIME_WS_GATEWAY_HOST: str = "0.0.0.0"
    REALTIME_WS_GATEWAY_PORT: int = 8089


class LoggingSettings(BaseModel):
    """Настройки логирования."""
    LOG_LEVEL: str = "DEBUG"
    LOG_TO_FILE: bool = True
    LOG_FILE_PATH: str = "logs/app.log"
    LOG_FORMAT: str = "colored"
    LOG_MAX_BYTES: int = 10485760


class DatabaseSettings(BaseModel):
    """Настройки PostgreSQL."""
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_NAME: str = "pharmacy_dispatch"
    DB_USER: str = "postgres"
    DB_PASSWORD: str = ""
    DB_MIN_POOL_SIZE: int = 5
    DB_MAX_POOL_SIZE: int = 20
    DB_COMMAND_TIMEOUT: int = 60
    DB_RETRY_ATTEMPTS: int = 3
    DB_RETRY_DELAY: float = 1.0

    @field_validator("DB_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("DB_PASSWORD", "")
        return v

    @property
    def dsn(self) -> str:
        """Возвращает DSN для подключения к PostgreSQL."""
        return (
            f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}"
            f"@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
        )


class RedisSettings(BaseModel):
    """Настройки Redis."""
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: str = ""
    REDIS_NAMESPACE: str = "pharmacy"
    REDIS_MAX_CONNECTIONS: int = 50

    @field_validator("REDIS_PASSWORD", mode="before")
    @classmethod
    def get_from_env(cls, v: str) -> str:
        """Получает пароль из переменных окружения."""
        if not v:
            return os.getenv("REDIS_PASSWORD", "")
        return v

    @property
    def url(self) -> str:
        """Возвращает URL для подключения к Redis."""
        auth = f":{self.REDIS_PASSWORD}@" if self.REDIS_PASSWORD else ""
        return f"redis://{auth}{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"


class MatchingSettings(BaseModel):
    """Настройки гео-поиска продавцов."""
    MATCHING_RADIUS_METERS: float = Field(100000.0, gt=0)
    SELLERS_GEO_KEY: str = "sellers:locations"
    SELLERS_ACCEPTING_KEY: str = "sellers:accepting"


class RealtimeSettings(BaseModel):
    """Настройки realtime-доставки."""
    NOTIFY_CHANNEL_PREFIX: str = "notify"
    SESSION_QUEUE_SIZE: int = Field(256, ge=1)


# =============================================================================
# ГЛАВНЫЙ КЛАСС НАСТРОЕК
# =============================================================================

class Settings(BaseSettings):
    """
    Главный класс настроек приложения.
    Агрегирует все секции конфигурации.
    """
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    system: SystemSettings = Field(default_factory=SystemSettings)
    deployment: DeploymentSettings = Field(default_factory=DeploymentSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    redis: RedisSettings = Field(default_factory=RedisSettings)
    matching: MatchingSettings = Field(default_factory=MatchingSettings)
    realtime: RealtimeSettings = Field(default_factory=RealtimeSettings)

    @classmethod
    def from_config_json(cls, path: Path | None = None) -> "Settings":
        """
        Создаёт объект Settings из config.json.
        Секреты и хосты переопределяются из переменных окружения.
        """
        data = load_config_json(path)

        return cls(
            system=SystemSettings(
                PROJECT_NAME=data.get("PROJECT_NAME", "pharmacy_dispatch"),
                VERSION=data.get("VERSION", "1.0.0"),
                DEBUG=data.get("DEBUG", True),
                ENVIRONMENT=os.getenv("ENVIRONMENT", data.get("ENVIRONMENT", "development")),
            ),
            deployment=DeploymentSettings(
                ORDERS_API_HOST=os.getenv("ORDERS_API_HOST", data.get("ORDERS_API_HOST", "0.0.0.0")),
                ORDERS_API_PORT=int(os.getenv("ORDERS_API_PORT", data.get("ORDERS_API_PORT", 8092))),
                REALTIME_WS_GATEWAY_HOST=os.getenv(
                    "REALTIME_WS_GATEWAY_HOST", data.get("REALTIME_WS_GATEWAY_HOST", "0.0.0.0")
                ),
                REALTIME_WS_GATEWAY_PORT=int(
                    os.getenv("REALTIME_WS_GATEWAY_PORT", data.get("REALTIME_WS_GATEWAY_PORT", 8089))
                ),
            ),
            logging=LoggingSettings(
                LOG_LEVEL=os.getenv("LOG_LEVEL", data.get("LOG_LEVEL", "DEBUG")),
                LOG_TO_FILE=data.get("LOG_TO_FILE", True),
                LOG_FILE_PATH=data.get("LOG_FILE_PATH", "logs/app.log"),
                LOG_FORMAT=data.get("LOG_FORMAT", "json"),
                LOG_MAX_BYTES=data.get("LOG_MAX_BYTES", 10485760),
            ),
            database=DatabaseSettings(
                DB_HOST=os.getenv("DB_HOST", data.get("DB_HOST", "localhost")),
                DB_PORT=int(os.getenv("DB_PORT", data.get("DB_PORT", 5432))),
                DB_NAME=os.getenv("DB_NAME", data.get("DB_NAME", "pharmacy_dispatch")),
                DB_USER=os.getenv("DB_USER", data.get("DB_USER", "postgres")),
                DB_PASSWORD=os.getenv("DB_PASSWORD", data.get("DB_PASSWORD", "")),
                DB_MIN_POOL_SIZE=data.get("DB_MIN_POOL_SIZE", 5),
                DB_MAX_POOL_SIZE=data.get("DB_MAX_POOL_SIZE", 20),
                DB_COMMAND_TIMEOUT=data.get("DB_COMMAND_TIMEOUT", 60),
                DB_RETRY_ATTEMPTS=data.get("DB_RETRY_ATTEMPTS", 3),
                DB_RETRY_DELAY=data.get("DB_RETRY_DELAY", 1.0),
            ),
            redis=RedisSettings(
                REDIS_HOST=os.getenv("REDIS_HOST", data.get("REDIS_HOST", "localhost")),
                REDIS_PORT=int(os.getenv("REDIS_PORT", data.get("REDIS_PORT", 6379))),
                REDIS_DB=data.get("REDIS_DB", 0),
                REDIS_PASSWORD=os.getenv("REDIS_PASSWORD", data.get("REDIS_PASSWORD", "")),
                REDIS_NAMESPACE=data.get("REDIS_NAMESPACE", "pharmacy"),
                REDIS_MAX_CONNECTIONS=data.get("REDIS_MAX_CONNECTIONS", 50),
            ),
            matching=MatchingSettings(
                MATCHING_RADIUS_METERS=float(
                    os.getenv("MATCHING_RADIUS_METERS", data.get("MATCHING_RADIUS_METERS", 100000))
                ),
                SELLERS_GEO_KEY=data.get("SELLERS_GEO_KEY", "sellers:locations"),
                SELLERS_ACCEPTING_KEY=data.get("SELLERS_ACCEPTING_KEY", "sellers:accepting"),
            ),
            realtime=RealtimeSettings(
                NOTIFY_CHANNEL_PREFIX=data.get("NOTIFY_CHANNEL_PREFIX", "notify"),
                SESSION_QUEUE_SIZE=data.get("SESSION_QUEUE_SIZE", 256),
            ),
        )


@lru_cache()
def get_settings() -> Settings:
    """
    Возвращает синглтон настроек приложения.
    Подгружает .env из корня проекта, если он есть.
    """
    from dotenv import load_dotenv

    env_path = get_project_root() / ".env"
    if env_path.exists():
        load_dotenv(env_path)

    return Settings.from_config_json()


# Экспорт синглтона для удобного импорта
settings = get_settings()
