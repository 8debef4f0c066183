# services/event_exporter/config.py

import os
import re
from typing import FrozenSet, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings


# Допустимые символы SQL-идентификатора таблицы
_IDENTIFIER_JUNK = re.compile(r"[^A-Za-z0-9_]+")


class Settings(BaseSettings):
    """
    Конфигурация event_exporter — сервиса пакетной выгрузки аналитических
    событий в PostgreSQL.
    """

    # --- Общая информация ---
    SERVICE_NAME: str = "Event Exporter Service"
    VERSION: str = "1.0.0"
    ENV: str = os.getenv("ENV", "dev")

    # --- Подключение к базе ---
    # DATABASE_URL перекрывает отдельные поля подключения
    DATABASE_URL: Optional[str] = None
    DB_HOST: Optional[str] = None
    DB_PORT: Optional[int] = None
    DB_NAME: Optional[str] = None
    DB_USERNAME: Optional[str] = None
    DB_PASSWORD: Optional[str] = None
    SELF_SIGNED_CERT_ALLOWED: bool = False

    # --- Целевая таблица ---
    TABLE_NAME: str = "events"

    # --- Параметры буферизации ---
    BUFFERED: bool = True                # False — каждая поставка уходит сразу
    UPLOAD_SIZE_LIMIT_MB: int = 1        # 1..10
    UPLOAD_INTERVAL_SECONDS: int = 10    # 1..600

    # --- Фильтрация ---
    EVENTS_TO_IGNORE: str = ""           # имена событий через запятую

    # --- Логирование ---
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"

    @field_validator("UPLOAD_SIZE_LIMIT_MB")
    @classmethod
    def _clamp_size_limit(cls, value: int) -> int:
        return min(max(value, 1), 10)

    @field_validator("UPLOAD_INTERVAL_SECONDS")
    @classmethod
    def _clamp_interval(cls, value: int) -> int:
        return min(max(value, 1), 600)

    def missing_connection_options(self) -> list[str]:
        """Список недостающих полей подключения (пустой, если задан DATABASE_URL)."""
        if self.DATABASE_URL:
            return []
        required = ("DB_HOST", "DB_PORT", "DB_NAME", "DB_USERNAME", "DB_PASSWORD")
        return [name for name in required if getattr(self, name) in (None, "")]

    def has_connection(self) -> bool:
        return not self.missing_connection_options()

    @property
    def upload_size_limit_bytes(self) -> int:
        return self.UPLOAD_SIZE_LIMIT_MB * 1024 * 1024


def sanitize_table_name(raw: str) -> str:
    """Выкидывает из имени таблицы всё, кроме [A-Za-z0-9_]."""
    return _IDENTIFIER_JUNK.sub("", raw or "")


def parse_ignore_set(raw: Optional[str]) -> FrozenSet[str]:
    """Строит множество игнорируемых событий из строки вида 'a, b,c'."""
    if not raw:
        return frozenset()
    return frozenset(name.strip() for name in raw.split(",") if name.strip())


# Глобальный объект конфигурации
settings = Settings()
