# services/event_exporter/database.py

from typing import Dict, Union

from sqlalchemy import create_engine
from sqlalchemy.engine import URL, Engine
from sqlalchemy.pool import NullPool

from .config import Settings


# Схема по умолчанию для таблицы событий
EVENTS_SCHEMA = "public"


def create_table_sql(table_name: str) -> str:
    """Идемпотентный DDL таблицы событий (имя уже санитизировано)."""
    return f"""CREATE TABLE IF NOT EXISTS {EVENTS_SCHEMA}.{table_name} (
            id varchar(200),
            event varchar(200),
            properties jsonb,
            elements jsonb,
            set jsonb,
            set_once jsonb,
            timestamp timestamp with time zone,
            tenant_id int,
            distinct_id varchar(200),
            ip varchar(200),
            site_url varchar(200)
        )"""


def build_connection_url(settings: Settings) -> Union[str, URL]:
    """DATABASE_URL имеет приоритет над отдельными полями подключения."""
    if settings.DATABASE_URL:
        return settings.DATABASE_URL
    return URL.create(
        "postgresql+psycopg2",
        username=settings.DB_USERNAME,
        password=settings.DB_PASSWORD,
        host=settings.DB_HOST,
        port=settings.DB_PORT,
        database=settings.DB_NAME,
    )


def build_connect_args(settings: Settings) -> Dict[str, str]:
    """
    SSL запрашивается всегда. Самоподписанный сертификат — без проверки;
    иначе проверка по системным CA (sslrootcert=system, нужен libpq 16+).
    """
    if settings.SELF_SIGNED_CERT_ALLOWED:
        return {"sslmode": "require"}
    return {"sslmode": "verify-full", "sslrootcert": "system"}


def build_engine(settings: Settings) -> Engine:
    """
    Движок без пула: каждое выполнение запроса само открывает
    и закрывает своё соединение.
    """
    return create_engine(
        build_connection_url(settings),
        poolclass=NullPool,
        future=True,
        connect_args=build_connect_args(settings),
    )
