# services/event_exporter/executor.py

from typing import Any, Mapping, Optional

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from .exceptions import ExecutorError


class PostgresExecutor:
    """
    Выполняет запросы в PostgreSQL.
    Каждый вызов execute: соединение → запрос в транзакции → закрытие.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> None:
        try:
            with self.engine.begin() as conn:
                conn.execute(text(sql), dict(params or {}))
        except SQLAlchemyError as e:
            raise ExecutorError(str(e)) from e

    def close(self) -> None:
        self.engine.dispose()
