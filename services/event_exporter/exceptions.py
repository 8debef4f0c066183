# services/event_exporter/exceptions.py

from typing import Any


class ExporterError(Exception):
    """Базовое исключение event_exporter."""


class ConfigError(ExporterError):
    """Фатальная ошибка конфигурации: сервис не может стартовать."""


class InvalidTimestamp(ExporterError):
    """У события нет ни одной метки времени, которую можно разобрать."""

    def __init__(self, value: Any, event_name: str = ""):
        self.value = value
        self.event_name = event_name
        super().__init__(f"Invalid timestamp {value!r} for event {event_name!r}")


class ExecutorError(ExporterError):
    """Ошибка выполнения запроса в базе. Всегда считается повторяемой."""


class RetryExhausted(ExporterError):
    """Пачка исчерпала лимит повторов и будет отброшена."""

    def __init__(self, batch_id: str, retries: int):
        self.batch_id = batch_id
        self.retries = retries
        super().__init__(f"Batch {batch_id} abandoned after {retries} retries")
