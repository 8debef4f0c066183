# services/event_exporter/schemas.py

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


TimestampValue = Union[str, int, float]


class RawEvent(BaseModel):
    """
    Сырое аналитическое событие от продюсера.
    Неизвестные поля допускаются и игнорируются при нормализации.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    event: str = Field(description="Имя события, например $pageview")
    properties: Optional[Dict[str, Any]] = None
    set: Optional[Dict[str, Any]] = Field(default=None, alias="$set")
    set_once: Optional[Dict[str, Any]] = Field(default=None, alias="$set_once")

    # Кандидаты на метку времени (числа — миллисекунды epoch)
    timestamp: Optional[TimestampValue] = None
    now: Optional[TimestampValue] = None
    sent_at: Optional[TimestampValue] = None

    uuid: Optional[str] = None
    distinct_id: Optional[str] = None
    team_id: Optional[int] = Field(default=None, description="Идентификатор арендатора")
    site_url: Optional[str] = None
    ip: Optional[str] = None


class ExportResult(BaseModel):
    """Итог приёма поставки событий."""
    accepted: int
    ignored: int
    invalid: int


class FlushResult(BaseModel):
    flushed: int


class ExporterStatus(BaseModel):
    """Текущее состояние конвейера выгрузки."""
    table_name: str
    buffered: bool
    pending_rows: int
    pending_bytes: int
    scheduled_jobs: int
    ignored_events: List[str]
