# services/event_exporter/models.py

import json
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Optional, Tuple

from .utils.ids import generate_batch_id


# Порядок колонок в INSERT; совпадает с порядком полей NormalizedRow
EVENT_COLUMNS: Tuple[str, ...] = (
    "id",
    "event",
    "properties",
    "elements",
    "set",
    "set_once",
    "distinct_id",
    "tenant_id",
    "ip",
    "site_url",
    "timestamp",
)


@dataclass(frozen=True)
class NormalizedRow:
    """
    Нормализованное событие фиксированной формы.
    Поля properties/elements/set_props/set_once_props уже сериализованы в JSON-текст.
    """

    id: str
    event_name: str
    properties: str
    elements: str
    set_props: str
    set_once_props: str
    distinct_id: Optional[str]
    tenant_id: Optional[int]
    ip: Optional[str]
    site_url: Optional[str]
    timestamp: str

    def values(self) -> Tuple[Any, ...]:
        """Значения в порядке EVENT_COLUMNS."""
        return (
            self.id,
            self.event_name,
            self.properties,
            self.elements,
            self.set_props,
            self.set_once_props,
            self.distinct_id,
            self.tenant_id,
            self.ip,
            self.site_url,
            self.timestamp,
        )

    def estimated_size(self) -> int:
        """Оценка размера строки в байтах (по её JSON-представлению)."""
        text = json.dumps(asdict(self), separators=(",", ":"), ensure_ascii=False)
        return len(text.encode("utf-8"))


@dataclass(frozen=True)
class Batch:
    """
    Пачка строк для одной вставки.
    batch_id назначается один раз и сохраняется между повторами.
    """

    rows: Tuple[NormalizedRow, ...]
    batch_id: str = field(default_factory=generate_batch_id)
    retries_performed_so_far: int = 0

    def __len__(self) -> int:
        return len(self.rows)

    def next_attempt(self) -> "Batch":
        """Та же пачка (те же строки и batch_id) со счётчиком повторов +1."""
        return replace(self, retries_performed_so_far=self.retries_performed_so_far + 1)
