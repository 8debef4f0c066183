# services/event_exporter/normalizer.py

import json
import math
from datetime import datetime, timezone
from typing import Any, Optional

from .exceptions import InvalidTimestamp
from .models import NormalizedRow
from .schemas import RawEvent, TimestampValue
from .utils.ids import generate_event_id


AUTOCAPTURE_EVENT = "$autocapture"


def _json_safe(value: Any) -> Any:
    # NaN и Infinity не бывают в JSON: как JSON.stringify, пишем null
    if isinstance(value, float) and not math.isfinite(value):
        return None
    if isinstance(value, dict):
        return {key: _json_safe(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_json_safe(item) for item in value]
    return value


def _to_json(value: Any) -> str:
    # Компактный формат, как у JSON.stringify
    return json.dumps(
        _json_safe(value),
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
        default=str,
    )


def _first_present(*candidates: Optional[TimestampValue]) -> Optional[TimestampValue]:
    for candidate in candidates:
        if candidate is None or candidate == "":
            continue
        return candidate
    return None


def parse_timestamp(value: TimestampValue, event_name: str = "") -> str:
    """
    Разбирает метку времени и возвращает её в ISO-8601 (UTC, миллисекунды, 'Z').
    Числа трактуются как миллисекунды epoch, строки — как ISO-8601.
    """
    try:
        if isinstance(value, bool):
            raise TypeError("boolean is not a timestamp")
        if isinstance(value, (int, float)):
            moment = datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        else:
            text = str(value).strip()
            if text.endswith(("Z", "z")):
                text = text[:-1] + "+00:00"
            moment = datetime.fromisoformat(text)
    except (TypeError, ValueError, OverflowError, OSError) as exc:
        raise InvalidTimestamp(value, event_name) from exc

    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def resolve_timestamp(event: RawEvent) -> str:
    """Метка времени: timestamp → properties.timestamp → now → sent_at."""
    properties = event.properties or {}
    candidate = _first_present(
        event.timestamp,
        properties.get("timestamp"),
        event.now,
        event.sent_at,
    )
    if candidate is None:
        raise InvalidTimestamp(None, event.event)
    return parse_timestamp(candidate, event.event)


def normalize(event: RawEvent) -> NormalizedRow:
    """
    Превращает сырое событие в строку фиксированной формы.

    Идентификатор генерируется здесь и только здесь: повторные отправки пачки
    переиспользуют уже созданные строки. Бросает InvalidTimestamp.
    """
    properties = event.properties
    timestamp = resolve_timestamp(event)

    ip = (properties or {}).get("$ip") or event.ip or None

    elements: Any = []
    # $elements переносится в отдельную колонку только для $autocapture
    if event.event == AUTOCAPTURE_EVENT and properties is not None and "$elements" in properties:
        properties = dict(properties)
        elements = properties.pop("$elements")

    return NormalizedRow(
        id=event.uuid or generate_event_id(),
        event_name=event.event,
        properties=_to_json(properties if properties is not None else {}),
        elements=_to_json(elements if elements is not None else []),
        set_props=_to_json(event.set if event.set is not None else {}),
        set_once_props=_to_json(event.set_once if event.set_once is not None else {}),
        distinct_id=event.distinct_id,
        tenant_id=event.team_id,
        ip=ip,
        site_url=event.site_url,
        timestamp=timestamp,
    )
