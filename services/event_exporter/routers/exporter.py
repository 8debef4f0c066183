from typing import Any, Dict, List, Union

from fastapi import APIRouter, Body, Depends, Request

from ..pipeline import EventExporter
from ..schemas import ExporterStatus, ExportResult, FlushResult
from ..utils.logging import setup_logging

logger = setup_logging()

router = APIRouter(prefix="/api/v1/exporter", tags=["exporter"])


def get_exporter(request: Request) -> EventExporter:
    """Зависимость FastAPI: конвейер, созданный при старте приложения."""
    return request.app.state.exporter


# ---------- Приём событий ----------


@router.post("/events", response_model=ExportResult)
def export_events(
    payload: Union[List[Dict[str, Any]], Dict[str, Any]] = Body(...),
    exporter: EventExporter = Depends(get_exporter),
):
    """
    Принимает одно событие или массив событий.
    Каждое событие валидируется отдельно: битое считается invalid
    и не мешает остальным.
    Результат доставки в базу продюсеру не возвращается.
    """
    events = payload if isinstance(payload, list) else [payload]
    summary = exporter.export_events(events)

    logger.info(
        f"📥 Received {len(events)} event(s): accepted={summary.accepted}, "
        f"ignored={summary.ignored}, invalid={summary.invalid}"
    )
    return ExportResult(
        accepted=summary.accepted,
        ignored=summary.ignored,
        invalid=summary.invalid,
    )


# ---------- Служебные эндпойнты ----------


@router.post("/flush", response_model=FlushResult)
def flush(exporter: EventExporter = Depends(get_exporter)):
    """Принудительно отправляет накопленный буфер."""
    flushed = exporter.flush()
    logger.info(f"🚿 Manual flush requested: {flushed} row(s)")
    return FlushResult(flushed=flushed)


@router.get("/status", response_model=ExporterStatus)
def get_status(exporter: EventExporter = Depends(get_exporter)):
    return ExporterStatus(**exporter.status())
