# services/event_exporter/pipeline.py

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Iterable, Optional, Union

from pydantic import ValidationError
from sqlalchemy.exc import SQLAlchemyError

from .accumulator import Accumulator
from .config import Settings, parse_ignore_set, sanitize_table_name
from .database import build_engine, create_table_sql
from .dispatcher import Dispatcher, Executor, RetryPolicy, Scheduler
from .exceptions import ConfigError, ExecutorError, InvalidTimestamp
from .executor import PostgresExecutor
from .normalizer import normalize
from .scheduler import ThreadingScheduler
from .schemas import RawEvent
from .utils.logging import setup_logging

logger = setup_logging()


EventInput = Union[RawEvent, Dict[str, Any]]


@dataclass
class ExportSummary:
    accepted: int = 0
    ignored: int = 0
    invalid: int = 0


class EventExporter:
    """
    Контекст конвейера: создаётся один раз при старте и хранит всё,
    что раньше было бы глобальным состоянием (имя таблицы, игнор-лист, буфер).
    """

    def __init__(
        self,
        table_name: str,
        ignore_set: FrozenSet[str],
        executor: Executor,
        scheduler: Scheduler,
        size_limit_bytes: int,
        interval_seconds: float,
        buffered: bool = True,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.table_name = table_name
        self.ignore_set = ignore_set
        self.executor = executor
        self.scheduler = scheduler
        self.buffered = buffered
        self.dispatcher = Dispatcher(table_name, executor, scheduler, retry_policy)
        self.accumulator = Accumulator(
            on_batch=self.dispatcher.submit,
            size_limit_bytes=size_limit_bytes,
            interval_seconds=interval_seconds,
            immediate=not buffered,
        )

    # ---------- Приём событий ----------

    def export_events(self, events: Iterable[EventInput]) -> ExportSummary:
        """Одна поставка событий от продюсера."""
        summary = ExportSummary()
        rows = []
        for raw in events:
            try:
                event = raw if isinstance(raw, RawEvent) else RawEvent.model_validate(raw)
            except ValidationError as e:
                logger.warning(f"⚠️ Malformed event skipped: {e.error_count()} validation error(s)")
                summary.invalid += 1
                continue

            if event.event in self.ignore_set:
                logger.debug(f"🙈 Ignoring event {event.event!r}")
                summary.ignored += 1
                continue

            try:
                rows.append(normalize(event))
            except InvalidTimestamp as e:
                logger.warning(f"⚠️ Event dropped: {e}")
                summary.invalid += 1
                continue

        summary.accepted = len(rows)
        self.accumulator.extend(rows)
        return summary

    def export_event(self, event: EventInput) -> ExportSummary:
        return self.export_events([event])

    # ---------- Управление ----------

    def flush(self) -> int:
        return self.accumulator.flush()

    def status(self) -> Dict[str, Any]:
        return {
            "table_name": self.table_name,
            "buffered": self.buffered,
            "pending_rows": self.accumulator.pending_rows,
            "pending_bytes": self.accumulator.pending_bytes,
            "scheduled_jobs": self.scheduler.pending(),
            "ignored_events": sorted(self.ignore_set),
        }

    def shutdown(self) -> None:
        """
        Синхронно доставляет остаток буфера и останавливает планировщик.
        События, пришедшие после вызова, не гарантируются.
        """
        batch = self.accumulator.drain()
        self.accumulator.close()
        if batch is not None:
            logger.info(f"🛑 Shutdown flush of {len(batch)} event(s)")
            self.dispatcher.deliver(batch)
        self.scheduler.shutdown()
        self.executor.close()


def create_exporter(
    settings: Settings,
    executor: Optional[Executor] = None,
    scheduler: Optional[Scheduler] = None,
) -> EventExporter:
    """
    Проверяет конфигурацию, создаёт таблицу и собирает конвейер.
    Любая проблема здесь фатальна и поднимается как ConfigError.
    """
    missing = settings.missing_connection_options()
    if missing:
        raise ConfigError(f"Required config option {missing[0]} is missing!")

    table_name = sanitize_table_name(settings.TABLE_NAME)
    if not table_name:
        raise ConfigError(f"Table name {settings.TABLE_NAME!r} has no valid identifier characters")

    if executor is None:
        try:
            executor = PostgresExecutor(build_engine(settings))
        except SQLAlchemyError as e:
            raise ConfigError(f"Invalid database connection settings: {e}") from e

    try:
        executor.execute(create_table_sql(table_name))
    except ExecutorError as e:
        raise ConfigError(
            f"Unable to connect to PostgreSQL instance and create table with error: {e}"
        ) from e

    exporter = EventExporter(
        table_name=table_name,
        ignore_set=parse_ignore_set(settings.EVENTS_TO_IGNORE),
        executor=executor,
        scheduler=scheduler or ThreadingScheduler(),
        size_limit_bytes=settings.upload_size_limit_bytes,
        interval_seconds=settings.UPLOAD_INTERVAL_SECONDS,
        buffered=settings.BUFFERED,
    )
    logger.info(
        f"🚀 Event exporter ready: table={table_name}, buffered={settings.BUFFERED}, "
        f"limit={settings.UPLOAD_SIZE_LIMIT_MB}MB, interval={settings.UPLOAD_INTERVAL_SECONDS}s"
    )
    return exporter
