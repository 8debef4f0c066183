# services/event_exporter/dispatcher.py

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Mapping, Optional, Protocol

from .exceptions import ExecutorError, RetryExhausted
from .models import Batch
from .statements import build_batch_insert
from .utils.logging import setup_logging

logger = setup_logging()


# Потолок повторов и базовая задержка экспоненциального backoff
MAX_RETRIES = 15
BASE_RETRY_DELAY_MS = 3000


class Executor(Protocol):
    def execute(self, sql: str, params: Optional[Mapping[str, Any]] = None) -> None: ...

    def close(self) -> None: ...


class Scheduler(Protocol):
    def schedule_after(self, delay_ms: int, callback: Callable[[Any], Any], payload: Any) -> None: ...

    def pending(self) -> int: ...

    def shutdown(self) -> None: ...


class DeliveryState(str, Enum):
    """Итог одной попытки: FAILED означает, что пачка снова поставлена в очередь."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    ABANDONED = "abandoned"


@dataclass(frozen=True)
class RetryPolicy:
    """delay = 2^retries * base_delay_ms, без джиттера и без верхнего предела задержки."""

    max_retries: int = MAX_RETRIES
    base_delay_ms: int = BASE_RETRY_DELAY_MS

    def next_delay_ms(self, retries_performed_so_far: int, batch_id: str = "") -> int:
        if retries_performed_so_far >= self.max_retries:
            raise RetryExhausted(batch_id, retries_performed_so_far)
        return 2 ** retries_performed_so_far * self.base_delay_ms


class Dispatcher:
    """
    Доставка пачки в базу и её повторная постановка при ошибке.

    Пачка — самостоятельная единица работы: между доставками нет общего
    изменяемого состояния, поэтому повторы могут идти параллельно
    с новыми пачками.
    """

    def __init__(
        self,
        table_name: str,
        executor: Executor,
        scheduler: Scheduler,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.table_name = table_name
        self.executor = executor
        self.scheduler = scheduler
        self.retry_policy = retry_policy or RetryPolicy()

    def submit(self, batch: Batch) -> None:
        """Поставить пачку в очередь планировщика на немедленную доставку."""
        self.scheduler.schedule_after(0, self.deliver, batch)

    def deliver(self, batch: Batch) -> DeliveryState:
        """
        Одна попытка доставки. Результат наружу не пробрасывается,
        возвращаемое состояние нужно только для наблюдения.
        """
        if not batch.rows:
            return DeliveryState.SUCCEEDED

        statement = build_batch_insert(self.table_name, batch)
        rows = len(batch)
        logger.info(
            f"📤 (Batch Id: {batch.batch_id}) Flushing {rows} event{'s' if rows > 1 else ''} "
            f"to Postgres (attempt {batch.retries_performed_so_far + 1})"
        )

        try:
            self.executor.execute(statement.sql, statement.bind_params())
        except ExecutorError as e:
            logger.error(f"❌ (Batch Id: {batch.batch_id}) Error uploading to Postgres: {e}")
            return self._retry_or_abandon(batch)

        logger.debug(f"✅ (Batch Id: {batch.batch_id}) Stored {rows} event(s)")
        return DeliveryState.SUCCEEDED

    def _retry_or_abandon(self, batch: Batch) -> DeliveryState:
        try:
            delay_ms = self.retry_policy.next_delay_ms(
                batch.retries_performed_so_far, batch.batch_id
            )
        except RetryExhausted as e:
            logger.error(f"🗑️ {e}; dropping {len(batch)} event(s)")
            return DeliveryState.ABANDONED

        logger.warning(f"🔁 Enqueued batch {batch.batch_id} for retry in {delay_ms}ms")
        self.scheduler.schedule_after(delay_ms, self.deliver, batch.next_attempt())
        return DeliveryState.FAILED
