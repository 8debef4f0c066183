# services/event_exporter/accumulator.py

import threading
from typing import Callable, Iterable, List, Optional

from loguru import logger

from .models import Batch, NormalizedRow


BatchHandler = Callable[[Batch], None]


class Accumulator:
    """
    Буфер нормализованных строк с порогами по размеру и по времени.

    Пачка уходит, как только оценка размера превысила size_limit_bytes
    или прошло interval_seconds с момента первой строки в буфере.
    В режиме immediate каждая поставка (extend) отправляется сразу одной пачкой.
    """

    def __init__(
        self,
        on_batch: BatchHandler,
        size_limit_bytes: int,
        interval_seconds: float,
        immediate: bool = False,
    ):
        self._on_batch = on_batch
        self.size_limit_bytes = size_limit_bytes
        self.interval_seconds = interval_seconds
        self.immediate = immediate

        self._lock = threading.Lock()
        self._rows: List[NormalizedRow] = []
        self._size = 0
        self._timer: Optional[threading.Timer] = None
        # Номер текущего окна; таймер старого окна не должен сбросить новое
        self._window = 0

    # ---------- Состояние ----------

    @property
    def pending_rows(self) -> int:
        with self._lock:
            return len(self._rows)

    @property
    def pending_bytes(self) -> int:
        with self._lock:
            return self._size

    # ---------- Приём строк ----------

    def add(self, row: NormalizedRow) -> None:
        with self._lock:
            batch = self._add_locked(row)
            if batch is None and self.immediate:
                batch = self._detach_locked()
        if batch is not None:
            self._on_batch(batch)

    def extend(self, rows: Iterable[NormalizedRow]) -> None:
        """Добавить строки одной поставки."""
        batches: List[Batch] = []
        with self._lock:
            for row in rows:
                batch = self._add_locked(row)
                if batch is not None:
                    batches.append(batch)
            if self.immediate:
                batch = self._detach_locked()
                if batch is not None:
                    batches.append(batch)
        for batch in batches:
            self._on_batch(batch)

    def _add_locked(self, row: NormalizedRow) -> Optional[Batch]:
        if not self._rows and not self.immediate:
            self._start_timer_locked()
        self._rows.append(row)
        self._size += row.estimated_size()
        if self._size > self.size_limit_bytes:
            return self._detach_locked()
        return None

    # ---------- Сброс ----------

    def flush(self) -> int:
        """Принудительный сброс независимо от порогов. Возвращает число строк."""
        batch = self.drain()
        if batch is None:
            return 0
        self._on_batch(batch)
        return len(batch)

    def drain(self) -> Optional[Batch]:
        """Забрать накопленное в виде пачки, не передавая её обработчику."""
        with self._lock:
            return self._detach_locked()

    def close(self) -> None:
        with self._lock:
            self._cancel_timer_locked()

    def _detach_locked(self) -> Optional[Batch]:
        self._cancel_timer_locked()
        self._window += 1
        if not self._rows:
            return None
        batch = Batch(rows=tuple(self._rows))
        self._rows = []
        self._size = 0
        return batch

    # ---------- Таймер ----------

    def _start_timer_locked(self) -> None:
        window = self._window
        self._timer = threading.Timer(self.interval_seconds, self._on_timer, args=(window,))
        self._timer.daemon = True
        self._timer.start()

    def _cancel_timer_locked(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _on_timer(self, window: int) -> None:
        with self._lock:
            if window != self._window:
                return
            self._timer = None
            batch = self._detach_locked()
        if batch is not None:
            logger.debug(f"⏱️ Upload interval elapsed, flushing {len(batch)} row(s)")
            self._on_batch(batch)
