# services/event_exporter/scheduler.py

import threading
from typing import Any, Callable, Set

from loguru import logger


class ThreadingScheduler:
    """
    Отложенный запуск задач на daemon-таймерах.
    Запланированную задачу нельзя отменить по отдельности,
    только все разом через shutdown().
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._timers: Set[threading.Timer] = set()
        self._closed = False

    def schedule_after(self, delay_ms: int, callback: Callable[[Any], Any], payload: Any) -> None:
        with self._lock:
            if self._closed:
                logger.warning("⚠️ Scheduler is shut down, job dropped")
                return
            timer = threading.Timer(delay_ms / 1000, lambda: self._run(timer, callback, payload))
            timer.daemon = True
            self._timers.add(timer)
            timer.start()

    def _run(self, timer: threading.Timer, callback: Callable[[Any], Any], payload: Any) -> None:
        with self._lock:
            self._timers.discard(timer)
        try:
            callback(payload)
        except Exception:
            logger.exception("❌ Scheduled job failed")

    def pending(self) -> int:
        with self._lock:
            return len(self._timers)

    def shutdown(self) -> None:
        with self._lock:
            self._closed = True
            timers, self._timers = self._timers, set()
        for timer in timers:
            timer.cancel()
        if timers:
            logger.warning(f"⚠️ Scheduler stopped, {len(timers)} pending job(s) cancelled")
