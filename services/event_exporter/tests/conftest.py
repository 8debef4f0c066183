# services/event_exporter/tests/conftest.py

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[3]
SERVICES_DIR = ROOT / "services"
if str(SERVICES_DIR) not in sys.path:
    sys.path.insert(0, str(SERVICES_DIR))

from event_exporter.exceptions import ExecutorError  # noqa: E402
from event_exporter.models import NormalizedRow  # noqa: E402


class FakeExecutor:
    """Записывает запросы; первые `failures` вызовов падают с ExecutorError."""

    def __init__(self, failures: float = 0):
        self.failures = failures
        self.calls = []
        self.closed = False

    def execute(self, sql, params=None):
        self.calls.append((sql, dict(params or {})))
        if self.failures > 0:
            self.failures -= 1
            raise ExecutorError("connection refused")

    def close(self):
        self.closed = True

    @property
    def inserts(self):
        return [call for call in self.calls if call[0].startswith("INSERT")]


class FakeScheduler:
    """Ничего не запускает сам, только запоминает (delay_ms, callback, payload)."""

    def __init__(self):
        self.jobs = []
        self.closed = False

    def schedule_after(self, delay_ms, callback, payload):
        self.jobs.append((delay_ms, callback, payload))

    def pending(self):
        return len(self.jobs)

    def shutdown(self):
        self.closed = True

    def run_next(self):
        _, callback, payload = self.jobs.pop(0)
        return callback(payload)


def make_row(index: int = 0, event_name: str = "$pageview") -> NormalizedRow:
    return NormalizedRow(
        id=f"row-{index:06d}",
        event_name=event_name,
        properties='{"$browser":"Firefox"}',
        elements="[]",
        set_props="{}",
        set_once_props="{}",
        distinct_id="user-1",
        tenant_id=2,
        ip="127.0.0.1",
        site_url="https://app.example.com",
        timestamp="2021-05-04T10:20:30.000Z",
    )


@pytest.fixture
def executor():
    return FakeExecutor()


@pytest.fixture
def scheduler():
    return FakeScheduler()
