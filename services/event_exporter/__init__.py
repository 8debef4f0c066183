"""
event_exporter — микросервис пакетной выгрузки аналитических событий в PostgreSQL.
Включает нормализацию событий, буфер по размеру/времени и доставку с повторами.
"""

from .config import settings
from .pipeline import EventExporter, ExportSummary, create_exporter

__all__ = ["settings", "EventExporter", "ExportSummary", "create_exporter"]
