# services/event_exporter/main.py

from fastapi import FastAPI
from prometheus_fastapi_instrumentator import Instrumentator

from .config import settings
from .pipeline import create_exporter
from .routers import exporter as exporter_router
from .utils.logging import setup_logging


# --- Логирование ---
logger = setup_logging()
logger.info(f"📜 Logging initialized for event_exporter (level={settings.LOG_LEVEL.upper()})")

# --- Приложение FastAPI ---
app = FastAPI(
    title=settings.SERVICE_NAME,
    version=settings.VERSION,
    description=(
        "Event Exporter Service — буферизованная пакетная выгрузка "
        "аналитических событий в PostgreSQL."
    ),
)

# --- Метрики Prometheus ---
Instrumentator().instrument(app).expose(app, include_in_schema=False)


# --- События приложения ---
@app.on_event("startup")
def startup_event():
    """
    Проверяет конфигурацию, создаёт таблицу и запускает конвейер.
    ConfigError здесь роняет сервис.
    """
    app.state.exporter = create_exporter(settings)
    logger.info("📦 event_exporter started and table ensured.")


@app.on_event("shutdown")
def shutdown_event():
    """Досылает буфер перед остановкой."""
    exporter = getattr(app.state, "exporter", None)
    if exporter is not None:
        exporter.shutdown()
    logger.info("👋 event_exporter stopped.")


# --- Health & readiness ---
@app.get("/health", tags=["system"])
async def health():
    return {"status": "ok", "service": "event_exporter"}


@app.get("/ready", tags=["system"])
async def ready():
    return {"status": "ready"}


@app.get("/", include_in_schema=False)
async def root():
    return {"message": "Event Exporter Service is operational"}


# --- Маршруты доменной логики (приём событий) ---
app.include_router(exporter_router.router)
