# src/services/orders_api/app.py
"""
FastAPI приложение Orders API.

REST endpoints (префикс /api/v1):
- POST /orders — разместить заказ (покупатель)
- PATCH /orders/{order_id}/respond — ответ аптеки
- GET /orders/{order_id} — заказ по ID
- GET /orders/buyer/{buyer_id} — заказы покупателя
- GET /orders — все заказы (аптека)
- GET /health — проверка здоровья
"""

from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from src.common.constants import TypeMsg
from src.common.exceptions import DispatchError, InvalidInput
from src.common.logger import log_error, log_info, log_warning, setup_logging
from src.infra.database import close_db, get_db, init_db
from src.infra.redis_client import close_redis, get_redis, init_redis
from src.services.orders_api.routes import router
from src.shared.models.common import HealthStatus

SERVICE_NAME = "orders_api"
SERVICE_VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    # Startup
    setup_logging()
    await init_db()
    await init_redis()
    await log_info(f"{SERVICE_NAME} запущен", type_msg=TypeMsg.INFO)

    yield

    # Shutdown
    await close_redis()
    await close_db()


app = FastAPI(
    title="Orders API",
    description="Размещение заказов в аптеки и ответы аптек.",
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.include_router(router, prefix="/api/v1")


# === ERROR HANDLERS ===

@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError) -> JSONResponse:
    await log_warning(
        f"{request.method} {request.url.path} -> {exc.status_code} {exc.error_kind}: {exc.message}"
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_payload())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        message = f"{location}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return await dispatch_error_handler(request, InvalidInput(message))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    await log_error(
        f"{request.method} {request.url.path}: необработанная ошибка {type(exc).__name__}: {exc}",
        exc_info=True,
    )
    return JSONResponse(
        status_code=500,
        content={"success": False, "errorKind": "InternalError", "message": "Internal server error"},
    )


# === HEALTH CHECK ===

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    db_ok = await get_db().health_check()
    redis_ok = await get_redis().health_check()
    return HealthStatus(
        status="healthy" if db_ok and redis_ok else "degraded",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        dependencies={
            "postgres": "healthy" if db_ok else "unhealthy",
            "redis": "healthy" if redis_ok else "unhealthy",
        },
    )


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    from src.config import settings

    uvicorn.run(
        app,
        host=settings.deployment.ORDERS_API_HOST,
        port=settings.deployment.ORDERS_API_PORT,
    )
