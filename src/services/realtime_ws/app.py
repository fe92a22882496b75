# src/services/realtime_ws/app.py
"""
FastAPI приложение для Realtime WebSocket Gateway.

WebSocket endpoints:
- /ws/buyer/{buyer_id} — для покупателей (топик buyer:{id})
- /ws/seller/{seller_id} — для аптек (топик seller:{id})

REST endpoints:
- GET /health — проверка здоровья
- GET /stats — статистика соединений
"""

from __future__ import annotations

import json
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from src.common.constants import PrincipalType, TypeMsg, buyer_topic, seller_topic
from src.common.exceptions import DispatchError
from src.common.logger import log_info, log_warning, setup_logging
from src.infra.redis_client import close_redis, get_redis, init_redis
from src.services.realtime_ws.connection_manager import manager
from src.services.realtime_ws.redis_subscriber import RedisSubscriber
from src.shared.auth import principal_from_headers, require_self
from src.shared.models.common import HealthStatus

SERVICE_NAME = "realtime_ws_gateway"
SERVICE_VERSION = "1.0.0"


# === MODELS ===

class StatsResponse(BaseModel):
    """Статистика соединений."""
    active_connections: int
    total_topics: int
    total_connections_ever: int
    total_messages_sent: int
    total_messages_dropped: int
    connections_by_type: dict[str, int]


# === LIFESPAN ===

_redis_subscriber: RedisSubscriber | None = None


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Жизненный цикл приложения."""
    global _redis_subscriber

    # Startup
    setup_logging()
    await init_redis()

    _redis_subscriber = RedisSubscriber(get_redis(), manager.publish)
    await _redis_subscriber.start()

    await log_info(f"{SERVICE_NAME} запущен", type_msg=TypeMsg.INFO)

    yield

    # Shutdown
    if _redis_subscriber:
        await _redis_subscriber.stop()
        _redis_subscriber = None
    await manager.close_all()
    await close_redis()


# === APP ===

app = FastAPI(
    title="Realtime WebSocket Gateway",
    description="WebSocket сервис уведомлений о заказах для покупателей и аптек.",
    version=SERVICE_VERSION,
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)


# === HEALTH CHECK ===

@app.get("/health", response_model=HealthStatus, tags=["Health"])
async def health_check() -> HealthStatus:
    """Проверка здоровья сервиса."""
    redis_ok = await get_redis().health_check()
    return HealthStatus(
        status="healthy" if redis_ok else "degraded",
        service=SERVICE_NAME,
        version=SERVICE_VERSION,
        dependencies={"redis": "healthy" if redis_ok else "unhealthy"},
    )


# === STATS ===

@app.get("/stats", response_model=StatsResponse, tags=["Stats"])
async def get_stats() -> StatsResponse:
    """Получить статистику соединений."""
    return StatsResponse(**manager.get_stats())


# === WEBSOCKET ENDPOINTS ===

@app.websocket("/ws/buyer/{buyer_id}")
async def websocket_buyer(websocket: WebSocket, buyer_id: str) -> None:
    """
    WebSocket для покупателей.

    Получает orderResponse по своим заказам.

    Входящие сообщения:
    - {"action": "ping"}
    """
    await _run_session(websocket, PrincipalType.BUYER, buyer_id, buyer_topic(buyer_id))


@app.websocket("/ws/seller/{seller_id}")
async def websocket_seller(websocket: WebSocket, seller_id: str) -> None:
    """
    WebSocket для аптек.

    Получает newOrder по заказам поблизости.

    Входящие сообщения:
    - {"action": "ping"}
    """
    await _run_session(websocket, PrincipalType.SELLER, seller_id, seller_topic(seller_id))


async def _run_session(
    websocket: WebSocket,
    principal_type: PrincipalType,
    principal_id: str,
    topic: str,
) -> None:
    """Проверяет участника, ведёт сессию до отключения."""
    try:
        require_self(principal_from_headers(websocket.headers), principal_type, principal_id)
    except DispatchError as e:
        await log_warning(f"WS {principal_type.value}:{principal_id} отклонён: {e.message}")
        # 4401 / 4403
        await websocket.close(code=4000 + e.status_code, reason=e.message)
        return

    session_id = await manager.connect(websocket, principal_id, principal_type.value, topic)

    try:
        while True:
            raw = await websocket.receive_text()
            await _handle_client_message(session_id, raw)

    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(session_id)


async def _handle_client_message(session_id: str, raw: str) -> None:
    """Обработать сообщение от клиента."""
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError:
        await manager.send_personal(session_id, {"type": "error", "message": "invalid JSON"})
        return

    action = data.get("action") if isinstance(data, dict) else None

    if action == "ping":
        await manager.send_personal(session_id, {"type": "pong"})
    else:
        await manager.send_personal(session_id, {
            "type": "error",
            "message": f"unknown action: {action}",
        })


# === STARTUP ===

if __name__ == "__main__":
    import uvicorn
    from src.config import settings

    uvicorn.run(
        app,
        host=settings.deployment.REALTIME_WS_GATEWAY_HOST,
        port=settings.deployment.REALTIME_WS_GATEWAY_PORT,
    )
