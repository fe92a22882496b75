#!/usr/bin/env python3
# main.py
"""
Главная точка входа площадки аптек.
Запускает Orders API, Realtime WS Gateway или оба сервиса в одном процессе.
"""

from __future__ import annotations

import asyncio
import signal
import sys

from src.config import settings
from src.common.logger import setup_logging, log_info, log_error
from src.common.constants import TypeMsg

MODES = ("orders_api", "realtime_ws", "all")

_shutdown_event: asyncio.Event | None = None
_running_tasks: list[asyncio.Task] = []


def setup_signal_handlers() -> None:
    """Настраивает обработчики сигналов для graceful shutdown."""
    global _shutdown_event
    _shutdown_event = asyncio.Event()

    def signal_handler(sig: int) -> None:
        """Обработчик сигналов SIGINT и SIGTERM."""
        if _shutdown_event and not _shutdown_event.is_set():
            print(f"\nПолучен сигнал остановки (sig={sig}), завершаем работу...")
            _shutdown_event.set()
            for task in _running_tasks:
                if not task.done():
                    task.cancel()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: signal_handler(s))
    except NotImplementedError:
        # Windows не поддерживает add_signal_handler
        signal.signal(signal.SIGINT, lambda s, f: signal_handler(s))
        signal.signal(signal.SIGTERM, lambda s, f: signal_handler(s))


async def _serve(title: str, app_path: str, host: str, port: int) -> None:
    """Запускает uvicorn-сервер приложения до отмены."""
    import uvicorn

    await log_info(f"Запуск {title} на {host}:{port}...", type_msg=TypeMsg.INFO)

    config = uvicorn.Config(
        app_path,
        host=host,
        port=port,
        log_level="debug" if settings.system.DEBUG else "info",
    )

    server = uvicorn.Server(config)
    try:
        await server.serve()
    except asyncio.CancelledError:
        await log_info(f"{title}: graceful shutdown", type_msg=TypeMsg.DEBUG)
        await server.shutdown()


async def run_orders_api() -> None:
    """Запускает Orders API (REST заказов)."""
    await _serve(
        "Orders API",
        "src.services.orders_api.app:app",
        settings.deployment.ORDERS_API_HOST,
        settings.deployment.ORDERS_API_PORT,
    )


async def run_realtime_ws_gateway() -> None:
    """Запускает Realtime WebSocket Gateway (уведомления покупателям и аптекам)."""
    await _serve(
        "Realtime WS Gateway",
        "src.services.realtime_ws.app:app",
        settings.deployment.REALTIME_WS_GATEWAY_HOST,
        settings.deployment.REALTIME_WS_GATEWAY_PORT,
    )


async def main(mode: str = "all") -> None:
    """
    Главная функция запуска.

    Args:
        mode: Режим запуска (orders_api, realtime_ws, all)
    """
    global _running_tasks

    setup_logging()
    setup_signal_handlers()

    await log_info(
        f"{settings.system.PROJECT_NAME} v{settings.system.VERSION} — запуск в режиме '{mode}'",
        type_msg=TypeMsg.INFO,
    )

    if mode == "orders_api":
        _running_tasks = [asyncio.create_task(run_orders_api())]
    elif mode == "realtime_ws":
        _running_tasks = [asyncio.create_task(run_realtime_ws_gateway())]
    elif mode == "all":
        _running_tasks = [
            asyncio.create_task(run_orders_api()),
            asyncio.create_task(run_realtime_ws_gateway()),
        ]
    else:
        await log_error(f"Неизвестный режим: {mode}")
        return

    try:
        await asyncio.gather(*_running_tasks, return_exceptions=True)
    except asyncio.CancelledError:
        await log_info("Задача отменена, выполняется graceful shutdown", type_msg=TypeMsg.INFO)
    finally:
        for task in _running_tasks:
            if not task.done():
                task.cancel()
        await asyncio.gather(*_running_tasks, return_exceptions=True)
        _running_tasks.clear()
        await log_info("Приложение остановлено", type_msg=TypeMsg.INFO)


def print_usage() -> None:
    """Выводит справку по использованию."""
    print(f"""
{settings.system.PROJECT_NAME} v{settings.system.VERSION}

Использование:
    python main.py [mode]

Режимы:
    orders_api             — Orders API (:{settings.deployment.ORDERS_API_PORT})
    realtime_ws            — Realtime WebSocket Gateway (:{settings.deployment.REALTIME_WS_GATEWAY_PORT})
    all                    — оба сервиса в одном процессе (по умолчанию)

Примеры:
    python main.py
    python main.py orders_api
    """)


if __name__ == "__main__":
    mode = "all"

    if len(sys.argv) > 1:
        arg = sys.argv[1].lower()
        if arg in ("--help", "-h"):
            print_usage()
            sys.exit(0)
        elif arg in MODES:
            mode = arg
        else:
            print(f"Ошибка: неизвестный режим '{arg}'")
            print_usage()
            sys.exit(1)

    try:
        asyncio.run(main(mode))
    except KeyboardInterrupt:
        pass
