#!/usr/bin/env python3
"""
Entrypoint для Orders API.

Запуск:
    python entrypoints/entrypoint_orders_api.py

Порт по умолчанию: 8092
"""

import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

import uvicorn

from src.config import settings


def main() -> None:
    """Запустить Orders API."""
    uvicorn.run(
        "src.services.orders_api.app:app",
        host=settings.deployment.ORDERS_API_HOST,
        port=settings.deployment.ORDERS_API_PORT,
        reload=settings.system.DEBUG,
        log_level=settings.logging.LOG_LEVEL.lower(),
    )


if __name__ == "__main__":
    main()
