#!/usr/bin/env python3
# entrypoint_all.py
"""
Точка входа для запуска Orders API и Realtime WS Gateway в одном контейнере.
Используется для разработки или простых деплойментов.
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
project_root = Path(__file__).parent.parent.resolve()
sys.path.insert(0, str(project_root))

from main import main


if __name__ == "__main__":
    print("[DEV_MODE] Запуск Orders API + Realtime WS Gateway...")
    print("Для остановки используйте Ctrl+C")

    try:
        asyncio.run(main(mode="all"))
    except KeyboardInterrupt:
        print("\nПолучен сигнал остановки, завершение работы...")
    finally:
        print("Все компоненты остановлены")
