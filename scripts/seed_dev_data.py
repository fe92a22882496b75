#!/usr/bin/env python3
"""
Подготовка окружения разработки.

- создаёт базу данных, если её нет
- применяет схему заказов
- регистрирует несколько тестовых аптек в гео-индексе

Запуск:
    python scripts/seed_dev_data.py
"""

import asyncio
import sys
from pathlib import Path

# Добавляем корневую директорию проекта в путь
sys.path.insert(0, str(Path(__file__).parent.parent.resolve()))

import asyncpg

from src.config import settings
from src.core.geo import GeoIndex, GeoPoint, SellerLocation
from src.infra.database import close_db, init_db
from src.infra.redis_client import close_redis, get_redis, init_redis

# Аптеки вокруг (77.59, 12.97)
DEV_SELLERS = [
    SellerLocation("dev-seller-mg-road", GeoPoint(77.6070, 12.9750), accepting_orders=True),
    SellerLocation("dev-seller-jayanagar", GeoPoint(77.5830, 12.9300), accepting_orders=True),
    SellerLocation("dev-seller-closed", GeoPoint(77.5946, 12.9716), accepting_orders=False),
]


async def create_db() -> None:
    db_name = settings.database.DB_NAME

    # Подключаемся к служебной БД, чтобы создать рабочую
    sys_conn = await asyncpg.connect(
        user=settings.database.DB_USER,
        password=settings.database.DB_PASSWORD,
        host=settings.database.DB_HOST,
        port=settings.database.DB_PORT,
        database="postgres",
    )
    try:
        exists = await sys_conn.fetchval(
            "SELECT 1 FROM pg_database WHERE datname = $1",
            db_name,
        )
        if not exists:
            print(f"Creating database {db_name}...")
            await sys_conn.execute(f'CREATE DATABASE "{db_name}"')
            print("Database created.")
        else:
            print(f"Database {db_name} already exists.")
    finally:
        await sys_conn.close()


async def seed_sellers() -> None:
    geo_index = GeoIndex(get_redis())
    for seller in DEV_SELLERS:
        await geo_index.upsert_seller(seller)
        state = "accepting" if seller.accepting_orders else "closed"
        print(f"Seller {seller.seller_id} at {seller.point.as_pair()} ({state})")


async def main() -> None:
    await create_db()

    await init_db()
    await init_redis()
    try:
        await seed_sellers()
    finally:
        await close_redis()
        await close_db()


if __name__ == "__main__":
    asyncio.run(main())
