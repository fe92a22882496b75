# tests/conftest.py
"""
Общие фикстуры и настройки для тестов.
"""

from __future__ import annotations

import json
import os
from datetime import datetime, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

# Устанавливаем переменные окружения перед импортом модулей
os.environ.setdefault("DB_PASSWORD", "test_password")
os.environ.setdefault("REDIS_PASSWORD", "")

from src.core.geo.index import GeoIndex
from tests.fakes import FakeRedisClient, InMemoryOrderStore, RecordingBus


# =============================================================================
# ФИКСТУРЫ КОНФИГУРАЦИИ
# =============================================================================

@pytest.fixture(scope="session")
def project_root() -> Path:
    """Корневая директория проекта."""
    return Path(__file__).parent.parent


@pytest.fixture(scope="session")
def config_path(project_root: Path) -> Path:
    """Путь к файлу конфигурации."""
    return project_root / "config" / "config.json"


@pytest.fixture
def mock_config() -> dict[str, Any]:
    """Мок конфигурации для тестов."""
    return {
        "PROJECT_NAME": "pharmacy_dispatch_test",
        "VERSION": "1.0.0-test",
        "DEBUG": True,
        "ENVIRONMENT": "test",
        "LOG_LEVEL": "DEBUG",
        "LOG_TO_FILE": False,
        "LOG_FILE_PATH": "logs/test.log",
        "LOG_FORMAT": "colored",
        "ORDERS_API_PORT": 9092,
        "REALTIME_WS_GATEWAY_PORT": 9089,
        "DB_HOST": "localhost",
        "DB_PORT": 5432,
        "DB_NAME": "pharmacy_test",
        "DB_USER": "postgres",
        "DB_MIN_POOL_SIZE": 2,
        "DB_MAX_POOL_SIZE": 5,
        "REDIS_HOST": "localhost",
        "REDIS_PORT": 6379,
        "REDIS_DB": 1,
        "REDIS_NAMESPACE": "pharmacy_test",
        "MATCHING_RADIUS_METERS": 5000,
        "SELLERS_GEO_KEY": "test:sellers:locations",
        "SELLERS_ACCEPTING_KEY": "test:sellers:accepting",
        "NOTIFY_CHANNEL_PREFIX": "test_notify",
        "SESSION_QUEUE_SIZE": 8,
    }


@pytest.fixture
def temp_config_file(tmp_path: Path, mock_config: dict[str, Any]) -> Path:
    """Создаёт временный файл конфигурации."""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps(mock_config, ensure_ascii=False, indent=2))
    return config_file


# =============================================================================
# ФИКСТУРЫ ИНФРАСТРУКТУРЫ (МОКИ)
# =============================================================================

@pytest.fixture
def mock_db() -> MagicMock:
    """Мок менеджера базы данных."""
    db = MagicMock()
    db.fetchrow = AsyncMock(return_value=None)
    db.fetch = AsyncMock(return_value=[])
    db.execute = AsyncMock(return_value="INSERT 0 1")
    db.fetchval = AsyncMock(return_value=None)
    return db


@pytest.fixture
def mock_redis() -> MagicMock:
    """Мок клиента Redis."""
    redis = MagicMock()
    redis.make_key = MagicMock(side_effect=lambda key: f"pharmacy:{key}")
    redis.geoadd = AsyncMock(return_value=1)
    redis.geosearch = AsyncMock(return_value=[])
    redis.georem = AsyncMock(return_value=1)
    redis.sadd = AsyncMock(return_value=1)
    redis.srem = AsyncMock(return_value=1)
    redis.smismember = AsyncMock(return_value=[])
    redis.publish = AsyncMock(return_value=1)
    return redis


# =============================================================================
# IN-MEMORY ДВОЙНИКИ
# =============================================================================

@pytest.fixture
def fake_redis() -> FakeRedisClient:
    return FakeRedisClient()


@pytest.fixture
def geo_index(fake_redis: FakeRedisClient) -> GeoIndex:
    return GeoIndex(fake_redis, geo_key="sellers:locations", accepting_key="sellers:accepting")


@pytest.fixture
def order_store() -> InMemoryOrderStore:
    return InMemoryOrderStore()


@pytest.fixture
def bus() -> RecordingBus:
    return RecordingBus()


# =============================================================================
# ФИКСТУРЫ МОДЕЛЕЙ
# =============================================================================

@pytest.fixture
def sample_items() -> list[dict[str, Any]]:
    """Позиции заказа в формате клиента."""
    return [
        {"medicineId": "med-1", "name": "Paracetamol 500mg", "manufacturer": "GSK", "price": 30.0, "quantity": 2},
        {"name": "Cetirizine", "manufacturer": "Cipla", "price": 45.5, "quantity": 1},
    ]


@pytest.fixture
def sample_order_row() -> dict[str, Any]:
    """Строка заказа, как её возвращает asyncpg."""
    created = datetime(2026, 3, 1, 10, 0, tzinfo=timezone.utc)
    return {
        "id": "5b0f6c9e-6a8a-4c1e-9d7b-1f0b3f2f6a11",
        "buyer_id": "buyer-1",
        "seller_id": None,
        "items": json.dumps([{"medicineId": "med-1", "name": "Paracetamol", "price": 30.0, "quantity": 2}]),
        "total_amount": 60,
        "longitude": 77.59,
        "latitude": 12.97,
        "address": "MG Road, Bengaluru",
        "prescription_image": None,
        "status": "pending",
        "responded_at": None,
        "created_at": created,
        "updated_at": created,
    }
