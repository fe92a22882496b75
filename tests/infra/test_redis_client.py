# tests/infra/test_redis_client.py
"""
Тесты для клиента Redis.
"""

from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from src.infra.redis_client import RedisClient


class TestRedisClient:
    """Тесты для RedisClient."""

    @pytest.fixture
    def redis_client(self) -> RedisClient:
        """Создаёт экземпляр RedisClient для тестов."""
        # Сбрасываем синглтон для каждого теста
        RedisClient._instance = None
        RedisClient._client = None
        client = RedisClient()
        return client

    @pytest.fixture
    def connected(self, redis_client: RedisClient) -> AsyncMock:
        """Подставляет мок redis.asyncio.Redis."""
        mock_client = AsyncMock()
        redis_client._client = mock_client
        return mock_client

    def test_singleton(self) -> None:
        """Проверяет паттерн Singleton."""
        RedisClient._instance = None

        client1 = RedisClient()
        client2 = RedisClient()

        assert client1 is client2

    def test_client_not_initialized(self, redis_client: RedisClient) -> None:
        """Проверяет ошибку при обращении к неинициализированному клиенту."""
        with pytest.raises(RuntimeError, match="Redis клиент не инициализирован"):
            _ = redis_client.client

    def test_make_key(self, redis_client: RedisClient) -> None:
        """Проверяет формирование ключа с namespace."""
        assert redis_client.make_key("sellers:locations") == "pharmacy:sellers:locations"

    def test_make_key_custom_namespace(self, redis_client: RedisClient) -> None:
        redis_client._namespace = "custom"
        assert redis_client.make_key("test_key") == "custom:test_key"

    @pytest.mark.asyncio
    async def test_connect(self, redis_client: RedisClient) -> None:
        """Проверяет подключение к Redis."""
        mock_redis = AsyncMock()
        mock_redis.ping = AsyncMock(return_value=True)

        with patch("redis.asyncio.from_url", return_value=mock_redis) as from_url:
            await redis_client.connect(
                url="redis://localhost:6379/0",
                max_connections=10,
                namespace="pharmacy_test",
            )

        assert redis_client._client is mock_redis
        assert redis_client.make_key("k") == "pharmacy_test:k"
        from_url.assert_called_once_with(
            "redis://localhost:6379/0",
            max_connections=10,
            decode_responses=True,
        )
        mock_redis.ping.assert_called_once()

    @pytest.mark.asyncio
    async def test_connect_already_connected(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        """Проверяет, что повторное подключение пропускается."""
        with patch("redis.asyncio.from_url") as from_url:
            await redis_client.connect(url="redis://localhost:6379/0")

        from_url.assert_not_called()

    @pytest.mark.asyncio
    async def test_disconnect(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        await redis_client.disconnect()

        connected.aclose.assert_called_once()
        assert redis_client._client is None

    @pytest.mark.asyncio
    async def test_disconnect_not_connected(self, redis_client: RedisClient) -> None:
        await redis_client.disconnect()
        assert redis_client._client is None

    # =========================================================================
    # GEO
    # =========================================================================

    @pytest.mark.asyncio
    async def test_geoadd(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        connected.geoadd.return_value = 1

        result = await redis_client.geoadd("sellers:locations", 77.59, 12.97, "seller-1")

        assert result == 1
        connected.geoadd.assert_called_once_with(
            "pharmacy:sellers:locations",
            (77.59, 12.97, "seller-1"),
        )

    @pytest.mark.asyncio
    async def test_geosearch(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        """GEOSEARCH возвращает пары (member, distance) в метрах."""
        # Arrange
        connected.geosearch.return_value = [["seller-1", "120.5"], ["seller-2", "980.0"]]

        # Act
        result = await redis_client.geosearch("geo", 77.59, 12.97, 1000, unit="m", sort="ASC")

        # Assert
        assert result == [("seller-1", 120.5), ("seller-2", 980.0)]
        connected.geosearch.assert_called_once_with(
            "pharmacy:geo",
            longitude=77.59,
            latitude=12.97,
            radius=1000,
            unit="m",
            sort="ASC",
            count=None,
            withdist=True,
        )

    @pytest.mark.asyncio
    async def test_georem(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        connected.zrem.return_value = 1

        assert await redis_client.georem("geo", "seller-1") == 1
        connected.zrem.assert_called_once_with("pharmacy:geo", "seller-1")

    # =========================================================================
    # SET
    # =========================================================================

    @pytest.mark.asyncio
    async def test_sadd_srem(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        connected.sadd.return_value = 1
        connected.srem.return_value = 1

        await redis_client.sadd("accepting", "seller-1")
        await redis_client.srem("accepting", "seller-1")

        connected.sadd.assert_called_once_with("pharmacy:accepting", "seller-1")
        connected.srem.assert_called_once_with("pharmacy:accepting", "seller-1")

    @pytest.mark.asyncio
    async def test_smismember(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        connected.smismember.return_value = [1, 0, 1]

        result = await redis_client.smismember("accepting", ["a", "b", "c"])

        assert result == [True, False, True]
        connected.smismember.assert_called_once_with("pharmacy:accepting", ["a", "b", "c"])

    @pytest.mark.asyncio
    async def test_smismember_empty(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        assert await redis_client.smismember("accepting", []) == []
        connected.smismember.assert_not_called()

    # =========================================================================
    # PUB/SUB
    # =========================================================================

    @pytest.mark.asyncio
    async def test_publish_json(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        """Сообщение сериализуется в JSON и уходит в канал с namespace."""
        connected.publish.return_value = 2

        receivers = await redis_client.publish("notify:buyer:b1", {"event": "orderResponse", "payload": {"x": 1}})

        assert receivers == 2
        channel, data = connected.publish.call_args.args
        assert channel == "pharmacy:notify:buyer:b1"
        assert json.loads(data) == {"event": "orderResponse", "payload": {"x": 1}}

    def test_pubsub(self, redis_client: RedisClient) -> None:
        mock_client = MagicMock()
        redis_client._client = mock_client

        assert redis_client.pubsub() is mock_client.pubsub.return_value

    # =========================================================================
    # HEALTH CHECK
    # =========================================================================

    @pytest.mark.asyncio
    async def test_health_check_success(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        connected.ping.return_value = True

        assert await redis_client.health_check() is True

    @pytest.mark.asyncio
    async def test_health_check_failure(self, redis_client: RedisClient, connected: AsyncMock) -> None:
        connected.ping.side_effect = ConnectionError("refused")

        assert await redis_client.health_check() is False

    @pytest.mark.asyncio
    async def test_health_check_not_connected(self, redis_client: RedisClient) -> None:
        assert await redis_client.health_check() is False
