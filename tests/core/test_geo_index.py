# tests/core/test_geo_index.py
"""
Тесты для гео-индекса продавцов.
"""

from __future__ import annotations

import math
from unittest.mock import MagicMock

import pytest

from src.common.exceptions import InvalidGeometry
from src.core.geo.index import GeoIndex
from src.core.geo.models import GeoPoint, SellerLocation, SellerMatch
from tests.fakes import FakeRedisClient, north_of

CENTER = GeoPoint(77.59, 12.97)


async def _add_seller(index: GeoIndex, seller_id: str, meters: float, accepting: bool = True) -> None:
    lon, lat = north_of(CENTER.longitude, CENTER.latitude, meters)
    await index.upsert_seller(SellerLocation(seller_id, GeoPoint(lon, lat), accepting))


class TestGeoPoint:
    """Тесты для GeoPoint.of."""

    def test_valid_point(self) -> None:
        point = GeoPoint.of(77.59, 12.97)
        assert point.as_pair() == [77.59, 12.97]

    def test_int_coordinates_accepted(self) -> None:
        point = GeoPoint.of(10, -20)
        assert point == GeoPoint(10.0, -20.0)

    @pytest.mark.parametrize(
        "longitude, latitude",
        [
            (math.nan, 12.0),
            (77.0, math.inf),
            (181.0, 0.0),
            (0.0, -90.5),
            ("77.59", 12.97),
            (None, 12.97),
            (True, 12.97),
        ],
    )
    def test_invalid_point(self, longitude, latitude) -> None:
        with pytest.raises(InvalidGeometry):
            GeoPoint.of(longitude, latitude)

    @pytest.mark.parametrize("latitude", [86.0, -85.1])
    def test_latitude_beyond_redis_geo_limit(self, latitude: float) -> None:
        """Redis GEO не принимает широты за пределами ±85.05112878."""
        with pytest.raises(InvalidGeometry, match="out of range"):
            GeoPoint.of(10.0, latitude)

    def test_latitude_at_redis_geo_limit(self) -> None:
        assert GeoPoint.of(0.0, 85.05).latitude == 85.05

    def test_seller_match_topic(self) -> None:
        assert SellerMatch("s-1", 120.0).topic == "seller:s-1"


class TestGeoIndexFindNearby:
    """Тесты для GeoIndex.find_nearby на in-memory Redis."""

    @pytest.mark.asyncio
    async def test_sorted_by_distance(self, geo_index: GeoIndex) -> None:
        """Продавцы на 9, 2, 5 км возвращаются в порядке 2, 5, 9."""
        # Arrange
        await _add_seller(geo_index, "far", 9000)
        await _add_seller(geo_index, "near", 2000)
        await _add_seller(geo_index, "middle", 5000)

        # Act
        matches = await geo_index.find_nearby(CENTER, 10_000)

        # Assert
        assert [match.seller_id for match in matches] == ["near", "middle", "far"]
        distances = [match.distance_meters for match in matches]
        assert distances == sorted(distances)
        assert distances[0] == pytest.approx(2000, abs=1)

    @pytest.mark.asyncio
    async def test_excludes_not_accepting(self, geo_index: GeoIndex) -> None:
        await _add_seller(geo_index, "open", 1000)
        await _add_seller(geo_index, "closed", 500, accepting=False)

        matches = await geo_index.find_nearby(CENTER, 10_000)

        assert [match.seller_id for match in matches] == ["open"]

    @pytest.mark.asyncio
    async def test_excludes_outside_radius(self, geo_index: GeoIndex) -> None:
        await _add_seller(geo_index, "inside", 3000)
        await _add_seller(geo_index, "outside", 12_000)

        matches = await geo_index.find_nearby(CENTER, 10_000)

        assert [match.seller_id for match in matches] == ["inside"]

    @pytest.mark.asyncio
    async def test_empty_result_is_valid(self, geo_index: GeoIndex) -> None:
        assert await geo_index.find_nearby(CENTER, 10_000) == []

    @pytest.mark.asyncio
    async def test_accepts_tuple_point(self, geo_index: GeoIndex) -> None:
        await _add_seller(geo_index, "s-1", 100)

        matches = await geo_index.find_nearby((77.59, 12.97), 1000)

        assert len(matches) == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize("point", [(math.nan, 12.97), (77.59,), "77.59,12.97", None, (200.0, 0.0), (77.59, 86.0)])
    async def test_invalid_point(self, geo_index: GeoIndex, point) -> None:
        with pytest.raises(InvalidGeometry):
            await geo_index.find_nearby(point, 1000)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("radius", [0, -5, math.nan, math.inf, "1000", None, True])
    async def test_invalid_radius(self, geo_index: GeoIndex, radius: float) -> None:
        with pytest.raises(InvalidGeometry):
            await geo_index.find_nearby(CENTER, radius)


class TestGeoIndexMaintenance:
    """Тесты для обслуживания индекса."""

    @pytest.mark.asyncio
    async def test_set_accepting_toggles_visibility(self, geo_index: GeoIndex) -> None:
        await _add_seller(geo_index, "s-1", 1000)

        await geo_index.set_accepting("s-1", False)
        assert await geo_index.find_nearby(CENTER, 5000) == []

        await geo_index.set_accepting("s-1", True)
        assert [m.seller_id for m in await geo_index.find_nearby(CENTER, 5000)] == ["s-1"]

    @pytest.mark.asyncio
    async def test_remove_seller(self, geo_index: GeoIndex, fake_redis: FakeRedisClient) -> None:
        await _add_seller(geo_index, "s-1", 1000)

        await geo_index.remove_seller("s-1")

        assert await geo_index.find_nearby(CENTER, 5000) == []
        assert "s-1" not in fake_redis.sets.get("sellers:accepting", set())


class TestGeoIndexRedisCalls:
    """Проверка вызовов RedisClient."""

    @pytest.mark.asyncio
    async def test_queries_in_meters_ascending(self, mock_redis: MagicMock) -> None:
        # Arrange
        mock_redis.geosearch.return_value = [("a", 100.04), ("b", 250.0), ("c", 900.0)]
        mock_redis.smismember.return_value = [True, False, True]
        index = GeoIndex(mock_redis, geo_key="geo", accepting_key="accepting")

        # Act
        matches = await index.find_nearby(CENTER, 1000)

        # Assert
        mock_redis.geosearch.assert_awaited_once_with(
            "geo", 77.59, 12.97, 1000, unit="m", sort="ASC"
        )
        mock_redis.smismember.assert_awaited_once_with("accepting", ["a", "b", "c"])
        assert matches == [SellerMatch("a", 100.0), SellerMatch("c", 900.0)]

    @pytest.mark.asyncio
    async def test_no_membership_check_when_nothing_found(self, mock_redis: MagicMock) -> None:
        index = GeoIndex(mock_redis, geo_key="geo", accepting_key="accepting")

        assert await index.find_nearby(CENTER, 1000) == []
        mock_redis.smismember.assert_not_called()

    def test_keys_default_from_settings(self, mock_redis: MagicMock) -> None:
        from src.config import settings

        index = GeoIndex(mock_redis)

        assert index._geo_key == settings.matching.SELLERS_GEO_KEY
        assert index._accepting_key == settings.matching.SELLERS_ACCEPTING_KEY
