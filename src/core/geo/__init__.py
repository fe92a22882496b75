# src/core/geo/__init__.py
"""
Гео-домен.
Поиск ближайших продавцов.
"""

from src.core.geo.index import GeoIndex
from src.core.geo.models import GeoPoint, SellerLocation, SellerMatch

__all__ = [
    "GeoIndex",
    "GeoPoint",
    "SellerLocation",
    "SellerMatch",
]
