"""
Data models for CafeQueueWeb.

This module contains immutable dataclasses for:
- Order / OrderStatus: Orders as last seen on the Queue Service
- Barista / BaristaStatus: Baristas as last seen on the Queue Service
- DrinkMenuItem: Menu reference data (plus the static fallback catalog)
- OrderRequest: A customer's order before submission
- QueueStats / TestMetrics / BaristaMetrics / TimeSeriesPoint: Derived metrics

All entities are owned by the Queue Service. Snapshots are frozen and are
replaced wholesale on every poll, never patched in place.
"""

from .order import Order, OrderStatus
from .barista import Barista, BaristaStatus
from .menu import DrinkMenuItem, FALLBACK_MENU, find_menu_item
from .order_request import OrderRequest, MIN_QUANTITY, MAX_QUANTITY
from .metrics import QueueStats, TestMetrics, BaristaMetrics, TimeSeriesPoint

__all__ = [
    # Order models
    "Order",
    "OrderStatus",
    "OrderRequest",
    "MIN_QUANTITY",
    "MAX_QUANTITY",
    # Barista models
    "Barista",
    "BaristaStatus",
    # Menu models
    "DrinkMenuItem",
    "FALLBACK_MENU",
    "find_menu_item",
    # Metrics models
    "QueueStats",
    "TestMetrics",
    "BaristaMetrics",
    "TimeSeriesPoint",
]
