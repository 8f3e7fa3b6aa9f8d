"""
Services layer for CafeQueueWeb.

This module contains the live-view services:
- Poller: Periodic refresh driver (one per active view)
- CustomerSession / CustomerSessionRegistry: Ordering + position tracking
- BaristaDashboardService: Barista dashboard + assign/complete workflow
- SimulationService: Load-test generation + aggregated metrics

Thread Model:
    Main Thread (Flask)
    ├── Barista poller thread (5-second refresh while dashboard active)
    ├── Simulation poller thread (2-second refresh while a test runs)
    └── Customer poller threads (3-second refresh, one per placed order)

Each view holds its own snapshot; the only shared resource is the
Queue Service client.
"""

from .poller import Poller
from .customer_service import CustomerSession, CustomerSessionRegistry
from .barista_service import BaristaDashboardService, BaristaDashboardSnapshot
from .simulation_service import SimulationService

__all__ = [
    "Poller",
    "CustomerSession",
    "CustomerSessionRegistry",
    "BaristaDashboardService",
    "BaristaDashboardSnapshot",
    "SimulationService",
]
