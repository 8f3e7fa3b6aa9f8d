"""
Core module for CafeQueueWeb.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- queue_client: REST client for the external Queue Service
"""

from .exceptions import (
    CafeQueueError,
    ServiceError,
    TransportError,
    ProtocolError,
    MalformedResponseError,
    OrderValidationError,
    ConfirmationRequiredError,
)
from .queue_client import QueueServiceClient

__all__ = [
    "CafeQueueError",
    "ServiceError",
    "TransportError",
    "ProtocolError",
    "MalformedResponseError",
    "OrderValidationError",
    "ConfirmationRequiredError",
    "QueueServiceClient",
]
