"""Order submission tools."""

from .orders import CustomerProfile, OrderPayload, OrderSubmitter
from .urls import derive_url

__all__ = [
    "CustomerProfile",
    "OrderPayload",
    "OrderSubmitter",
    "derive_url",
]
