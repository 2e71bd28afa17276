"""Request and response contracts for the web layer.

These Pydantic models define the API interface for web clients.
"""

from gatesend.web.contracts.prices import NativePriceResponse
from gatesend.web.contracts.transfers import SendRequest, SessionResponse
from gatesend.web.contracts.wallet import (
    AllowanceResponse,
    MaxAmountResponse,
    PortfolioResponse,
    SnapshotResponse,
)

__all__ = [
    # Wallet contracts
    "AllowanceResponse",
    "MaxAmountResponse",
    "PortfolioResponse",
    "SnapshotResponse",
    # Price contracts
    "NativePriceResponse",
    # Transfer contracts
    "SendRequest",
    "SessionResponse",
]
