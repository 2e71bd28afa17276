"""HTTP controllers for web API endpoints."""

from gatesend.web.controllers.prices import router as prices_router
from gatesend.web.controllers.transfers import router as transfers_router
from gatesend.web.controllers.wallet import router as wallet_router

__all__ = [
    "prices_router",
    "transfers_router",
    "wallet_router",
]
