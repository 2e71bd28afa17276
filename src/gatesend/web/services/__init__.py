"""Web services shaping send-flow state into API responses.

These services:
- Read published snapshots, allowance and prices
- Forward send/cancel requests to the orchestrator

They never hold keys or sign.
"""

from gatesend.web.services.transfer_service import TransferService
from gatesend.web.services.wallet_service import WalletService

__all__ = ["TransferService", "WalletService"]
