"""Wallet API endpoints.

Read-only views of the connected wallet: balances, fee, allowance, the MAX
amount helper and portfolio value.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from gatesend.services.factory import GatewayServices
from gatesend.web.contracts.wallet import (
    AllowanceResponse,
    MaxAmountResponse,
    PortfolioResponse,
    SnapshotResponse,
)
from gatesend.web.dependencies import get_services
from gatesend.web.services.wallet_service import WalletNotConnectedError, WalletService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/wallet", tags=["wallet"])


@router.get("/snapshot", response_model=SnapshotResponse)
async def get_snapshot(services: GatewayServices = Depends(get_services)) -> SnapshotResponse:
    """Latest balances and gateway fee for the connected wallet.

    Served from the background snapshot; ``stale`` is set when the last
    refresh failed and older data is being shown.
    """
    return WalletService(services).get_snapshot()


@router.post("/refresh", response_model=SnapshotResponse)
async def refresh_snapshot(services: GatewayServices = Depends(get_services)) -> SnapshotResponse:
    """Re-read balances and fee now."""
    try:
        return await WalletService(services).refresh()
    except WalletNotConnectedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/allowance", response_model=AllowanceResponse)
async def get_allowance(
    amount: str = Query(..., description="Candidate amount, e.g. 10.5"),
    services: GatewayServices = Depends(get_services),
) -> AllowanceResponse:
    """Check whether sending ``amount`` needs an approval first.

    A failed allowance read reports ``needs_approval = true``.
    """
    try:
        return await WalletService(services).get_allowance(amount)
    except WalletNotConnectedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/max-amount", response_model=MaxAmountResponse)
async def get_max_amount(services: GatewayServices = Depends(get_services)) -> MaxAmountResponse:
    """Full token balance, truncated to at most 6 decimals."""
    try:
        return WalletService(services).get_max_amount()
    except WalletNotConnectedError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.get("/portfolio", response_model=PortfolioResponse)
async def get_portfolio(services: GatewayServices = Depends(get_services)) -> PortfolioResponse:
    """Native and token balances valued in the display currency."""
    try:
        return await WalletService(services).get_portfolio()
    except WalletNotConnectedError as e:
        raise HTTPException(status_code=409, detail=str(e))
