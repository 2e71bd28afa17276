"""Price API endpoints (display only)."""

from fastapi import APIRouter, Depends

from gatesend.services.factory import GatewayServices
from gatesend.web.contracts.prices import NativePriceResponse
from gatesend.web.dependencies import get_services
from gatesend.web.services.wallet_service import WalletService

router = APIRouter(prefix="/prices", tags=["prices"])


@router.get("/native", response_model=NativePriceResponse)
async def get_native_price(
    services: GatewayServices = Depends(get_services),
) -> NativePriceResponse:
    """Native asset price with the current fee valued in it.

    Falls back to the last cached price, then 0; never fails.
    """
    return await WalletService(services).get_native_price()
