"""Transfer API endpoints.

Drive the gateway send flow: validate, approve if needed, simulate, submit,
confirm. Flow failures are not HTTP errors; they come back as a session in
the ``error`` state with a category and message.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException

from gatesend.services.factory import GatewayServices
from gatesend.web.contracts.transfers import SendRequest, SessionResponse
from gatesend.web.dependencies import get_services
from gatesend.web.services.transfer_service import SendInProgressError, TransferService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/transfers", tags=["transfers"])


@router.post("/send", response_model=SessionResponse)
async def send(
    request: SendRequest,
    services: GatewayServices = Depends(get_services),
) -> SessionResponse:
    """Send tokens to ``recipient`` through the gateway.

    Returns when the session reaches ``success`` or ``error``. Poll
    ``GET /transfers/session`` from another client to follow progress.
    """
    try:
        return await TransferService(services).send(request)
    except SendInProgressError as e:
        raise HTTPException(status_code=409, detail=str(e))


@router.post("/cancel", response_model=SessionResponse)
async def cancel(services: GatewayServices = Depends(get_services)) -> SessionResponse:
    """Close the session (clears errors, stops the success auto-reset)."""
    return TransferService(services).cancel()


@router.get("/session", response_model=SessionResponse)
async def get_session(services: GatewayServices = Depends(get_services)) -> SessionResponse:
    """Current session state, including the tx hash once submitted."""
    return TransferService(services).current()
