"""Transfer service: forwards send/cancel to the orchestrator."""

import logging

from gatesend.services.factory import GatewayServices
from gatesend.services.orchestrator import TransferSession
from gatesend.utils.units import format_units
from gatesend.web.contracts.transfers import SendRequest, SessionResponse

logger = logging.getLogger(__name__)


class SendInProgressError(Exception):
    """Raised when a send is requested while another is running."""
    pass


def session_to_response(session: TransferSession) -> SessionResponse:
    request = session.request
    return SessionResponse(
        status=session.status.value,
        recipient=request.recipient_address if request else None,
        amount=request.amount if request else None,
        amount_raw=(
            str(request.amount_minor_units)
            if request and request.amount_minor_units is not None
            else None
        ),
        tx_hash=session.tx_hash,
        approval_tx_hash=session.approval_tx_hash,
        explorer_url=session.explorer_url,
        fee_paid=format_units(session.fee_paid, 18) if session.fee_paid is not None else None,
        error_category=session.error_category.value if session.error_category else None,
        error_message=session.error_message,
    )


class TransferService:
    """Thin adapter between HTTP and the orchestrator."""

    def __init__(self, services: GatewayServices):
        self.orchestrator = services.orchestrator

    async def send(self, request: SendRequest) -> SessionResponse:
        if self.orchestrator.is_busy:
            raise SendInProgressError("A transfer is already in progress")
        session = await self.orchestrator.trigger_send(request.recipient, request.amount)
        return session_to_response(session)

    def cancel(self) -> SessionResponse:
        return session_to_response(self.orchestrator.cancel())

    def current(self) -> SessionResponse:
        return session_to_response(self.orchestrator.session)
