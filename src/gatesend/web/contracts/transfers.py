"""Transfer session contracts."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class SendRequest(BaseModel):
    """Request to send tokens through the gateway."""

    recipient: str = Field(..., description="Recipient address")
    amount: str = Field(..., description="Amount as a decimal string, e.g. \"10.5\"")


class SessionResponse(BaseModel):
    """State of the current send session."""

    status: str = Field(..., description="idle, validating, approving_send, simulating, "
                                         "submitting, confirming, success, error")
    recipient: Optional[str] = Field(None, description="Checksummed recipient")
    amount: Optional[str] = Field(None, description="Amount as entered")
    amount_raw: Optional[str] = Field(None, description="Amount in minor units")
    tx_hash: Optional[str] = Field(None, description="Transfer transaction hash")
    approval_tx_hash: Optional[str] = Field(None, description="Approval transaction hash")
    explorer_url: Optional[str] = Field(None, description="Explorer link for tx_hash")
    fee_paid: Optional[Decimal] = Field(None, description="Fee paid (ETH) per the gateway event")
    error_category: Optional[str] = Field(None, description="Failure category")
    error_message: Optional[str] = Field(None, description="User-facing failure message")
