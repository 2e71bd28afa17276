"""Wallet snapshot, allowance and portfolio contracts."""

from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class SnapshotResponse(BaseModel):
    """Display snapshot of the connected wallet."""

    success: bool = Field(..., description="Whether a snapshot is available")
    address: Optional[str] = Field(None, description="Connected wallet address")

    native_balance: Decimal = Field(default=Decimal("0"), description="Native balance (ETH)")
    native_balance_raw: str = Field(default="0", description="Native balance in wei")
    token_symbol: str = Field(default="USDT", description="Token symbol")
    token_balance: Decimal = Field(default=Decimal("0"), description="Token balance")
    token_balance_raw: str = Field(default="0", description="Token balance in minor units")
    token_decimals: int = Field(default=0, description="Token decimals")

    required_fee: Decimal = Field(default=Decimal("0"), description="Gateway fee (ETH)")
    required_fee_raw: str = Field(default="0", description="Gateway fee in wei")
    fee_free: bool = Field(default=False, description="True when the wallet pays no fee")

    stale: bool = Field(default=False, description="Last refresh failed; data may be old")
    updated_at: Optional[datetime] = Field(None, description="Time of the last good read")
    error: Optional[str] = Field(None, description="Last read error, if any")


class AllowanceResponse(BaseModel):
    """Whether an approval must precede sending ``amount``."""

    amount: str = Field(..., description="Candidate amount as entered")
    current_allowance_raw: str = Field(..., description="Gateway allowance in minor units")
    required_raw: str = Field(..., description="Amount in minor units")
    needs_approval: bool = Field(..., description="Approval step required")


class MaxAmountResponse(BaseModel):
    """Largest sendable amount, truncated for input fields."""

    amount: str = Field(..., description="Full token balance, at most 6 decimals")
    decimals: int = Field(..., description="Decimals kept")


class PortfolioResponse(BaseModel):
    """Wallet value in the display currency."""

    currency: str = Field(..., description="Display currency")
    native_price: Decimal = Field(..., description="Native asset price")
    token_price: Decimal = Field(..., description="Token price")
    native_value: Decimal = Field(..., description="Native balance value")
    token_value: Decimal = Field(..., description="Token balance value")
    total_value: Decimal = Field(..., description="Sum of both")
    stale: bool = Field(default=False, description="Balances may be out of date")
    error: Optional[str] = Field(None, description="Price feed error, if any")
