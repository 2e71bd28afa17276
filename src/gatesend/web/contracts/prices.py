"""Price contracts (display only)."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, Field


class NativePriceResponse(BaseModel):
    """Native asset price and the current fee valued in it."""

    asset: str = Field(..., description="Feed asset ID (ethereum)")
    currency: str = Field(..., description="Display currency (usd)")
    price: Decimal = Field(..., description="Price, 0 when unknown")
    fee_value: Optional[Decimal] = Field(
        None, description="Connected wallet's gateway fee in the display currency"
    )
    error: Optional[str] = Field(None, description="Feed error; price is cached or 0")
