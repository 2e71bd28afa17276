"""Wallet display service.

Shapes the aggregator's snapshot and the price oracle's quotes into API
responses. Read-only: nothing here can start a transfer.
"""

import logging
from decimal import Decimal
from typing import Optional

from gatesend.services.factory import GatewayServices
from gatesend.utils.units import format_units, limit_decimals
from gatesend.web.contracts.prices import NativePriceResponse
from gatesend.web.contracts.wallet import (
    AllowanceResponse,
    MaxAmountResponse,
    PortfolioResponse,
    SnapshotResponse,
)

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18

# Input fields never show more than this many decimals
MAX_INPUT_DECIMALS = 6


class WalletNotConnectedError(Exception):
    """Raised when an operation needs a connected wallet."""
    pass


class WalletService:
    """Read-only wallet views."""

    def __init__(self, services: GatewayServices):
        self.services = services

    def _require_address(self) -> str:
        signer = self.services.signer
        if signer is None or not signer.is_connected:
            raise WalletNotConnectedError("No wallet connected")
        return signer.address

    def get_snapshot(self) -> SnapshotResponse:
        """Latest published snapshot."""
        aggregator = self.services.aggregator
        snapshot = aggregator.snapshot
        error = aggregator.last_error.message if aggregator.last_error else None
        symbol = self.services.settings.token_symbol

        if snapshot is None:
            return SnapshotResponse(
                success=False,
                address=aggregator.address,
                token_symbol=symbol,
                error=error or "No snapshot yet",
            )

        return SnapshotResponse(
            success=True,
            address=snapshot.address,
            native_balance=format_units(snapshot.native_balance, NATIVE_DECIMALS),
            native_balance_raw=str(snapshot.native_balance),
            token_symbol=symbol,
            token_balance=format_units(snapshot.token_balance, snapshot.token_decimals),
            token_balance_raw=str(snapshot.token_balance),
            token_decimals=snapshot.token_decimals,
            required_fee=format_units(snapshot.required_fee, NATIVE_DECIMALS),
            required_fee_raw=str(snapshot.required_fee),
            fee_free=snapshot.required_fee == 0,
            stale=snapshot.stale,
            updated_at=snapshot.updated_at,
            error=error,
        )

    async def refresh(self) -> SnapshotResponse:
        """Re-read balances and fee for the connected wallet."""
        address = self._require_address()
        await self.services.aggregator.refresh(address)
        return self.get_snapshot()

    async def _token_decimals(self) -> int:
        snapshot = self.services.aggregator.snapshot
        if snapshot is not None:
            return snapshot.token_decimals
        return await self.services.token.decimals()

    async def get_allowance(self, amount: str) -> AllowanceResponse:
        """Evaluate whether ``amount`` needs an approval first."""
        address = self._require_address()
        decimals = await self._token_decimals()
        state = await self.services.allowance.evaluate_amount(address, amount, decimals)
        return AllowanceResponse(
            amount=amount,
            current_allowance_raw=str(state.current_allowance),
            required_raw=str(state.required),
            needs_approval=state.needs_approval,
        )

    def get_max_amount(self) -> MaxAmountResponse:
        """Full token balance, truncated (never rounded up) for input."""
        self._require_address()
        snapshot = self.services.aggregator.snapshot
        if snapshot is None:
            raise WalletNotConnectedError("No snapshot yet")

        dp = min(snapshot.token_decimals, MAX_INPUT_DECIMALS)
        full = format(format_units(snapshot.token_balance, snapshot.token_decimals), "f")
        return MaxAmountResponse(amount=limit_decimals(full, dp), decimals=dp)

    async def get_native_price(self) -> NativePriceResponse:
        """Native price plus the connected wallet's fee in display currency."""
        settings = self.services.settings
        oracle = self.services.prices
        price = await oracle.get_price(settings.price_asset_id, settings.price_currency)

        fee_value: Optional[Decimal] = None
        snapshot = self.services.aggregator.snapshot
        if snapshot is not None:
            fee_value = format_units(snapshot.required_fee, NATIVE_DECIMALS) * price

        return NativePriceResponse(
            asset=settings.price_asset_id,
            currency=settings.price_currency,
            price=price,
            fee_value=fee_value,
            error=oracle.last_error.message if oracle.last_error else None,
        )

    async def get_portfolio(self) -> PortfolioResponse:
        """Value native and token balances in the display currency."""
        self._require_address()
        snapshot = self.services.aggregator.snapshot
        if snapshot is None:
            raise WalletNotConnectedError("No snapshot yet")

        settings = self.services.settings
        oracle = self.services.prices
        prices = await oracle.get_prices(
            [settings.price_asset_id, settings.token_price_id],
            settings.price_currency,
        )
        native_price = prices[settings.price_asset_id]
        # Stablecoin: assume parity when the feed has nothing
        token_price = prices[settings.token_price_id] or Decimal("1")

        native_value = format_units(snapshot.native_balance, NATIVE_DECIMALS) * native_price
        token_value = format_units(snapshot.token_balance, snapshot.token_decimals) * token_price

        return PortfolioResponse(
            currency=settings.price_currency,
            native_price=native_price,
            token_price=token_price,
            native_value=native_value,
            token_value=token_value,
            total_value=native_value + token_value,
            stale=snapshot.stale,
            error=oracle.last_error.message if oracle.last_error else None,
        )
