"""Balance & fee aggregator.

Owns the display snapshot of the connected wallet: native balance, token
balance, token decimals and the gateway's per-wallet fee. The four reads run
concurrently and are published together as one immutable WalletSnapshot.

While a wallet is connected a background task re-reads the fee on a fixed
interval. The task belongs to the connection: ``stop()`` (disconnect,
shutdown) cancels it, and switching address replaces it.

The send flow never relies on this snapshot for its commit decision; it
performs its own fresh reads.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Optional

from gatesend.chain.contracts import GatewayContract, TokenContract
from gatesend.chain.rpc import RpcClient
from gatesend.services.errors import ClassifiedError, ErrorCategory, classify

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WalletSnapshot:
    """Read-only view of a wallet's balances and fee (minor units)."""
    address: str
    native_balance: int
    token_balance: int
    token_decimals: int
    required_fee: int
    updated_at: datetime
    stale: bool = False


class BalanceAggregator:
    """Fetches and publishes WalletSnapshots; polls the gateway fee."""

    def __init__(
        self,
        rpc: RpcClient,
        token: TokenContract,
        gateway: GatewayContract,
        fee_poll_interval: float = 20.0,
    ):
        self.rpc = rpc
        self.token = token
        self.gateway = gateway
        self.fee_poll_interval = fee_poll_interval

        self._snapshot: Optional[WalletSnapshot] = None
        self._address: Optional[str] = None
        self._poll_task: Optional[asyncio.Task] = None
        self.last_error: Optional[ClassifiedError] = None

    @property
    def snapshot(self) -> Optional[WalletSnapshot]:
        """Latest published snapshot."""
        return self._snapshot

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def is_polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def refresh(self, address: str) -> Optional[WalletSnapshot]:
        """Re-read everything for ``address`` and publish a new snapshot.

        On failure the previous snapshot is kept (marked stale) and the
        error is recorded in ``last_error``; nothing is raised. Results
        are dropped if the aggregator was rebound while reading.
        """
        bound = self._address
        try:
            native, balance, decimals, fee = await asyncio.gather(
                self.rpc.get_balance(address),
                self.token.balance_of(address),
                self.token.decimals(),
                self.gateway.effective_fee_of(address),
            )
        except Exception as e:
            if self._address != bound:
                return self._snapshot
            self.last_error = classify(e, ErrorCategory.NETWORK_READ_ERROR)
            logger.warning(f"Snapshot refresh failed for {address}: {e}")
            if self._snapshot is not None and not self._snapshot.stale:
                self._snapshot = replace(self._snapshot, stale=True)
            return self._snapshot

        if self._address != bound:
            logger.debug(f"Dropping snapshot for {address}: wallet changed")
            return self._snapshot

        self._snapshot = WalletSnapshot(
            address=address,
            native_balance=native,
            token_balance=balance,
            token_decimals=decimals,
            required_fee=fee,
            updated_at=datetime.now(timezone.utc),
        )
        self.last_error = None
        logger.debug(
            f"Snapshot for {address}: native={native} token={balance} fee={fee}"
        )
        return self._snapshot

    async def refresh_fee(self) -> None:
        """Re-read only the gateway fee for the bound address."""
        address = self._address
        if address is None:
            return

        try:
            fee = await self.gateway.effective_fee_of(address)
        except Exception as e:
            if self._address == address:
                self.last_error = classify(e, ErrorCategory.NETWORK_READ_ERROR)
            logger.warning(f"Fee poll failed for {address}: {e}")
            return

        # Address may have changed while the read was in flight
        snapshot = self._snapshot
        if self._address != address or snapshot is None or snapshot.address != address:
            return

        if snapshot.stale:
            # Balances are still old; only the fee is fresh
            self._snapshot = replace(snapshot, required_fee=fee)
        else:
            self._snapshot = replace(
                snapshot,
                required_fee=fee,
                updated_at=datetime.now(timezone.utc),
            )
            self.last_error = None

    async def start(self, address: str) -> Optional[WalletSnapshot]:
        """Bind to a connected address: refresh now, then poll the fee."""
        if address == self._address and self.is_polling:
            return self._snapshot

        await self.stop()
        self._address = address
        snapshot = await self.refresh(address)
        if self._address != address:
            # Rebound or stopped while the first read was in flight
            return self._snapshot
        self._poll_task = asyncio.create_task(self._poll_fee())
        logger.info(f"Fee polling started for {address} every {self.fee_poll_interval:g}s")
        return snapshot

    async def stop(self) -> None:
        """Cancel polling (disconnect/unmount) and drop the wallet's data."""
        task, self._poll_task = self._poll_task, None
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            logger.info(f"Fee polling stopped for {self._address}")
        self._address = None
        self._snapshot = None
        self.last_error = None

    async def _poll_fee(self) -> None:
        while True:
            await asyncio.sleep(self.fee_poll_interval)
            await self.refresh_fee()
