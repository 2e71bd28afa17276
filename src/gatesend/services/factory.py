"""Service factory.

Wires the chain bindings, signer and send-flow services from settings.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from gatesend.chain.contracts import GatewayContract, TokenContract
from gatesend.chain.rpc import RpcClient
from gatesend.config import Settings, get_settings
from gatesend.services.allowance import AllowanceEvaluator
from gatesend.services.balance_aggregator import BalanceAggregator
from gatesend.services.orchestrator import TransferOrchestrator
from gatesend.services.price_oracle import JsonFilePriceCache, PriceCache, PriceOracle
from gatesend.signing.base import WalletSigner
from gatesend.signing.local import LocalAccountSigner

logger = logging.getLogger(__name__)


@dataclass
class GatewayServices:
    """Everything the HTTP layer needs, sharing one RPC client."""
    settings: Settings
    rpc: RpcClient
    token: TokenContract
    gateway: GatewayContract
    aggregator: BalanceAggregator
    allowance: AllowanceEvaluator
    prices: PriceOracle
    orchestrator: TransferOrchestrator

    @property
    def signer(self) -> Optional[WalletSigner]:
        return self.orchestrator.signer

    async def connect(self, signer: WalletSigner) -> None:
        """Attach a connected signer and start polling its wallet."""
        self.orchestrator.signer = signer
        if signer.address:
            await self.aggregator.start(signer.address)

    async def disconnect(self) -> None:
        """Detach the signer and tear down polling."""
        self.orchestrator.cancel()
        self.orchestrator.signer = None
        await self.aggregator.stop()


def build_services(
    settings: Optional[Settings] = None,
    price_cache: Optional[PriceCache] = None,
) -> GatewayServices:
    """Create the service graph (no network I/O happens here)."""
    settings = settings or get_settings()

    rpc = RpcClient(settings.rpc_url)
    token = TokenContract(rpc, settings.token_address)
    gateway = GatewayContract(rpc, settings.gateway_address)
    aggregator = BalanceAggregator(
        rpc, token, gateway, fee_poll_interval=settings.fee_poll_interval
    )
    allowance = AllowanceEvaluator(token, gateway.address)
    prices = PriceOracle(
        price_cache or JsonFilePriceCache(settings.price_cache_path),
        base_url=settings.price_feed_url,
    )
    orchestrator = TransferOrchestrator(
        rpc,
        token,
        gateway,
        allowance,
        aggregator=aggregator,
        success_reset_delay=settings.success_reset_delay,
        confirmation_timeout=settings.confirmation_timeout,
        explorer_url=settings.explorer_url,
        token_symbol=settings.token_symbol,
    )

    return GatewayServices(
        settings=settings,
        rpc=rpc,
        token=token,
        gateway=gateway,
        aggregator=aggregator,
        allowance=allowance,
        prices=prices,
        orchestrator=orchestrator,
    )


def build_local_signer(services: GatewayServices) -> Optional[WalletSigner]:
    """Local key signer from settings, if a key is configured."""
    settings = services.settings
    if not settings.has_signer:
        logger.warning("SIGNER_PRIVATE_KEY not set - sends disabled until a wallet connects")
        return None
    return LocalAccountSigner(settings.signer_private_key, services.rpc, settings.chain_id)
