"""Application configuration using pydantic-settings.

Holds the chain endpoint, the token and gateway contract addresses, and the
timing knobs of the send flow (fee polling, success auto-reset, confirmation
wait).
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Block explorers by chain ID
EXPLORERS = {
    1: "https://etherscan.io",
    11155111: "https://sepolia.etherscan.io",
}


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")

    # ======================
    # Chain
    # ======================
    rpc_url: str = Field(
        default="https://eth.llamarpc.com", description="EVM JSON-RPC URL"
    )
    chain_id: int = Field(default=1, description="EVM chain ID")

    # ======================
    # Contracts
    # ======================
    token_address: str = Field(
        default="0xdAC17F958D2ee523a2206206994597C13D831ec7",
        description="ERC-20 token moved through the gateway (USDT)",
    )
    token_symbol: str = Field(default="USDT", description="Token display symbol")
    gateway_address: str = Field(
        default="0x6f0537Df68B4A91d31c58B8c6D115bF49098D61b",
        description="Fee-charging transfer gateway contract",
    )

    # ======================
    # Send flow timing
    # ======================
    fee_poll_interval: float = Field(
        default=20.0, description="Seconds between gateway fee refreshes"
    )
    success_reset_delay: float = Field(
        default=10.0, description="Seconds before a successful session resets to idle"
    )
    confirmation_timeout: float = Field(
        default=180.0, description="Maximum seconds to wait for a receipt"
    )

    # ======================
    # Price feed (display only)
    # ======================
    price_feed_url: str = Field(
        default="https://api.coingecko.com/api/v3", description="Price feed base URL"
    )
    price_asset_id: str = Field(default="ethereum", description="Native asset feed ID")
    token_price_id: str = Field(default="tether", description="Token feed ID")
    price_currency: str = Field(default="usd", description="Display currency")
    price_cache_path: str = Field(
        default="./data/prices.json", description="File backing the price cache"
    )

    # ======================
    # Signer (headless use)
    # ======================
    signer_private_key: Optional[str] = Field(
        default=None, description="Hex private key for the local signer"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def has_signer(self) -> bool:
        """Check if a local signing key is configured."""
        return bool(self.signer_private_key)

    def explorer_url(self, tx_hash: str) -> str:
        """Build a block explorer link for a transaction."""
        base = EXPLORERS.get(self.chain_id, EXPLORERS[1])
        return f"{base}/tx/{tx_hash}"

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "chain": {
                "chain_id": self.chain_id,
                "rpc": self._redact_url(self.rpc_url),
            },
            "contracts": {
                "token": self.token_address,
                "token_symbol": self.token_symbol,
                "gateway": self.gateway_address,
            },
            "timing": {
                "fee_poll_interval": self.fee_poll_interval,
                "success_reset_delay": self.success_reset_delay,
                "confirmation_timeout": self.confirmation_timeout,
            },
            "signer": "***" if self.has_signer else "(not set)",
        }

    @staticmethod
    def _redact_url(url: str) -> str:
        """Redact API keys embedded in RPC URLs."""
        if "://" in url and "@" in url:
            proto, rest = url.split("://", 1)
            creds, host = rest.rsplit("@", 1)
            return f"{proto}://***@{host}"
        # Infura/Alchemy style: key is the last path segment
        if "/v3/" in url or "/v2/" in url:
            head, _ = url.rsplit("/", 1)
            return f"{head}/***"
        return url


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
