"""Reference price adapter (display only).

Uses the CoinGecko-style ``/simple/price`` endpoint to value the native
currency (and the token) in a display currency. The last good price is kept
in an injected cache under a fixed key (``ETH_USD`` for the reference pair),
so a feed outage degrades to the cached value, then to zero.

Never consulted by the send flow.
"""

import json
import logging
from abc import ABC, abstractmethod
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Optional

import httpx

from gatesend.services.errors import ClassifiedError, ErrorCategory, classify

logger = logging.getLogger(__name__)

# Feed ID -> symbol used in cache keys
CACHE_SYMBOLS = {
    "ethereum": "ETH",
    "tether": "USDT",
}


def cache_key(asset_id: str, currency: str) -> str:
    """Fixed cache key for a pair, e.g. ("ethereum", "usd") -> "ETH_USD"."""
    symbol = CACHE_SYMBOLS.get(asset_id.lower(), asset_id.upper())
    return f"{symbol}_{currency.upper()}"


class PriceCache(ABC):
    """Key/value store for last known prices."""

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        pass


class MemoryPriceCache(PriceCache):
    """Process-local cache."""

    def __init__(self):
        self._values: dict[str, str] = {}

    def get(self, key: str) -> Optional[str]:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value


class JsonFilePriceCache(PriceCache):
    """Cache persisted to a small JSON file, surviving restarts."""

    def __init__(self, path: str):
        self.path = Path(path)

    def _load(self) -> dict:
        if not self.path.exists():
            return {}
        try:
            return json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable price cache {self.path}: {e}")
            return {}

    def get(self, key: str) -> Optional[str]:
        value = self._load().get(key)
        return str(value) if value is not None else None

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data), encoding="utf-8")
        except OSError as e:
            logger.warning(f"Could not persist price cache {self.path}: {e}")


class PriceOracle:
    """Fetches display prices with cache fallback."""

    def __init__(
        self,
        cache: PriceCache,
        base_url: str = "https://api.coingecko.com/api/v3",
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.cache = cache
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport
        self.last_error: Optional[ClassifiedError] = None

    async def fetch_prices(self, asset_ids: list[str], currency: str = "usd") -> dict[str, Decimal]:
        """Query the feed for several assets.

        Returns only assets with a positive price.

        Raises:
            httpx.HTTPError: On transport or HTTP status failures
            ValueError: On an unparseable body
        """
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.get(
                f"{self.base_url}/simple/price",
                params={"ids": ",".join(asset_ids), "vs_currencies": currency},
            )
            response.raise_for_status()
            data = response.json()

        if not isinstance(data, dict):
            raise ValueError(f"Unexpected price feed body: {type(data).__name__}")

        prices: dict[str, Decimal] = {}
        for asset_id in asset_ids:
            entry = data.get(asset_id)
            if not isinstance(entry, dict):
                continue
            raw = entry.get(currency)
            if raw is None:
                continue
            try:
                price = Decimal(str(raw))
            except InvalidOperation:
                continue
            if price.is_finite() and price > 0:
                prices[asset_id] = price
        return prices

    def cached_price(self, asset_id: str, currency: str = "usd") -> Decimal:
        """Last good price, or zero."""
        cached = self.cache.get(cache_key(asset_id, currency))
        if cached:
            try:
                return Decimal(cached)
            except InvalidOperation:
                logger.warning(f"Discarding bad cached price {cached!r}")
        return Decimal("0")

    async def get_prices(
        self,
        asset_ids: list[str],
        currency: str = "usd",
    ) -> dict[str, Decimal]:
        """Prices for each asset, falling back to cache, then zero."""
        try:
            fresh = await self.fetch_prices(asset_ids, currency)
        except (httpx.HTTPError, ValueError) as e:
            self.last_error = classify(e, ErrorCategory.PRICE_FEED_ERROR)
            logger.warning(f"Price feed unavailable, using cache: {e}")
            fresh = {}
        else:
            self.last_error = None

        prices: dict[str, Decimal] = {}
        for asset_id in asset_ids:
            if asset_id in fresh:
                prices[asset_id] = fresh[asset_id]
                self.cache.set(cache_key(asset_id, currency), str(fresh[asset_id]))
            else:
                prices[asset_id] = self.cached_price(asset_id, currency)
        return prices

    async def get_price(self, asset_id: str = "ethereum", currency: str = "usd") -> Decimal:
        """Price of a single asset."""
        prices = await self.get_prices([asset_id], currency)
        return prices[asset_id]
