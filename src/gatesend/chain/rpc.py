"""Minimal EVM JSON-RPC client over httpx.

Every read the send flow needs (balances, eth_call, receipts) and the few
writes a local signer needs (nonce, gas, raw broadcast) go through here.
Unlike a best-effort balance sync, failures are raised as RpcError so the
caller can classify them: a silent zero balance would be indistinguishable
from an empty wallet.
"""

import asyncio
import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

# Seconds between receipt polls
RECEIPT_POLL_INTERVAL = 2.0


class RpcError(Exception):
    """JSON-RPC error response (or an unusable reply)."""

    def __init__(self, message: str, code: Optional[int] = None, data: Any = None):
        self.code = code
        self.data = data
        super().__init__(message)


class ConfirmationTimeoutError(Exception):
    """Raised when a receipt does not appear within the allowed time."""

    def __init__(self, tx_hash: str, timeout: float):
        self.tx_hash = tx_hash
        self.timeout = timeout
        super().__init__(f"Confirmation timed out after {timeout:g}s for {tx_hash}")


class RpcClient:
    """Async JSON-RPC client for a single EVM endpoint."""

    def __init__(
        self,
        rpc_url: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.rpc_url = rpc_url
        self.timeout = timeout
        self._transport = transport
        self._request_id = 0

    async def call(self, method: str, params: list) -> Any:
        """Send one JSON-RPC request and return its result.

        Raises:
            RpcError: On a JSON-RPC error object
            httpx.HTTPError: On transport failures or non-2xx responses
        """
        self._request_id += 1
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                self.rpc_url,
                json={
                    "jsonrpc": "2.0",
                    "method": method,
                    "params": params,
                    "id": self._request_id,
                },
            )
            response.raise_for_status()
            data = response.json()

        if "error" in data and data["error"]:
            error = data["error"]
            raise RpcError(
                error.get("message", "RPC error"),
                code=error.get("code"),
                data=error.get("data"),
            )
        if "result" not in data:
            raise RpcError(f"Malformed RPC response for {method}")
        return data["result"]

    async def get_balance(self, address: str) -> int:
        """Native balance in wei."""
        result = await self.call("eth_getBalance", [address, "latest"])
        return int(result, 16)

    async def call_contract(
        self,
        to: str,
        data: str,
        sender: Optional[str] = None,
        value: int = 0,
    ) -> str:
        """Execute an eth_call (no state change) and return the raw hex result."""
        tx: dict[str, str] = {"to": to, "data": data}
        if sender:
            tx["from"] = sender
        if value:
            tx["value"] = hex(value)
        return await self.call("eth_call", [tx, "latest"])

    async def get_nonce(self, address: str) -> int:
        """Pending transaction count for an address."""
        result = await self.call("eth_getTransactionCount", [address, "pending"])
        return int(result, 16)

    async def get_gas_price(self) -> int:
        """Current gas price in wei."""
        result = await self.call("eth_gasPrice", [])
        return int(result, 16)

    async def estimate_gas(self, tx: dict) -> int:
        """Gas estimate for a transaction dict with hex-encoded fields."""
        result = await self.call("eth_estimateGas", [tx])
        return int(result, 16)

    async def send_raw_transaction(self, raw_tx_hex: str) -> str:
        """Broadcast a signed transaction and return its hash."""
        if not raw_tx_hex.startswith("0x"):
            raw_tx_hex = f"0x{raw_tx_hex}"
        return await self.call("eth_sendRawTransaction", [raw_tx_hex])

    async def get_transaction_receipt(self, tx_hash: str) -> Optional[dict]:
        """Receipt for a mined transaction, or None while pending."""
        return await self.call("eth_getTransactionReceipt", [tx_hash])

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> dict:
        """Poll until the transaction is mined.

        Raises:
            ConfirmationTimeoutError: If no receipt appears within ``timeout``
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            try:
                receipt = await self.get_transaction_receipt(tx_hash)
                if receipt is not None:
                    return receipt
            except httpx.HTTPError as e:
                logger.warning(f"Receipt poll failed for {tx_hash}: {e}")

            if loop.time() + poll_interval > deadline:
                raise ConfirmationTimeoutError(tx_hash, timeout)
            await asyncio.sleep(poll_interval)


def receipt_succeeded(receipt: dict) -> bool:
    """True if a receipt reports status 1."""
    status = receipt.get("status", "0x0")
    if isinstance(status, str):
        status = int(status, 16)
    return status == 1
