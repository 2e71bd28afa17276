"""Local signing backend.

Signs with an in-memory private key via eth_account and broadcasts over the
JSON-RPC client. Suitable for:
- Development/testing against a testnet
- Headless scripted transfers

WARNING: The private key lives in process memory. Browser or hardware
wallets should be bridged through their own WalletSigner implementation.
"""

import logging
from typing import Optional

from eth_account import Account
from web3 import Web3

from gatesend.chain.rpc import RpcClient
from gatesend.signing.base import SigningError, WalletSigner

logger = logging.getLogger(__name__)

# Multiplier applied to eth_estimateGas
GAS_BUFFER = 1.2


class LocalAccountSigner(WalletSigner):
    """WalletSigner backed by a local private key."""

    def __init__(self, private_key: str, rpc: RpcClient, chain_id: int):
        """Initialize signer.

        Args:
            private_key: Hex private key (with or without 0x)
            rpc: JSON-RPC client used for nonce, gas and broadcast
            chain_id: EVM chain ID for replay protection
        """
        self._account = Account.from_key(private_key)
        self.rpc = rpc
        self.chain_id = chain_id
        self._connected = True
        logger.info(f"Local signer loaded for {self._account.address}")

    @property
    def address(self) -> Optional[str]:
        return self._account.address if self._connected else None

    @property
    def network_id(self) -> Optional[int]:
        return self.chain_id if self._connected else None

    def disconnect(self) -> None:
        self._connected = False

    async def send_transaction(self, tx: dict) -> str:
        """Fill, sign and broadcast a transaction."""
        if not self._connected:
            raise SigningError("Signer is disconnected")

        sender = self._account.address
        value = int(tx.get("value", 0))
        call = {
            "from": sender,
            "to": tx["to"],
            "data": tx["data"],
            "value": hex(value),
        }

        nonce = await self.rpc.get_nonce(sender)
        gas_price = await self.rpc.get_gas_price()
        gas_limit = int(await self.rpc.estimate_gas(call) * GAS_BUFFER)

        full_tx = {
            "nonce": nonce,
            "gasPrice": gas_price,
            "gas": gas_limit,
            "to": Web3.to_checksum_address(tx["to"]),
            "value": value,
            "data": tx["data"],
            "chainId": self.chain_id,
        }

        try:
            signed_tx = self._account.sign_transaction(full_tx)
        except Exception as e:
            logger.error(f"Local signing failed: {e}")
            raise SigningError(str(e)) from e

        tx_hash = await self.rpc.send_raw_transaction(signed_tx.raw_transaction.hex())
        logger.info(f"Broadcast {tx_hash} from {sender} (nonce={nonce}, gas={gas_limit})")
        return tx_hash
