"""Token and gateway contract bindings.

Calldata is encoded by hand from 4-byte selectors: every function used here
takes only addresses and uint256 values, so a full ABI codec is not needed.
Read methods return ints in minor units; write methods only *build* the
transaction dict, which the signer sends.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from web3 import Web3

from gatesend.chain.rpc import RpcClient, RpcError

logger = logging.getLogger(__name__)


def selector(signature: str) -> str:
    """4-byte function/error selector as 0x-prefixed hex."""
    return Web3.to_hex(Web3.keccak(text=signature)[:4])


def event_topic(signature: str) -> str:
    """32-byte event topic as 0x-prefixed hex."""
    return Web3.to_hex(Web3.keccak(text=signature))


# ERC-20 selectors
BALANCE_OF_SELECTOR = "0x70a08231"  # balanceOf(address)
DECIMALS_SELECTOR = "0x313ce567"  # decimals()
ALLOWANCE_SELECTOR = "0xdd62ed3e"  # allowance(address,address)
APPROVE_SELECTOR = "0x095ea7b3"  # approve(address,uint256)

# Gateway selectors
EFFECTIVE_FEE_OF_SELECTOR = selector("effectiveFeeOf(address)")
SEND_USDT_SELECTOR = selector("sendUSDT(address,uint256)")

# Gateway custom errors, keyed by selector
GATEWAY_ERRORS = {
    selector("InsufficientFee(uint256,uint256)"): "InsufficientFee",
    selector("InsufficientAllowance(uint256,uint256)"): "InsufficientAllowance",
    selector("ERC20TransferFailed()"): "ERC20TransferFailed",
    selector("FeeForwardFailed()"): "FeeForwardFailed",
    selector("ZeroAddress()"): "ZeroAddress",
}

TRANSFER_WITH_FEE_TOPIC = event_topic(
    "TransferWithFee(address,address,uint256,uint256,uint256,address)"
)


def _encode_address(address: str) -> str:
    return address.lower().replace("0x", "").zfill(64)


def _encode_uint(value: int) -> str:
    if value < 0:
        raise ValueError("uint256 cannot be negative")
    return hex(value)[2:].zfill(64)


def _decode_uint(result: str) -> int:
    if not result or result == "0x":
        raise RpcError("Empty result from contract call")
    return int(result, 16)


def _topic_address(topic: str) -> str:
    return Web3.to_checksum_address("0x" + topic[-40:])


@dataclass(frozen=True)
class TransferEvent:
    """Decoded TransferWithFee log."""
    sender: str
    recipient: str
    amount: int
    required_fee: int
    sent_fee: int
    fee_recipient: str


class TokenContract:
    """ERC-20 token reads and approval building."""

    def __init__(self, rpc: RpcClient, address: str):
        self.rpc = rpc
        self.address = Web3.to_checksum_address(address)

    async def balance_of(self, owner: str) -> int:
        data = f"{BALANCE_OF_SELECTOR}{_encode_address(owner)}"
        return _decode_uint(await self.rpc.call_contract(self.address, data))

    async def decimals(self) -> int:
        return _decode_uint(await self.rpc.call_contract(self.address, DECIMALS_SELECTOR))

    async def allowance(self, owner: str, spender: str) -> int:
        data = f"{ALLOWANCE_SELECTOR}{_encode_address(owner)}{_encode_address(spender)}"
        return _decode_uint(await self.rpc.call_contract(self.address, data))

    def build_approve(self, spender: str, amount: int) -> dict:
        """Approval for exactly ``amount`` (never an unlimited allowance)."""
        return {
            "to": self.address,
            "data": f"{APPROVE_SELECTOR}{_encode_address(spender)}{_encode_uint(amount)}",
            "value": 0,
        }


class GatewayContract:
    """Fee-charging transfer gateway."""

    def __init__(self, rpc: RpcClient, address: str):
        self.rpc = rpc
        self.address = Web3.to_checksum_address(address)

    async def effective_fee_of(self, wallet: str) -> int:
        """Per-wallet fee in wei currently required by the gateway."""
        data = f"{EFFECTIVE_FEE_OF_SELECTOR}{_encode_address(wallet)}"
        return _decode_uint(await self.rpc.call_contract(self.address, data))

    def _send_data(self, recipient: str, amount: int) -> str:
        return f"{SEND_USDT_SELECTOR}{_encode_address(recipient)}{_encode_uint(amount)}"

    async def simulate_send(self, sender: str, recipient: str, amount: int, fee: int) -> None:
        """Run sendUSDT as an eth_call with the fee attached.

        Raises:
            RpcError: If the call would revert
        """
        await self.rpc.call_contract(
            self.address,
            self._send_data(recipient, amount),
            sender=sender,
            value=fee,
        )

    def build_send(self, recipient: str, amount: int, fee: int) -> dict:
        return {
            "to": self.address,
            "data": self._send_data(recipient, amount),
            "value": fee,
        }

    def parse_transfer_event(self, receipt: dict) -> Optional[TransferEvent]:
        """Find this gateway's TransferWithFee log in a receipt."""
        for log in receipt.get("logs") or []:
            topics = log.get("topics") or []
            if len(topics) < 4 or topics[0].lower() != TRANSFER_WITH_FEE_TOPIC.lower():
                continue
            if (log.get("address") or "").lower() != self.address.lower():
                continue

            payload = (log.get("data") or "0x")[2:]
            words = [int(payload[i:i + 64], 16) for i in range(0, len(payload), 64)]
            if len(words) < 3:
                logger.warning("Malformed TransferWithFee log data")
                continue

            return TransferEvent(
                sender=_topic_address(topics[1]),
                recipient=_topic_address(topics[2]),
                amount=words[0],
                required_fee=words[1],
                sent_fee=words[2],
                fee_recipient=_topic_address(topics[3]),
            )
        return None
