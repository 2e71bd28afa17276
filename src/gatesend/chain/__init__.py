"""On-chain collaborators: JSON-RPC transport and contract bindings."""

from gatesend.chain.contracts import GatewayContract, TokenContract, TransferEvent
from gatesend.chain.rpc import ConfirmationTimeoutError, RpcClient, RpcError

__all__ = [
    "ConfirmationTimeoutError",
    "GatewayContract",
    "RpcClient",
    "RpcError",
    "TokenContract",
    "TransferEvent",
]
