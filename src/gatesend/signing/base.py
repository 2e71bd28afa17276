"""Base interface for the wallet signing capability.

The send flow never holds keys. It hands an unsigned transaction dict
({to, data, value}) to a connected signer and gets a transaction hash back:

1. Orchestrator builds the call (approve / sendUSDT)
2. Signer fills nonce, gas and chain ID, asks for consent, signs
3. Signer broadcasts and returns the hash
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)


class WalletSigner(ABC):
    """A connected wallet able to send transactions.

    Implementations wrap a browser wallet bridge, a remote signer or a local
    key. The connection handshake itself happens outside this package.
    """

    @property
    @abstractmethod
    def address(self) -> Optional[str]:
        """Connected account address (None when disconnected)."""
        pass

    @property
    @abstractmethod
    def network_id(self) -> Optional[int]:
        """Chain ID the wallet is connected to."""
        pass

    @property
    def is_connected(self) -> bool:
        return self.address is not None

    @abstractmethod
    async def send_transaction(self, tx: dict) -> str:
        """Sign and broadcast a transaction.

        Args:
            tx: Dict with ``to``, ``data`` and ``value`` (wei, int)

        Returns:
            Transaction hash (0x-prefixed hex)

        Raises:
            SignerRejectedError: If the user declines
            SigningError: If signing fails for any other reason
        """
        pass

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(address={self.address}, network={self.network_id})"


class SigningError(Exception):
    """Exception raised when signing fails."""
    pass


class SignerRejectedError(SigningError):
    """Raised when the wallet owner declines a signing request."""

    def __init__(self, message: str = "user rejected transaction"):
        super().__init__(message)
