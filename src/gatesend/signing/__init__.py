"""Wallet signing capability.

Provides:
- WalletSigner: interface the send flow consumes
- LocalAccountSigner: in-memory key, for development and headless use
"""

from gatesend.signing.base import SignerRejectedError, SigningError, WalletSigner
from gatesend.signing.local import LocalAccountSigner

__all__ = [
    "LocalAccountSigner",
    "SignerRejectedError",
    "SigningError",
    "WalletSigner",
]
