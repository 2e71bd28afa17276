"""Error taxonomy and classifier for the send flow.

Every failure, local or remote, ends up as exactly one ErrorCategory plus a
user-facing message. The category is decided by the step that failed; the
classifier only turns the raw reason into readable text.

Classification order:
1. Structured reasons: signer rejection, JSON-RPC code 4001, gateway custom
   error selectors and Error(string) payloads found in revert data
2. Fallback: substring match on the human-readable error text
3. Anything unrecognized passes through verbatim
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from gatesend.chain.contracts import GATEWAY_ERRORS
from gatesend.chain.rpc import ConfirmationTimeoutError, RpcError
from gatesend.signing.base import SignerRejectedError

logger = logging.getLogger(__name__)

# Error(string) selector used by require() reverts
ERROR_STRING_SELECTOR = "0x08c379a0"

# EIP-1193 "user rejected request"
USER_REJECTED_CODE = 4001


class ErrorCategory(str, Enum):
    """Fixed, user-facing failure categories."""
    VALIDATION_ERROR = "validation_error"
    INSUFFICIENT_BALANCE = "insufficient_balance"
    INSUFFICIENT_FEE_FUNDS = "insufficient_fee_funds"
    INSUFFICIENT_ALLOWANCE = "insufficient_allowance"
    APPROVAL_FAILED = "approval_failed"
    SIMULATION_FAILED = "simulation_failed"
    SUBMISSION_REJECTED = "submission_rejected"
    EXECUTION_FAILED = "execution_failed"
    NETWORK_READ_ERROR = "network_read_error"      # non-fatal, display only
    PRICE_FEED_ERROR = "price_feed_error"          # non-fatal, display only


class GatesendError(Exception):
    """Base exception for gatesend."""
    pass


class TransferError(GatesendError):
    """A send-flow step failed with a known category."""

    def __init__(self, category: ErrorCategory, message: str):
        self.category = category
        self.message = message
        super().__init__(message)


class ValidationError(TransferError):
    """Local input check failed (no remote call was made)."""

    def __init__(self, message: str):
        super().__init__(ErrorCategory.VALIDATION_ERROR, message)


@dataclass(frozen=True)
class ClassifiedError:
    """One classified failure."""
    category: ErrorCategory
    message: str
    reason: Optional[str] = None


# (reason code, needle, friendly message); needles match case-insensitively
REASON_MESSAGES: list[tuple[str, str, str]] = [
    ("InsufficientFee", "insufficientfee", "A fee is required for your wallet tier."),
    (
        "InsufficientAllowance",
        "insufficientallowance",
        "Approval too low. Please re-approve and retry.",
    ),
    (
        "ERC20TransferFailed",
        "erc20transferfailed",
        "Token transfer failed. Check balance and try again.",
    ),
    (
        "FeeForwardFailed",
        "feeforwardfailed",
        "The gateway could not forward the fee. Try again later.",
    ),
    ("ZeroAddress", "zeroaddress", "Recipient cannot be the zero address."),
    ("paused", "paused", "Transfers are currently paused."),
    ("user_rejected", "user rejected", "You rejected the transaction."),
    ("insufficient_funds", "insufficient funds", "Insufficient ETH to cover fee and gas."),
    (
        "replacement_underpriced",
        "replacement fee too low",
        "Network is busy; try again with a higher priority fee.",
    ),
]

_MESSAGES_BY_REASON = {code: message for code, _, message in REASON_MESSAGES}


def _revert_data(data: Any) -> Optional[str]:
    """Dig the revert payload out of the many shapes nodes return."""
    if isinstance(data, str) and data.startswith("0x") and len(data) >= 10:
        return data
    if isinstance(data, dict):
        for key in ("data", "result", "originalError"):
            found = _revert_data(data.get(key))
            if found:
                return found
    return None


def _decode_error_string(payload: str) -> Optional[str]:
    """Decode an Error(string) revert payload."""
    body = payload[10:]
    try:
        length = int(body[64:128], 16)
        raw = bytes.fromhex(body[128:128 + length * 2])
        return raw.decode("utf-8", errors="replace")
    except ValueError:
        return None


class ErrorClassifier:
    """Maps raw failures to a category and readable message."""

    def structured_reason(self, error: BaseException) -> tuple[Optional[str], Optional[str]]:
        """Return (reason code, decoded text) from structured error data."""
        if isinstance(error, SignerRejectedError):
            return "user_rejected", None
        if isinstance(error, ConfirmationTimeoutError):
            return "timeout", None

        if isinstance(error, RpcError):
            if error.code == USER_REJECTED_CODE:
                return "user_rejected", None

            payload = _revert_data(error.data)
            if payload:
                error_selector = payload[:10].lower()
                if error_selector in GATEWAY_ERRORS:
                    return GATEWAY_ERRORS[error_selector], None
                if error_selector == ERROR_STRING_SELECTOR:
                    return None, _decode_error_string(payload)

        return None, None

    def match_text(self, text: str) -> Optional[str]:
        """Fallback: find a known reason in human-readable text."""
        lowered = text.lower()
        for code, needle, _ in REASON_MESSAGES:
            if needle in lowered:
                return code
        return None

    def classify(
        self,
        error: Union[BaseException, str],
        category: ErrorCategory,
    ) -> ClassifiedError:
        """Classify a failure raised by the step that owns ``category``."""
        if isinstance(error, TransferError):
            return ClassifiedError(error.category, error.message)

        reason: Optional[str] = None
        text = error if isinstance(error, str) else str(error)

        if isinstance(error, BaseException):
            reason, decoded = self.structured_reason(error)
            if decoded:
                text = decoded

        if reason == "timeout":
            return ClassifiedError(category, text, reason)

        if reason is None:
            reason = self.match_text(text)

        if reason is not None and reason in _MESSAGES_BY_REASON:
            message = _MESSAGES_BY_REASON[reason]
        else:
            message = text or (type(error).__name__ if isinstance(error, BaseException) else "")

        logger.debug(f"Classified {category.value}: reason={reason} text={text!r}")
        return ClassifiedError(category, message, reason)


_classifier = ErrorClassifier()


def classify(error: Union[BaseException, str], category: ErrorCategory) -> ClassifiedError:
    """Classify with the module-level classifier."""
    return _classifier.classify(error, category)
