"""Send-flow services: snapshot, allowance, prices, orchestration."""

from gatesend.services.allowance import AllowanceEvaluator, AllowanceState
from gatesend.services.balance_aggregator import BalanceAggregator, WalletSnapshot
from gatesend.services.errors import (
    ClassifiedError,
    ErrorCategory,
    ErrorClassifier,
    TransferError,
    classify,
)
from gatesend.services.orchestrator import (
    TransferOrchestrator,
    TransferRequest,
    TransferSession,
    TransferStatus,
)
from gatesend.services.price_oracle import (
    JsonFilePriceCache,
    MemoryPriceCache,
    PriceCache,
    PriceOracle,
)

__all__ = [
    "AllowanceEvaluator",
    "AllowanceState",
    "BalanceAggregator",
    "WalletSnapshot",
    "ClassifiedError",
    "ErrorCategory",
    "ErrorClassifier",
    "TransferError",
    "classify",
    "TransferOrchestrator",
    "TransferRequest",
    "TransferSession",
    "TransferStatus",
    "JsonFilePriceCache",
    "MemoryPriceCache",
    "PriceCache",
    "PriceOracle",
]
