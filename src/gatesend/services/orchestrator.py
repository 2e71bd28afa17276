"""Transfer orchestrator: the send-transaction state machine.

Flow:
1. VALIDATING     local checks only, no remote calls
2. (reads)        fresh decimals / token balance / native balance / fee
3. APPROVING_SEND approve(gateway, amount) if the allowance is short
4. SIMULATING     sendUSDT as eth_call with the fee attached
5. SUBMITTING     the real sendUSDT paying the fee read in step 2
6. CONFIRMING     wait for the receipt (bounded)
7. SUCCESS        auto-resets to IDLE after a delay unless cancelled

Any failure ends in ERROR with exactly one classified category and message.
State-changing calls (approval, submission) are strictly sequential and
guarded by a lock; a failure before SUBMITTING guarantees the transfer call
is never sent.
"""

import asyncio
import logging
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, Optional

from gatesend.chain.contracts import GatewayContract, TokenContract
from gatesend.chain.rpc import RpcClient, receipt_succeeded
from gatesend.services.allowance import AllowanceEvaluator
from gatesend.services.balance_aggregator import BalanceAggregator, WalletSnapshot
from gatesend.services.errors import (
    ErrorCategory,
    TransferError,
    ValidationError,
    classify,
)
from gatesend.signing.base import WalletSigner
from gatesend.utils.units import (
    format_units,
    is_valid_address,
    parse_decimal,
    parse_units,
    to_checksum,
)

logger = logging.getLogger(__name__)

NATIVE_DECIMALS = 18


class TransferStatus(str, Enum):
    """Send session states."""
    IDLE = "idle"
    VALIDATING = "validating"
    APPROVING_SEND = "approving_send"
    SIMULATING = "simulating"
    SUBMITTING = "submitting"
    CONFIRMING = "confirming"
    SUCCESS = "success"
    ERROR = "error"


@dataclass(frozen=True)
class TransferRequest:
    """A validated transfer request."""
    recipient_address: str
    amount: str
    amount_minor_units: Optional[int] = None


@dataclass
class TransferSession:
    """Progress of the current send attempt."""
    status: TransferStatus = TransferStatus.IDLE
    request: Optional[TransferRequest] = None
    tx_hash: Optional[str] = None
    approval_tx_hash: Optional[str] = None
    explorer_url: Optional[str] = None
    fee_paid: Optional[int] = None
    error_category: Optional[ErrorCategory] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in (TransferStatus.SUCCESS, TransferStatus.ERROR)


class TransferOrchestrator:
    """Drives one fee-metered transfer at a time through the gateway."""

    def __init__(
        self,
        rpc: RpcClient,
        token: TokenContract,
        gateway: GatewayContract,
        allowance: AllowanceEvaluator,
        signer: Optional[WalletSigner] = None,
        aggregator: Optional[BalanceAggregator] = None,
        success_reset_delay: float = 10.0,
        confirmation_timeout: float = 180.0,
        explorer_url: Optional[Callable[[str], str]] = None,
        token_symbol: str = "USDT",
        native_symbol: str = "ETH",
    ):
        self.rpc = rpc
        self.token = token
        self.gateway = gateway
        self.allowance = allowance
        self.signer = signer
        self.aggregator = aggregator
        self.success_reset_delay = success_reset_delay
        self.confirmation_timeout = confirmation_timeout
        self.explorer_url = explorer_url
        self.token_symbol = token_symbol
        self.native_symbol = native_symbol

        self._session = TransferSession()
        self._lock = asyncio.Lock()
        self._reset_task: Optional[asyncio.Task] = None

    @property
    def session(self) -> TransferSession:
        """Copy of the current session."""
        return replace(self._session)

    @property
    def is_busy(self) -> bool:
        return self._lock.locked()

    def get_snapshot(self) -> Optional[WalletSnapshot]:
        """Latest display snapshot (read-only)."""
        return self.aggregator.snapshot if self.aggregator else None

    def cancel(self) -> TransferSession:
        """Close the session: drop a pending auto-reset and clear errors.

        There is no mid-flight cancellation; while a send is running this
        only logs and returns the live session.
        """
        if self.is_busy:
            logger.warning(
                f"Cancel ignored: send in progress ({self._session.status.value})"
            )
            return self.session

        self._cancel_reset()
        self._session = TransferSession()
        return self.session

    async def trigger_send(self, recipient: str, amount: str) -> TransferSession:
        """Run the full send flow and return the final session.

        Never raises for flow failures; they are reported on the session.
        """
        if self.is_busy:
            logger.warning("Send requested while another send is in progress")
            return self.session

        async with self._lock:
            self._cancel_reset()
            self._session = TransferSession(
                status=TransferStatus.VALIDATING,
                started_at=datetime.now(timezone.utc),
            )
            failure = ErrorCategory.VALIDATION_ERROR
            signer = self.signer

            try:
                request = self._validate(signer, recipient, amount)
                self._session.request = request
                sender = signer.address

                failure = ErrorCategory.NETWORK_READ_ERROR
                amount_minor, fee = await self._fresh_checks(sender, request)
                request = replace(request, amount_minor_units=amount_minor)
                self._session.request = request

                failure = ErrorCategory.APPROVAL_FAILED
                await self._ensure_allowance(signer, sender, amount_minor)

                failure = ErrorCategory.SIMULATION_FAILED
                self._set_status(TransferStatus.SIMULATING)
                await self.gateway.simulate_send(
                    sender, request.recipient_address, amount_minor, fee
                )

                failure = ErrorCategory.SUBMISSION_REJECTED
                self._set_status(TransferStatus.SUBMITTING)
                self._check_signer(signer, sender, failure)
                tx_hash = await signer.send_transaction(
                    self.gateway.build_send(request.recipient_address, amount_minor, fee)
                )
                self._session.tx_hash = tx_hash
                if self.explorer_url:
                    self._session.explorer_url = self.explorer_url(tx_hash)
                logger.info(f"Transfer submitted: {tx_hash}")

                failure = ErrorCategory.EXECUTION_FAILED
                self._set_status(TransferStatus.CONFIRMING)
                receipt = await self.rpc.wait_for_receipt(tx_hash, self.confirmation_timeout)
                if not receipt_succeeded(receipt):
                    raise TransferError(
                        ErrorCategory.EXECUTION_FAILED, "Transaction reverted on-chain."
                    )

                event = self.gateway.parse_transfer_event(receipt)
                if event is not None:
                    self._session.fee_paid = event.sent_fee

            except Exception as e:
                self._fail(e, failure)
                return self.session

            self._set_status(TransferStatus.SUCCESS)
            logger.info(
                f"Transfer confirmed: {request.amount} {self.token_symbol} "
                f"to {request.recipient_address} ({tx_hash})"
            )
            self._schedule_reset()

        await self._refresh_display(sender)
        return self.session

    def _validate(
        self, signer: Optional[WalletSigner], recipient: str, amount: str
    ) -> TransferRequest:
        """Local checks; issues no remote calls."""
        recipient = (recipient or "").strip()
        amount = (amount or "").strip()

        if not recipient or not amount:
            raise ValidationError("Please fill in all fields.")
        if not is_valid_address(recipient):
            raise ValidationError("Invalid recipient address.")
        if signer is None or not signer.is_connected:
            raise ValidationError("Wallet not ready. Please reconnect.")

        try:
            value = parse_decimal(amount)
        except ValueError:
            raise ValidationError("Invalid amount entered.")
        if value <= 0:
            raise ValidationError("Invalid amount entered.")

        if recipient.lower() == signer.address.lower():
            raise ValidationError("Cannot send tokens to your own address.")

        return TransferRequest(recipient_address=to_checksum(recipient), amount=amount)

    async def _fresh_checks(self, sender: str, request: TransferRequest) -> tuple[int, int]:
        """Re-read balances and fee at commit time; return (amount, fee)."""
        decimals, token_balance, native_balance, fee = await asyncio.gather(
            self.token.decimals(),
            self.token.balance_of(sender),
            self.rpc.get_balance(sender),
            self.gateway.effective_fee_of(sender),
        )

        try:
            amount_minor = parse_units(request.amount, decimals)
        except ValueError as e:
            raise ValidationError(f"Invalid amount entered. {e}")

        if token_balance < amount_minor:
            raise TransferError(
                ErrorCategory.INSUFFICIENT_BALANCE,
                f"Insufficient {self.token_symbol} balance",
            )
        if native_balance < fee:
            need = format_units(fee, NATIVE_DECIMALS)
            raise TransferError(
                ErrorCategory.INSUFFICIENT_FEE_FUNDS,
                f"Insufficient {self.native_symbol} for required fee: "
                f"need {need} {self.native_symbol}",
            )
        return amount_minor, fee

    async def _ensure_allowance(
        self, signer: WalletSigner, sender: str, amount_minor: int
    ) -> None:
        """Approve exactly ``amount_minor`` for the gateway if needed."""
        state = await self.allowance.evaluate(sender, amount_minor)
        if not state.needs_approval:
            return

        self._set_status(TransferStatus.APPROVING_SEND)
        self._check_signer(signer, sender, ErrorCategory.APPROVAL_FAILED)
        logger.info(
            f"Approving {amount_minor} for gateway (current allowance {state.current_allowance})"
        )
        tx_hash = await signer.send_transaction(
            self.token.build_approve(self.gateway.address, amount_minor)
        )
        self._session.approval_tx_hash = tx_hash

        receipt = await self.rpc.wait_for_receipt(tx_hash, self.confirmation_timeout)
        if not receipt_succeeded(receipt):
            raise TransferError(ErrorCategory.APPROVAL_FAILED, "Approval transaction reverted.")

    def _check_signer(
        self, signer: WalletSigner, sender: str, category: ErrorCategory
    ) -> None:
        """The wallet that started the send must still be connected."""
        if self.signer is not signer or not signer.is_connected:
            raise TransferError(category, "Wallet disconnected. Please reconnect.")
        if signer.address != sender:
            raise TransferError(category, "Wallet account changed. Please retry.")

    def _set_status(self, status: TransferStatus) -> None:
        logger.debug(f"Transfer {self._session.status.value} -> {status.value}")
        self._session.status = status

    def _fail(self, error: Exception, category: ErrorCategory) -> None:
        classified = classify(error, category)
        self._session.status = TransferStatus.ERROR
        self._session.error_category = classified.category
        self._session.error_message = classified.message
        if classified.category == ErrorCategory.VALIDATION_ERROR:
            logger.info(f"Send rejected: {classified.message}")
        else:
            logger.error(f"Send failed [{classified.category.value}]: {error}")

    def _schedule_reset(self) -> None:
        self._cancel_reset()
        self._reset_task = asyncio.create_task(self._auto_reset())

    def _cancel_reset(self) -> None:
        task, self._reset_task = self._reset_task, None
        if task is not None and not task.done():
            task.cancel()

    async def _auto_reset(self) -> None:
        await asyncio.sleep(self.success_reset_delay)
        if self._session.status == TransferStatus.SUCCESS:
            self._session = TransferSession()
            logger.debug("Transfer session reset to idle")

    async def _refresh_display(self, sender: str) -> None:
        """Best-effort snapshot refresh after a confirmed transfer."""
        if self.aggregator is not None and self.aggregator.address == sender:
            await self.aggregator.refresh(sender)
