"""Tests for the transfer orchestrator state machine."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from gatesend.chain.rpc import ConfirmationTimeoutError, RpcError
from gatesend.services.errors import ErrorCategory
from gatesend.services.orchestrator import TransferStatus
from gatesend.signing.base import SignerRejectedError
from gatesend.utils.units import to_checksum

from conftest import APPROVE_HASH, RECIPIENT, SEND_HASH, SENDER, FakeSigner

CHECKSUMMED = to_checksum("0x" + "ab" * 20)
BAD_CHECKSUM = CHECKSUMMED[:-1] + CHECKSUMMED[-1].swapcase()


async def wait_for_status(orchestrator, status, limit=200):
    for _ in range(limit):
        if orchestrator.session.status == status:
            return
        await asyncio.sleep(0)
    raise AssertionError(f"status never reached {status}")


class TestValidation:
    """Local checks run before any remote call."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "recipient,amount,message",
        [
            ("", "10", "Please fill in all fields."),
            (RECIPIENT, "", "Please fill in all fields."),
            ("0x1234", "10", "Invalid recipient address."),
            ("not-an-address", "10", "Invalid recipient address."),
            (BAD_CHECKSUM, "10", "Invalid recipient address."),
            (RECIPIENT, "abc", "Invalid amount entered."),
            (RECIPIENT, "0", "Invalid amount entered."),
            (RECIPIENT, "-5", "Invalid amount entered."),
            (SENDER, "10", "Cannot send tokens to your own address."),
        ],
    )
    async def test_invalid_input_makes_no_calls(self, orchestrator, chain, recipient, amount, message):
        session = await orchestrator.trigger_send(recipient, amount)

        assert session.status == TransferStatus.ERROR
        assert session.error_category == ErrorCategory.VALIDATION_ERROR
        assert session.error_message == message
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_self_send_is_case_insensitive(self, orchestrator, chain, signer):
        signer._address = "0x" + "ab" * 20
        session = await orchestrator.trigger_send("0x" + "AB" * 20, "1")

        assert session.error_message == "Cannot send tokens to your own address."
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_disconnected_wallet(self, orchestrator, chain):
        orchestrator.signer = FakeSigner(chain, address=None)
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_message == "Wallet not ready. Please reconnect."
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_no_signer(self, orchestrator, chain):
        orchestrator.signer = None
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.VALIDATION_ERROR
        assert chain.calls == []

    @pytest.mark.asyncio
    async def test_too_many_decimals(self, orchestrator, chain):
        session = await orchestrator.trigger_send(RECIPIENT, "1.1234567")

        assert session.error_category == ErrorCategory.VALIDATION_ERROR
        assert session.error_message.startswith("Invalid amount entered.")
        assert chain.steps == []


class TestFreshChecks:
    """Balances and fee are re-read at send time."""

    @pytest.mark.asyncio
    async def test_insufficient_token_balance(self, orchestrator, chain):
        chain.token_balance = 5 * 10**6
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.INSUFFICIENT_BALANCE
        assert session.error_message == "Insufficient USDT balance"
        assert chain.steps == []

    @pytest.mark.asyncio
    async def test_insufficient_native_for_fee(self, orchestrator, chain):
        chain.native_balance = 10**14
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.INSUFFICIENT_FEE_FUNDS
        assert session.error_message == "Insufficient ETH for required fee: need 0.001 ETH"
        assert chain.steps == []

    @pytest.mark.asyncio
    async def test_zero_fee_wallet_needs_no_native(self, orchestrator, chain):
        chain.fee = 0
        chain.native_balance = 0
        chain.allowance = 10**9
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.status == TransferStatus.SUCCESS
        assert chain.sent[-1]["value"] == 0

    @pytest.mark.asyncio
    async def test_read_failure_is_terminal(self, orchestrator, chain):
        chain.failures["effective_fee_of"] = RpcError("upstream unavailable")
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.status == TransferStatus.ERROR
        assert session.error_category == ErrorCategory.NETWORK_READ_ERROR
        assert session.error_message == "upstream unavailable"
        assert chain.steps == []


class TestApproval:
    """Approval ordering and counts."""

    @pytest.mark.asyncio
    async def test_short_allowance_approves_once_before_submit(self, orchestrator, chain):
        # allowance 5, amount 10, balance 20, fee 0.001 ETH, native 0.01 ETH
        chain.allowance = 5 * 10**6
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.status == TransferStatus.SUCCESS
        assert chain.steps == ["approve", "wait", "simulate", "submit", "wait"]
        assert session.approval_tx_hash == APPROVE_HASH
        assert session.tx_hash == SEND_HASH

        approve, send = chain.sent
        assert approve["amount"] == 10 * 10**6
        assert send["value"] == 10**15
        assert send["amount"] == 10 * 10**6

    @pytest.mark.asyncio
    async def test_sufficient_allowance_skips_approval(self, orchestrator, chain):
        chain.allowance = 10 * 10**6
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.status == TransferStatus.SUCCESS
        assert chain.steps == ["simulate", "submit", "wait"]
        assert session.approval_tx_hash is None

    @pytest.mark.asyncio
    async def test_allowance_read_failure_sends_approval(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.failures["allowance"] = RpcError("timeout")
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.status == TransferStatus.SUCCESS
        assert chain.steps.count("approve") == 1

    @pytest.mark.asyncio
    async def test_approval_rejected(self, orchestrator, chain):
        chain.failures["approve"] = SignerRejectedError()
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.APPROVAL_FAILED
        assert session.error_message == "You rejected the transaction."
        assert "submit" not in chain.steps
        assert "simulate" not in chain.steps

    @pytest.mark.asyncio
    async def test_approval_reverted(self, orchestrator, chain):
        chain.receipt_status[APPROVE_HASH] = "0x0"
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.APPROVAL_FAILED
        assert session.error_message == "Approval transaction reverted."
        assert chain.steps == ["approve", "wait"]


class TestSimulationAndSubmission:

    @pytest.mark.asyncio
    async def test_simulation_revert_blocks_submit(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.failures["simulate"] = RpcError(
            "execution reverted: InsufficientFee", code=3
        )
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.SIMULATION_FAILED
        assert session.error_message == "A fee is required for your wallet tier."
        assert "submit" not in chain.steps
        assert session.tx_hash is None

    @pytest.mark.asyncio
    async def test_submission_rejected(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.failures["submit"] = RpcError("User denied", code=4001)
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.SUBMISSION_REJECTED
        assert session.error_message == "You rejected the transaction."
        assert session.tx_hash is None

    @pytest.mark.asyncio
    async def test_tx_hash_recorded_before_confirmation(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.confirm_gate = asyncio.Event()

        task = asyncio.create_task(orchestrator.trigger_send(RECIPIENT, "10"))
        await wait_for_status(orchestrator, TransferStatus.CONFIRMING)

        session = orchestrator.session
        assert session.tx_hash == SEND_HASH
        assert session.explorer_url == f"https://etherscan.io/tx/{SEND_HASH}"
        assert orchestrator.is_busy

        chain.confirm_gate.set()
        session = await task
        assert session.status == TransferStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_onchain_revert(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.receipt_status[SEND_HASH] = "0x0"
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.EXECUTION_FAILED
        assert session.error_message == "Transaction reverted on-chain."
        assert session.tx_hash == SEND_HASH

    @pytest.mark.asyncio
    async def test_confirmation_timeout(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.failures["wait"] = ConfirmationTimeoutError(SEND_HASH, 1.0)
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.status == TransferStatus.ERROR
        assert session.error_category == ErrorCategory.EXECUTION_FAILED
        assert "timed out" in session.error_message
        assert session.tx_hash == SEND_HASH

    @pytest.mark.asyncio
    async def test_fee_paid_from_event(self, orchestrator, chain):
        chain.allowance = 10**12
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.fee_paid == 10**15
        assert session.request.amount_minor_units == 10 * 10**6


class TestWalletDisconnect:
    """The wallet can go away between steps of a running send."""

    @pytest.mark.asyncio
    async def test_disconnect_before_submit(self, orchestrator, chain, gateway):
        chain.allowance = 10**12
        simulate = gateway.simulate_send

        async def simulate_then_disconnect(*args):
            await simulate(*args)
            orchestrator.signer = None

        gateway.simulate_send = simulate_then_disconnect
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.SUBMISSION_REJECTED
        assert session.error_message == "Wallet disconnected. Please reconnect."
        assert "submit" not in chain.steps

    @pytest.mark.asyncio
    async def test_account_switch_before_submit(self, orchestrator, chain, gateway, signer):
        chain.allowance = 10**12
        simulate = gateway.simulate_send

        async def simulate_then_switch(*args):
            await simulate(*args)
            signer._address = "0x" + "77" * 20

        gateway.simulate_send = simulate_then_switch
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.SUBMISSION_REJECTED
        assert session.error_message == "Wallet account changed. Please retry."
        assert "submit" not in chain.steps

    @pytest.mark.asyncio
    async def test_disconnect_before_approval(self, orchestrator, chain, token, signer):
        async def allowance_then_disconnect(owner, spender):
            signer._address = None
            return 0

        token.allowance = allowance_then_disconnect
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.error_category == ErrorCategory.APPROVAL_FAILED
        assert session.error_message == "Wallet disconnected. Please reconnect."
        assert chain.steps == []


class TestSessionLifecycle:

    @pytest.mark.asyncio
    async def test_concurrent_send_returns_current_session(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.confirm_gate = asyncio.Event()

        first = asyncio.create_task(orchestrator.trigger_send(RECIPIENT, "10"))
        await wait_for_status(orchestrator, TransferStatus.CONFIRMING)

        second = await orchestrator.trigger_send(RECIPIENT, "3")
        assert second.status == TransferStatus.CONFIRMING
        assert second.request.amount == "10"

        chain.confirm_gate.set()
        await first
        assert chain.steps.count("submit") == 1

    @pytest.mark.asyncio
    async def test_success_auto_resets(self, orchestrator, chain):
        chain.allowance = 10**12
        session = await orchestrator.trigger_send(RECIPIENT, "10")
        assert session.status == TransferStatus.SUCCESS

        await asyncio.sleep(0.1)
        assert orchestrator.session.status == TransferStatus.IDLE
        assert orchestrator.session.tx_hash is None

    @pytest.mark.asyncio
    async def test_error_does_not_auto_reset(self, orchestrator, chain):
        chain.token_balance = 0
        await orchestrator.trigger_send(RECIPIENT, "10")

        await asyncio.sleep(0.1)
        assert orchestrator.session.status == TransferStatus.ERROR

    @pytest.mark.asyncio
    async def test_cancel_clears_error(self, orchestrator):
        await orchestrator.trigger_send("", "")
        session = orchestrator.cancel()

        assert session.status == TransferStatus.IDLE
        assert session.error_category is None

    @pytest.mark.asyncio
    async def test_cancel_after_success_stops_reset(self, orchestrator, chain):
        chain.allowance = 10**12
        await orchestrator.trigger_send(RECIPIENT, "10")
        orchestrator.cancel()

        assert orchestrator.session.status == TransferStatus.IDLE
        assert orchestrator._reset_task is None

    @pytest.mark.asyncio
    async def test_cancel_while_busy_is_ignored(self, orchestrator, chain):
        chain.allowance = 10**12
        chain.confirm_gate = asyncio.Event()

        task = asyncio.create_task(orchestrator.trigger_send(RECIPIENT, "10"))
        await wait_for_status(orchestrator, TransferStatus.CONFIRMING)

        assert orchestrator.cancel().status == TransferStatus.CONFIRMING

        chain.confirm_gate.set()
        assert (await task).status == TransferStatus.SUCCESS

    @pytest.mark.asyncio
    async def test_new_send_after_error(self, orchestrator, chain):
        chain.token_balance = 0
        await orchestrator.trigger_send(RECIPIENT, "10")

        chain.token_balance = 20 * 10**6
        chain.allowance = 10**12
        session = await orchestrator.trigger_send(RECIPIENT, "10")

        assert session.status == TransferStatus.SUCCESS
        assert session.error_category is None

    @pytest.mark.asyncio
    async def test_session_is_a_copy(self, orchestrator):
        session = orchestrator.session
        session.status = TransferStatus.SUCCESS

        assert orchestrator.session.status == TransferStatus.IDLE


class TestDisplayRefresh:
    """The display snapshot is refreshed after a confirmed transfer."""

    @pytest.mark.asyncio
    async def test_refresh_after_success(self, orchestrator, chain):
        chain.allowance = 10**12
        aggregator = MagicMock()
        aggregator.address = SENDER
        aggregator.refresh = AsyncMock()
        orchestrator.aggregator = aggregator

        await orchestrator.trigger_send(RECIPIENT, "10")

        aggregator.refresh.assert_awaited_once_with(SENDER)

    @pytest.mark.asyncio
    async def test_no_refresh_after_error(self, orchestrator, chain):
        chain.token_balance = 0
        aggregator = MagicMock()
        aggregator.address = SENDER
        aggregator.refresh = AsyncMock()
        orchestrator.aggregator = aggregator

        await orchestrator.trigger_send(RECIPIENT, "10")

        aggregator.refresh.assert_not_awaited()

    def test_get_snapshot_without_aggregator(self, orchestrator):
        assert orchestrator.get_snapshot() is None
