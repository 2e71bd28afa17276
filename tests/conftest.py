"""Pytest configuration and fixtures.

The chain is replaced by in-memory fakes that share one ordered call log, so
tests can assert exactly which reads and state-changing calls happened and
in what order.
"""

import asyncio
import os
from typing import Optional

import pytest

# Set test environment
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "true"
os.environ["SIGNER_PRIVATE_KEY"] = ""

from gatesend.chain.contracts import APPROVE_SELECTOR, TransferEvent
from gatesend.services.allowance import AllowanceEvaluator
from gatesend.services.orchestrator import TransferOrchestrator
from gatesend.signing.base import WalletSigner

SENDER = "0x" + "11" * 20
RECIPIENT = "0x" + "22" * 20
TOKEN_ADDRESS = "0x" + "33" * 20
GATEWAY_ADDRESS = "0x" + "44" * 20
FEE_RECIPIENT = "0x" + "55" * 20

APPROVE_HASH = "0x" + "aa" * 32
SEND_HASH = "0x" + "bb" * 32

# Calls that change state or gate a state change
STEP_CALLS = ("approve", "wait", "simulate", "submit")


class FakeChain:
    """Shared state and call log behind the fake token, gateway, rpc and signer."""

    def __init__(
        self,
        decimals: int = 6,
        token_balance: int = 20 * 10**6,
        native_balance: int = 10**16,
        fee: int = 10**15,
        allowance: int = 0,
    ):
        self.decimals = decimals
        self.token_balance = token_balance
        self.native_balance = native_balance
        self.fee = fee
        self.allowance = allowance

        self.calls: list[str] = []
        self.failures: dict[str, BaseException] = {}
        self.receipt_status = {APPROVE_HASH: "0x1", SEND_HASH: "0x1"}
        self.sent: list[dict] = []
        # Set to an unset Event to hold the transfer confirmation open
        self.confirm_gate: Optional[asyncio.Event] = None

    def record(self, name: str) -> None:
        self.calls.append(name)
        error = self.failures.get(name)
        if error is not None:
            raise error

    @property
    def steps(self) -> list[str]:
        return [c for c in self.calls if c in STEP_CALLS]


class FakeRpc:
    def __init__(self, chain: FakeChain):
        self.chain = chain

    async def get_balance(self, address: str) -> int:
        self.chain.record("get_balance")
        return self.chain.native_balance

    async def wait_for_receipt(self, tx_hash: str, timeout: float) -> dict:
        self.chain.record("wait")
        if tx_hash == SEND_HASH and self.chain.confirm_gate is not None:
            await self.chain.confirm_gate.wait()
        return {
            "transactionHash": tx_hash,
            "status": self.chain.receipt_status.get(tx_hash, "0x1"),
            "logs": [],
        }


class FakeToken:
    def __init__(self, chain: FakeChain):
        self.chain = chain
        self.address = TOKEN_ADDRESS

    async def decimals(self) -> int:
        self.chain.record("decimals")
        return self.chain.decimals

    async def balance_of(self, owner: str) -> int:
        self.chain.record("balance_of")
        return self.chain.token_balance

    async def allowance(self, owner: str, spender: str) -> int:
        self.chain.record("allowance")
        return self.chain.allowance

    def build_approve(self, spender: str, amount: int) -> dict:
        return {"to": self.address, "data": APPROVE_SELECTOR, "value": 0, "amount": amount}


class FakeGateway:
    def __init__(self, chain: FakeChain):
        self.chain = chain
        self.address = GATEWAY_ADDRESS

    async def effective_fee_of(self, wallet: str) -> int:
        self.chain.record("effective_fee_of")
        return self.chain.fee

    async def simulate_send(self, sender: str, recipient: str, amount: int, fee: int) -> None:
        self.chain.record("simulate")

    def build_send(self, recipient: str, amount: int, fee: int) -> dict:
        return {"to": self.address, "data": "0xsend", "value": fee, "amount": amount}

    def parse_transfer_event(self, receipt: dict) -> Optional[TransferEvent]:
        return TransferEvent(
            sender=SENDER,
            recipient=RECIPIENT,
            amount=0,
            required_fee=self.chain.fee,
            sent_fee=self.chain.fee,
            fee_recipient=FEE_RECIPIENT,
        )


class FakeSigner(WalletSigner):
    """Connected wallet that records approvals and submissions."""

    def __init__(self, chain: FakeChain, address: Optional[str] = SENDER):
        self.chain = chain
        self._address = address

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def network_id(self) -> Optional[int]:
        return 1 if self._address else None

    async def send_transaction(self, tx: dict) -> str:
        is_approval = tx["data"].startswith(APPROVE_SELECTOR)
        self.chain.record("approve" if is_approval else "submit")
        self.chain.sent.append(tx)
        return APPROVE_HASH if is_approval else SEND_HASH


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def rpc(chain):
    return FakeRpc(chain)


@pytest.fixture
def token(chain):
    return FakeToken(chain)


@pytest.fixture
def gateway(chain):
    return FakeGateway(chain)


@pytest.fixture
def signer(chain):
    return FakeSigner(chain)


@pytest.fixture
def orchestrator(rpc, token, gateway, signer):
    """Orchestrator wired to the fakes, with a connected signer."""
    return TransferOrchestrator(
        rpc,
        token,
        gateway,
        AllowanceEvaluator(token, gateway.address),
        signer=signer,
        success_reset_delay=0.05,
        confirmation_timeout=1.0,
        explorer_url=lambda tx_hash: f"https://etherscan.io/tx/{tx_hash}",
    )
