"""Allowance evaluation for the gateway spender.

Decides whether an approval must precede a transfer. The check is a single
read-only allowance() call, so it is cheap to repeat on every amount edit.
A failed read is treated as "approval needed": an unchecked transfer is
never assumed to be pre-approved.
"""

import logging
from dataclasses import dataclass

from gatesend.chain.contracts import TokenContract
from gatesend.utils.units import parse_units

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AllowanceState:
    """Current allowance against a required amount (minor units)."""
    current_allowance: int
    required: int
    needs_approval: bool


class AllowanceEvaluator:
    """Compares the owner's allowance for the gateway to a required amount."""

    def __init__(self, token: TokenContract, spender: str):
        self.token = token
        self.spender = spender

    async def evaluate(self, owner: str, required: int) -> AllowanceState:
        """Read the allowance and compare it to ``required``."""
        try:
            current = await self.token.allowance(owner, self.spender)
        except Exception as e:
            logger.warning(f"Allowance read failed for {owner}, assuming approval needed: {e}")
            return AllowanceState(current_allowance=0, required=required, needs_approval=True)

        return AllowanceState(
            current_allowance=current,
            required=required,
            needs_approval=current < required,
        )

    async def evaluate_amount(self, owner: str, amount: str, decimals: int) -> AllowanceState:
        """Evaluate a user-entered decimal amount.

        An empty or unparseable amount has nothing to approve yet, so no
        remote call is made.
        """
        try:
            required = parse_units(amount, decimals)
        except ValueError:
            return AllowanceState(current_allowance=0, required=0, needs_approval=False)

        if required <= 0:
            return AllowanceState(current_allowance=0, required=0, needs_approval=False)
        return await self.evaluate(owner, required)
