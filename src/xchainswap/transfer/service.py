"""Transfer feasibility evaluation and execution.

Thin wrapper around a TransferPlanner: assembles the query, logs the
pre-flight figures, enforces the min/max bounds, submits.
"""

import logging
from decimal import Decimal
from typing import Optional

from xchainswap.chains import AssetConfig, ChainConfig
from xchainswap.errors import (
    AmountOutOfRangeError,
    InfeasibleTransferError,
    NetworkError,
    TransferRejectedError,
)
from xchainswap.signing import SignerPair
from xchainswap.transfer.base import TransferPlan, TransferPlanner, TransferQuery

logger = logging.getLogger(__name__)


class TransferService:
    """Evaluates and executes cross-chain transfers through a planner."""

    def __init__(self, planner: TransferPlanner, log: Optional[logging.Logger] = None):
        self.planner = planner
        self.logger = log or logger

    async def evaluate_transfer(
        self,
        source_chain: ChainConfig,
        destination_chain: ChainConfig,
        asset: AssetConfig,
        source_address: str,
        destination_address: str,
        signers: SignerPair,
    ) -> TransferPlan:
        """Get a fresh transfer plan and check that its range is usable.

        The balance and fee report is logged before validation so the
        decision basis is on record even when the transfer goes no further.

        Raises:
            InfeasibleTransferError: If min > max
        """
        query = TransferQuery(
            source_chain=source_chain,
            destination_chain=destination_chain,
            asset=asset,
            source_address=source_address,
            destination_address=destination_address,
            signers=signers,
        )
        plan = await self.planner.get_transfer_plan(query)

        self.log_balances(plan)
        self.log_tx_details(plan)

        if not plan.is_feasible:
            raise InfeasibleTransferError(
                f"No viable {asset.symbol} transfer from {source_chain.name} to "
                f"{destination_chain.name}: min {plan.min_amount} > max {plan.max_amount}"
            )
        return plan

    async def execute_transfer(self, plan: TransferPlan, amount: Decimal) -> str:
        """Submit a transfer from an evaluated plan.

        Returns:
            Transaction hash reported by the planner

        Raises:
            AmountOutOfRangeError: If amount is outside [min, max]; nothing is submitted
            TransferRejectedError: If the transfer is rejected
            NetworkError: If the planner or chain is unreachable
        """
        amount = Decimal(amount)
        if not plan.allows(amount):
            raise AmountOutOfRangeError(
                f"Amount {amount} {plan.asset.symbol} outside "
                f"[{plan.min_amount.amount}, {plan.max_amount.amount}]"
            )

        self.logger.info(f"Sending from {plan.source_chain.name} amount: {amount}")
        try:
            tx_hash = await plan.submit(amount)
        except (TransferRejectedError, NetworkError):
            raise
        except Exception as e:
            raise TransferRejectedError(
                f"Transfer from {plan.source_chain.name} rejected: {e}"
            ) from e

        self.logger.info(f"{plan.source_chain.name} tx hash: {tx_hash}")
        return tx_hash

    def log_balances(self, plan: TransferPlan) -> None:
        """Log balances on both chains."""
        self.logger.info(f"Balance on {plan.source_chain.name} {plan.source_balance}")
        self.logger.info(f"Balance on {plan.destination_chain.name} {plan.destination_balance}")

    def log_tx_details(self, plan: TransferPlan) -> None:
        """Log the permissible range and fees."""
        self.logger.info(
            f"You can send min: {plan.min_amount} and max: {plan.max_amount} "
            f"from {plan.source_chain.name} to {plan.destination_chain.name}. "
            f"You will pay {plan.source_fee} fee on {plan.source_chain.name} "
            f"and {plan.destination_fee} fee on {plan.destination_chain.name}."
        )
