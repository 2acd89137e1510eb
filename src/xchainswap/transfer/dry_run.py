"""Dry-run transfer planner for simulated runs (no real transactions)."""

import hashlib
import logging
from decimal import Decimal
from typing import Optional

from xchainswap.transfer.base import AssetAmount, TransferPlan, TransferPlanner, TransferQuery

logger = logging.getLogger(__name__)


class DryRunTransferPlanner(TransferPlanner):
    """Simulated planner with fixed balances, fees and bounds.

    Every submitted transfer gets a deterministic fake hash and is recorded
    in `transfers` for inspection.
    """

    def __init__(
        self,
        balance: Decimal = Decimal("1000"),
        min_amount: Decimal = Decimal("0.01"),
        max_amount: Decimal = Decimal("1000"),
        source_fee: Decimal = Decimal("0.02"),
        destination_fee: Decimal = Decimal("0.01"),
        log: Optional[logging.Logger] = None,
    ):
        self.balance = balance
        self.min_amount = min_amount
        self.max_amount = max_amount
        self.source_fee = source_fee
        self.destination_fee = destination_fee
        self.transfers: list[dict] = []
        self.logger = log or logger

    @property
    def name(self) -> str:
        return "Dry Run"

    async def get_transfer_plan(self, query: TransferQuery) -> TransferPlan:
        asset = query.asset

        def amount(value: Decimal, symbol: str = asset.symbol, decimals: int = asset.decimals) -> AssetAmount:
            return AssetAmount(amount=value, symbol=symbol, decimals=decimals)

        return TransferPlan(
            source_chain=query.source_chain,
            destination_chain=query.destination_chain,
            asset=asset,
            source_balance=amount(self.balance),
            destination_balance=amount(Decimal("0")),
            # Fees are paid in each chain's fee asset
            source_fee=amount(self.source_fee, query.source_chain.fee_asset, 18),
            destination_fee=amount(self.destination_fee, query.destination_chain.fee_asset, 18),
            min_amount=amount(self.min_amount),
            max_amount=amount(self.max_amount),
            submit=lambda value: self._submit(query, value),
        )

    async def _submit(self, query: TransferQuery, amount: Decimal) -> str:
        seed = (
            f"{query.source_chain.key}:{query.destination_chain.key}:{query.asset.symbol}:"
            f"{amount}:{len(self.transfers)}"
        )
        tx_hash = "0x" + hashlib.sha256(seed.encode()).hexdigest()
        self.transfers.append({**query.to_dict(), "amount": amount, "tx_hash": tx_hash})
        self.logger.info(f"[DRY RUN] Simulated {amount} {query.asset.symbol} transfer: {tx_hash}")
        return tx_hash
