"""Transfer planning interface.

The planner is the external collaborator that knows how to move an asset
between the two chains. It reports balances, fees and the permissible
amount range, and hands back a submit operation bound to that snapshot.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Awaitable, Callable

from xchainswap.chains import AssetConfig, ChainConfig
from xchainswap.signing import SignerPair

SubmitFn = Callable[[Decimal], Awaitable[str]]


@dataclass(frozen=True)
class AssetAmount:
    """An amount of a specific asset, in whole units."""

    amount: Decimal
    symbol: str
    decimals: int

    def __str__(self) -> str:
        return f"{self.amount.normalize():f} {self.symbol}"


@dataclass
class TransferQuery:
    """Parameters for a transfer-feasibility lookup."""

    source_chain: ChainConfig
    destination_chain: ChainConfig
    asset: AssetConfig
    source_address: str
    destination_address: str
    signers: SignerPair

    def to_dict(self) -> dict:
        """Wire representation (signers are never serialized)."""
        return {
            "sourceChain": self.source_chain.key,
            "asset": self.asset.symbol,
            "sourceAddress": self.source_address,
            "destinationChain": self.destination_chain.key,
            "destinationAddress": self.destination_address,
        }


@dataclass
class TransferPlan:
    """Point-in-time transfer feasibility.

    Fees are denominated in each chain's fee asset, which is not necessarily
    the transferred asset. A plan is consumed by one transfer and discarded.
    """

    source_chain: ChainConfig
    destination_chain: ChainConfig
    asset: AssetConfig
    source_balance: AssetAmount
    destination_balance: AssetAmount
    source_fee: AssetAmount
    destination_fee: AssetAmount
    min_amount: AssetAmount
    max_amount: AssetAmount
    submit: SubmitFn = field(repr=False, compare=False)

    @property
    def is_feasible(self) -> bool:
        return self.min_amount.amount <= self.max_amount.amount

    def allows(self, amount: Decimal) -> bool:
        """Check if amount lies within [min, max]."""
        return self.min_amount.amount <= amount <= self.max_amount.amount


class TransferPlanner(ABC):
    """Abstract base class for transfer-planning collaborators."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Planner name identifier."""
        pass

    @abstractmethod
    async def get_transfer_plan(self, query: TransferQuery) -> TransferPlan:
        """
        Look up balances, fees and bounds for a transfer.

        Args:
            query: Source/destination chains, asset, addresses and signers

        Returns:
            TransferPlan with a bound submit operation. Bounds are reported
            as-is; validating them is the caller's job.
        """
        pass
