"""Orchestration of the transfer -> swap -> transfer run.

Strictly linear state machine:

    IDLE -> SIGNERS_DERIVED -> LEG1_SUBMITTED -> LEG1_SETTLED
         -> SWAP_SUBMITTED -> SWAP_SETTLED -> LEG2_SUBMITTED -> LEG2_SETTLED -> DONE

Each state has one transition method. There is no retry or compensation:
the first failure moves the machine to FAILED and raises SequenceFailedError
with the transactions that already went through, for manual reconciliation.

The settle waits are fixed sleeps, not confirmation polls. A transaction can
still be pending when the next leg starts.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Awaitable, Callable, Optional

from xchainswap.chains import AssetConfig, ChainConfig, get_asset, get_chain, to_base_units
from xchainswap.config import Settings
from xchainswap.errors import SequenceFailedError
from xchainswap.signing import SignerPair
from xchainswap.swap import SwapExecutor
from xchainswap.transfer import TransferService

logger = logging.getLogger(__name__)


class SequenceState(str, Enum):
    """Run states, in order."""

    IDLE = "idle"
    SIGNERS_DERIVED = "signers_derived"
    LEG1_SUBMITTED = "leg1_submitted"
    LEG1_SETTLED = "leg1_settled"
    SWAP_SUBMITTED = "swap_submitted"
    SWAP_SETTLED = "swap_settled"
    LEG2_SUBMITTED = "leg2_submitted"
    LEG2_SETTLED = "leg2_settled"
    DONE = "done"
    FAILED = "failed"


# Leg names reported on failure
LEG_NAMES = {
    SequenceState.IDLE: "signer derivation",
    SequenceState.SIGNERS_DERIVED: "outbound transfer",
    SequenceState.LEG1_SUBMITTED: "outbound settle wait",
    SequenceState.LEG1_SETTLED: "swap",
    SequenceState.SWAP_SUBMITTED: "swap settle wait",
    SequenceState.SWAP_SETTLED: "return transfer",
    SequenceState.LEG2_SUBMITTED: "return transfer",
    SequenceState.LEG2_SETTLED: "completion",
}


@dataclass
class SequenceConfig:
    """What one run moves and swaps."""

    source_chain: ChainConfig
    destination_chain: ChainConfig
    outbound_asset: AssetConfig
    outbound_amount: Decimal
    swap_amount_in: Decimal
    swap_input_decimals: int
    swap_min_amount_out: Decimal
    swap_output_decimals: int
    hop_path: list[str]
    return_asset: AssetConfig
    return_amount: Decimal
    settle_wait_seconds: float = 20.0

    @property
    def swap_input_units(self) -> int:
        return to_base_units(self.swap_amount_in, self.swap_input_decimals)

    @property
    def swap_min_output_units(self) -> int:
        return to_base_units(self.swap_min_amount_out, self.swap_output_decimals)

    @classmethod
    def from_settings(cls, settings: Settings) -> "SequenceConfig":
        """Build the run plan from validated settings."""
        return cls(
            source_chain=get_chain(settings.source_chain),
            destination_chain=get_chain(settings.destination_chain),
            outbound_asset=get_asset(settings.outbound_asset),
            outbound_amount=settings.outbound_amount,
            swap_amount_in=settings.swap_amount_in,
            swap_input_decimals=settings.swap_input_decimals,
            swap_min_amount_out=settings.swap_min_amount_out,
            swap_output_decimals=settings.swap_output_decimals,
            hop_path=settings.hop_path,
            return_asset=get_asset(settings.return_asset),
            return_amount=settings.return_amount,
            settle_wait_seconds=settings.settle_wait_seconds,
        )


@dataclass
class SequenceResult:
    """Outcome of a completed run."""

    state: SequenceState
    substrate_address: str
    evm_address: str
    tx_refs: dict[str, str] = field(default_factory=dict)


SignerDeriver = Callable[[], SignerPair]
Sleep = Callable[[float], Awaitable[None]]


class TransferSequencer:
    """Drives one run through the state machine.

    Collaborators are injected so each transition can be tested alone:

        sequencer = TransferSequencer(config, derive, transfers, swaps, sleep=fake_sleep)
        result = await sequencer.run()
    """

    def __init__(
        self,
        config: SequenceConfig,
        signer_deriver: SignerDeriver,
        transfer_service: TransferService,
        swap_executor: SwapExecutor,
        sleep: Sleep = asyncio.sleep,
        log: Optional[logging.Logger] = None,
    ):
        self.config = config
        self.signer_deriver = signer_deriver
        self.transfer_service = transfer_service
        self.swap_executor = swap_executor
        self.sleep = sleep
        self.logger = log or logger

        self.state = SequenceState.IDLE
        self.signers: Optional[SignerPair] = None
        self.tx_refs: dict[str, str] = {}

        self._transitions: dict[SequenceState, Callable[[], Awaitable[SequenceState]]] = {
            SequenceState.IDLE: self.derive_signers,
            SequenceState.SIGNERS_DERIVED: self.submit_outbound,
            SequenceState.LEG1_SUBMITTED: self.settle_outbound,
            SequenceState.LEG1_SETTLED: self.submit_swap,
            SequenceState.SWAP_SUBMITTED: self.settle_swap,
            SequenceState.SWAP_SETTLED: self.submit_return,
            SequenceState.LEG2_SUBMITTED: self.settle_return,
            SequenceState.LEG2_SETTLED: self.finish,
        }

    @property
    def is_finished(self) -> bool:
        return self.state in (SequenceState.DONE, SequenceState.FAILED)

    # ======================
    # Transitions
    # ======================

    async def derive_signers(self) -> SequenceState:
        self.signers = self.signer_deriver()
        substrate_address, evm_address = self.signers.addresses
        self.logger.info(f"ETH Address {evm_address}")
        self.logger.info(f"Polkadot Address {substrate_address}")
        return SequenceState.SIGNERS_DERIVED

    async def submit_outbound(self) -> SequenceState:
        cfg = self.config
        self.logger.info(f"Transferring from {cfg.source_chain.name} to {cfg.destination_chain.name}")
        plan = await self.transfer_service.evaluate_transfer(
            source_chain=cfg.source_chain,
            destination_chain=cfg.destination_chain,
            asset=cfg.outbound_asset,
            source_address=self.signers.substrate.address,
            destination_address=self.signers.evm.address,
            signers=self.signers,
        )
        self.tx_refs["outbound"] = await self.transfer_service.execute_transfer(plan, cfg.outbound_amount)
        return SequenceState.LEG1_SUBMITTED

    async def settle_outbound(self) -> SequenceState:
        await self._settle()
        return SequenceState.LEG1_SETTLED

    async def submit_swap(self) -> SequenceState:
        cfg = self.config
        self.logger.info(
            f"Swapping {cfg.swap_amount_in} {cfg.outbound_asset.symbol} for "
            f"{cfg.return_asset.symbol} on {cfg.destination_chain.name}"
        )
        self.tx_refs["swap"] = await self.swap_executor.execute_swap(
            self.signers.evm,
            cfg.swap_input_units,
            cfg.swap_min_output_units,
            cfg.hop_path,
        )
        return SequenceState.SWAP_SUBMITTED

    async def settle_swap(self) -> SequenceState:
        await self._settle()
        return SequenceState.SWAP_SETTLED

    async def submit_return(self) -> SequenceState:
        cfg = self.config
        self.logger.info(f"Sending {cfg.return_asset.symbol} to {cfg.source_chain.name}")
        plan = await self.transfer_service.evaluate_transfer(
            source_chain=cfg.destination_chain,
            destination_chain=cfg.source_chain,
            asset=cfg.return_asset,
            source_address=self.signers.evm.address,
            destination_address=self.signers.substrate.address,
            signers=self.signers,
        )
        self.tx_refs["return"] = await self.transfer_service.execute_transfer(plan, cfg.return_amount)
        return SequenceState.LEG2_SUBMITTED

    async def settle_return(self) -> SequenceState:
        # The return leg is the last one; nothing depends on its finality here.
        return SequenceState.LEG2_SETTLED

    async def finish(self) -> SequenceState:
        return SequenceState.DONE

    async def _settle(self) -> None:
        wait = self.config.settle_wait_seconds
        self.logger.debug(f"Waiting {wait}s for settlement")
        await self.sleep(wait)

    # ======================
    # Driver
    # ======================

    async def step(self) -> SequenceState:
        """Run the transition for the current state.

        Raises:
            SequenceFailedError: If the transition fails (state becomes FAILED)
        """
        if self.is_finished:
            raise RuntimeError(f"Sequence already finished in state {self.state.value}")

        current = self.state
        try:
            self.state = await self._transitions[current]()
        except Exception as e:
            self.state = SequenceState.FAILED
            self.logger.error(f"{LEG_NAMES[current]} failed: {type(e).__name__}: {e}")
            raise SequenceFailedError(current.value, LEG_NAMES[current], self.tx_refs, e) from e

        self.logger.debug(f"State {current.value} -> {self.state.value}")
        return self.state

    async def run(self) -> SequenceResult:
        """Run every transition until DONE."""
        while self.state != SequenceState.DONE:
            await self.step()

        return SequenceResult(
            state=self.state,
            substrate_address=self.signers.substrate.address,
            evm_address=self.signers.evm.address,
            tx_refs=dict(self.tx_refs),
        )
