"""Swap execution through the routing contract.

Flow for one swap:
1. Build the order (deadline = now + window) and refuse it if already expired
2. Make sure the router may spend the input token (approve and wait if not)
3. Dry-call exactInput to surface reverts (slippage, deadline, liquidity) before broadcast
4. Broadcast and block until the receipt arrives or the deadline passes

No step is retried; every failure is raised to the caller.
"""

import hashlib
import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

from eth_utils import to_checksum_address
from web3.exceptions import ContractLogicError, Web3RPCError

from xchainswap.errors import (
    DeadlineExceededError,
    InsufficientLiquidityError,
    SlippageExceededError,
    SwapRejectedError,
)
from xchainswap.signing import EvmSigner
from xchainswap.swap.abi import ERC20_ABI, ROUTER_ABI
from xchainswap.swap.path import MIN_HOPS, encode_path

logger = logging.getLogger(__name__)

DEFAULT_DEADLINE_SECONDS = 1200  # 20 minutes

# Router revert reasons
SLIPPAGE_REASONS = ("too little received",)
DEADLINE_REASONS = ("transaction too old",)
LIQUIDITY_REASONS = ("insufficient liquidity", "spl", "iia", "lok", "as")


def revert_message(error: Exception) -> str:
    """Revert text of a web3 error, without the revert data web3 keeps in its args."""
    return getattr(error, "message", None) or str(error)


def classify_revert(message: str) -> SwapRejectedError:
    """Map a router revert message to the matching swap error."""
    match = re.search(r"execution reverted:?\s*(.*)", message, re.IGNORECASE | re.DOTALL)
    reason = (match.group(1) if match else message).strip().strip("'\"").lower()

    if any(r in reason for r in SLIPPAGE_REASONS):
        return SlippageExceededError(f"Output below minimum: {message}")
    if any(r in reason for r in DEADLINE_REASONS):
        return DeadlineExceededError(f"Swap deadline passed: {message}")
    if not reason or reason in LIQUIDITY_REASONS or "liquidity" in reason:
        return InsufficientLiquidityError(f"No viable route: {message}")
    return SwapRejectedError(f"Swap reverted: {message}")


@dataclass(frozen=True)
class SwapOrder:
    """An exact-input swap request.

    Amounts are in the tokens' smallest units. `deadline` is an absolute
    unix timestamp.
    """

    input_amount: int
    minimum_output_amount: int
    hop_path: tuple[str, ...]
    recipient: str
    deadline: int

    @classmethod
    def build(
        cls,
        input_amount: int,
        minimum_output_amount: int,
        hop_path: Sequence[str],
        recipient: str,
        deadline_seconds: int,
        now: float,
    ) -> "SwapOrder":
        if len(hop_path) < MIN_HOPS:
            raise ValueError(f"Hop path needs at least {MIN_HOPS} tokens")
        if input_amount <= 0:
            raise ValueError(f"Input amount must be positive: {input_amount}")
        if minimum_output_amount < 0:
            raise ValueError(f"Minimum output must not be negative: {minimum_output_amount}")
        return cls(
            input_amount=input_amount,
            minimum_output_amount=minimum_output_amount,
            hop_path=tuple(to_checksum_address(h) for h in hop_path),
            recipient=to_checksum_address(recipient),
            deadline=int(now) + deadline_seconds,
        )

    def check_deadline(self, now: float) -> None:
        """Raise DeadlineExceededError unless the deadline is strictly in the future."""
        if self.deadline <= now:
            raise DeadlineExceededError(
                f"Swap deadline {self.deadline} is not after submission time {int(now)}"
            )

    def to_params(self) -> dict:
        """exactInput parameter struct."""
        return {
            "path": encode_path(self.hop_path),
            "recipient": self.recipient,
            "deadline": self.deadline,
            "amountIn": self.input_amount,
            "amountOutMinimum": self.minimum_output_amount,
        }


class SwapExecutor:
    """Submits exact-input swaps to a fixed routing contract."""

    def __init__(
        self,
        router_address: str,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
        poll_interval: float = 2.0,
        clock: Callable[[], float] = time.time,
        log: Optional[logging.Logger] = None,
    ):
        """Initialize the executor.

        Args:
            router_address: Routing contract address
            deadline_seconds: Expiry window applied to every order
            poll_interval: Seconds between receipt lookups
            clock: Time source (unix seconds)
            log: Logger to use instead of the module logger
        """
        self.router_address = to_checksum_address(router_address)
        self.deadline_seconds = deadline_seconds
        self.poll_interval = poll_interval
        self.clock = clock
        self.logger = log or logger

    async def execute_swap(
        self,
        signer: EvmSigner,
        input_amount: int,
        min_output_amount: int,
        hop_path: Sequence[str],
        deadline_seconds: Optional[int] = None,
    ) -> str:
        """Swap an exact input amount along hop_path, output to the signer.

        Args:
            signer: EVM signer paying and receiving
            input_amount: Input in smallest units
            min_output_amount: Slippage floor in smallest units of the output token
            hop_path: Token addresses from input to output
            deadline_seconds: Override for the executor's expiry window

        Returns:
            Confirmed transaction hash
        """
        window = self.deadline_seconds if deadline_seconds is None else deadline_seconds
        order = SwapOrder.build(
            input_amount=input_amount,
            minimum_output_amount=min_output_amount,
            hop_path=hop_path,
            recipient=signer.address,
            deadline_seconds=window,
            now=self.clock(),
        )
        return await self.submit_order(signer, order)

    async def submit_order(self, signer: EvmSigner, order: SwapOrder) -> str:
        """Submit a prepared order and wait for it to be mined."""
        order.check_deadline(self.clock())

        await self._ensure_allowance(signer, order)

        router = signer.web3.eth.contract(address=self.router_address, abi=ROUTER_ABI)
        swap_fn = router.functions.exactInput(order.to_params())

        try:
            expected_out = swap_fn.call({"from": signer.address})
        except ContractLogicError as e:
            raise classify_revert(revert_message(e)) from e
        self.logger.info(
            f"Swapping {order.input_amount} along {' -> '.join(order.hop_path)} "
            f"(expected out {expected_out}, min {order.minimum_output_amount})"
        )

        try:
            tx = swap_fn.build_transaction({"from": signer.address})
        except ContractLogicError as e:
            raise classify_revert(revert_message(e)) from e

        order.check_deadline(self.clock())
        tx_hash = self._broadcast(signer, tx, "Swap")
        self.logger.info(f"Swap tx hash: {tx_hash}")

        await self._wait_until_deadline(signer, tx_hash, order)
        return tx_hash

    async def _wait_until_deadline(self, signer: EvmSigner, tx_hash: str, order: SwapOrder) -> dict:
        remaining = max(order.deadline - self.clock(), 0)
        try:
            receipt = await signer.wait_for_receipt(tx_hash, remaining, self.poll_interval)
        except TimeoutError as e:
            raise DeadlineExceededError(
                f"Swap {tx_hash} not included before deadline {order.deadline}"
            ) from e

        if receipt.get("status") == 0:
            raise SwapRejectedError(f"Swap {tx_hash} reverted on-chain")
        self.logger.info(f"Swap confirmed in block {receipt.get('blockNumber')}")
        return receipt

    async def _ensure_allowance(self, signer: EvmSigner, order: SwapOrder) -> None:
        """Approve the router for the input amount if the allowance is short."""
        token = signer.web3.eth.contract(address=order.hop_path[0], abi=ERC20_ABI)
        allowance = token.functions.allowance(signer.address, self.router_address).call()
        if allowance >= order.input_amount:
            return

        self.logger.info(f"Approving router {self.router_address} for {order.input_amount}")
        tx = token.functions.approve(self.router_address, order.input_amount).build_transaction(
            {"from": signer.address}
        )
        tx_hash = self._broadcast(signer, tx, "Approval")
        remaining = max(order.deadline - self.clock(), 0)
        try:
            receipt = await signer.wait_for_receipt(tx_hash, remaining, self.poll_interval)
        except TimeoutError as e:
            raise DeadlineExceededError(f"Approval {tx_hash} not confirmed before deadline") from e
        if receipt.get("status") == 0:
            raise SwapRejectedError(f"Approval {tx_hash} reverted")

    def _broadcast(self, signer: EvmSigner, tx: dict, label: str) -> str:
        """Send a transaction, mapping node rejections to swap errors."""
        try:
            return signer.send_transaction(tx)
        except ContractLogicError as e:
            raise classify_revert(revert_message(e)) from e
        except Web3RPCError as e:
            raise SwapRejectedError(f"{label} rejected by node: {revert_message(e)}") from e


class DryRunSwapExecutor(SwapExecutor):
    """Simulated swaps with a fixed output, for dry runs and tests.

    `simulated_output` stands in for what the router would return; orders
    whose minimum exceeds it fail with SlippageExceededError.
    """

    def __init__(
        self,
        router_address: str,
        simulated_output: int,
        deadline_seconds: int = DEFAULT_DEADLINE_SECONDS,
        clock: Callable[[], float] = time.time,
        log: Optional[logging.Logger] = None,
    ):
        super().__init__(router_address, deadline_seconds, clock=clock, log=log)
        self.simulated_output = simulated_output
        self.orders: list[SwapOrder] = []

    async def submit_order(self, signer: EvmSigner, order: SwapOrder) -> str:
        order.check_deadline(self.clock())
        if self.simulated_output < order.minimum_output_amount:
            raise SlippageExceededError(
                f"Simulated output {self.simulated_output} below minimum {order.minimum_output_amount}"
            )

        self.orders.append(order)
        seed = f"{order.recipient}:{order.to_params()['path'].hex()}:{order.input_amount}:{len(self.orders)}"
        tx_hash = "0x" + hashlib.sha256(seed.encode()).hexdigest()
        self.logger.info(f"[DRY RUN] Simulated swap {order.input_amount} -> {self.simulated_output}: {tx_hash}")
        return tx_hash
