"""Exception hierarchy for the cross-chain transfer and swap pipeline.

Nothing in this package retries. Every error below propagates to the
sequencer, which aborts the run and reports what already happened on-chain.
"""

from typing import Optional


class XChainSwapError(Exception):
    """Base class for all pipeline errors."""


class InvalidPhraseError(XChainSwapError):
    """Raised when the secret phrase fails mnemonic validation."""


class InfeasibleTransferError(XChainSwapError):
    """Raised when the planner reports no usable min/max transfer range."""


class AmountOutOfRangeError(XChainSwapError):
    """Raised when a transfer amount is outside the planned bounds."""


class TransferRejectedError(XChainSwapError):
    """Raised when a cross-chain transfer is rejected by the chain or planner."""


class SwapRejectedError(XChainSwapError):
    """Raised when the routing contract rejects a swap."""


class SlippageExceededError(SwapRejectedError):
    """Raised when the realized output would be below the minimum output."""


class DeadlineExceededError(SwapRejectedError):
    """Raised when a swap cannot be included before its deadline."""


class InsufficientLiquidityError(SwapRejectedError):
    """Raised when no viable route exists along the hop path."""


class NetworkError(XChainSwapError):
    """Raised when a chain endpoint or the planning service is unreachable."""


class SequenceFailedError(XChainSwapError):
    """Raised when the orchestration sequence aborts.

    Attributes:
        state: State the sequencer was in when the failure happened
        leg: Human readable name of the failed leg
        tx_refs: Transaction references of the legs that completed
        cause: The underlying error
    """

    def __init__(
        self,
        state: str,
        leg: str,
        tx_refs: dict[str, str],
        cause: Optional[BaseException] = None,
    ):
        self.state = state
        self.leg = leg
        self.tx_refs = dict(tx_refs)
        self.cause = cause
        completed = ", ".join(f"{k}={v}" for k, v in self.tx_refs.items()) or "none"
        super().__init__(
            f"Sequence failed during {leg} (state {state}): {cause}. "
            f"Completed transactions: {completed}"
        )
