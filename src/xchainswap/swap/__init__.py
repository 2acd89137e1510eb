"""Exact-input swaps through an on-chain routing contract."""

from xchainswap.swap.executor import DryRunSwapExecutor, SwapExecutor, SwapOrder
from xchainswap.swap.path import decode_path, encode_path

__all__ = [
    "SwapExecutor",
    "DryRunSwapExecutor",
    "SwapOrder",
    "encode_path",
    "decode_path",
]
