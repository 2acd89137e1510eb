"""Cross-chain transfer planning and execution."""

from xchainswap.transfer.base import AssetAmount, TransferPlan, TransferPlanner, TransferQuery
from xchainswap.transfer.dry_run import DryRunTransferPlanner
from xchainswap.transfer.http import HttpTransferPlanner
from xchainswap.transfer.service import TransferService

__all__ = [
    "AssetAmount",
    "TransferPlan",
    "TransferPlanner",
    "TransferQuery",
    "TransferService",
    "HttpTransferPlanner",
    "DryRunTransferPlanner",
]
