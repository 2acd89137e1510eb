"""Command-line entry point: run the full transfer -> swap -> transfer sequence.

Usage:
    python -m xchainswap              # uses DRY_RUN from the environment (default: on)
    python -m xchainswap --live       # real transactions
    python -m xchainswap --addresses  # print derived addresses and exit
"""

import argparse
import asyncio
import logging
import sys
from typing import Optional

from pydantic import ValidationError

from xchainswap.config import Settings, get_settings
from xchainswap.errors import XChainSwapError
from xchainswap.sequencer import SequenceConfig, SequenceResult, TransferSequencer
from xchainswap.signing import SignerPair, derive_signers
from xchainswap.swap import DryRunSwapExecutor, SwapExecutor
from xchainswap.transfer import DryRunTransferPlanner, HttpTransferPlanner, TransferService

logger = logging.getLogger("xchainswap")


def build_signer_deriver(settings: Settings, log: logging.Logger):
    """Bind the phrase and EVM endpoint settings to derive_signers."""

    def derive() -> SignerPair:
        return derive_signers(
            settings.wallet_seed_phrase or "",
            ss58_format=settings.ss58_format,
            ws_url=settings.evm_ws_url,
            chain_id=settings.evm_chain_id,
            chain_name=settings.evm_chain_name,
            verify_connection=not settings.dry_run,
            log=log,
        )

    return derive


def build_sequencer(settings: Settings, log: logging.Logger) -> TransferSequencer:
    """Wire the sequencer with live or dry-run collaborators."""
    config = SequenceConfig.from_settings(settings)

    if settings.dry_run:
        planner = DryRunTransferPlanner(log=log)
        swaps: SwapExecutor = DryRunSwapExecutor(
            settings.router_address,
            simulated_output=config.swap_min_output_units,
            deadline_seconds=settings.swap_deadline_seconds,
            log=log,
        )
    else:
        planner = HttpTransferPlanner(
            settings.transfer_planner_url,
            timeout=settings.transfer_planner_timeout,
            log=log,
        )
        swaps = SwapExecutor(
            settings.router_address,
            deadline_seconds=settings.swap_deadline_seconds,
            poll_interval=settings.receipt_poll_interval,
            log=log,
        )

    return TransferSequencer(
        config,
        signer_deriver=build_signer_deriver(settings, log),
        transfer_service=TransferService(planner, log=log),
        swap_executor=swaps,
        log=log,
    )


async def run(settings: Settings, log: logging.Logger) -> SequenceResult:
    """Run one full sequence."""
    mode = "DRY RUN" if settings.dry_run else "LIVE"
    log.info(f"Starting sequence ({mode})")
    log.debug(f"Configuration: {settings.get_safe_dict()}")
    return await build_sequencer(settings, log).run()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="xchainswap",
        description="Transfer an asset to the EVM chain, swap it, and send the proceeds back.",
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--dry-run", dest="dry_run", action="store_true", default=None,
                      help="Simulate transfers and swaps")
    mode.add_argument("--live", dest="dry_run", action="store_false",
                      help="Send real transactions")
    parser.add_argument("--log-level", help="Override LOG_LEVEL (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--addresses", action="store_true",
                        help="Derive and print both addresses, then exit")
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point. Returns the process exit code."""
    args = parse_args(argv)

    try:
        overrides = {}
        if args.dry_run is not None:
            overrides["dry_run"] = args.dry_run
        if args.log_level:
            overrides["log_level"] = args.log_level
        # Init kwargs take priority over environment values and are validated the same way
        settings = Settings(**overrides) if overrides else get_settings()
    except ValidationError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(f"Invalid configuration: {e}")
        return 1

    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    log = logging.getLogger("xchainswap")

    try:
        if args.addresses:
            signers = build_signer_deriver(settings, log)()
            substrate_address, evm_address = signers.addresses
            print(f"ETH Address {evm_address}")
            print(f"Polkadot Address {substrate_address}")
            return 0

        result = asyncio.run(run(settings, log))
    except XChainSwapError as e:
        log.error(f"Run aborted: {e}")
        return 1
    except KeyboardInterrupt:
        log.warning("Interrupted; broadcast transactions may still be pending on-chain")
        return 130
    except Exception as e:
        log.exception(f"Unexpected error: {e}")
        return 1

    for leg, tx_hash in result.tx_refs.items():
        log.info(f"{leg}: {tx_hash}")
    print("done!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
