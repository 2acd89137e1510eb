"""EVM transaction signer bound to a live WebSocket connection.

The connection is opened once per run and shared by every EVM-side step
(outbound transfer receipt, token approval, swap, return transfer).
"""

import asyncio
import logging
from typing import Optional

from eth_account.signers.local import LocalAccount
from web3 import LegacyWebSocketProvider, Web3
from web3.exceptions import TransactionNotFound
from websockets.exceptions import WebSocketException

from xchainswap.errors import NetworkError

logger = logging.getLogger(__name__)

# What a dropped or refused WebSocket connection surfaces as
CONNECTION_ERRORS = (ConnectionError, OSError, WebSocketException)


def connect_web3(
    ws_url: str,
    chain_id: int,
    chain_name: str,
    verify: bool = True,
    log: Optional[logging.Logger] = None,
) -> Web3:
    """Open a persistent WebSocket connection to an EVM chain.

    Args:
        ws_url: WebSocket RPC endpoint
        chain_id: Declared chain id; the remote chain must report the same value
        chain_name: Declared chain name (for messages)
        verify: Query the remote chain id before returning

    Raises:
        NetworkError: If the endpoint is unreachable or serves another chain
    """
    log = log or logger
    web3 = Web3(LegacyWebSocketProvider(ws_url))
    if not verify:
        return web3

    try:
        remote_chain_id = web3.eth.chain_id
    except CONNECTION_ERRORS as e:
        raise NetworkError(f"Cannot reach {chain_name} at {ws_url}: {e}") from e

    if remote_chain_id != chain_id:
        raise NetworkError(
            f"{ws_url} serves chain id {remote_chain_id}, expected {chain_id} ({chain_name})"
        )
    log.debug(f"Connected to {chain_name} (chain id {chain_id})")
    return web3


class EvmSigner:
    """secp256k1 signer that can also broadcast and track transactions."""

    def __init__(self, account: LocalAccount, web3: Web3, log: Optional[logging.Logger] = None):
        self.account = account
        self.web3 = web3
        self.logger = log or logger

    @property
    def address(self) -> str:
        return self.account.address

    @property
    def is_connected(self) -> bool:
        """Check if the WebSocket connection is still usable."""
        try:
            return bool(self.web3.is_connected())
        except CONNECTION_ERRORS:
            return False

    def get_nonce(self) -> int:
        """Next nonce for this account, counting pending transactions."""
        try:
            return self.web3.eth.get_transaction_count(self.address, "pending")
        except CONNECTION_ERRORS as e:
            raise NetworkError(f"Failed to get nonce for {self.address}: {e}") from e

    def send_transaction(self, tx_params: dict) -> str:
        """Sign and broadcast a transaction.

        Missing from/nonce/chainId/gas/gasPrice fields are filled from the chain.

        Returns:
            Transaction hash (0x-prefixed hex)

        Raises:
            NetworkError: If the connection drops while preparing or sending
        """
        tx = dict(tx_params)
        tx.setdefault("from", self.address)

        try:
            if "nonce" not in tx:
                tx["nonce"] = self.get_nonce()
            if "chainId" not in tx:
                tx["chainId"] = self.web3.eth.chain_id
            if "gas" not in tx:
                tx["gas"] = self.web3.eth.estimate_gas(tx)
            if "gasPrice" not in tx and "maxFeePerGas" not in tx:
                tx["gasPrice"] = self.web3.eth.gas_price

            signed_tx = self.account.sign_transaction(tx)
            # eth-account >= 0.13 uses raw_transaction, older versions rawTransaction
            raw_tx = getattr(signed_tx, "raw_transaction", None) or signed_tx.rawTransaction
            tx_hash = self.web3.eth.send_raw_transaction(raw_tx)
        except CONNECTION_ERRORS as e:
            raise NetworkError(f"Failed to send transaction from {self.address}: {e}") from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        self.logger.debug(f"Broadcast {tx_hash_hex} (nonce {tx['nonce']})")
        return tx_hash_hex

    async def wait_for_receipt(
        self,
        tx_hash: str,
        timeout: float,
        poll_interval: float = 2.0,
    ) -> dict:
        """Wait until a transaction is included in a block.

        Args:
            tx_hash: Transaction hash to wait for
            timeout: Maximum seconds to wait
            poll_interval: Seconds between receipt lookups

        Returns:
            Transaction receipt dict (status may be 0 for reverted transactions)

        Raises:
            TimeoutError: If the transaction is not included within timeout
            NetworkError: If the connection drops while polling
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout

        while True:
            try:
                receipt = self.web3.eth.get_transaction_receipt(tx_hash)
                if receipt is not None:
                    return dict(receipt)
            except TransactionNotFound:
                pass
            except CONNECTION_ERRORS as e:
                raise NetworkError(f"Lost connection while waiting for {tx_hash}: {e}") from e

            if loop.time() >= deadline:
                raise TimeoutError(f"Transaction {tx_hash} not confirmed after {timeout}s")
            await asyncio.sleep(poll_interval)

    def __repr__(self) -> str:
        return f"EvmSigner(address={self.address!r})"
