"""HTTP client for the external transfer-planning service.

The service computes cross-chain transfer data and builds the transfers;
keys never leave this process. Endpoints:

    POST /transfer-data   query -> balances, fees, min/max
    POST /transfer        query + amount -> unsigned work:
                            {"type": "evm", "tx": {to, data, value, gas?}}
                            {"type": "substrate", "payload": "0x..", "submissionId": ".."}
    POST /submit          submissionId + signature -> {"txHash": "0x.."}

EVM transactions are signed and broadcast here through the run's EVM
connection. Substrate payloads are signed offline and returned for submission.

Amounts on the wire are decimal strings in whole units.
"""

import logging
from decimal import Decimal, InvalidOperation
from typing import Optional

import httpx

from xchainswap.errors import InfeasibleTransferError, NetworkError, TransferRejectedError
from xchainswap.transfer.base import AssetAmount, TransferPlan, TransferPlanner, TransferQuery

logger = logging.getLogger(__name__)


def _parse_amount(data: dict) -> AssetAmount:
    return AssetAmount(
        amount=Decimal(str(data["amount"])),
        symbol=str(data["symbol"]),
        decimals=int(data["decimals"]),
    )


def _to_int(value) -> int:
    """Accept ints, decimal strings or 0x hex strings."""
    if isinstance(value, int):
        return value
    value = str(value)
    return int(value, 16) if value.startswith("0x") else int(value)


class HttpTransferPlanner(TransferPlanner):
    """Transfer planner backed by an HTTP planning service."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log: Optional[logging.Logger] = None,
    ):
        """Initialize the planner.

        Args:
            base_url: Service base URL
            timeout: Request timeout in seconds
            transport: Optional httpx transport (tests use httpx.MockTransport)
            log: Logger to use instead of the module logger
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.logger = log or logger

    @property
    def name(self) -> str:
        return "HTTP transfer planner"

    async def _post(self, path: str, payload: dict, rejected: type[Exception]) -> dict:
        """POST JSON and return the decoded body.

        4xx responses raise `rejected`; transport failures and 5xx raise NetworkError.
        """
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url, timeout=self.timeout, transport=self.transport
            ) as client:
                response = await client.post(path, json=payload)
        except httpx.TransportError as e:
            raise NetworkError(f"Transfer planner unreachable ({path}): {e}") from e

        if response.status_code >= 500:
            raise NetworkError(f"Transfer planner error {response.status_code} on {path}")
        if response.status_code >= 400:
            raise rejected(f"Transfer planner refused {path}: {response.text}")

        try:
            return response.json()
        except ValueError as e:
            raise rejected(f"Invalid JSON from transfer planner ({path})") from e

    async def get_transfer_plan(self, query: TransferQuery) -> TransferPlan:
        data = await self._post("/transfer-data", query.to_dict(), InfeasibleTransferError)

        try:
            plan = TransferPlan(
                source_chain=query.source_chain,
                destination_chain=query.destination_chain,
                asset=query.asset,
                source_balance=_parse_amount(data["source"]["balance"]),
                destination_balance=_parse_amount(data["destination"]["balance"]),
                source_fee=_parse_amount(data["source"]["fee"]),
                destination_fee=_parse_amount(data["destination"]["fee"]),
                min_amount=_parse_amount(data["min"]),
                max_amount=_parse_amount(data["max"]),
                submit=lambda amount: self._transfer(query, amount),
            )
        except (KeyError, TypeError, ValueError, InvalidOperation) as e:
            raise InfeasibleTransferError(f"Malformed transfer data: {e}") from e

        self.logger.debug(f"Transfer data for {query.asset.symbol}: {data}")
        return plan

    async def _transfer(self, query: TransferQuery, amount: Decimal) -> str:
        payload = {**query.to_dict(), "amount": str(amount)}
        work = await self._post("/transfer", payload, TransferRejectedError)

        kind = work.get("type")
        if kind == "evm":
            return self._send_evm(query, work)
        if kind == "substrate":
            return await self._submit_substrate(query, work)
        raise TransferRejectedError(f"Unknown transfer type from planner: {kind!r}")

    def _send_evm(self, query: TransferQuery, work: dict) -> str:
        try:
            raw = work["tx"]
            tx = {
                "to": raw["to"],
                "data": raw.get("data", "0x"),
                "value": _to_int(raw.get("value", 0)),
            }
            if "gas" in raw:
                tx["gas"] = _to_int(raw["gas"])
        except (KeyError, TypeError, ValueError) as e:
            raise TransferRejectedError(f"Malformed EVM transfer from planner: {e}") from e

        return query.signers.evm.send_transaction(tx)

    async def _submit_substrate(self, query: TransferQuery, work: dict) -> str:
        try:
            payload = bytes.fromhex(work["payload"].removeprefix("0x"))
            submission_id = work["submissionId"]
        except (KeyError, AttributeError, ValueError) as e:
            raise TransferRejectedError(f"Malformed Substrate transfer from planner: {e}") from e

        signer = query.signers.substrate
        signature = signer.sign_payload(payload)
        result = await self._post(
            "/submit",
            {
                "submissionId": submission_id,
                "address": signer.address,
                "signature": "0x" + signature.hex(),
            },
            TransferRejectedError,
        )

        tx_hash = result.get("txHash")
        if not tx_hash:
            raise TransferRejectedError(f"Planner did not return a tx hash: {result}")
        return tx_hash
