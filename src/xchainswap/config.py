"""Application configuration using pydantic-settings.

Every value the pipeline needs (seed phrase, endpoints, contract addresses,
timing windows and leg amounts) is a named field, validated at startup.

Chain and token parameters left unset are filled from the registry in
`xchainswap.chains`; values that are set must agree with it.
"""

import logging
from decimal import Decimal
from functools import lru_cache
from typing import Optional

from eth_utils import is_address, to_checksum_address
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from xchainswap.chains import EVM, SUBSTRATE, get_asset, get_chain, to_base_units


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # Run
    # ======================
    log_level: str = Field(default="INFO", description="Logging verbosity (DEBUG, INFO, ...)")
    dry_run: bool = Field(default=True, description="Simulate transfers and swaps (no real transactions)")

    # ======================
    # Wallet
    # ======================
    wallet_seed_phrase: Optional[str] = Field(
        default=None,
        description="BIP39 seed phrase; production deployments should inject it from a secret store",
    )

    # ======================
    # Chains
    # ======================
    source_chain: str = Field(default="polkadot-asset-hub", description="Substrate chain holding the funds")
    destination_chain: str = Field(default="moonbeam", description="EVM chain where the swap happens")
    ss58_format: Optional[int] = Field(
        default=None, ge=0, le=16383, description="SS58 address format (default: source chain's)"
    )
    evm_ws_url: Optional[str] = Field(default=None, description="EVM WebSocket RPC URL (default: registry endpoint)")
    evm_chain_id: Optional[int] = Field(default=None, gt=0, description="Declared EVM chain id (default: registry)")
    evm_chain_name: Optional[str] = Field(default=None, description="Declared EVM chain name (default: registry)")

    # ======================
    # Transfer planning service
    # ======================
    transfer_planner_url: str = Field(
        default="http://localhost:3000", description="Base URL of the transfer-planning service"
    )
    transfer_planner_timeout: float = Field(default=60.0, gt=0, description="HTTP timeout in seconds")

    # ======================
    # Swap
    # ======================
    router_address: str = Field(
        default="0xe6d0ed3759709b743707dcfecae39bc180c981fe",
        description="Routing contract for exact-input swaps",
    )
    swap_deadline_seconds: int = Field(default=1200, gt=0, description="Swap expiry window")
    swap_input_token: Optional[str] = Field(
        default=None, description="Input token (default: outbound asset's EVM address)"
    )
    swap_output_token: Optional[str] = Field(
        default=None, description="Output token (default: return asset's EVM address)"
    )
    swap_intermediate_tokens: str = Field(
        default="", description="Comma-separated intermediate hop tokens for multi-hop routes"
    )
    swap_amount_in: Decimal = Field(default=Decimal("15"), gt=0, description="Swap input in whole units")
    swap_input_decimals: Optional[int] = Field(default=None, ge=0, description="Input token decimals")
    swap_min_amount_out: Decimal = Field(default=Decimal("2"), ge=0, description="Minimum output in whole units")
    swap_output_decimals: Optional[int] = Field(default=None, ge=0, description="Output token decimals")
    receipt_poll_interval: float = Field(default=2.0, gt=0, description="Seconds between receipt polls")

    # ======================
    # Legs
    # ======================
    outbound_asset: str = Field(default="USDT", description="Asset sent to the EVM chain and swapped")
    outbound_amount: Decimal = Field(default=Decimal("15"), gt=0, description="Outbound transfer amount")
    return_asset: str = Field(default="DOT", description="Swap output, sent back after the swap")
    return_amount: Decimal = Field(default=Decimal("1"), gt=0, description="Return transfer amount")
    settle_wait_seconds: float = Field(
        default=20.0,
        ge=0,
        description="Fixed wait between legs; a heuristic, not a finality guarantee",
    )

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        level = value.upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("source_chain", "destination_chain")
    @classmethod
    def _check_chain(cls, value: str) -> str:
        try:
            return get_chain(value).key
        except KeyError as e:
            raise ValueError(str(e)) from e

    @field_validator("router_address", "swap_input_token", "swap_output_token")
    @classmethod
    def _check_address(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not is_address(value):
            raise ValueError(f"Invalid EVM address: {value}")
        return to_checksum_address(value)

    @field_validator("swap_intermediate_tokens")
    @classmethod
    def _check_intermediate(cls, value: str) -> str:
        for token in (t.strip() for t in value.split(",") if t.strip()):
            if not is_address(token):
                raise ValueError(f"Invalid EVM address in hop path: {token}")
        return value

    @field_validator("outbound_asset", "return_asset")
    @classmethod
    def _check_asset(cls, value: str) -> str:
        try:
            return get_asset(value).symbol
        except KeyError as e:
            raise ValueError(str(e)) from e

    @model_validator(mode="after")
    def _resolve_from_registry(self) -> "Settings":
        self._check_chains()
        self._check_swap_assets()
        self._check_precision()
        return self

    def _check_chains(self) -> None:
        source = get_chain(self.source_chain)
        destination = get_chain(self.destination_chain)
        if source.family != SUBSTRATE:
            raise ValueError(f"source_chain must be a Substrate chain, got '{self.source_chain}'")
        if destination.family != EVM:
            raise ValueError(f"destination_chain must be an EVM chain, got '{self.destination_chain}'")

        self.ss58_format = _agree("ss58_format", self.ss58_format, source.ss58_format)
        self.evm_chain_id = _agree("evm_chain_id", self.evm_chain_id, destination.chain_id)
        if self.evm_ws_url is None:
            self.evm_ws_url = destination.ws_url
        if self.evm_chain_name is None:
            self.evm_chain_name = destination.name

    def _check_swap_assets(self) -> None:
        swap_in = get_asset(self.outbound_asset)
        swap_out = get_asset(self.return_asset)

        self.swap_input_token = _agree(
            "swap_input_token", self.swap_input_token, to_checksum_address(swap_in.evm_address)
        )
        self.swap_output_token = _agree(
            "swap_output_token", self.swap_output_token, to_checksum_address(swap_out.evm_address)
        )
        self.swap_input_decimals = _agree("swap_input_decimals", self.swap_input_decimals, swap_in.decimals)
        self.swap_output_decimals = _agree("swap_output_decimals", self.swap_output_decimals, swap_out.decimals)

    def _check_precision(self) -> None:
        # Amounts are converted to base units mid-run; a bad one must fail before any leg is sent
        amounts = (
            ("outbound_amount", self.outbound_amount, get_asset(self.outbound_asset).decimals),
            ("swap_amount_in", self.swap_amount_in, self.swap_input_decimals),
            ("swap_min_amount_out", self.swap_min_amount_out, self.swap_output_decimals),
            ("return_amount", self.return_amount, get_asset(self.return_asset).decimals),
        )
        for name, amount, decimals in amounts:
            try:
                to_base_units(amount, decimals)
            except ValueError as e:
                raise ValueError(f"{name}: {e}") from e

    @property
    def hop_path(self) -> list[str]:
        """Full swap route: input token, intermediates, output token."""
        middle = [
            to_checksum_address(t.strip())
            for t in self.swap_intermediate_tokens.split(",")
            if t.strip()
        ]
        return [self.swap_input_token, *middle, self.swap_output_token]

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "log_level": self.log_level,
            "dry_run": self.dry_run,
            "wallet_seed_phrase": "***" if self.wallet_seed_phrase else "(not set)",
            "chains": {
                "source": self.source_chain,
                "destination": self.destination_chain,
                "ss58_format": self.ss58_format,
                "evm": {
                    "ws_url": self.evm_ws_url,
                    "chain_id": self.evm_chain_id,
                    "name": self.evm_chain_name,
                },
            },
            "transfer_planner": {
                "url": self.transfer_planner_url,
                "timeout": self.transfer_planner_timeout,
            },
            "swap": {
                "router": self.router_address,
                "deadline_seconds": self.swap_deadline_seconds,
                "path": self.hop_path,
                "amount_in": str(self.swap_amount_in),
                "min_amount_out": str(self.swap_min_amount_out),
            },
            "legs": {
                "outbound": f"{self.outbound_amount} {self.outbound_asset}",
                "return": f"{self.return_amount} {self.return_asset}",
                "settle_wait_seconds": self.settle_wait_seconds,
            },
        }


def _agree(name: str, value, registry_value):
    """Fill an unset value from the registry, or check a set one against it."""
    if value is None:
        return registry_value
    if value != registry_value:
        raise ValueError(f"{name}={value} does not match the chain registry ({registry_value})")
    return value


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
