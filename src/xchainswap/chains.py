"""Chain and asset registry for the transfer pipeline.

Two chain families are involved:
- Substrate (Polkadot Asset Hub): sr25519 keys, SS58 addresses
- EVM (Moonbeam): secp256k1 keys, 0x addresses, assets exposed as ERC-20 precompiles
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

SUBSTRATE = "substrate"
EVM = "evm"


@dataclass(frozen=True)
class ChainConfig:
    """Configuration for a blockchain."""

    key: str
    name: str
    family: str  # SUBSTRATE or EVM
    fee_asset: str

    ws_url: Optional[str] = None  # EVM chains only; Substrate I/O goes through the planner
    chain_id: Optional[int] = None  # EVM chains only
    ss58_format: Optional[int] = None  # Substrate chains only


@dataclass(frozen=True)
class AssetConfig:
    """Configuration for a transferable asset."""

    symbol: str
    decimals: int
    evm_address: Optional[str] = None  # XC-20 precompile on the EVM chain


# ======================
# Chain Configurations
# ======================

CHAINS: dict[str, ChainConfig] = {
    "polkadot-asset-hub": ChainConfig(
        key="polkadot-asset-hub",
        name="Polkadot Asset Hub",
        family=SUBSTRATE,
        fee_asset="DOT",
        ss58_format=0,  # Polkadot relay/system chains
    ),
    "moonbeam": ChainConfig(
        key="moonbeam",
        name="Moonbeam",
        family=EVM,
        ws_url="wss://wss.api.moonbeam.network",
        fee_asset="GLMR",
        chain_id=1284,
    ),
}

# ======================
# Asset Configurations
# ======================

ASSETS: dict[str, AssetConfig] = {
    "USDT": AssetConfig(
        symbol="USDT",
        decimals=6,
        evm_address="0xffffffffea09fb06d082fd1275cd48b191cbcd1d",
    ),
    "DOT": AssetConfig(
        symbol="DOT",
        decimals=10,
        evm_address="0xffffffff1fcacbd218edc0eba20fc2308c778080",
    ),
}


def get_chain(key: str) -> ChainConfig:
    """Get chain configuration by key."""
    chain = CHAINS.get(key.lower())
    if chain is None:
        raise KeyError(f"Unknown chain '{key}'. Supported: {', '.join(CHAINS)}")
    return chain


def get_asset(symbol: str) -> AssetConfig:
    """Get asset configuration by symbol."""
    asset = ASSETS.get(symbol.upper())
    if asset is None:
        raise KeyError(f"Unknown asset '{symbol}'. Supported: {', '.join(ASSETS)}")
    return asset


def to_base_units(amount: Decimal, decimals: int) -> int:
    """Convert a human amount to the asset's smallest unit.

    Args:
        amount: Amount in whole units (e.g. Decimal("15") USDT)
        decimals: Asset decimals (6 for USDT, 10 for DOT)

    Returns:
        Integer amount x 10^decimals

    Raises:
        ValueError: If the amount is negative or more precise than the asset allows
    """
    amount = Decimal(amount)
    if amount < 0:
        raise ValueError(f"Amount must not be negative: {amount}")
    scaled = amount.scaleb(decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(f"Amount {amount} has more than {decimals} decimal places")
    return int(scaled)


def from_base_units(raw: int, decimals: int) -> Decimal:
    """Convert smallest units back to a human amount."""
    return Decimal(raw).scaleb(-decimals)
