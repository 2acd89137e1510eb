"""Signing identities for both chain families, derived from one seed phrase."""

from xchainswap.signing.base import SignerPair
from xchainswap.signing.evm import EvmSigner, connect_web3
from xchainswap.signing.factory import EVM_DERIVATION_PATH, derive_signers, validate_phrase
from xchainswap.signing.substrate import SubstrateSigner

__all__ = [
    "SignerPair",
    "EvmSigner",
    "SubstrateSigner",
    "connect_web3",
    "derive_signers",
    "validate_phrase",
    "EVM_DERIVATION_PATH",
]
