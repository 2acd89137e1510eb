"""Signer pair shared by every step of a run."""

from dataclasses import dataclass

from xchainswap.signing.evm import EvmSigner
from xchainswap.signing.substrate import SubstrateSigner


@dataclass(frozen=True)
class SignerPair:
    """Both signing identities derived from the same phrase.

    Attributes:
        substrate: Offline sr25519 signer for the Substrate chain
        evm: secp256k1 signer bound to the live EVM connection
    """

    substrate: SubstrateSigner
    evm: EvmSigner

    @property
    def addresses(self) -> tuple[str, str]:
        """(substrate address, evm address)."""
        return self.substrate.address, self.evm.address
