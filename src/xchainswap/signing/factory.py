"""Derive both signing identities from a single seed phrase.

Substrate: sr25519 keypair from the phrase's Substrate mini secret, SS58
address in the configured network format.

EVM: BIP44 path m/44'/60'/0'/0/0 over the standard BIP39 seed (PBKDF2,
empty passphrase, 64 bytes), signing through a live WebSocket connection.
"""

import logging
from typing import Callable, Optional

from bip_utils import Bip32Secp256k1, Bip39MnemonicValidator, Bip39SeedGenerator
from eth_account import Account
from web3 import Web3

from xchainswap.errors import InvalidPhraseError
from xchainswap.signing.base import SignerPair
from xchainswap.signing.evm import EvmSigner, connect_web3
from xchainswap.signing.substrate import SubstrateSigner

logger = logging.getLogger(__name__)

EVM_DERIVATION_PATH = "m/44'/60'/0'/0/0"

Web3Factory = Callable[..., Web3]


def validate_phrase(phrase: str) -> str:
    """Normalize and validate a BIP39 mnemonic.

    Raises:
        InvalidPhraseError: If the phrase has unknown words or a bad checksum
    """
    normalized = " ".join((phrase or "").split())
    if not normalized or not Bip39MnemonicValidator().IsValid(normalized):
        raise InvalidPhraseError("Seed phrase failed mnemonic validation")
    return normalized


def derive_evm_private_key(phrase: str, path: str = EVM_DERIVATION_PATH) -> bytes:
    """Raw 32-byte secp256k1 private key at the given BIP32 path."""
    seed = Bip39SeedGenerator(phrase).Generate("")
    node = Bip32Secp256k1.FromSeedAndPath(seed, path)
    return node.PrivateKey().Raw().ToBytes()


def derive_signers(
    phrase: str,
    *,
    ss58_format: int,
    ws_url: str,
    chain_id: int,
    chain_name: str,
    verify_connection: bool = True,
    web3_factory: Web3Factory = connect_web3,
    log: Optional[logging.Logger] = None,
) -> SignerPair:
    """Derive the Substrate and EVM signers for a phrase.

    The same phrase always yields the same pair of addresses. The EVM signer
    opens the run's shared WebSocket connection as a side effect.

    Args:
        phrase: BIP39 mnemonic
        ss58_format: SS58 address format of the Substrate network
        ws_url: EVM WebSocket RPC endpoint
        chain_id: Declared EVM chain id
        chain_name: Declared EVM chain name
        verify_connection: Check the remote chain id when connecting
        web3_factory: Connection factory (injectable for tests)
        log: Logger to use instead of the module logger

    Returns:
        SignerPair with both handles

    Raises:
        InvalidPhraseError: If the phrase is not a valid mnemonic
        NetworkError: If the EVM endpoint cannot be used
    """
    log = log or logger
    phrase = validate_phrase(phrase)

    substrate_signer = SubstrateSigner.from_phrase(phrase, ss58_format)

    account = Account.from_key(derive_evm_private_key(phrase))
    web3 = web3_factory(ws_url, chain_id, chain_name, verify=verify_connection, log=log)
    evm_signer = EvmSigner(account, web3, log=log)

    log.debug(f"Derived signers: substrate={substrate_signer.address} evm={evm_signer.address}")
    return SignerPair(substrate=substrate_signer, evm=evm_signer)
