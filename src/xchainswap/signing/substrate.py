"""Substrate (sr25519) signer.

The keypair is derived the way Substrate wallets derive it from a bare
mnemonic: PBKDF2 over the BIP39 entropy (not the sentence) yields a 32-byte
mini secret, which is expanded into an sr25519 keypair. Addresses are SS58
encoded with the network's format number.

This signer never touches the network; submission is handled elsewhere.
"""

import hashlib

import sr25519
from bip_utils import SS58Encoder, SubstrateBip39SeedGenerator

# Substrate signs the blake2b-256 hash of payloads longer than this
MAX_UNHASHED_PAYLOAD = 256


class SubstrateSigner:
    """Offline sr25519 signing handle.

    Example:
        signer = SubstrateSigner.from_phrase("word1 word2 ...", ss58_format=0)
        signature = signer.sign(payload)
    """

    def __init__(self, public_key: bytes, private_key: bytes, ss58_format: int):
        self.public_key = public_key
        self._private_key = private_key
        self.ss58_format = ss58_format
        self.address = SS58Encoder.Encode(public_key, ss58_format)

    @classmethod
    def from_phrase(cls, phrase: str, ss58_format: int) -> "SubstrateSigner":
        """Derive the keypair from a mnemonic (empty password, no derivation junctions)."""
        mini_secret = SubstrateBip39SeedGenerator(phrase).Generate()[:32]
        public_key, private_key = sr25519.pair_from_seed(mini_secret)
        return cls(public_key, private_key, ss58_format)

    def sign(self, message: bytes) -> bytes:
        """Sign raw bytes, returning a 64-byte sr25519 signature."""
        return sr25519.sign((self.public_key, self._private_key), message)

    def sign_payload(self, payload: bytes) -> bytes:
        """Sign an extrinsic signing payload, hashing it first when it is long."""
        if len(payload) > MAX_UNHASHED_PAYLOAD:
            payload = hashlib.blake2b(payload, digest_size=32).digest()
        return self.sign(payload)

    def verify(self, message: bytes, signature: bytes) -> bool:
        """Verify a signature made by this keypair."""
        return sr25519.verify(signature, message, self.public_key)

    def __repr__(self) -> str:
        return f"SubstrateSigner(address={self.address!r})"
