"""Tests for signer derivation and the two signing handles."""

import hashlib
from unittest.mock import MagicMock, PropertyMock, patch

import pytest
from eth_account import Account
from web3.exceptions import TransactionNotFound
from websockets.exceptions import InvalidHandshake

from conftest import OTHER_PHRASE, TEST_PHRASE, TEST_PHRASE_EVM_ADDRESS
from xchainswap.errors import InvalidPhraseError, NetworkError
from xchainswap.signing import (
    EvmSigner,
    SubstrateSigner,
    connect_web3,
    derive_signers,
    validate_phrase,
)
from xchainswap.signing.factory import derive_evm_private_key

DEV_PHRASE = "bottom drive obey lake curtain smoke basket hold race lonely fit walk"
DEV_PHRASE_PUBLIC_KEY = "46ebddef8cd9bb167dc30878d7113b7e168e6f0646beffd77d69d39bad76b47a"


def _derive(phrase, web3_factory, ss58_format=0):
    return derive_signers(
        phrase,
        ss58_format=ss58_format,
        ws_url="wss://example.invalid",
        chain_id=1284,
        chain_name="Moonbeam",
        web3_factory=web3_factory,
    )


class TestDeriveSigners:
    """Tests for derive_signers."""

    def test_evm_address_matches_reference_vector(self, signers):
        """m/44'/60'/0'/0/0 of the reference phrase is a well known address."""
        assert signers.evm.address == TEST_PHRASE_EVM_ADDRESS

    def test_derivation_is_deterministic(self, web3_factory):
        first = _derive(TEST_PHRASE, web3_factory)
        second = _derive(TEST_PHRASE, web3_factory)

        assert first.addresses == second.addresses
        assert first.substrate.public_key == second.substrate.public_key

    def test_different_phrases_give_different_signers(self, web3_factory):
        first = _derive(TEST_PHRASE, web3_factory)
        second = _derive(OTHER_PHRASE, web3_factory)

        assert first.evm.address != second.evm.address
        assert first.substrate.address != second.substrate.address

    def test_identities_are_independent(self, signers):
        """The sr25519 public key is not the EVM key material."""
        evm_key = derive_evm_private_key(TEST_PHRASE)
        assert signers.substrate.public_key != evm_key
        assert len(signers.substrate.public_key) == 32

    def test_ss58_format_comes_from_network_parameter(self, web3_factory):
        polkadot = _derive(TEST_PHRASE, web3_factory, ss58_format=0)
        generic = _derive(TEST_PHRASE, web3_factory, ss58_format=42)

        assert polkadot.substrate.public_key == generic.substrate.public_key
        assert polkadot.substrate.address.startswith("1")
        assert generic.substrate.address.startswith("5")

    def test_whitespace_is_normalized(self, web3_factory):
        messy = "  " + TEST_PHRASE.replace(" ", "   ") + "\n"
        assert _derive(messy, web3_factory).addresses == _derive(TEST_PHRASE, web3_factory).addresses

    def test_connection_opened_with_declared_network(self, web3_factory):
        _derive(TEST_PHRASE, web3_factory)

        web3_factory.assert_called_once()
        args, kwargs = web3_factory.call_args
        assert args == ("wss://example.invalid", 1284, "Moonbeam")
        assert kwargs["verify"] is True

    @pytest.mark.parametrize(
        "phrase",
        [
            "",
            "not a mnemonic at all",
            # Valid words, bad checksum
            "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon",
        ],
    )
    def test_invalid_phrase_rejected(self, phrase, web3_factory):
        with pytest.raises(InvalidPhraseError):
            _derive(phrase, web3_factory)

        web3_factory.assert_not_called()

    def test_validate_phrase_returns_normalized(self):
        assert validate_phrase(f" {TEST_PHRASE} ") == TEST_PHRASE


class TestSubstrateSigner:
    """Tests for the offline sr25519 signer."""

    def test_matches_substrate_dev_phrase_vector(self):
        """Root key of the Substrate dev phrase, as polkadot.js derives it."""
        signer = SubstrateSigner.from_phrase(DEV_PHRASE, ss58_format=42)

        assert signer.public_key.hex() == DEV_PHRASE_PUBLIC_KEY

    def test_sign_and_verify(self):
        signer = SubstrateSigner.from_phrase(TEST_PHRASE, ss58_format=0)
        message = b"transfer 15 USDT"

        signature = signer.sign(message)

        assert len(signature) == 64
        assert signer.verify(message, signature)
        assert not signer.verify(b"transfer 16 USDT", signature)

    def test_long_payload_is_hashed_before_signing(self):
        signer = SubstrateSigner.from_phrase(TEST_PHRASE, ss58_format=0)
        payload = b"\x01" * 300

        signature = signer.sign_payload(payload)

        digest = hashlib.blake2b(payload, digest_size=32).digest()
        assert signer.verify(digest, signature)

    def test_short_payload_signed_as_is(self):
        signer = SubstrateSigner.from_phrase(TEST_PHRASE, ss58_format=0)
        payload = b"\x02" * 100

        assert signer.verify(payload, signer.sign_payload(payload))

    def test_repr_hides_private_key(self):
        signer = SubstrateSigner.from_phrase(TEST_PHRASE, ss58_format=0)
        assert signer.address in repr(signer)
        assert signer._private_key.hex() not in repr(signer)


def _evm_signer():
    web3 = MagicMock()
    web3.eth.get_transaction_count.return_value = 7
    web3.eth.chain_id = 1284
    web3.eth.estimate_gas.return_value = 21000
    web3.eth.gas_price = 100_000_000_000
    web3.eth.send_raw_transaction.return_value = b"\xab" * 32
    account = Account.from_key(derive_evm_private_key(TEST_PHRASE))
    return EvmSigner(account, web3), web3


class TestEvmSigner:
    """Tests for the EVM signer."""

    def test_send_transaction_fills_missing_fields(self):
        signer, web3 = _evm_signer()

        tx_hash = signer.send_transaction({"to": TEST_PHRASE_EVM_ADDRESS, "value": 1, "data": "0x"})

        assert tx_hash == "0x" + "ab" * 32
        web3.eth.get_transaction_count.assert_called_once_with(signer.address, "pending")
        web3.eth.estimate_gas.assert_called_once()
        web3.eth.send_raw_transaction.assert_called_once()

    def test_send_transaction_keeps_given_fields(self):
        signer, web3 = _evm_signer()

        signer.send_transaction({
            "to": TEST_PHRASE_EVM_ADDRESS,
            "value": 0,
            "data": "0x",
            "nonce": 3,
            "gas": 50000,
            "gasPrice": 1,
            "chainId": 1284,
        })

        web3.eth.get_transaction_count.assert_not_called()
        web3.eth.estimate_gas.assert_not_called()

    def test_connection_error_becomes_network_error(self):
        signer, web3 = _evm_signer()
        web3.eth.send_raw_transaction.side_effect = ConnectionError("socket closed")

        with pytest.raises(NetworkError):
            signer.send_transaction({"to": TEST_PHRASE_EVM_ADDRESS, "value": 1, "data": "0x"})

    def test_websocket_failure_becomes_network_error(self):
        signer, web3 = _evm_signer()
        web3.eth.send_raw_transaction.side_effect = InvalidHandshake("server rejected upgrade")

        with pytest.raises(NetworkError):
            signer.send_transaction({"to": TEST_PHRASE_EVM_ADDRESS, "value": 1, "data": "0x"})

    @pytest.mark.asyncio
    async def test_websocket_drop_while_polling_becomes_network_error(self):
        signer, web3 = _evm_signer()
        web3.eth.get_transaction_receipt.side_effect = InvalidHandshake("closed")

        with pytest.raises(NetworkError):
            await signer.wait_for_receipt("0xabc", timeout=5, poll_interval=0)

    def test_is_connected(self):
        signer, web3 = _evm_signer()
        web3.is_connected.return_value = True
        assert signer.is_connected

        web3.is_connected.side_effect = OSError("closed")
        assert not signer.is_connected

    @pytest.mark.asyncio
    async def test_wait_for_receipt_polls_until_mined(self):
        signer, web3 = _evm_signer()
        web3.eth.get_transaction_receipt.side_effect = [
            TransactionNotFound("pending"),
            TransactionNotFound("pending"),
            {"status": 1, "blockNumber": 10},
        ]

        receipt = await signer.wait_for_receipt("0xabc", timeout=5, poll_interval=0)

        assert receipt["status"] == 1
        assert web3.eth.get_transaction_receipt.call_count == 3

    @pytest.mark.asyncio
    async def test_wait_for_receipt_times_out(self):
        signer, web3 = _evm_signer()
        web3.eth.get_transaction_receipt.side_effect = TransactionNotFound("pending")

        with pytest.raises(TimeoutError):
            await signer.wait_for_receipt("0xabc", timeout=0, poll_interval=0)


class TestConnectWeb3:
    """Tests for connect_web3."""

    def test_chain_id_verified(self):
        with patch("xchainswap.signing.evm.LegacyWebSocketProvider"), \
                patch("xchainswap.signing.evm.Web3") as web3_cls:
            web3_cls.return_value.eth.chain_id = 1284
            web3 = connect_web3("wss://example.invalid", 1284, "Moonbeam")

        assert web3 is web3_cls.return_value

    def test_chain_id_mismatch_raises(self):
        with patch("xchainswap.signing.evm.LegacyWebSocketProvider"), \
                patch("xchainswap.signing.evm.Web3") as web3_cls:
            web3_cls.return_value.eth.chain_id = 1
            with pytest.raises(NetworkError, match="expected 1284"):
                connect_web3("wss://example.invalid", 1284, "Moonbeam")

    def test_unreachable_endpoint_raises(self):
        with patch("xchainswap.signing.evm.LegacyWebSocketProvider"), \
                patch("xchainswap.signing.evm.Web3") as web3_cls:
            type(web3_cls.return_value.eth).chain_id = PropertyMock(side_effect=OSError("refused"))
            with pytest.raises(NetworkError, match="Cannot reach"):
                connect_web3("wss://example.invalid", 1284, "Moonbeam")

    def test_websocket_handshake_failure_raises(self):
        with patch("xchainswap.signing.evm.LegacyWebSocketProvider"), \
                patch("xchainswap.signing.evm.Web3") as web3_cls:
            type(web3_cls.return_value.eth).chain_id = PropertyMock(side_effect=InvalidHandshake("403"))
            with pytest.raises(NetworkError, match="Cannot reach"):
                connect_web3("wss://example.invalid", 1284, "Moonbeam")

    def test_no_verification_skips_query(self):
        with patch("xchainswap.signing.evm.LegacyWebSocketProvider"), \
                patch("xchainswap.signing.evm.Web3") as web3_cls:
            type(web3_cls.return_value.eth).chain_id = PropertyMock(side_effect=OSError("refused"))
            connect_web3("wss://example.invalid", 1284, "Moonbeam", verify=False)
