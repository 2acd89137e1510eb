"""Pytest configuration and fixtures."""

import os
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest

# Set test environment
os.environ["DRY_RUN"] = "true"
os.environ.pop("WALLET_SEED_PHRASE", None)

from xchainswap.chains import get_asset, get_chain
from xchainswap.sequencer import SequenceConfig
from xchainswap.signing import derive_signers

# BIP39 reference vectors
TEST_PHRASE = "abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon abandon about"
OTHER_PHRASE = "legal winner thank year wave sausage worth useful legal winner thank yellow"
TEST_PHRASE_EVM_ADDRESS = "0x9858EfFD232B4033E47d90003D41EC34EcaEda94"

USDT_TOKEN = "0xffffffffea09fb06d082fd1275cd48b191cbcd1d"
DOT_TOKEN = "0xffffffff1fcacbd218edc0eba20fc2308c778080"
ROUTER = "0xe6d0ed3759709b743707dcfecae39bc180c981fe"


@pytest.fixture
def web3_factory():
    """Connection factory that never touches the network."""
    return MagicMock(side_effect=lambda *args, **kwargs: MagicMock(name="web3"))


@pytest.fixture
def signers(web3_factory):
    """Real signer pair for TEST_PHRASE on an offline web3."""
    return derive_signers(
        TEST_PHRASE,
        ss58_format=0,
        ws_url="wss://example.invalid",
        chain_id=1284,
        chain_name="Moonbeam",
        web3_factory=web3_factory,
    )


@pytest.fixture
def mock_signers():
    """Signer pair stand-in with fixed addresses."""
    pair = MagicMock(name="signers")
    pair.substrate.address = "1substrate"
    pair.evm.address = "0xevm"
    pair.addresses = ("1substrate", "0xevm")
    return pair


@pytest.fixture
def sequence_config():
    """The standard USDT -> DOT run."""
    return SequenceConfig(
        source_chain=get_chain("polkadot-asset-hub"),
        destination_chain=get_chain("moonbeam"),
        outbound_asset=get_asset("USDT"),
        outbound_amount=Decimal("15"),
        swap_amount_in=Decimal("15"),
        swap_input_decimals=6,
        swap_min_amount_out=Decimal("2"),
        swap_output_decimals=10,
        hop_path=[USDT_TOKEN, DOT_TOKEN],
        return_asset=get_asset("DOT"),
        return_amount=Decimal("1"),
        settle_wait_seconds=20.0,
    )


@pytest.fixture
def fake_sleep():
    return AsyncMock()
