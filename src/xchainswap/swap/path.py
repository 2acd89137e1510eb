"""Hop path encoding for multi-hop exact-input swaps.

A path is the raw 20-byte addresses of each hop concatenated in traversal
order, with no separators or fee fields in between.
"""

from typing import Sequence

from eth_utils import is_address, to_canonical_address, to_checksum_address

ADDRESS_SIZE = 20
MIN_HOPS = 2


def encode_path(hops: Sequence[str]) -> bytes:
    """Encode token addresses into router path bytes.

    Raises:
        ValueError: If fewer than two hops are given or a hop is not an address
    """
    if len(hops) < MIN_HOPS:
        raise ValueError(f"Hop path needs at least {MIN_HOPS} tokens, got {len(hops)}")

    encoded = b""
    for hop in hops:
        if not is_address(hop):
            raise ValueError(f"Invalid hop address: {hop}")
        encoded += to_canonical_address(hop)
    return encoded


def decode_path(data: bytes) -> list[str]:
    """Split router path bytes back into checksummed addresses.

    Raises:
        ValueError: If the data is not a whole number of addresses or too short
    """
    if len(data) % ADDRESS_SIZE:
        raise ValueError(f"Path length {len(data)} is not a multiple of {ADDRESS_SIZE}")
    if len(data) < MIN_HOPS * ADDRESS_SIZE:
        raise ValueError(f"Path must contain at least {MIN_HOPS} addresses")

    return [
        to_checksum_address(data[i:i + ADDRESS_SIZE])
        for i in range(0, len(data), ADDRESS_SIZE)
    ]
