"""Cross-chain transfer and swap pipeline.

Moves an asset from a Substrate chain to an EVM chain, swaps it there through
a router contract, and sends the proceeds back, all from one seed phrase.
"""

__version__ = "0.1.0"
