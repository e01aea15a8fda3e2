"""
Cryptographic primitives for the ZKX client.

Provides Stark-curve keys and signatures and trading account identity
derivation.
"""

from .stark import StarkKeyPair, StarkSignature, stark_key_from_public_key
from .identity import derive_account_id, split_account_id, generate_hex_id, generate_trading_account

__all__ = [
    "StarkKeyPair",
    "StarkSignature",
    "stark_key_from_public_key",
    "derive_account_id",
    "split_account_id",
    "generate_hex_id",
    "generate_trading_account",
]
