"""
Hash Functions

Blake2b-256 for account identities, keccak for the generic data-signing
helper, and the Stark-field hashes (Pedersen, Poseidon) that order and
withdrawal signatures are computed over.
"""

import hashlib
from enum import IntEnum
from typing import Iterable, List

from Crypto.Hash import keccak
from poseidon_py.poseidon_hash import poseidon_hash_many
from starknet_py.constants import FIELD_PRIME
from starknet_py.hash.utils import compute_hash_on_elements

from ..runtime.errors import ValueOutOfRange

MASK_250 = (1 << 250) - 1


class HashType(IntEnum):
    """Hash function a payload is signed with; the value is its on-chain tag."""
    PEDERSEN = 0
    POSEIDON = 1


def blake2_256(data: bytes) -> bytes:
    """
    Compute the 32-byte Blake2b digest of data.

    Args:
        data: Input bytes

    Returns:
        Blake2b-256 hash (32 bytes)
    """
    return hashlib.blake2b(data, digest_size=32).digest()


def keccak_256(data: bytes) -> bytes:
    """Compute the Ethereum-style keccak-256 digest of data."""
    return keccak.new(digest_bits=256, data=data).digest()


def starknet_keccak(data: bytes) -> int:
    """
    Keccak-256 of data truncated to 250 bits, so it fits a field element.

    Args:
        data: Input bytes

    Returns:
        Hash as int
    """
    return int.from_bytes(keccak_256(data), "big") & MASK_250


def to_field_element(value: int) -> int:
    """
    Map a signed integer into the Stark field.

    Negative values wrap around the prime, so -100 becomes P - 100, matching
    the runtime's FixedI128 to felt conversion.

    Raises:
        ValueOutOfRange: If abs(value) is not below the field prime
    """
    if value >= FIELD_PRIME or value <= -FIELD_PRIME:
        raise ValueOutOfRange(
            f"{value} is outside the Stark field",
            details={"prime": FIELD_PRIME},
        )
    return value % FIELD_PRIME


def hash_on_elements(elements: Iterable[int], hash_type: HashType = HashType.PEDERSEN) -> int:
    """
    Hash an ordered list of field elements.

    Pedersen computes h(h(h(h(0, e0), e1), ...), e[n-1]), n); Poseidon uses
    poseidon_hash_many. Order matters and no element is dropped.

    Args:
        elements: Signed integers, mapped into the field first
        hash_type: Which hash function to use

    Returns:
        Hash as int
    """
    felts: List[int] = [to_field_element(e) for e in elements]

    if hash_type == HashType.POSEIDON:
        return poseidon_hash_many(felts)
    return compute_hash_on_elements(felts)


__all__ = [
    "FIELD_PRIME",
    "HashType",
    "blake2_256",
    "keccak_256",
    "starknet_keccak",
    "to_field_element",
    "hash_on_elements",
]
