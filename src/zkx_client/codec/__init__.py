"""
Encoding layer for ZKX chain values.

Numeric conversions between decimals, fixed-point integers, hex and packed
strings, plus the hash primitives used for identities and signatures.
"""

from .numeric import (
    FIXED_POINT_SCALE,
    decimal_to_fixed_point,
    fixed_point_to_decimal,
    hex_to_unsigned_big,
    unsigned_big_to_hex,
    string_to_unsigned_big,
    unsigned_big_to_string,
)
from .hashes import HashType, blake2_256, starknet_keccak, hash_on_elements, to_field_element

__all__ = [
    "FIXED_POINT_SCALE",
    "decimal_to_fixed_point",
    "fixed_point_to_decimal",
    "hex_to_unsigned_big",
    "unsigned_big_to_hex",
    "string_to_unsigned_big",
    "unsigned_big_to_string",
    "HashType",
    "blake2_256",
    "starknet_keccak",
    "hash_on_elements",
    "to_field_element",
]
