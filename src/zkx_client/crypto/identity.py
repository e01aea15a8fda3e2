"""
Trading account identities.

A trading account id is the Blake2b-256 hash of the account's L2 address and
its index:

    blake2_256(le_bytes(address)[0..32] || index_byte)

The address occupies the first 32 bytes of a 33-byte buffer, little-endian and
zero-padded; the index is byte 32. The same (address, index) pair always
yields the same id.
"""

from __future__ import annotations
import string
import uuid
from typing import Optional, Tuple, Union

from ..codec.hashes import blake2_256
from ..codec.numeric import coerce_int, int_to_bytes, U256_MAX
from ..records import TradingAccount
from ..runtime.errors import AddressTooLong, InvalidAddress, ValueOutOfRange

ACCOUNT_ADDRESS_BYTES = 32
LIMB_BITS = 128
LIMB_MASK = (1 << LIMB_BITS) - 1


def derive_account_id(address: str, index: int) -> str:
    """
    Derive the trading account id for an address and index.

    Args:
        address: 0x-prefixed hex address of at most 32 bytes; an odd number
            of digits is left-padded ("0x1ab" is "0x01ab")
        index: Account index in [0, 255]

    Returns:
        0x-prefixed 32-byte hex id

    Raises:
        InvalidAddress: If address is not 0x-prefixed hex
        AddressTooLong: If address is longer than 32 bytes
        ValueOutOfRange: If index does not fit one byte
    """
    if not isinstance(address, str) or not address.startswith("0x"):
        raise InvalidAddress(f"Invalid account address: {address!r}")

    digits = address[2:]
    if any(c not in string.hexdigits for c in digits):
        raise InvalidAddress(f"Invalid account address: {address!r}")
    if len(digits) % 2 != 0:
        digits = "0" + digits

    address_le = bytes.fromhex(digits)[::-1]
    if len(address_le) > ACCOUNT_ADDRESS_BYTES:
        raise AddressTooLong(
            f"Account address is {len(address_le)} bytes, at most {ACCOUNT_ADDRESS_BYTES} allowed",
            details={"address": address},
        )

    if isinstance(index, bool) or not 0 <= index <= 0xFF:
        raise ValueOutOfRange(f"Account index must be in [0, 255], got {index!r}")
    index_le = int_to_bytes(index, byteorder="little")

    buffer = bytearray(ACCOUNT_ADDRESS_BYTES + 1)
    buffer[0:len(address_le)] = address_le
    buffer[ACCOUNT_ADDRESS_BYTES] = index_le[0]

    return "0x" + blake2_256(bytes(buffer)).hex()


def split_account_id(account_id: Union[int, str]) -> Tuple[int, int]:
    """
    Split a 256-bit account id into (low, high) 128-bit limbs.

    Args:
        account_id: Id as int, decimal string or 0x hex string

    Returns:
        Tuple of (low 128 bits, high 128 bits)
    """
    value = coerce_int(account_id)
    if not 0 <= value <= U256_MAX:
        raise ValueOutOfRange(f"Account id does not fit u256: {account_id!r}")
    return value & LIMB_MASK, value >> LIMB_BITS


def generate_hex_id() -> str:
    """Random 16-byte 0x-prefixed id, used as a throwaway L2 address."""
    return "0x" + uuid.uuid4().hex


def generate_trading_account(stark_key: str, index: int = 0,
                             address: Optional[str] = None) -> TradingAccount:
    """
    Build a trading account for a Stark key.

    Args:
        stark_key: 0x-prefixed Stark public key (the account's ``pub_key``)
        index: Account index, 0 by default
        address: L2 address; a random one when None

    Returns:
        TradingAccount with its derived id
    """
    address = address or generate_hex_id()
    return TradingAccount(
        id=derive_account_id(address, index),
        index=index,
        address=address,
        public_key=stark_key,
    )


__all__ = [
    "derive_account_id",
    "split_account_id",
    "generate_hex_id",
    "generate_trading_account",
]
