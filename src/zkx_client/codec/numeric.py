"""
Numeric codec for ZKX chain values.

Converts between human-readable decimals, 18-decimal fixed-point integers
(the runtime's ``FixedI128``), arbitrary-precision unsigned integers, hex
strings and short UTF-8 strings packed byte-wise into ``u128``/``u256``.

All arithmetic uses Python ``int`` and ``decimal`` with an explicit
high-precision context, so amounts and identifiers up to 256 bits never
overflow or lose digits on the way in.
"""

from __future__ import annotations
import string
from decimal import Decimal, InvalidOperation, localcontext
from typing import Optional, Union

from ..runtime.errors import (
    DecodeError,
    InvalidHexFormat,
    InvalidNumberFormat,
    ValueOutOfRange,
    ValueTooLong,
)

FIXED_POINT_DECIMALS = 18
FIXED_POINT_SCALE = 10 ** FIXED_POINT_DECIMALS

I128_MIN = -(1 << 127)
I128_MAX = (1 << 127) - 1
U128_MAX = (1 << 128) - 1
U256_MAX = (1 << 256) - 1

U128_BYTES = 16
U256_BYTES = 32

# Enough digits for any 256-bit integer scaled by 10^18
_PRECISION = 120

# I128_MAX is below 10^39, so anything at or past 10^21 overflows once scaled
_MAX_FIXED_POINT_EXPONENT = 20

NumberLike = Union[str, int, float, Decimal]
IntLike = Union[int, str]


def _to_decimal(value: NumberLike) -> Decimal:
    # bool is an int subclass; True must not silently become 1
    if isinstance(value, bool):
        raise InvalidNumberFormat(f"Not a decimal number: {value!r}")

    if isinstance(value, Decimal):
        result = value
    elif isinstance(value, int):
        result = Decimal(value)
    elif isinstance(value, float):
        # repr gives the shortest round-tripping digits, e.g. 0.1 -> "0.1"
        result = Decimal(repr(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation as e:
            raise InvalidNumberFormat(f"Not a decimal number: {value!r}", cause=e)
    else:
        raise InvalidNumberFormat(f"Unsupported number type: {type(value).__name__}")

    if not result.is_finite():
        raise InvalidNumberFormat(f"Not a finite number: {value!r}")
    return result


def _check_range(value: int, low: int, high: int, type_name: str) -> int:
    if value < low or value > high:
        raise ValueOutOfRange(
            f"{value} does not fit {type_name}",
            details={"min": low, "max": high},
        )
    return value


def _normalize_hex(value: str) -> str:
    """Strip the 0x prefix, validate the digits and left-pad to whole bytes."""
    if not isinstance(value, str) or not value.startswith("0x"):
        raise InvalidHexFormat(f"Expected 0x-prefixed hex string, got {value!r}")

    digits = value[2:]
    if any(c not in string.hexdigits for c in digits):
        raise InvalidHexFormat(f"Invalid hex digits in {value!r}")

    # ex: "0x1ab" should be "0x01ab"
    if len(digits) % 2 != 0:
        digits = "0" + digits
    return digits


# ================
# fixed point
# ================

def decimal_to_fixed_point(value: NumberLike) -> int:
    """
    Convert a decimal value to an 18-decimal fixed-point integer.

    Precision beyond 18 fractional digits is truncated toward zero.

    Args:
        value: Decimal string, int, float or Decimal

    Returns:
        value * 10^18 as int

    Raises:
        InvalidNumberFormat: If value is not a parseable finite decimal
        ValueOutOfRange: If the result does not fit a signed 128-bit integer
    """
    number = _to_decimal(value)
    if number.is_zero():
        return 0

    # Exponents this far out overflow or underflow the decimal context
    if number.adjusted() > _MAX_FIXED_POINT_EXPONENT:
        raise ValueOutOfRange(
            f"{value} does not fit i128",
            details={"min": I128_MIN, "max": I128_MAX},
        )
    if number.adjusted() < -FIXED_POINT_DECIMALS:
        return 0

    with localcontext() as ctx:
        ctx.prec = _PRECISION
        scaled = number.scaleb(FIXED_POINT_DECIMALS)

    # int() on a Decimal truncates toward zero
    result = int(scaled)
    return _check_range(result, I128_MIN, I128_MAX, "i128")


def fixed_point_to_decimal(value: IntLike) -> float:
    """
    Convert an 18-decimal fixed-point integer back to a float.

    Precision beyond roughly 15 significant digits is lost.

    Args:
        value: Fixed-point integer, decimal string or 0x hex string

    Returns:
        value / 10^18
    """
    raw = coerce_int(value)
    with localcontext() as ctx:
        ctx.prec = _PRECISION
        return float(Decimal(raw) / Decimal(FIXED_POINT_SCALE))


# ================
# integers, bytes and hex
# ================

def coerce_int(value: IntLike) -> int:
    """
    Read an integer from a chain primitive.

    Chain primitives arrive as ints, decimal strings or 0x hex strings.

    Raises:
        InvalidNumberFormat: If value is none of those
    """
    if isinstance(value, bool):
        raise InvalidNumberFormat(f"Not an integer: {value!r}")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        if text.startswith("0x"):
            return hex_to_unsigned_big(text)
        try:
            return int(text, 10)
        except ValueError as e:
            raise InvalidNumberFormat(f"Not an integer: {value!r}", cause=e)
    raise InvalidNumberFormat(f"Unsupported integer type: {type(value).__name__}")


def int_to_bytes(value: int, width: Optional[int] = None, byteorder: str = "big") -> bytes:
    """
    Encode a non-negative integer as bytes.

    Args:
        value: Non-negative integer
        width: Fixed byte width; minimal width (at least one byte) when None
        byteorder: "big" or "little"

    Returns:
        Encoded bytes

    Raises:
        ValueOutOfRange: If value is negative
        ValueTooLong: If value does not fit width
    """
    if value < 0:
        raise ValueOutOfRange(f"Cannot encode negative value {value} as unsigned bytes")

    minimal = max(1, (value.bit_length() + 7) // 8)
    if width is None:
        width = minimal
    elif minimal > width and value != 0:
        raise ValueTooLong(f"{value} needs {minimal} bytes, width is {width}")

    return value.to_bytes(width, byteorder)


def bytes_to_int(data: bytes, byteorder: str = "big") -> int:
    """Decode bytes as an unsigned integer."""
    return int.from_bytes(data, byteorder)


def hex_to_bytes(value: str) -> bytes:
    """
    Decode a 0x-prefixed hex string to bytes.

    Raises:
        InvalidHexFormat: On missing prefix or non-hex digits
    """
    return bytes.fromhex(_normalize_hex(value))


def hex_to_unsigned_big(value: str) -> int:
    """
    Parse a 0x-prefixed hex string as an unsigned big integer.

    An odd number of digits is left-padded with a zero nibble and ``"0x"``
    parses as zero.

    Raises:
        InvalidHexFormat: On missing prefix or non-hex digits
    """
    digits = _normalize_hex(value)
    if not digits:
        return 0
    return int(digits, 16)


def unsigned_big_to_hex(value: int) -> str:
    """
    Canonical 0x-prefixed hex of an unsigned integer.

    No leading zero byte except for zero itself, which is ``"0x00"``.
    """
    return "0x" + int_to_bytes(value).hex()


def string_to_unsigned_big(value: str, width: Optional[int] = None) -> int:
    """
    Pack a string into an unsigned integer, UTF-8 big-endian.

    Args:
        value: String to pack
        width: Byte width of the target integer type; no limit when None

    Returns:
        Packed integer

    Raises:
        ValueTooLong: If the UTF-8 encoding is longer than width
    """
    encoded = value.encode("utf-8")
    if width is not None and len(encoded) > width:
        raise ValueTooLong(
            f"{value!r} is {len(encoded)} bytes, does not fit {width} bytes",
            details={"width": width, "length": len(encoded)},
        )
    return bytes_to_int(encoded)


def unsigned_big_to_string(value: int) -> str:
    """
    Unpack a string from an unsigned integer.

    Decodes the minimal big-endian bytes of value as UTF-8. Zero is the empty
    string.

    Raises:
        DecodeError: If the bytes are not valid UTF-8
    """
    if value == 0:
        return ""
    raw = int_to_bytes(value)
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"{unsigned_big_to_hex(value)} is not valid UTF-8", cause=e)


# ================
# i128 converters
# ================

def to_i128_from_number(value: NumberLike) -> int:
    """Human decimal to FixedI128 inner value."""
    return decimal_to_fixed_point(value)


def to_i128_from_hex(value: str) -> int:
    return _check_range(hex_to_unsigned_big(value), I128_MIN, I128_MAX, "i128")


def to_i128_from_string(value: str) -> int:
    return _check_range(string_to_unsigned_big(value, U128_BYTES), I128_MIN, I128_MAX, "i128")


def i128_to_number(value: IntLike) -> float:
    """FixedI128 inner value to a human decimal."""
    return fixed_point_to_decimal(value)


# ================
# u128 converters
# ================

def to_u128_from_hex(value: str) -> int:
    return _check_range(hex_to_unsigned_big(value), 0, U128_MAX, "u128")


def to_u128_from_string(value: str) -> int:
    return string_to_unsigned_big(value, U128_BYTES)


def u128_to_hex(value: IntLike) -> str:
    return unsigned_big_to_hex(_check_range(coerce_int(value), 0, U128_MAX, "u128"))


def u128_to_string(value: IntLike) -> str:
    return unsigned_big_to_string(_check_range(coerce_int(value), 0, U128_MAX, "u128"))


# ================
# u256 converters
# ================

def to_u256_from_hex(value: str) -> int:
    return _check_range(hex_to_unsigned_big(value), 0, U256_MAX, "u256")


def to_u256_from_string(value: str) -> int:
    return string_to_unsigned_big(value, U256_BYTES)


def u256_to_hex(value: IntLike) -> str:
    return unsigned_big_to_hex(_check_range(coerce_int(value), 0, U256_MAX, "u256"))


def u256_to_string(value: IntLike) -> str:
    return unsigned_big_to_string(_check_range(coerce_int(value), 0, U256_MAX, "u256"))


__all__ = [
    "FIXED_POINT_DECIMALS",
    "FIXED_POINT_SCALE",
    "I128_MIN",
    "I128_MAX",
    "U128_MAX",
    "U256_MAX",
    "decimal_to_fixed_point",
    "fixed_point_to_decimal",
    "coerce_int",
    "int_to_bytes",
    "bytes_to_int",
    "hex_to_bytes",
    "hex_to_unsigned_big",
    "unsigned_big_to_hex",
    "string_to_unsigned_big",
    "unsigned_big_to_string",
    "to_i128_from_number",
    "to_i128_from_hex",
    "to_i128_from_string",
    "i128_to_number",
    "to_u128_from_hex",
    "to_u128_from_string",
    "u128_to_hex",
    "u128_to_string",
    "to_u256_from_hex",
    "to_u256_from_string",
    "u256_to_hex",
    "u256_to_string",
]
