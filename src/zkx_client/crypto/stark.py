"""
Stark-curve ECDSA for ZKX order and withdrawal signatures.

Signatures are deterministic (RFC 6979) and returned as (r, s) scalars; the
verifying key is the Stark key, the x coordinate of the public point.
"""

from __future__ import annotations
import logging
import secrets
from typing import Sequence, Tuple, Union

from starknet_py.constants import EC_ORDER
from starknet_py.hash.utils import message_signature, private_to_stark_key, verify_message_signature

from ..codec.numeric import coerce_int
from ..runtime.errors import InvalidHexFormat, InvalidNumberFormat, InvalidPrivateKey, InvalidSignature, ZkxError

logger = logging.getLogger(__name__)

# r and s must be non-zero and below 2^251 to verify
_MAX_SIGNATURE_SCALAR = 1 << 251

StarkKeyLike = Union[int, str]


def _pad_hex(value: int, digits: int = 64) -> str:
    return "0x" + format(value, "x").rjust(digits, "0")


def _scalar(value: StarkKeyLike) -> int:
    if isinstance(value, str) and not value.startswith("0x"):
        value = "0x" + value
    return coerce_int(value)


def stark_key_from_public_key(public_key: str) -> str:
    """
    Extract the Stark key from a hex-encoded public key.

    Args:
        public_key: Compressed or uncompressed public key hex

    Returns:
        Last 64 hex digits, 0x-prefixed
    """
    digits = public_key[2:] if public_key.startswith("0x") else public_key
    return "0x" + digits[-64:].rjust(64, "0")


class StarkSignature:
    """An (r, s) Stark-curve signature."""

    def __init__(self, r: int, s: int):
        self.r = r
        self.s = s

    @classmethod
    def from_pair(cls, pair: Sequence[StarkKeyLike]) -> StarkSignature:
        """
        Create a signature from an (r, s) pair of ints or hex strings.

        Raises:
            InvalidSignature: If pair is not two items
            InvalidHexFormat: If r or s is malformed hex
        """
        if isinstance(pair, (str, bytes)) or not hasattr(pair, "__len__") or len(pair) != 2:
            raise InvalidSignature(f"Expected (r, s) pair, got {pair!r}")
        return cls(_scalar(pair[0]), _scalar(pair[1]))

    @property
    def r_hex(self) -> str:
        return hex(self.r)

    @property
    def s_hex(self) -> str:
        return hex(self.s)

    def to_pair(self) -> Tuple[str, str]:
        """Get (r, s) as canonical 0x hex strings."""
        return self.r_hex, self.s_hex

    def verify(self, msg_hash: int, stark_key: StarkKeyLike) -> bool:
        """
        Verify the signature over msg_hash.

        Args:
            msg_hash: Hash that was signed
            stark_key: Signer's Stark key

        Returns:
            True if the signature is valid; False on any mismatch
        """
        if not (0 < self.r < _MAX_SIGNATURE_SCALAR and 0 < self.s < EC_ORDER):
            return False
        try:
            public_key = _scalar(stark_key)
        except ZkxError as e:
            logger.debug(f"Unreadable Stark key {stark_key!r}: {e}")
            return False
        try:
            return verify_message_signature(msg_hash, [self.r, self.s], public_key)
        except (ValueError, AssertionError) as e:
            # Raised for a key that is not an x coordinate on the curve
            logger.debug(f"Stark key {stark_key!r} rejected: {e}")
            return False

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StarkSignature):
            return NotImplemented
        return (self.r, self.s) == (other.r, other.s)

    def __repr__(self) -> str:
        return f"StarkSignature(r={self.r_hex}, s={self.s_hex})"


class StarkKeyPair:
    """
    Stark-curve key pair.

    Example:
        ```python
        key = StarkKeyPair.generate()
        signature = key.sign(msg_hash)
        assert signature.verify(msg_hash, key.stark_key)
        ```
    """

    def __init__(self, private_key: int):
        """
        Initialize key pair.

        Args:
            private_key: Scalar in [1, EC_ORDER)

        Raises:
            InvalidPrivateKey: If the scalar is not a valid private key
        """
        if isinstance(private_key, bool) or not isinstance(private_key, int):
            raise InvalidPrivateKey(f"Private key must be an integer, got {type(private_key).__name__}")
        if not 0 < private_key < EC_ORDER:
            raise InvalidPrivateKey("Private key is not a scalar on the Stark curve")

        self._private_key = private_key
        self._stark_key = private_to_stark_key(private_key)

    @classmethod
    def generate(cls) -> StarkKeyPair:
        """Generate a new random key pair."""
        return cls(secrets.randbelow(EC_ORDER - 1) + 1)

    @classmethod
    def from_hex(cls, private_key_hex: str) -> StarkKeyPair:
        """Create key pair from a private key hex string."""
        try:
            return cls(_scalar(private_key_hex))
        except (InvalidHexFormat, InvalidNumberFormat) as e:
            raise InvalidPrivateKey(f"Invalid private key hex: {e.message}", cause=e)

    @classmethod
    def from_key(cls, private_key: Union[StarkKeyPair, StarkKeyLike]) -> StarkKeyPair:
        """Create key pair from an int or hex string (a key pair is returned as is)."""
        if isinstance(private_key, StarkKeyPair):
            return private_key
        if isinstance(private_key, str):
            return cls.from_hex(private_key)
        return cls(private_key)

    @property
    def private_key(self) -> int:
        return self._private_key

    @property
    def stark_key(self) -> str:
        """Stark key as 0x hex, left-padded to 32 bytes."""
        return _pad_hex(self._stark_key)

    @property
    def stark_key_int(self) -> int:
        return self._stark_key

    def to_hex(self) -> str:
        """Get private key as 0x hex."""
        return _pad_hex(self._private_key)

    def sign(self, msg_hash: int) -> StarkSignature:
        """
        Sign a message hash.

        Args:
            msg_hash: Field element to sign

        Returns:
            Deterministic StarkSignature
        """
        r, s = message_signature(msg_hash, self._private_key)
        logger.debug(f"Signed hash {hex(msg_hash)} with key {self.stark_key[:10]}...")
        return StarkSignature(r, s)

    def verify(self, msg_hash: int, signature: StarkSignature) -> bool:
        return signature.verify(msg_hash, self._stark_key)

    def __str__(self) -> str:
        return f"StarkKeyPair(stark_key={self.stark_key[:18]}...)"


__all__ = [
    "StarkKeyPair",
    "StarkSignature",
    "stark_key_from_public_key",
]
