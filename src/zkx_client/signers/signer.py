"""
Payload signing and verification.

Two canonical-hash strategies exist and they are not interchangeable:

* ``canonical_hash`` hashes an explicitly ordered list of field elements with
  the curve-native hash (Pedersen by default). Trade orders and withdrawal
  requests use this; nothing is sorted and nothing is filtered.
* ``data_hash`` hashes arbitrary key/value data: the values are stringified,
  empties dropped, sorted, joined with ``|`` and hashed with the Stark keccak.
  This is the generic "sign this data" helper.

Pick the one the remote verifier expects.
"""

from __future__ import annotations
import logging
from typing import Any, Iterable, List, Mapping, Sequence, Tuple, Union

from ..codec.hashes import HashType, hash_on_elements, starknet_keccak
from ..crypto.stark import StarkKeyLike, StarkKeyPair, StarkSignature
from ..runtime.errors import ZkxError
from .payloads import OrderPayload, SignablePayload, WithdrawalPayload

logger = logging.getLogger(__name__)

SignatureLike = Union[StarkSignature, Sequence[StarkKeyLike]]

_IGNORED_VALUES = ("", None)


def canonical_hash(elements: Iterable[int], hash_type: HashType = HashType.PEDERSEN) -> int:
    """
    Hash an ordered list of payload fields.

    Args:
        elements: Field values in protocol order
        hash_type: Pedersen or Poseidon

    Returns:
        Hash as int
    """
    return hash_on_elements(elements, hash_type)


def payload_hash(payload: SignablePayload) -> int:
    """Canonical hash of an order or withdrawal with its own hash type."""
    return canonical_hash(payload.hash_elements(), payload.hash_type)


def _js_string(value: Any) -> str:
    """Stringify the way the data-signing verifier does (JavaScript String())."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def data_hash(data: Mapping[str, Any]) -> int:
    """
    Hash key/value data for the generic data-signing helper.

    Values equal to "" or None are ignored; the rest are stringified, sorted
    and joined with "|".

    Args:
        data: Data to hash; keys do not take part

    Returns:
        Stark keccak of the joined string
    """
    values: List[str] = sorted(
        _js_string(value) for value in data.values() if value not in _IGNORED_VALUES
    )
    return starknet_keccak("|".join(values).encode("utf-8"))


def _signature(signature: SignatureLike) -> StarkSignature:
    if isinstance(signature, StarkSignature):
        return signature
    return StarkSignature.from_pair(signature)


def sign(msg_hash: int, private_key: Union[StarkKeyPair, StarkKeyLike]) -> Tuple[str, str]:
    """
    Sign a hash with a Stark private key.

    Args:
        msg_hash: Hash to sign
        private_key: StarkKeyPair, int scalar or hex string

    Returns:
        (r, s) as canonical 0x hex strings

    Raises:
        InvalidPrivateKey: If the key is not a valid scalar on the curve
    """
    return StarkKeyPair.from_key(private_key).sign(msg_hash).to_pair()


def sign_order(order: OrderPayload, private_key: Union[StarkKeyPair, StarkKeyLike]) -> Tuple[str, str]:
    return sign(payload_hash(order), private_key)


def sign_withdrawal(request: WithdrawalPayload,
                    private_key: Union[StarkKeyPair, StarkKeyLike]) -> Tuple[str, str]:
    return sign(payload_hash(request), private_key)


def sign_data(data: Mapping[str, Any], private_key: Union[StarkKeyPair, StarkKeyLike]) -> Tuple[str, str]:
    return sign(data_hash(data), private_key)


def verify(stark_key: StarkKeyLike, payload: Union[SignablePayload, Mapping[str, Any]],
           signature: SignatureLike) -> bool:
    """
    Verify a signature over a payload.

    Orders and withdrawals are re-hashed with ``canonical_hash``; mappings with
    ``data_hash``.

    Args:
        stark_key: Signer's Stark key
        payload: OrderPayload, WithdrawalPayload or data mapping
        signature: StarkSignature or (r, s) pair

    Returns:
        True if the signature matches; False on any mismatch
    """
    if isinstance(payload, (OrderPayload, WithdrawalPayload)):
        msg_hash = payload_hash(payload)
    else:
        msg_hash = data_hash(payload)

    try:
        stark_signature = _signature(signature)
    except ZkxError as e:
        logger.debug(f"Malformed signature for {type(payload).__name__}: {e}")
        return False

    valid = stark_signature.verify(msg_hash, stark_key)
    if not valid:
        logger.debug(f"Signature rejected for {type(payload).__name__} hash {hex(msg_hash)}")
    return valid


def verify_order(stark_key: StarkKeyLike, order: OrderPayload, signature: SignatureLike) -> bool:
    return verify(stark_key, order, signature)


def verify_withdrawal(stark_key: StarkKeyLike, request: WithdrawalPayload,
                      signature: SignatureLike) -> bool:
    return verify(stark_key, request, signature)


def verify_data(stark_key: StarkKeyLike, data: Mapping[str, Any], signature: SignatureLike) -> bool:
    return verify(stark_key, dict(data), signature)


class StarkSigner:
    """
    Signs payloads with one trading account's Stark key.

    Produces the request dicts the runtime calls take, with ``sig_r`` and
    ``sig_s`` filled in.
    """

    def __init__(self, key_pair: StarkKeyPair):
        self.key_pair = key_pair

    @classmethod
    def from_key(cls, private_key: Union[StarkKeyPair, StarkKeyLike]) -> StarkSigner:
        return cls(StarkKeyPair.from_key(private_key))

    @property
    def stark_key(self) -> str:
        return self.key_pair.stark_key

    def sign_payload(self, payload: SignablePayload) -> dict:
        """
        Sign an order or withdrawal.

        Returns:
            The payload's chain struct including the signature
        """
        sig_r, sig_s = sign(payload_hash(payload), self.key_pair)
        return payload.to_chain(sig_r, sig_s)

    def sign_data(self, data: Mapping[str, Any]) -> Tuple[str, str]:
        return sign_data(data, self.key_pair)


__all__ = [
    "canonical_hash",
    "payload_hash",
    "data_hash",
    "sign",
    "sign_order",
    "sign_withdrawal",
    "sign_data",
    "verify",
    "verify_order",
    "verify_withdrawal",
    "verify_data",
    "StarkSigner",
]
