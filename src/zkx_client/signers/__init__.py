"""
Order and withdrawal signing for ZKX.

Payloads flatten into ordered field elements, are hashed with the Stark
curve's native hash and signed with the trading account's Stark key.
"""

from .payloads import (
    OrderType,
    Direction,
    Side,
    TimeInForce,
    HashType,
    OrderPayload,
    WithdrawalPayload,
)
from .signer import (
    canonical_hash,
    payload_hash,
    data_hash,
    sign,
    sign_order,
    sign_withdrawal,
    sign_data,
    verify,
    verify_order,
    verify_withdrawal,
    verify_data,
    StarkSigner,
)

__all__ = [
    "OrderType",
    "Direction",
    "Side",
    "TimeInForce",
    "HashType",
    "OrderPayload",
    "WithdrawalPayload",
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
