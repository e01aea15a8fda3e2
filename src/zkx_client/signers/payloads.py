"""
Signable payloads: trade orders and withdrawal requests.

Each payload flattens itself into the ordered list of field elements the
runtime hashes when it verifies a signature. The order of ``hash_elements()``
is part of the protocol; changing it invalidates every signature.

Amounts, prices, sizes, leverage and slippage are 18-decimal fixed-point
integers (``FixedI128`` inner values). Negative values are mapped into the
Stark field when hashed.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Dict, List, Union

from ..codec.hashes import HashType
from ..codec.numeric import (
    NumberLike,
    coerce_int,
    decimal_to_fixed_point,
    to_u128_from_string,
)
from ..crypto.identity import split_account_id


class _ChainEnum(IntEnum):
    """Enum whose value is the variant index the runtime hashes."""

    @property
    def chain_name(self) -> str:
        """Variant name as the runtime's JSON codec spells it."""
        return self.name.title() if len(self.name) > 3 else self.name


class OrderType(_ChainEnum):
    LIMIT = 0
    MARKET = 1
    LIQUIDATION = 2
    DELEVERAGING = 3


class Direction(_ChainEnum):
    LONG = 0
    SHORT = 1


class Side(_ChainEnum):
    BUY = 0
    SELL = 1


class TimeInForce(_ChainEnum):
    GTC = 0
    IOC = 1
    FOK = 2


def _id_value(value: Union[int, str]) -> int:
    """Ids are ints, 0x hex, or short symbols packed into a u128."""
    if isinstance(value, int):
        return value
    if value.startswith("0x") or value.lstrip("-").isdigit():
        return coerce_int(value)
    return to_u128_from_string(value)


@dataclass(frozen=True)
class OrderPayload:
    """A trade order as signed by the account's Stark key."""
    account_id: Union[int, str]
    order_id: int
    market_id: int
    order_type: OrderType
    direction: Direction
    side: Side
    price: int
    size: int
    leverage: int
    slippage: int
    post_only: bool = False
    time_in_force: TimeInForce = TimeInForce.GTC
    hash_type: HashType = HashType.PEDERSEN

    @classmethod
    def create(cls, account_id: Union[int, str], order_id: Union[int, str],
               market_id: Union[int, str], order_type: OrderType, direction: Direction,
               side: Side, price: NumberLike, size: NumberLike,
               leverage: NumberLike = 1, slippage: NumberLike = 0,
               post_only: bool = False, time_in_force: TimeInForce = TimeInForce.GTC,
               hash_type: HashType = HashType.PEDERSEN) -> OrderPayload:
        """
        Build an order from human-readable values.

        Args:
            account_id: Trading account id (0x hex or int)
            order_id: Order id (int, 0x hex or short string)
            market_id: Market id (int, 0x hex or symbol such as "ETH-USDC")
            price, size, leverage, slippage: Human decimals, scaled by 10^18

        Returns:
            OrderPayload with fixed-point fields
        """
        return cls(
            account_id=account_id,
            order_id=_id_value(order_id),
            market_id=_id_value(market_id),
            order_type=order_type,
            direction=direction,
            side=side,
            price=decimal_to_fixed_point(price),
            size=decimal_to_fixed_point(size),
            leverage=decimal_to_fixed_point(leverage),
            slippage=decimal_to_fixed_point(slippage),
            post_only=post_only,
            time_in_force=time_in_force,
            hash_type=hash_type,
        )

    def hash_elements(self) -> List[int]:
        """Field elements in the exact order the runtime hashes them."""
        account_id_low, account_id_high = split_account_id(self.account_id)
        return [
            account_id_low,
            account_id_high,
            self.order_id,
            self.market_id,
            int(self.order_type),
            int(self.direction),
            int(self.side),
            self.price,
            self.size,
            self.leverage,
            self.slippage,
            1 if self.post_only else 0,
            int(self.time_in_force),
        ]

    def to_chain(self, sig_r: Union[int, str], sig_s: Union[int, str]) -> Dict[str, Any]:
        """Order struct for ``trading.execute_trade``."""
        return {
            "account_id": coerce_int(self.account_id),
            "order_id": self.order_id,
            "market_id": self.market_id,
            "order_type": self.order_type.chain_name,
            "direction": self.direction.chain_name,
            "side": self.side.chain_name,
            "price": self.price,
            "size": self.size,
            "leverage": self.leverage,
            "slippage": self.slippage,
            "post_only": self.post_only,
            "time_in_force": self.time_in_force.chain_name,
            "sig_r": coerce_int(sig_r),
            "sig_s": coerce_int(sig_s),
            "hash_type": self.hash_type.name.title(),
        }


@dataclass(frozen=True)
class WithdrawalPayload:
    """A collateral withdrawal request as signed by the account's Stark key."""
    account_id: Union[int, str]
    collateral_id: int
    amount: int
    hash_type: HashType = HashType.PEDERSEN

    @classmethod
    def create(cls, account_id: Union[int, str], collateral_id: Union[int, str],
               amount: NumberLike, hash_type: HashType = HashType.PEDERSEN) -> WithdrawalPayload:
        """Build a withdrawal from a collateral symbol and a human amount."""
        return cls(
            account_id=account_id,
            collateral_id=_id_value(collateral_id),
            amount=decimal_to_fixed_point(amount),
            hash_type=hash_type,
        )

    def hash_elements(self) -> List[int]:
        """Field elements in the exact order the runtime hashes them."""
        account_id_low, account_id_high = split_account_id(self.account_id)
        return [
            account_id_low,
            account_id_high,
            self.collateral_id,
            self.amount,
            int(self.hash_type),
        ]

    def to_chain(self, sig_r: Union[int, str], sig_s: Union[int, str]) -> Dict[str, Any]:
        """Request struct for ``zkx_trading_account.withdraw``."""
        return {
            "account_id": coerce_int(self.account_id),
            "collateral_id": self.collateral_id,
            "amount": self.amount,
            "sig_r": coerce_int(sig_r),
            "sig_s": coerce_int(sig_s),
            "hash_type": self.hash_type.name.title(),
        }


SignablePayload = Union[OrderPayload, WithdrawalPayload]

__all__ = [
    "OrderType",
    "Direction",
    "Side",
    "TimeInForce",
    "HashType",
    "OrderPayload",
    "WithdrawalPayload",
    "SignablePayload",
]
