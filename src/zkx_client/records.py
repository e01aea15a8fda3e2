"""
Chain boundary records.

Storage values come back from the node as loosely typed primitives (dicts of
ints, hex strings and camelCase keys). They are decoded exactly once, here,
into explicit models; everything past this module works with these records.
The ``to_chain`` methods produce the parameter dicts the runtime calls take.
"""

from __future__ import annotations
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from .codec.numeric import (
    i128_to_number,
    to_i128_from_number,
    to_u128_from_string,
    to_u256_from_hex,
    to_u256_from_string,
    u128_to_string,
    u256_to_hex,
    u256_to_string,
)


def _get(raw: Dict[str, Any], snake: str, default: Any = None) -> Any:
    """Read a field that may be snake_case or camelCase in the primitive."""
    if snake in raw:
        return raw[snake]
    head, *rest = snake.split("_")
    camel = head + "".join(part.title() for part in rest)
    return raw.get(camel, default)


class AssetRecord(BaseModel):
    """A tradable or collateral asset."""

    model_config = ConfigDict(frozen=True)

    id: str
    short_name: str = ""
    version: int = 1
    is_tradable: bool = False
    is_collateral: bool = False
    l2_address: str = "0x00"
    decimals: int = 18
    metadata_url: str = ""

    def to_chain(self) -> Dict[str, Any]:
        """Entry for ``assets.replace_all_assets``."""
        return {
            "asset": {
                "id": to_u128_from_string(self.id),
                "version": self.version,
                "short_name": to_u256_from_string(self.short_name or self.id),
                "is_tradable": self.is_tradable,
                "is_collateral": self.is_collateral,
                "l2_address": to_u256_from_hex(self.l2_address),
                "decimals": self.decimals,
            },
            "metadata_url": self.metadata_url,
        }

    @classmethod
    def from_chain(cls, raw: Dict[str, Any]) -> AssetRecord:
        """Decode an ``assets.asset_map`` value."""
        asset = raw.get("asset", raw)
        return cls(
            id=u128_to_string(_get(asset, "id")),
            short_name=u256_to_string(_get(asset, "short_name", 0)),
            version=_get(asset, "version", 1),
            is_tradable=_get(asset, "is_tradable") is True,
            is_collateral=_get(asset, "is_collateral") is True,
            l2_address=u256_to_hex(_get(asset, "l2_address", 0)),
            decimals=_get(asset, "decimals", 18),
            metadata_url=_get(raw, "metadata_url", "") or "",
        )


_MARKET_FIXED_FIELDS = (
    "tick_size",
    "step_size",
    "minimum_order_size",
    "minimum_leverage",
    "maximum_leverage",
    "currently_allowed_leverage",
    "maintenance_margin_fraction",
    "initial_margin_fraction",
    "incremental_initial_margin_fraction",
    "incremental_position_size",
    "baseline_position_size",
    "maximum_position_size",
)


class MarketRecord(BaseModel):
    """A perpetual market; sizes and fractions are human decimals."""

    model_config = ConfigDict(frozen=True)

    id: str
    asset: str
    asset_collateral: str
    is_tradable: bool = False
    is_archived: bool = False
    ttl: int = 3600
    tick_size: float = 0.0
    tick_precision: int = 0
    step_size: float = 0.0
    step_precision: int = 0
    minimum_order_size: float = 0.0
    minimum_leverage: float = 1.0
    maximum_leverage: float = 1.0
    currently_allowed_leverage: float = 1.0
    maintenance_margin_fraction: float = 0.0
    initial_margin_fraction: float = 0.0
    incremental_initial_margin_fraction: float = 0.0
    incremental_position_size: float = 0.0
    baseline_position_size: float = 0.0
    maximum_position_size: float = 0.0
    metadata_url: str = ""

    def to_chain(self) -> Dict[str, Any]:
        """Entry for ``markets.replace_all_markets``."""
        market: Dict[str, Any] = {
            "id": to_u128_from_string(self.id),
            "asset": to_u128_from_string(self.asset),
            "asset_collateral": to_u128_from_string(self.asset_collateral),
            "is_tradable": self.is_tradable,
            "is_archived": self.is_archived,
            "ttl": self.ttl,
            "tick_precision": self.tick_precision,
            "step_precision": self.step_precision,
        }
        for name in _MARKET_FIXED_FIELDS:
            market[name] = to_i128_from_number(getattr(self, name))
        return {"market": market, "metadata_url": self.metadata_url}

    @classmethod
    def from_chain(cls, raw: Dict[str, Any]) -> MarketRecord:
        """Decode a ``markets.market_map`` value."""
        market = raw.get("market", raw)
        values: Dict[str, Any] = {
            "id": u128_to_string(_get(market, "id")),
            "asset": u128_to_string(_get(market, "asset")),
            "asset_collateral": u128_to_string(_get(market, "asset_collateral")),
            "is_tradable": _get(market, "is_tradable") is True,
            "is_archived": _get(market, "is_archived") is True,
            "ttl": _get(market, "ttl", 0),
            "tick_precision": _get(market, "tick_precision", 0),
            "step_precision": _get(market, "step_precision", 0),
            "metadata_url": _get(raw, "metadata_url", "") or "",
        }
        for name in _MARKET_FIXED_FIELDS:
            values[name] = i128_to_number(_get(market, name, 0))
        return cls(**values)


class BalanceRecord(BaseModel):
    """Collateral balance of a trading account."""

    model_config = ConfigDict(frozen=True)

    asset_id: str
    value: float

    @classmethod
    def from_chain(cls, asset_id: str, raw: Any) -> BalanceRecord:
        """Decode a ``zkx_trading_account.balances_map`` value (FixedI128)."""
        return cls(asset_id=asset_id, value=i128_to_number(raw if raw is not None else 0))


class TradingAccount(BaseModel):
    """A trading account and the identity derived from (address, index)."""

    model_config = ConfigDict(frozen=True)

    id: str
    index: int = Field(ge=0, le=255)
    address: str
    public_key: str

    def to_chain(self) -> Dict[str, Any]:
        """Entry for ``zkx_trading_account.add_accounts``."""
        return {
            "index": self.index,
            "account_address": to_u256_from_hex(self.address),
            "pub_key": to_u256_from_hex(self.public_key),
        }

    def minimal(self) -> Dict[str, Any]:
        """The ``TradingAccountMinimal`` shape the deposit call takes."""
        return {
            "account_address": to_u256_from_hex(self.address),
            "pub_key": to_u256_from_hex(self.public_key),
            "index": self.index,
        }


class StarkAccount(BaseModel):
    """Stark key material behind a trading account."""

    model_config = ConfigDict(frozen=True)

    private_key: str
    public_key: Optional[str] = None
    stark_key: str


__all__ = [
    "AssetRecord",
    "MarketRecord",
    "BalanceRecord",
    "TradingAccount",
    "StarkAccount",
]
