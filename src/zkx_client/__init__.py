"""
ZKX client: operational tooling for ZKX Substrate nodes.

Fixed-point and packed-string codecs, trading account identity derivation,
Stark-curve signing of orders and withdrawals, and an async chain client for
submitting calls with bounded inclusion deadlines.
"""

__version__ = "0.1.0"

from .runtime.config import ClientConfig
from .runtime.errors import ZkxError, ErrorCode
from .codec.numeric import decimal_to_fixed_point, fixed_point_to_decimal
from .crypto.identity import derive_account_id, generate_trading_account
from .crypto.stark import StarkKeyPair, StarkSignature
from .signers import (
    OrderPayload,
    WithdrawalPayload,
    OrderType,
    Direction,
    Side,
    TimeInForce,
    HashType,
    StarkSigner,
    sign,
    verify,
)
from .records import AssetRecord, MarketRecord, BalanceRecord, TradingAccount
from .client import ChainClient, RuntimeAdapter, Included, Failed, TimedOut, InclusionResult
from .substrate import SubstrateAdapter

__all__ = [
    "__version__",
    "ClientConfig",
    "ZkxError",
    "ErrorCode",
    "decimal_to_fixed_point",
    "fixed_point_to_decimal",
    "derive_account_id",
    "generate_trading_account",
    "StarkKeyPair",
    "StarkSignature",
    "OrderPayload",
    "WithdrawalPayload",
    "OrderType",
    "Direction",
    "Side",
    "TimeInForce",
    "HashType",
    "StarkSigner",
    "sign",
    "verify",
    "AssetRecord",
    "MarketRecord",
    "BalanceRecord",
    "TradingAccount",
    "ChainClient",
    "RuntimeAdapter",
    "SubstrateAdapter",
    "Included",
    "Failed",
    "TimedOut",
    "InclusionResult",
]
