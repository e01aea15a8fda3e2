"""
Node operations built on the chain client.
"""

from .trading_account import TradingAccountService
from .liquidation import aligned_timestamp, init_abr_timestamp, add_liquidator_signers

__all__ = [
    "TradingAccountService",
    "aligned_timestamp",
    "init_abr_timestamp",
    "add_liquidator_signers",
]
