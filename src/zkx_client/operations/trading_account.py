"""
Trading account flows: seeding reference data, account creation, deposits,
balances, withdrawals and signed orders.
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from ..client import ChainClient, Included
from ..codec.numeric import NumberLike, to_i128_from_number, to_u128_from_string, to_u256_from_hex
from ..crypto.stark import StarkKeyLike, StarkKeyPair
from ..data import ASSETS, MARKETS
from ..records import AssetRecord, BalanceRecord, MarketRecord, TradingAccount
from ..signers.payloads import HashType, OrderPayload, WithdrawalPayload
from ..signers.signer import StarkSigner

logger = logging.getLogger(__name__)

TRADING_ACCOUNT_MODULE = "zkx_trading_account"


class TradingAccountService:
    """
    Trading-account operations against a node.

    Example:
        ```python
        service = TradingAccountService(client)
        await service.replace_assets()
        await service.create_account(account)
        await service.deposit(account, "USDC", 100)
        balance = await service.get_balance(account.id, "USDC")
        ```
    """

    def __init__(self, client: ChainClient):
        self.client = client

    async def create_account(self, account: TradingAccount) -> Included:
        """Register a trading account with ``add_accounts``."""
        logger.info(f"Creating trading account {account.id} (index {account.index})")
        return await self.client.execute(
            TRADING_ACCOUNT_MODULE, "add_accounts", {"accounts": [account.to_chain()]}
        )

    async def replace_assets(self, assets: Optional[Sequence[AssetRecord]] = None) -> Included:
        """Replace the asset list (the default reference assets when None)."""
        assets = ASSETS if assets is None else assets
        return await self.client.execute(
            "assets", "replace_all_assets", {"assets": [asset.to_chain() for asset in assets]}
        )

    async def replace_markets(self, markets: Optional[Sequence[MarketRecord]] = None) -> Included:
        """Replace the market list (the default reference markets when None)."""
        markets = MARKETS if markets is None else markets
        return await self.client.execute(
            "markets", "replace_all_markets", {"markets": [market.to_chain() for market in markets]}
        )

    async def get_assets(self) -> List[AssetRecord]:
        entries = await self.client.query_entries("assets", "asset_map")
        return [AssetRecord.from_chain(raw) for _, raw in entries]

    async def get_markets(self) -> List[MarketRecord]:
        entries = await self.client.query_entries("markets", "market_map")
        return [MarketRecord.from_chain(raw) for _, raw in entries]

    async def get_balance(self, account_id: str, asset_id: str) -> BalanceRecord:
        """
        Read a collateral balance.

        Args:
            account_id: 0x-prefixed trading account id
            asset_id: Collateral symbol, e.g. "USDC"

        Returns:
            BalanceRecord with a human decimal value
        """
        raw = await self.client.query(
            TRADING_ACCOUNT_MODULE, "balances_map",
            [to_u256_from_hex(account_id), to_u128_from_string(asset_id)],
        )
        return BalanceRecord.from_chain(asset_id, raw)

    async def deposit(self, account: TradingAccount, asset_id: str, amount: NumberLike) -> Included:
        """Deposit collateral into a trading account."""
        logger.info(f"Depositing {amount} {asset_id} into {account.id}")
        return await self.client.execute(TRADING_ACCOUNT_MODULE, "deposit", {
            "trading_account": account.minimal(),
            "collateral_id": to_u128_from_string(asset_id),
            "amount": to_i128_from_number(amount),
        })

    async def withdraw(self, account_id: str, asset_id: str, amount: NumberLike,
                       private_key: Union[StarkKeyPair, StarkKeyLike],
                       hash_type: HashType = HashType.PEDERSEN) -> Included:
        """
        Sign and submit a withdrawal request.

        Args:
            account_id: 0x-prefixed trading account id
            asset_id: Collateral symbol
            amount: Human decimal amount
            private_key: The account's Stark private key
            hash_type: Hash the runtime verifies the signature over

        Returns:
            The Included outcome
        """
        request = WithdrawalPayload.create(account_id, asset_id, amount, hash_type)
        logger.info(f"Withdrawing {amount} {asset_id} from {account_id}")
        return await self.client.execute(TRADING_ACCOUNT_MODULE, "withdraw", {
            "withdrawal_request": StarkSigner.from_key(private_key).sign_payload(request),
        })

    async def place_orders(self, batch_id: str, market_id: str, quantity_locked: NumberLike,
                           oracle_price: NumberLike,
                           orders: Sequence[Tuple[OrderPayload, Union[StarkKeyPair, StarkKeyLike]]]) -> Included:
        """
        Sign a batch of orders and submit them with ``trading.execute_trade``.

        Args:
            batch_id: 0x-prefixed batch id
            market_id: Market symbol, e.g. "ETH-USDC"
            quantity_locked: Human decimal size matched in the batch
            oracle_price: Human decimal oracle price
            orders: (order, private key) pairs; each order is signed with its own key

        Returns:
            The Included outcome
        """
        signed: List[Dict[str, Any]] = [
            StarkSigner.from_key(key).sign_payload(order) for order, key in orders
        ]
        logger.info(f"Executing batch {batch_id} with {len(signed)} orders on {market_id}")
        return await self.client.execute("trading", "execute_trade", {
            "batch_id": to_u256_from_hex(batch_id),
            "quantity_locked": to_i128_from_number(quantity_locked),
            "market_id": to_u128_from_string(market_id),
            "oracle_price": to_i128_from_number(oracle_price),
            "orders": signed,
        })


__all__ = ["TradingAccountService", "TRADING_ACCOUNT_MODULE"]
