"""Reference assets and markets seeded into a fresh node."""

from typing import List

from .records import AssetRecord, MarketRecord

ASSETS: List[AssetRecord] = [
    AssetRecord(
        id="ETH",
        short_name="ETH",
        is_tradable=True,
        is_collateral=False,
        decimals=6,
    ),
    AssetRecord(
        id="USDC",
        short_name="USDC",
        is_tradable=False,
        is_collateral=True,
        decimals=6,
    ),
]

MARKETS: List[MarketRecord] = [
    MarketRecord(
        id="ETH-USDC",
        asset="ETH",
        asset_collateral="USDC",
        is_tradable=True,
        is_archived=False,
        ttl=3600,
        tick_size=0.1,
        tick_precision=0,
        step_size=0.01,
        step_precision=0,
        minimum_order_size=0.01,
        minimum_leverage=1,
        maximum_leverage=20,
        currently_allowed_leverage=20,
        maintenance_margin_fraction=0.03,
        initial_margin_fraction=0.05,
        incremental_initial_margin_fraction=0.01,
        incremental_position_size=100,
        baseline_position_size=500,
        maximum_position_size=10000,
        metadata_url="https://zkxprotocol-deploy.s3.eu-central-1.amazonaws.com/eth-usdc.metadata.json",
    ),
]


def asset_by_id(asset_id: str) -> AssetRecord:
    for asset in ASSETS:
        if asset.id == asset_id:
            return asset
    raise KeyError(asset_id)


def market_by_id(market_id: str) -> MarketRecord:
    for market in MARKETS:
        if market.id == market_id:
            return market
    raise KeyError(market_id)
