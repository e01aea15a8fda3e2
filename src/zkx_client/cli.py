"""
zkx-ops: command line tooling for ZKX node operators.

Offline commands (account ids, keys, fixed-point conversion, payload
signing) need no node. ``abr-status`` and ``nonce`` use HTTP JSON-RPC;
``submit`` watches a pre-signed extrinsic over WebSocket until inclusion.

The chain flows (``init-liquidation``, ``seed``, ``create-account``,
``deposit``, ``withdraw``, ``balance``) sign as ``NODE_ACCOUNT`` through
substrate-interface and print the including block as JSON.
"""

import argparse
import asyncio
import json
import logging
import sys
from typing import Any, Awaitable, Callable, List, Optional

from . import __version__
from .client import ChainClient, Failed, Included, TimedOut
from .codec.hashes import HashType
from .codec.numeric import decimal_to_fixed_point, fixed_point_to_decimal
from .crypto.identity import derive_account_id, generate_trading_account
from .crypto.stark import StarkKeyPair
from .operations.liquidation import add_liquidator_signers, init_abr_timestamp
from .operations.trading_account import TradingAccountService
from .records import TradingAccount
from .runtime.config import ClientConfig
from .runtime.errors import ZkxError
from .signers.payloads import Direction, OrderPayload, OrderType, Side, TimeInForce, WithdrawalPayload
from .signers.signer import StarkSigner
from .substrate import SubstrateAdapter
from .transport.http import HttpRpcClient

logger = logging.getLogger(__name__)


def _choices(enum_type) -> List[str]:
    return [member.name.lower() for member in enum_type]


def _print_json(value: Any) -> None:
    print(json.dumps(value, indent=2))


# =============================================================================
# Offline commands
# =============================================================================

def cmd_account_id(args: argparse.Namespace, config: ClientConfig) -> int:
    print(derive_account_id(args.address, args.index))
    return 0


def cmd_keygen(args: argparse.Namespace, config: ClientConfig) -> int:
    key_pair = StarkKeyPair.generate()
    account = generate_trading_account(key_pair.stark_key, args.index, args.address)
    _print_json({
        "private_key": key_pair.to_hex(),
        "stark_key": key_pair.stark_key,
        "account_id": account.id,
        "address": account.address,
        "index": account.index,
    })
    return 0


def cmd_to_fixed(args: argparse.Namespace, config: ClientConfig) -> int:
    print(decimal_to_fixed_point(args.value))
    return 0


def cmd_from_fixed(args: argparse.Namespace, config: ClientConfig) -> int:
    print(fixed_point_to_decimal(args.value))
    return 0


def cmd_sign_order(args: argparse.Namespace, config: ClientConfig) -> int:
    order = OrderPayload.create(
        account_id=args.account_id,
        order_id=args.order_id,
        market_id=args.market_id,
        order_type=OrderType[args.order_type.upper()],
        direction=Direction[args.direction.upper()],
        side=Side[args.side.upper()],
        price=args.price,
        size=args.size,
        leverage=args.leverage,
        slippage=args.slippage,
        post_only=args.post_only,
        time_in_force=TimeInForce[args.time_in_force.upper()],
        hash_type=HashType[args.hash_type.upper()],
    )
    _print_json(StarkSigner.from_key(args.private_key).sign_payload(order))
    return 0


def cmd_sign_withdrawal(args: argparse.Namespace, config: ClientConfig) -> int:
    request = WithdrawalPayload.create(
        account_id=args.account_id,
        collateral_id=args.collateral_id,
        amount=args.amount,
        hash_type=HashType[args.hash_type.upper()],
    )
    _print_json(StarkSigner.from_key(args.private_key).sign_payload(request))
    return 0


# =============================================================================
# Node commands
# =============================================================================

def cmd_abr_status(args: argparse.Namespace, config: ClientConfig) -> int:
    with HttpRpcClient(config.http_url, timeout=config.request_timeout) as rpc:
        _print_json({
            "last_timestamp": rpc.abr_last_timestamp(),
            "next_timestamp": rpc.abr_next_timestamp(),
        })
    return 0


def cmd_nonce(args: argparse.Namespace, config: ClientConfig) -> int:
    with HttpRpcClient(config.http_url, timeout=config.request_timeout) as rpc:
        print(rpc.next_nonce(args.address))
    return 0


async def _submit(config: ClientConfig, extrinsic_hex: str, deadline: Optional[float],
                  wait_for_finality: Optional[bool]):
    async with ChainClient(config) as client:
        return await client.submit(extrinsic_hex, deadline, wait_for_finality)


def cmd_submit(args: argparse.Namespace, config: ClientConfig) -> int:
    result = asyncio.run(_submit(config, args.extrinsic, args.deadline, True if args.finality else None))

    if isinstance(result, Included):
        _print_json({"status": "included", "block_hash": result.block_hash,
                     "finalized": result.finalized})
        return 0
    if isinstance(result, Failed):
        _print_json({"status": "failed", "error": result.error})
    elif isinstance(result, TimedOut):
        _print_json({"status": "timed_out", "deadline": result.deadline})
    return 1


# =============================================================================
# Chain flows
# =============================================================================

def _open_client(config: ClientConfig) -> ChainClient:
    """Chain client that signs with the node account over substrate-interface."""
    return ChainClient(config, SubstrateAdapter.from_config(config))


def _run_flow(config: ClientConfig, flow: Callable[[ChainClient], Awaitable[Any]]) -> Any:
    async def run():
        async with _open_client(config) as client:
            return await flow(client)

    return asyncio.run(run())


def _account(args: argparse.Namespace) -> TradingAccount:
    return generate_trading_account(args.stark_key, args.index, args.address)


def cmd_init_liquidation(args: argparse.Namespace, config: ClientConfig) -> int:
    pub_keys = args.signer or config.signers_pub_keys

    async def flow(client: ChainClient):
        # an already initialised timestamp still lets the signers go through
        timestamp = await init_abr_timestamp(client)
        added = await add_liquidator_signers(client, pub_keys)
        return {"timestamp": timestamp, "signers_added": added}

    _print_json(_run_flow(config, flow))
    return 0


def cmd_seed(args: argparse.Namespace, config: ClientConfig) -> int:
    async def flow(client: ChainClient):
        service = TradingAccountService(client)
        assets = await service.replace_assets()
        markets = await service.replace_markets()
        return {"assets": assets.block_hash, "markets": markets.block_hash}

    _print_json(_run_flow(config, flow))
    return 0


def cmd_create_account(args: argparse.Namespace, config: ClientConfig) -> int:
    account = _account(args)

    async def flow(client: ChainClient):
        return await TradingAccountService(client).create_account(account)

    included = _run_flow(config, flow)
    _print_json({"account_id": account.id, "address": account.address,
                 "index": account.index, "block_hash": included.block_hash})
    return 0


def cmd_deposit(args: argparse.Namespace, config: ClientConfig) -> int:
    account = _account(args)

    async def flow(client: ChainClient):
        return await TradingAccountService(client).deposit(account, args.asset, args.amount)

    included = _run_flow(config, flow)
    _print_json({"account_id": account.id, "block_hash": included.block_hash})
    return 0


def cmd_withdraw(args: argparse.Namespace, config: ClientConfig) -> int:
    async def flow(client: ChainClient):
        return await TradingAccountService(client).withdraw(
            args.account_id, args.asset, args.amount, args.private_key,
            HashType[args.hash_type.upper()],
        )

    included = _run_flow(config, flow)
    _print_json({"account_id": args.account_id, "block_hash": included.block_hash})
    return 0


def cmd_balance(args: argparse.Namespace, config: ClientConfig) -> int:
    async def flow(client: ChainClient):
        return await TradingAccountService(client).get_balance(args.account_id, args.asset)

    _print_json(_run_flow(config, flow).model_dump())
    return 0


# =============================================================================
# Entry point
# =============================================================================

def _add_account_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--stark-key", required=True, help="Account's Stark public key")
    p.add_argument("--address", required=True, help="0x-prefixed L2 address")
    p.add_argument("--index", type=int, default=0, help="Account index (0-255)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zkx-ops", description="ZKX node operations tooling")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", default="WARNING",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="Logging level")
    parser.add_argument("--ws-url", help="Node WebSocket URL (default: $SUBSTRATE_WS_URL)")
    parser.add_argument("--http-url", help="Node HTTP URL (default: $SUBSTRATE_HTTP_URL)")
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("account-id", help="Derive a trading account id")
    p.add_argument("address", help="0x-prefixed L2 address")
    p.add_argument("--index", type=int, default=0, help="Account index (0-255)")
    p.set_defaults(func=cmd_account_id)

    p = subparsers.add_parser("keygen", help="Generate a Stark key and trading account")
    p.add_argument("--index", type=int, default=0, help="Account index (0-255)")
    p.add_argument("--address", help="L2 address (random when omitted)")
    p.set_defaults(func=cmd_keygen)

    p = subparsers.add_parser("to-fixed", help="Decimal to 18-decimal fixed point")
    p.add_argument("value")
    p.set_defaults(func=cmd_to_fixed)

    p = subparsers.add_parser("from-fixed", help="18-decimal fixed point to decimal")
    p.add_argument("value")
    p.set_defaults(func=cmd_from_fixed)

    p = subparsers.add_parser("sign-order", help="Sign a trade order")
    p.add_argument("--private-key", required=True)
    p.add_argument("--account-id", required=True)
    p.add_argument("--order-id", required=True)
    p.add_argument("--market-id", required=True)
    p.add_argument("--order-type", choices=_choices(OrderType), default="limit")
    p.add_argument("--direction", choices=_choices(Direction), default="long")
    p.add_argument("--side", choices=_choices(Side), default="buy")
    p.add_argument("--price", required=True)
    p.add_argument("--size", required=True)
    p.add_argument("--leverage", default="1")
    p.add_argument("--slippage", default="0")
    p.add_argument("--post-only", action="store_true")
    p.add_argument("--time-in-force", choices=_choices(TimeInForce), default="gtc")
    p.add_argument("--hash-type", choices=_choices(HashType), default="pedersen")
    p.set_defaults(func=cmd_sign_order)

    p = subparsers.add_parser("sign-withdrawal", help="Sign a withdrawal request")
    p.add_argument("--private-key", required=True)
    p.add_argument("--account-id", required=True)
    p.add_argument("--collateral-id", required=True)
    p.add_argument("--amount", required=True)
    p.add_argument("--hash-type", choices=_choices(HashType), default="pedersen")
    p.set_defaults(func=cmd_sign_withdrawal)

    p = subparsers.add_parser("abr-status", help="Show the ABR timestamps")
    p.set_defaults(func=cmd_abr_status)

    p = subparsers.add_parser("nonce", help="Next nonce of an account")
    p.add_argument("address", help="SS58 address")
    p.set_defaults(func=cmd_nonce)

    p = subparsers.add_parser("submit", help="Submit a signed extrinsic and wait for inclusion")
    p.add_argument("extrinsic", help="0x-prefixed signed extrinsic")
    p.add_argument("--deadline", type=float, help="Seconds to wait (default: $INCLUSION_TIMEOUT)")
    p.add_argument("--finality", action="store_true", help="Wait for finalization (default: $WAIT_FOR_FINALITY)")
    p.set_defaults(func=cmd_submit)

    p = subparsers.add_parser("init-liquidation",
                              help="Initialise the ABR timestamp and add liquidator signers")
    p.add_argument("--signer", action="append",
                   help="Signer public key, repeatable (default: $SIGNERS_PUB_KEYS)")
    p.set_defaults(func=cmd_init_liquidation)

    p = subparsers.add_parser("seed", help="Replace assets and markets with the reference data")
    p.set_defaults(func=cmd_seed)

    p = subparsers.add_parser("create-account", help="Register a trading account")
    _add_account_args(p)
    p.set_defaults(func=cmd_create_account)

    p = subparsers.add_parser("deposit", help="Deposit collateral into a trading account")
    _add_account_args(p)
    p.add_argument("--asset", default="USDC")
    p.add_argument("--amount", required=True)
    p.set_defaults(func=cmd_deposit)

    p = subparsers.add_parser("withdraw", help="Sign and submit a withdrawal")
    p.add_argument("--private-key", required=True)
    p.add_argument("--account-id", required=True)
    p.add_argument("--asset", default="USDC")
    p.add_argument("--amount", required=True)
    p.add_argument("--hash-type", choices=_choices(HashType), default="pedersen")
    p.set_defaults(func=cmd_withdraw)

    p = subparsers.add_parser("balance", help="Collateral balance of a trading account")
    p.add_argument("--account-id", required=True)
    p.add_argument("--asset", default="USDC")
    p.set_defaults(func=cmd_balance)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = ClientConfig.from_env()
        if args.ws_url:
            config.ws_url = args.ws_url
        if args.http_url:
            config.http_url = args.http_url
        return args.func(args, config)
    except ZkxError as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
