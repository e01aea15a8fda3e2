"""
Init-liquidation flow: align the ABR initialisation timestamp and whitelist
the liquidator signers.
"""

from __future__ import annotations
import logging
import time
from typing import Iterable, List, Optional

from ..client import ChainClient
from ..codec.numeric import coerce_int, to_u256_from_string, U256_MAX
from ..runtime.errors import DispatchError, ValueOutOfRange

logger = logging.getLogger(__name__)

DUPLICATE_SIGNER = "DuplicateSigner"


def signer_key_value(pub_key: str) -> int:
    """Signer key as u256: 0x hex and decimal keys are numbers, anything else is packed text."""
    if pub_key.startswith("0x") or pub_key.isdigit():
        value = coerce_int(pub_key)
        if value > U256_MAX:
            raise ValueOutOfRange(f"Signer key does not fit u256: {pub_key}")
        return value
    return to_u256_from_string(pub_key)


def aligned_timestamp(now_ms: int, next_timestamp_s: int) -> int:
    """
    Align a millisecond timestamp down to the ABR interval.

    Args:
        now_ms: Current time in milliseconds
        next_timestamp_s: ``abr_get_next_timestamp`` value in seconds

    Returns:
        ``now_ms`` rounded down to a multiple of ``next_timestamp_s * 1000``
    """
    period_ms = next_timestamp_s * 1000
    if period_ms <= 0:
        raise ValueOutOfRange(f"ABR next timestamp must be positive, got {next_timestamp_s}")
    return now_ms - now_ms % period_ms


async def init_abr_timestamp(client: ChainClient, now_ms: Optional[int] = None) -> Optional[int]:
    """
    Set the prices pallet's initialisation timestamp if ABR never ran.

    Args:
        client: Connected chain client
        now_ms: Current time in milliseconds (wall clock when None)

    Returns:
        The submitted timestamp, or None if it was already initialised
    """
    last_timestamp = int(await client.rpc("abr_get_last_timestamp", []))
    if last_timestamp != 0:
        logger.info("Timestamp already initialized")
        return None

    if now_ms is None:
        now_ms = int(time.time() * 1000)
    next_timestamp = int(await client.rpc("abr_get_next_timestamp", []))
    timestamp_ms = aligned_timestamp(now_ms, next_timestamp)
    logger.info(f"ABR last={last_timestamp} next={next_timestamp}s, initialising at {timestamp_ms}")

    await client.execute("prices", "set_initialisation_timestamp",
                         {"timestamp": timestamp_ms}, sudo=True)
    return timestamp_ms


async def add_liquidator_signers(client: ChainClient, pub_keys: Iterable[str]) -> List[str]:
    """
    Whitelist liquidator signer keys, one sudo call each.

    Keys the runtime already knows (``DuplicateSigner``) are skipped with a
    warning; any other dispatch error propagates.

    Args:
        client: Connected chain client
        pub_keys: Signer public keys; blanks are ignored

    Returns:
        The keys that were newly added
    """
    added: List[str] = []
    for pub_key in pub_keys:
        pub_key = pub_key.strip()
        if not pub_key:
            continue

        try:
            await client.execute("trading", "add_liquidator_signer",
                                 {"pub_key": signer_key_value(pub_key)}, sudo=True)
        except DispatchError as e:
            if e.name != DUPLICATE_SIGNER:
                raise
            logger.warning(f"Signer pub key already added: {pub_key}")
            continue
        added.append(pub_key)

    return added


__all__ = ["aligned_timestamp", "init_abr_timestamp", "add_liquidator_signers", "signer_key_value", "DUPLICATE_SIGNER"]
