"""
Chain client for a ZKX Substrate node.

Submits extrinsics and reads storage over the WebSocket JSON-RPC transport.
SCALE encoding, metadata and extrinsic signing belong to a ``RuntimeAdapter``
supplied by the caller; this module only drives the node.

Every submission is awaited against a bounded deadline. The outcome is an
explicit ``InclusionResult``: ``Included``, ``Failed`` or ``TimedOut``.
"""

from __future__ import annotations
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple, Union

from .runtime.config import ClientConfig
from .runtime.errors import ConfigurationError, DispatchError, InclusionTimeout, TransactionError
from .transport.ws import WebSocketConfig, WebSocketRpcClient

logger = logging.getLogger(__name__)

# Extrinsic statuses after which the transaction can no longer be included
_FAILED_STATUSES = ("invalid", "dropped", "usurped", "finalityTimeout")


@dataclass(frozen=True)
class DispatchErrorDetail:
    """A decoded runtime dispatch error, e.g. ``trading.DuplicateSigner``."""
    name: str
    module: Optional[str] = None
    docs: str = ""


class RuntimeAdapter(ABC):
    """
    SCALE codec and signing collaborator.

    Implementations typically wrap a metadata-aware library and the node
    account's sr25519 keypair.
    """

    @property
    @abstractmethod
    def signer_address(self) -> str:
        """SS58 address of the account that signs extrinsics."""
        pass

    @abstractmethod
    def compose_call(self, module: str, call: str, params: Dict[str, Any],
                     nonce: int, sudo: bool = False) -> str:
        """
        Encode and sign an extrinsic.

        Args:
            module: Pallet name, e.g. ``zkx_trading_account``
            call: Call name, e.g. ``withdraw``
            params: Call arguments by name
            nonce: Account nonce to sign with
            sudo: Wrap the call in ``sudo.sudo``

        Returns:
            Signed extrinsic as 0x hex
        """
        pass

    @abstractmethod
    def storage_key(self, module: str, storage: str, params: List[Any]) -> str:
        """Storage key (0x hex) for a map entry, or the map prefix when params is empty."""
        pass

    @abstractmethod
    def decode_storage(self, module: str, storage: str, raw: Optional[str]) -> Any:
        """Decode a raw storage value; ``raw`` is None for an absent entry."""
        pass

    @abstractmethod
    def dispatch_error(self, events_raw: Optional[str],
                       extrinsic_index: int) -> Optional[DispatchErrorDetail]:
        """
        Find the dispatch error of one extrinsic in a block's events.

        Args:
            events_raw: Raw ``System.Events`` storage value of the block
            extrinsic_index: Position of the extrinsic in the block

        Returns:
            The decoded error, or None if the extrinsic succeeded
        """
        pass

    def close(self) -> None:
        """Release any connection the adapter holds."""
        pass


@dataclass(frozen=True)
class Included:
    """The extrinsic is in a block."""
    block_hash: str
    finalized: bool = False


@dataclass(frozen=True)
class Failed:
    """The pool rejected or dropped the extrinsic."""
    error: str


@dataclass(frozen=True)
class TimedOut:
    """No inclusion before the deadline (seconds)."""
    deadline: float


InclusionResult = Union[Included, Failed, TimedOut]


def _status_outcome(status: Any, wait_for_finality: bool) -> Optional[InclusionResult]:
    """Map one ``author_extrinsicUpdate`` to a final outcome, or None to keep waiting."""
    if isinstance(status, str):
        if status in _FAILED_STATUSES:
            return Failed(error=status)
        return None

    if isinstance(status, dict):
        if "finalized" in status:
            return Included(block_hash=status["finalized"], finalized=True)
        if "inBlock" in status and not wait_for_finality:
            return Included(block_hash=status["inBlock"], finalized=False)
        for name in _FAILED_STATUSES:
            if name in status:
                return Failed(error=name)
    return None


class ChainClient:
    """
    Async client for submitting calls and reading storage.

    Example:
        ```python
        config = ClientConfig.from_env()
        async with ChainClient(config, adapter) as client:
            await client.execute("prices", "set_initialisation_timestamp",
                                 {"timestamp": ts}, sudo=True)
        ```
    """

    def __init__(self, config: ClientConfig, adapter: Optional[RuntimeAdapter] = None,
                 ws: Optional[WebSocketRpcClient] = None):
        """
        Initialize the client.

        Args:
            config: Connection and submission settings
            adapter: SCALE codec and signing collaborator; only raw RPC and
                ``submit`` work without one
            ws: Transport to use (built from config when omitted)
        """
        self.config = config
        self._adapter = adapter
        self.ws = ws or WebSocketRpcClient(
            WebSocketConfig(url=config.ws_url, timeout=config.request_timeout)
        )

    @property
    def adapter(self) -> RuntimeAdapter:
        if self._adapter is None:
            raise ConfigurationError("No runtime adapter configured")
        return self._adapter

    async def __aenter__(self) -> ChainClient:
        await self.ws.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        await self.ws.disconnect()
        if self._adapter is not None:
            self._adapter.close()

    async def rpc(self, method: str, params: Optional[Union[List[Any], Dict[str, Any]]] = None) -> Any:
        """Raw JSON-RPC call."""
        return await self.ws.request(method, params)

    async def next_nonce(self, address: str) -> int:
        """Next transaction index for an address, pending pool included."""
        return int(await self.rpc("system_accountNextIndex", [address]))

    # =========================================================================
    # Storage
    # =========================================================================

    async def query(self, module: str, storage: str, params: Optional[List[Any]] = None,
                    block_hash: Optional[str] = None) -> Any:
        """
        Read and decode one storage entry.

        Args:
            module: Pallet name
            storage: Storage item name
            params: Map keys
            block_hash: Block to read at (best block when None)

        Returns:
            Decoded value from the adapter
        """
        key = self.adapter.storage_key(module, storage, params or [])
        rpc_params = [key, block_hash] if block_hash else [key]
        raw = await self.rpc("state_getStorage", rpc_params)
        return self.adapter.decode_storage(module, storage, raw)

    async def query_entries(self, module: str, storage: str,
                            page_size: int = 1000) -> List[Tuple[str, Any]]:
        """
        Read every entry of a storage map.

        Returns:
            (storage key, decoded value) pairs
        """
        prefix = self.adapter.storage_key(module, storage, [])
        entries: List[Tuple[str, Any]] = []
        start_key: Optional[str] = None

        while True:
            keys = await self.rpc("state_getKeysPaged", [prefix, page_size, start_key])
            if not keys:
                break

            change_sets = await self.rpc("state_queryStorageAt", [keys])
            for change_set in change_sets or []:
                for key, raw in change_set.get("changes", []):
                    entries.append((key, self.adapter.decode_storage(module, storage, raw)))

            if len(keys) < page_size:
                break
            start_key = keys[-1]

        logger.debug(f"Read {len(entries)} entries from {module}.{storage}")
        return entries

    # =========================================================================
    # Submission
    # =========================================================================

    async def submit(self, extrinsic_hex: str, deadline: Optional[float] = None,
                     wait_for_finality: Optional[bool] = None) -> InclusionResult:
        """
        Submit a signed extrinsic and watch it until inclusion.

        Args:
            extrinsic_hex: Signed extrinsic as 0x hex
            deadline: Seconds to wait (config.inclusion_timeout when None)
            wait_for_finality: Wait for finalization rather than the first block

        Returns:
            Included, Failed or TimedOut
        """
        if deadline is None:
            deadline = self.config.inclusion_timeout
        if wait_for_finality is None:
            wait_for_finality = self.config.wait_for_finality

        async def watch() -> InclusionResult:
            updates = self.ws.subscribe(
                "author_submitAndWatchExtrinsic", [extrinsic_hex],
                unsubscribe_method="author_unwatchExtrinsic",
            )
            try:
                async for status in updates:
                    logger.debug(f"Extrinsic status: {status}")
                    outcome = _status_outcome(status, wait_for_finality)
                    if outcome is not None:
                        return outcome
            finally:
                await updates.aclose()
            return Failed(error="subscription ended")

        try:
            result = await asyncio.wait_for(watch(), deadline)
        except asyncio.TimeoutError:
            logger.warning(f"Extrinsic not included within {deadline}s")
            return TimedOut(deadline=deadline)

        if isinstance(result, Failed):
            logger.error(f"Extrinsic failed: {result.error}")
        else:
            logger.info(f"Extrinsic included in block {result.block_hash}")
        return result

    async def dispatch_error(self, block_hash: str, extrinsic_hex: str) -> Optional[DispatchErrorDetail]:
        """
        Resolve the dispatch outcome of an included extrinsic.

        Returns:
            The dispatch error, or None if the call succeeded
        """
        block = await self.rpc("chain_getBlock", [block_hash])
        extrinsics = [item.lower() for item in block["block"]["extrinsics"]]
        try:
            index = extrinsics.index(extrinsic_hex.lower())
        except ValueError:
            raise TransactionError(
                f"Extrinsic not found in block {block_hash}",
                details={"block_hash": block_hash},
            )

        events_key = self.adapter.storage_key("system", "events", [])
        events_raw = await self.rpc("state_getStorage", [events_key, block_hash])
        return self.adapter.dispatch_error(events_raw, index)

    async def execute(self, module: str, call: str, params: Dict[str, Any],
                      sudo: bool = False, deadline: Optional[float] = None) -> Included:
        """
        Compose, sign and submit a call with a fresh nonce, then await inclusion.

        Args:
            module: Pallet name
            call: Call name
            params: Call arguments by name
            sudo: Wrap the call in ``sudo.sudo``
            deadline: Seconds to wait for inclusion

        Returns:
            The Included outcome

        Raises:
            InclusionTimeout: If the deadline passed first
            TransactionError: If the pool rejected the extrinsic
            DispatchError: If the runtime rejected the call
        """
        nonce = await self.next_nonce(self.adapter.signer_address)
        extrinsic = self.adapter.compose_call(module, call, params, nonce, sudo)
        label = f"sudo({module}.{call})" if sudo else f"{module}.{call}"
        logger.info(f"Submitting {label} with nonce {nonce}")

        result = await self.submit(extrinsic, deadline)

        if isinstance(result, TimedOut):
            raise InclusionTimeout(
                f"{label} not included within {result.deadline}s",
                details={"deadline": result.deadline, "nonce": nonce},
            )
        if isinstance(result, Failed):
            raise TransactionError(f"{label} failed: {result.error}", details={"status": result.error})

        detail = await self.dispatch_error(result.block_hash, extrinsic)
        if detail is not None:
            raise DispatchError(
                f"{label} dispatch failed: {detail.name}",
                name=detail.name,
                module=detail.module,
                details={"block_hash": result.block_hash, "docs": detail.docs},
            )
        return result


__all__ = [
    "DispatchErrorDetail",
    "RuntimeAdapter",
    "Included",
    "Failed",
    "TimedOut",
    "InclusionResult",
    "ChainClient",
]
