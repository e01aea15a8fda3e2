"""
Runtime adapter backed by substrate-interface.

Metadata lookups, SCALE encoding and sr25519 extrinsic signing come from
``SubstrateInterface``. The signing keypair is the node account from
``NODE_ACCOUNT``: a dev URI such as ``//Alice``, a mnemonic (optionally with a
derivation path) or a 0x-prefixed seed.

Pallet and storage names are accepted in the snake_case the operations use
(``zkx_trading_account``, ``balances_map``) and resolved against the runtime
metadata (``ZKXTradingAccount``, ``BalancesMap``).
"""

from __future__ import annotations
import logging
from typing import Any, Dict, List, Optional

from substrateinterface import Keypair, SubstrateInterface
from substrateinterface.exceptions import SubstrateRequestException
from substrateinterface.utils.hasher import xxh128

from .client import DispatchErrorDetail, RuntimeAdapter
from .runtime.config import ClientConfig
from .runtime.errors import ConfigurationError, EncodingError, NetworkError

logger = logging.getLogger(__name__)

SYSTEM_EVENTS = ("system", "events")


def keypair_from_uri(node_account: str) -> Keypair:
    """
    Build the sr25519 keypair that signs extrinsics.

    Args:
        node_account: Dev URI, mnemonic or 0x seed

    Returns:
        Keypair for the account

    Raises:
        ConfigurationError: If the value is none of those
    """
    try:
        if node_account.startswith("0x"):
            return Keypair.create_from_seed(node_account)
        return Keypair.create_from_uri(node_account)
    except ValueError as e:
        raise ConfigurationError("NODE_ACCOUNT is not a valid URI, mnemonic or seed", cause=e)


def _normalize(name: str) -> str:
    return name.replace("_", "").lower()


def storage_name(storage: str) -> str:
    """``balances_map`` -> ``BalancesMap``; CamelCase names pass through."""
    return "".join(part[:1].upper() + part[1:] for part in storage.split("_"))


class SubstrateAdapter(RuntimeAdapter):
    """
    RuntimeAdapter over a connected ``SubstrateInterface``.

    Example:
        ```python
        config = ClientConfig.from_env()
        async with ChainClient(config, SubstrateAdapter.from_config(config)) as client:
            await TradingAccountService(client).replace_assets()
        ```
    """

    def __init__(self, substrate: SubstrateInterface, keypair: Keypair):
        self.substrate = substrate
        self.keypair = keypair
        self._pallets: Dict[str, str] = {}

    @classmethod
    def from_config(cls, config: ClientConfig) -> SubstrateAdapter:
        """
        Connect to ``config.ws_url`` and sign as ``config.node_account``.

        Raises:
            ConfigurationError: If the node account is invalid
            NetworkError: If the node cannot be reached
        """
        keypair = keypair_from_uri(config.node_account)
        try:
            substrate = SubstrateInterface(url=config.ws_url)
        except (OSError, SubstrateRequestException) as e:
            raise NetworkError(f"Cannot connect to {config.ws_url}", cause=e)

        logger.info(f"Runtime adapter connected to {config.ws_url} as {keypair.ss58_address}")
        return cls(substrate, keypair)

    @property
    def signer_address(self) -> str:
        return self.keypair.ss58_address

    def close(self) -> None:
        self.substrate.close()

    # =========================================================================
    # Name resolution
    # =========================================================================

    def _pallet(self, module: str) -> str:
        """Metadata name of a pallet given in any casing."""
        wanted = _normalize(module)
        if wanted not in self._pallets:
            for pallet in self.substrate.get_metadata().pallets:
                self._pallets[_normalize(pallet.value["name"])] = pallet.value["name"]
        try:
            return self._pallets[wanted]
        except KeyError:
            raise ConfigurationError(f"Runtime has no pallet {module!r}")

    def _pallet_by_index(self, index: int) -> Optional[str]:
        for pallet in self.substrate.get_metadata().pallets:
            if pallet.value["index"] == index:
                return pallet.value["name"]
        return None

    def _storage_function(self, module: str, storage: str):
        pallet = self._pallet(module)
        function = self.substrate.get_metadata_storage_function(pallet, storage_name(storage))
        if function is None:
            raise ConfigurationError(f"Runtime has no storage {pallet}.{storage_name(storage)}")
        return pallet, function

    # =========================================================================
    # RuntimeAdapter
    # =========================================================================

    def compose_call(self, module: str, call: str, params: Dict[str, Any],
                     nonce: int, sudo: bool = False) -> str:
        pallet = self._pallet(module)
        try:
            call_obj = self.substrate.compose_call(
                call_module=pallet, call_function=call, call_params=params,
            )
            if sudo:
                call_obj = self.substrate.compose_call(
                    call_module=self._pallet("sudo"), call_function="sudo",
                    call_params={"call": call_obj.value},
                )
        except ValueError as e:
            raise EncodingError(f"Cannot encode {pallet}.{call}: {e}", cause=e)

        extrinsic = self.substrate.create_signed_extrinsic(
            call=call_obj, keypair=self.keypair, nonce=nonce,
        )
        logger.debug(f"Signed {pallet}.{call} (sudo={sudo}) with nonce {nonce}")
        return extrinsic.data.to_hex()

    def storage_key(self, module: str, storage: str, params: List[Any]) -> str:
        pallet, _ = self._storage_function(module, storage)
        if not params:
            return "0x" + xxh128(pallet.encode()) + xxh128(storage_name(storage).encode())
        return self.substrate.create_storage_key(pallet, storage_name(storage), params).to_hex()

    def decode_storage(self, module: str, storage: str, raw: Optional[str]) -> Any:
        if raw is None:
            return None
        _, function = self._storage_function(module, storage)
        return self.substrate.decode_scale(function.get_value_type_string(), raw)

    def dispatch_error(self, events_raw: Optional[str],
                       extrinsic_index: int) -> Optional[DispatchErrorDetail]:
        if events_raw is None:
            return None

        records = self.decode_storage(*SYSTEM_EVENTS, events_raw) or []
        for record in records:
            if _extrinsic_index(record) != extrinsic_index:
                continue
            event = record.get("event") or record
            if event.get("module_id") != "System" or event.get("event_id") != "ExtrinsicFailed":
                continue
            return self._error_detail(_dispatch_error_value(event.get("attributes")))
        return None

    def _error_detail(self, dispatch_error: Any) -> DispatchErrorDetail:
        """Name a decoded ``DispatchError`` value, resolving module errors via metadata."""
        if isinstance(dispatch_error, dict) and "Module" in dispatch_error:
            module_error = dispatch_error["Module"]
            if isinstance(module_error, dict):
                pallet_index, error = module_error.get("index"), module_error.get("error")
            else:
                pallet_index, error = module_error
            # newer runtimes encode the error as 4 bytes; the first is the variant
            error_index = bytes.fromhex(error[2:])[0] if isinstance(error, str) else error

            pallet = self._pallet_by_index(pallet_index)
            metadata_error = self.substrate.get_metadata().get_module_error(
                module_index=pallet_index, error_index=error_index,
            )
            if metadata_error is None:
                return DispatchErrorDetail(name=f"Module({pallet_index}, {error_index})", module=pallet)
            return DispatchErrorDetail(
                name=metadata_error.name, module=pallet, docs=" ".join(metadata_error.docs or []),
            )

        if isinstance(dispatch_error, dict) and dispatch_error:
            kind, detail = next(iter(dispatch_error.items()))
            return DispatchErrorDetail(name=kind, docs=str(detail) if detail is not None else "")
        return DispatchErrorDetail(name=str(dispatch_error))


def _extrinsic_index(record: Dict[str, Any]) -> Optional[int]:
    if record.get("extrinsic_idx") is not None:
        return record["extrinsic_idx"]
    phase = record.get("phase")
    if isinstance(phase, dict):
        return phase.get("ApplyExtrinsic")
    return None


def _dispatch_error_value(attributes: Any) -> Any:
    if isinstance(attributes, dict):
        return attributes.get("dispatch_error")
    if isinstance(attributes, (list, tuple)) and attributes:
        return attributes[0]
    return attributes


__all__ = ["SubstrateAdapter", "keypair_from_uri", "storage_name"]
