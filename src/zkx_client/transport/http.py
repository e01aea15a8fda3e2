"""
HTTP JSON-RPC transport for a ZKX node.

Synchronous JSON-RPC 2.0 over HTTP, for one-shot reads such as nonces and
custom runtime RPCs. Subscriptions need the WebSocket transport.
"""

from __future__ import annotations
import itertools
import json
import logging
from typing import Any, List, Optional, Union

import requests

from ..runtime.errors import RpcError

logger = logging.getLogger(__name__)

Params = Optional[Union[List[Any], dict]]


class HttpRpcClient:
    """
    JSON-RPC client over HTTP.

    Example:
        ```python
        with HttpRpcClient("http://127.0.0.1:9933") as rpc:
            nonce = rpc.call("system_accountNextIndex", [address])
        ```
    """

    def __init__(
        self,
        endpoint: str,
        timeout: float = 30.0,
        session: Optional[requests.Session] = None
    ):
        """
        Initialize the client.

        Args:
            endpoint: Node HTTP RPC URL
            timeout: Request timeout in seconds (default: 30)
            session: Optional requests.Session for connection pooling
        """
        self._endpoint = endpoint.rstrip('/')
        self._timeout = timeout
        self._session = session or requests.Session()
        self._owns_session = session is None
        self._ids = itertools.count(1)

    @property
    def endpoint(self) -> str:
        """Get the RPC endpoint."""
        return self._endpoint

    def close(self) -> None:
        """Close the HTTP session if owned by this client."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> HttpRpcClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def call(self, method: str, params: Params = None) -> Any:
        """
        Make a JSON-RPC 2.0 call.

        Args:
            method: RPC method name
            params: Positional list or named dict

        Returns:
            Result from the RPC call

        Raises:
            RpcError: If the call fails
        """
        request_data = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params if params is not None else [],
            "id": next(self._ids),
        }
        logger.debug(f"RPC -> {method} {request_data['params']}")

        try:
            response = self._session.post(
                self._endpoint,
                json=request_data,
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )

            if response.status_code != 200:
                raise RpcError(
                    f"HTTP {response.status_code}: {response.reason}",
                    rpc_code=response.status_code,
                )

            response_data = response.json()

        except requests.exceptions.RequestException as e:
            raise RpcError(f"HTTP request failed: {e}", cause=e)
        except json.JSONDecodeError as e:
            raise RpcError(f"Invalid JSON response: {e}", cause=e)

        if "error" in response_data:
            error = response_data["error"]
            logger.error(f"RPC error from {method}: {error}")
            raise RpcError(
                error.get("message", "Unknown error"),
                rpc_code=error.get("code"),
                data=error.get("data"),
            )

        return response_data.get("result")

    # =========================================================================
    # Node queries
    # =========================================================================

    def next_nonce(self, address: str) -> int:
        """Next transaction index for an SS58 address."""
        return int(self.call("system_accountNextIndex", [address]))

    def abr_last_timestamp(self) -> int:
        """Timestamp (seconds) of the last ABR run; 0 if never initialised."""
        return int(self.call("abr_get_last_timestamp", []))

    def abr_next_timestamp(self) -> int:
        """Timestamp (seconds) of the next ABR run."""
        return int(self.call("abr_get_next_timestamp", []))
