"""
Client configuration.

Settings are read from the environment the same way the node operation
scripts always have been (``SUBSTRATE_WS_URL``, ``NODE_ACCOUNT``,
``SIGNERS_PUB_KEYS``), with defaults pointing at a local development node.
"""

from __future__ import annotations
import math
import os
from dataclasses import dataclass, field
from typing import List, Mapping, Optional

from .errors import ConfigurationError

DEFAULT_WS_URL = "ws://127.0.0.1:9944"
DEFAULT_HTTP_URL = "http://127.0.0.1:9933"
DEFAULT_NODE_ACCOUNT = "//Alice"


def _split_keys(raw: str) -> List[str]:
    return [item.strip() for item in raw.split(",") if item.strip()]


def _seconds(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number of seconds, got {raw!r}", cause=e)
    if not math.isfinite(value) or value <= 0:
        raise ConfigurationError(f"{name} must be a positive number of seconds, got {raw!r}")
    return value


@dataclass
class ClientConfig:
    """Connection and submission settings for a ZKX node."""
    ws_url: str = DEFAULT_WS_URL
    http_url: str = DEFAULT_HTTP_URL
    node_account: str = DEFAULT_NODE_ACCOUNT
    signers_pub_keys: List[str] = field(default_factory=list)
    inclusion_timeout: float = 60.0  # seconds to wait for block inclusion
    request_timeout: float = 30.0
    wait_for_finality: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> ClientConfig:
        """
        Build a config from environment variables.

        Args:
            environ: Mapping to read from (defaults to ``os.environ``)

        Returns:
            ClientConfig with defaults for unset variables

        Raises:
            ConfigurationError: If a timeout is not a positive number
        """
        env = os.environ if environ is None else environ

        return cls(
            ws_url=env.get("SUBSTRATE_WS_URL", DEFAULT_WS_URL),
            http_url=env.get("SUBSTRATE_HTTP_URL", DEFAULT_HTTP_URL),
            node_account=env.get("NODE_ACCOUNT", DEFAULT_NODE_ACCOUNT),
            signers_pub_keys=_split_keys(env.get("SIGNERS_PUB_KEYS", "")),
            inclusion_timeout=_seconds(env, "INCLUSION_TIMEOUT", 60.0),
            request_timeout=_seconds(env, "REQUEST_TIMEOUT", 30.0),
            wait_for_finality=env.get("WAIT_FOR_FINALITY", "").lower() in ("1", "true", "yes"),
        )
