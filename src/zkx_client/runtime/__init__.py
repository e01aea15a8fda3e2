"""Runtime helpers for the ZKX client"""

from .config import ClientConfig
from .errors import ZkxError, ErrorCode

__all__ = [
    "ClientConfig",
    "ZkxError",
    "ErrorCode",
]
