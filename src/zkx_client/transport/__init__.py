"""
JSON-RPC transports for ZKX nodes.

HTTP for one-shot calls, WebSocket for anything that needs subscriptions.
"""

from .http import HttpRpcClient
from .ws import WebSocketRpcClient, WebSocketConfig, WebSocketError, ReconnectExceeded

__all__ = [
    "HttpRpcClient",
    "WebSocketRpcClient",
    "WebSocketConfig",
    "WebSocketError",
    "ReconnectExceeded",
]
