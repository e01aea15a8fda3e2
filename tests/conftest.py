"""
Shared fixtures: deterministic Stark keys, a scripted runtime adapter and a
scripted node transport, so client and operation tests run offline.
"""

import asyncio
from typing import Any, Dict, List, Optional, Tuple

import pytest

from zkx_client.client import ChainClient, DispatchErrorDetail, RuntimeAdapter
from zkx_client.crypto.stark import StarkKeyPair
from zkx_client.runtime.config import ClientConfig

ALICE = "5GrwvaEF5zXb26Fz9rcQpDWS57CtERHpNehXCPcNoHGKutQY"


class FakeAdapter(RuntimeAdapter):
    """Records composed calls; storage values pass through undecoded."""

    def __init__(self):
        self.calls: List[Tuple[str, str, Dict[str, Any], int, bool]] = []
        self.dispatch_errors: List[Optional[DispatchErrorDetail]] = []

    @property
    def signer_address(self) -> str:
        return ALICE

    def compose_call(self, module, call, params, nonce, sudo=False):
        self.calls.append((module, call, params, nonce, sudo))
        return f"0x{len(self.calls):08x}"

    def storage_key(self, module, storage, params):
        key = f"{module}.{storage}"
        if params:
            key += ":" + ",".join(str(p) for p in params)
        return key

    def decode_storage(self, module, storage, raw):
        return raw

    def dispatch_error(self, events_raw, extrinsic_index):
        if self.dispatch_errors:
            return self.dispatch_errors.pop(0)
        return None


class FakeNode:
    """
    Scripted stand-in for WebSocketRpcClient.

    ``responses`` maps a method to a value or to a callable taking params.
    ``updates`` are the extrinsic statuses each submission yields; with
    ``hang`` set, the watch never completes after them.
    """

    def __init__(self):
        self.responses: Dict[str, Any] = {}
        self.requests: List[Tuple[str, Any]] = []
        self.updates: List[Any] = [{"inBlock": "0xblock"}]
        self.submitted: List[str] = []
        self.hang = False
        self.connected = False

    async def connect(self):
        self.connected = True

    async def disconnect(self):
        self.connected = False

    async def request(self, method, params=None, timeout=None):
        self.requests.append((method, params))
        value = self.responses[method]
        if callable(value):
            return value(params)
        return value

    async def subscribe(self, method, params=None, unsubscribe_method=None):
        self.submitted.append(params[0])
        for status in self.updates:
            yield status
        if self.hang:
            await asyncio.Event().wait()

    def methods(self) -> List[str]:
        return [method for method, _ in self.requests]


@pytest.fixture
def key_pair():
    """Deterministic Stark key pair."""
    return StarkKeyPair(12345)


@pytest.fixture
def other_key_pair():
    return StarkKeyPair(67890)


@pytest.fixture
def adapter():
    return FakeAdapter()


@pytest.fixture
def node(adapter):
    """Node that hands out nonces and includes every extrinsic it is sent."""
    fake = FakeNode()
    nonces = iter(range(7, 1000))
    fake.responses["system_accountNextIndex"] = lambda params: next(nonces)
    fake.responses["chain_getBlock"] = lambda params: {"block": {"extrinsics": list(fake.submitted)}}
    fake.responses["state_getStorage"] = None
    return fake


@pytest.fixture
def chain_client(adapter, node):
    config = ClientConfig(inclusion_timeout=1.0)
    return ChainClient(config, adapter, ws=node)
