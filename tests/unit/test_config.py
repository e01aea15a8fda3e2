"""
Tests for ClientConfig.
"""

import pytest

from zkx_client.runtime.config import (
    DEFAULT_HTTP_URL,
    DEFAULT_NODE_ACCOUNT,
    DEFAULT_WS_URL,
    ClientConfig,
)
from zkx_client.runtime.errors import ConfigurationError, ErrorCode


class TestClientConfig:
    """Defaults and environment parsing."""

    def test_defaults(self):
        config = ClientConfig()
        assert config.ws_url == DEFAULT_WS_URL
        assert config.http_url == DEFAULT_HTTP_URL
        assert config.node_account == DEFAULT_NODE_ACCOUNT
        assert config.signers_pub_keys == []
        assert config.inclusion_timeout == 60.0
        assert config.wait_for_finality is False

    def test_empty_environment(self):
        assert ClientConfig.from_env({}) == ClientConfig()

    def test_from_env(self):
        config = ClientConfig.from_env({
            "SUBSTRATE_WS_URL": "ws://node:9944",
            "SUBSTRATE_HTTP_URL": "http://node:9933",
            "NODE_ACCOUNT": "//Bob",
            "SIGNERS_PUB_KEYS": "0x01, 0x02,,",
            "INCLUSION_TIMEOUT": "12.5",
            "REQUEST_TIMEOUT": "5",
            "WAIT_FOR_FINALITY": "True",
        })
        assert config.ws_url == "ws://node:9944"
        assert config.http_url == "http://node:9933"
        assert config.node_account == "//Bob"
        assert config.signers_pub_keys == ["0x01", "0x02"]
        assert config.inclusion_timeout == 12.5
        assert config.request_timeout == 5.0
        assert config.wait_for_finality is True

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("SUBSTRATE_WS_URL", "ws://other:9944")
        monkeypatch.delenv("SIGNERS_PUB_KEYS", raising=False)
        config = ClientConfig.from_env()
        assert config.ws_url == "ws://other:9944"
        assert config.signers_pub_keys == []

    @pytest.mark.parametrize("name", ["INCLUSION_TIMEOUT", "REQUEST_TIMEOUT"])
    @pytest.mark.parametrize("raw", ["abc", "nan", "inf", "0", "-5"])
    def test_bad_timeout(self, name, raw):
        with pytest.raises(ConfigurationError) as exc_info:
            ClientConfig.from_env({name: raw})
        assert exc_info.value.code == ErrorCode.CONFIGURATION_ERROR
        assert name in exc_info.value.message

    def test_blank_timeout_uses_default(self):
        assert ClientConfig.from_env({"INCLUSION_TIMEOUT": " "}) == ClientConfig()
