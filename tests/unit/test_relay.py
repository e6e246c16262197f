"""Tests for relay URL rewriting."""

import dataclasses
from urllib.parse import parse_qs, urlparse

import pytest

from vidlook.config import EngineSettings
from vidlook.exceptions import RelayRejectedError
from vidlook.relay import RelayConfig

RELAY = "https://app.example.com/api/proxy"
TARGET = "https://inv1.example.com/api/v1/trending?region=US&type=music"


@pytest.fixture
def relay():
    return RelayConfig(
        base_url=RELAY, timeout_ms=4000, allowed_hosts=("inv1.example.com",)
    )


class TestRelayConfig:
    """Test RelayConfig construction."""

    def test_disabled_by_default(self):
        assert RelayConfig.from_settings(EngineSettings()) is None

    def test_enabled_without_base_url(self):
        """Test that a relay without a base URL is treated as disabled."""
        settings = EngineSettings(relay_enabled=True, relay_base_url="")
        assert RelayConfig.from_settings(settings) is None

    def test_from_settings(self):
        settings = dataclasses.replace(
            EngineSettings(),
            relay_enabled=True,
            relay_base_url=RELAY,
            relay_timeout_ms=2500,
            relay_allow_fallback=True,
            relay_allowed_hosts=("INV1.example.com",),
        )
        relay = RelayConfig.from_settings(settings)

        assert relay.base_url == RELAY
        assert relay.timeout_ms == 2500
        assert relay.allow_fallback
        assert relay.is_allowed("inv1.example.com")

    def test_default_allow_list(self):
        relay = RelayConfig(base_url=RELAY)
        assert len(relay.allowed_hosts) > 0


class TestRelayWrap:
    """Test wrapping provider URLs for the relay."""

    def test_wraps_allowed_target(self, relay):
        """Test that the full target URL is passed as a parameter."""
        wrapped = relay.wrap(TARGET)

        parsed = urlparse(wrapped)
        assert f"{parsed.scheme}://{parsed.netloc}{parsed.path}" == RELAY
        params = parse_qs(parsed.query)
        assert params["url"] == [TARGET]
        assert params["timeout"] == ["4000"]
        assert "fallback" not in params

    def test_timeout_override_and_fallback(self, relay):
        relay = dataclasses.replace(relay, allow_fallback=True)
        params = parse_qs(urlparse(relay.wrap(TARGET, timeout_ms=1500)).query)
        assert params["timeout"] == ["1500"]
        assert params["fallback"] == ["true"]

    def test_rejects_unlisted_host(self, relay):
        """Test that hosts outside the allow-list are refused."""
        with pytest.raises(RelayRejectedError) as exc_info:
            relay.wrap("https://evil.example.net/api/v1/trending")
        assert exc_info.value.status_code == 403

    @pytest.mark.parametrize("target", ["/api/v1/trending", "not a url", ""])
    def test_rejects_relative_targets(self, relay, target):
        with pytest.raises(RelayRejectedError):
            relay.wrap(target)
