"""Tests for provider selection."""

import asyncio

import httpx
import pytest

from fixtures.sample_data import PRIMARY_HOSTS, SECONDARY_HOSTS
from vidlook.models import FamilyName
from vidlook.provider_tracker import ProviderTracker, build_endpoints
from vidlook.providers import InvidiousFamily
from vidlook.transport import ProviderTransport


def run_tracker(provider_stub, scenario, **tracker_kwargs):
    """Run `scenario(tracker)` with a tracker over the primary stub hosts."""

    async def main():
        async with httpx.AsyncClient(transport=provider_stub.transport()) as client:
            tracker = ProviderTracker(
                build_endpoints(PRIMARY_HOSTS, FamilyName.PRIMARY),
                InvidiousFamily(),
                ProviderTransport(client),
                probe_timeout=0.5,
                **tracker_kwargs,
            )
            return await scenario(tracker), tracker

    return asyncio.run(main())


def probed_hosts(provider_stub):
    return [r.url.host for r in provider_stub.requested("/stats")]


class TestSelectProvider:
    """Test choosing a live provider."""

    def test_healthy_current(self, provider_stub):
        """Test that a live current provider is kept."""
        provider_stub.healthy(PRIMARY_HOSTS[0])

        selected, tracker = run_tracker(provider_stub, lambda t: t.select_provider())

        assert selected.base_url == PRIMARY_HOSTS[0]
        assert tracker.current_index == 0

    def test_optimistic_rotation(self, provider_stub):
        """Test that the next provider is returned without probing it."""
        selected, tracker = run_tracker(provider_stub, lambda t: t.select_provider())

        assert selected.base_url == PRIMARY_HOSTS[1]
        assert tracker.current_index == 1
        assert probed_hosts(provider_stub) == ["inv1.example.com"]

    def test_fallback_disabled(self, provider_stub):
        """Test that the current provider is kept even when down."""
        selected, tracker = run_tracker(
            provider_stub, lambda t: t.select_provider(), enable_fallback=False
        )

        assert selected.base_url == PRIMARY_HOSTS[0]
        assert tracker.current_index == 0

    def test_probe_all_finds_live_provider(self, provider_stub):
        provider_stub.healthy(PRIMARY_HOSTS[2])

        selected, _ = run_tracker(
            provider_stub, lambda t: t.select_provider(), probe_all=True
        )

        assert selected.base_url == PRIMARY_HOSTS[2]
        assert probed_hosts(provider_stub) == [
            "inv1.example.com",
            "inv2.example.com",
            "inv3.example.com",
        ]

    def test_probe_all_none_alive(self, provider_stub):
        """Test that each endpoint is probed once when all are down."""
        selected, _ = run_tracker(
            provider_stub, lambda t: t.select_provider(), probe_all=True
        )

        assert selected.base_url == PRIMARY_HOSTS[2]
        assert len(probed_hosts(provider_stub)) == 3


class TestRotation:
    """Test the rotating cursor."""

    def test_rotate_wraps(self, provider_stub):
        async def scenario(tracker):
            return [tracker.rotate().base_url for _ in range(3)]

        order, tracker = run_tracker(provider_stub, scenario)

        assert order == [PRIMARY_HOSTS[1], PRIMARY_HOSTS[2], PRIMARY_HOSTS[0]]
        tracker.rotate()
        tracker.reset()
        assert tracker.current.base_url == PRIMARY_HOSTS[0]


class TestConstruction:
    """Test tracker validation."""

    def test_requires_endpoints(self):
        with pytest.raises(ValueError):
            ProviderTracker([], InvidiousFamily(), transport=None)

    def test_rejects_other_family(self):
        endpoints = build_endpoints(SECONDARY_HOSTS, FamilyName.SECONDARY)
        with pytest.raises(ValueError):
            ProviderTracker(endpoints, InvidiousFamily(), transport=None)


def test_build_endpoints_drops_duplicates():
    endpoints = build_endpoints(
        ["https://inv1.example.com/", "https://inv1.example.com", PRIMARY_HOSTS[1]],
        FamilyName.PRIMARY,
    )
    assert [e.base_url for e in endpoints] == PRIMARY_HOSTS[:2]
