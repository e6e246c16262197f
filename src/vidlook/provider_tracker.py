"""
Provider health and selection.

A ProviderTracker owns the ordered endpoint list of one family and a rotating
cursor into it. The cursor moves when a provider fails a liveness probe or
when the fetch engine asks for a rotation after a failed request.
"""

import logging
from typing import Sequence, Tuple

from .config import APP_NAME
from .constants import NetworkConstants
from .models import FamilyName, ProviderEndpoint
from .providers import ProviderFamily
from .transport import ProviderTransport

logger = logging.getLogger(APP_NAME + ".provider_tracker")


class ProviderTracker:
    """Selects a live provider endpoint for one provider family."""

    def __init__(
        self,
        endpoints: Sequence[ProviderEndpoint],
        family: ProviderFamily,
        transport: ProviderTransport,
        probe_timeout: float = NetworkConstants.DEFAULT_PROBE_TIMEOUT,
        enable_fallback: bool = True,
        probe_all: bool = False,
    ):
        if not endpoints:
            raise ValueError(f"No endpoints configured for {family.name} providers")
        mismatched = [e.base_url for e in endpoints if e.family != family.name]
        if mismatched:
            raise ValueError(
                f"Endpoints {mismatched} do not belong to the {family.name} family"
            )

        self._endpoints: Tuple[ProviderEndpoint, ...] = tuple(endpoints)
        self._index = 0
        self.family = family
        self.transport = transport
        self.probe_timeout = probe_timeout
        self.enable_fallback = enable_fallback
        self.probe_all = probe_all

    @property
    def endpoints(self) -> Tuple[ProviderEndpoint, ...]:
        return self._endpoints

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def current(self) -> ProviderEndpoint:
        return self._endpoints[self._index]

    def rotate(self) -> ProviderEndpoint:
        """Advance the cursor to the next endpoint, wrapping around."""
        previous = self.current
        self._index = (self._index + 1) % len(self._endpoints)
        logger.debug(f"Rotated {self.family.name} provider {previous} -> {self.current}")
        return self.current

    def reset(self) -> None:
        self._index = 0

    async def is_alive(self, endpoint: ProviderEndpoint) -> bool:
        return await self.transport.probe(
            self.family.probe_url(endpoint.base_url), self.probe_timeout
        )

    async def select_provider(self) -> ProviderEndpoint:
        """
        Return the endpoint to use for the next request.

        The current endpoint is probed first. When it is down and fallback is
        enabled the cursor advances; in optimistic mode the next endpoint is
        returned unprobed, otherwise each remaining endpoint is probed once.
        """
        candidate = self.current
        if await self.is_alive(candidate):
            return candidate

        logger.warning(f"Provider {candidate} is down, trying next...")
        if not self.enable_fallback:
            return candidate

        if not self.probe_all:
            return self.rotate()

        for _ in range(len(self._endpoints) - 1):
            candidate = self.rotate()
            if await self.is_alive(candidate):
                return candidate
            logger.warning(f"Provider {candidate} is down, trying next...")

        logger.error(f"No healthy {self.family.name} provider found")
        return candidate

    def __repr__(self) -> str:
        return (
            f"ProviderTracker(family={self.family.name}, "
            f"current={self.current}, endpoints={len(self._endpoints)})"
        )


def build_endpoints(
    urls: Sequence[str], family: FamilyName
) -> Tuple[ProviderEndpoint, ...]:
    """Validate base URLs into endpoints, dropping duplicates."""
    endpoints = []
    seen = set()
    for url in urls:
        endpoint = ProviderEndpoint(base_url=url, family=family)
        if endpoint.base_url in seen:
            continue
        seen.add(endpoint.base_url)
        endpoints.append(endpoint)
    return tuple(endpoints)
