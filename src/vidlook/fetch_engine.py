"""
Resilient fetch engine.

Turns a logical metadata request (family, endpoint, params) into normalized
records, choosing a live provider for every attempt and rotating providers
between failed attempts.
"""

import logging
from typing import Any, Dict, List, Mapping, Optional

from .config import APP_NAME
from .constants import NetworkConstants
from .exceptions import EmptyResultError, TransportError, UpstreamStatusError
from .models import CanonicalRecord, FamilyName, MetadataPage
from .normalizer import normalize_items
from .provider_tracker import ProviderTracker
from .resilience import RetryableOperation, RetryConfig
from .transport import ProviderTransport

logger = logging.getLogger(APP_NAME + ".fetch_engine")


class FetchEngine:
    """Fetches and normalizes metadata listings with provider failover."""

    def __init__(
        self,
        trackers: Mapping[FamilyName, ProviderTracker],
        transport: ProviderTransport,
        retry_config: Optional[RetryConfig] = None,
        request_timeout: float = NetworkConstants.DEFAULT_REQUEST_TIMEOUT,
        enable_fallback: bool = True,
    ):
        self.trackers: Dict[FamilyName, ProviderTracker] = dict(trackers)
        self.transport = transport
        self.retry = RetryableOperation(retry_config)
        self.request_timeout = request_timeout
        self.enable_fallback = enable_fallback
        self.request_count = 0

    def tracker_for(self, family: FamilyName) -> ProviderTracker:
        try:
            return self.trackers[family]
        except KeyError:
            raise ValueError(f"No providers configured for family '{family}'") from None

    async def fetch_page(
        self,
        family: FamilyName,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        max_attempts: Optional[int] = None,
        require_results: bool = False,
    ) -> MetadataPage:
        """
        Fetch one listing page.

        Args:
            family: Provider family to query
            endpoint: Logical endpoint such as 'trending' or 'search'
            params: Query parameters
            max_attempts: Overrides the configured attempt budget
            require_results: Raise EmptyResultError instead of returning an
                empty page

        Returns:
            MetadataPage: normalized records and the continuation token

        Raises:
            TransportError, UpstreamStatusError: every attempt failed
            EmptyResultError: no results and require_results is set
        """
        tracker = self.tracker_for(family)
        provider_family = tracker.family
        query = dict(params or {})

        async def attempt(number: int) -> MetadataPage:
            provider = await tracker.select_provider()
            url = provider_family.build_request(provider.base_url, endpoint, query)
            self.request_count += 1
            logger.debug(f"[{family}] attempt {number}: GET {url}")
            payload = await self.transport.get_json(
                url, self.request_timeout, provider=provider.base_url
            )
            listing = provider_family.translate_listing(payload)
            records = normalize_items(listing.items)
            if not records and require_results:
                raise EmptyResultError(
                    f"No results for '{endpoint}'", url=url, provider=provider.base_url
                )
            return MetadataPage(records=records, next_cursor=listing.next_cursor)

        def rotate_on_failure(error: Exception, number: int) -> None:
            if self.enable_fallback and isinstance(
                error, (TransportError, UpstreamStatusError)
            ):
                tracker.rotate()

        page = await self.retry.execute(
            attempt,
            operation_name=f"fetch {family}/{endpoint}",
            on_retry=rotate_on_failure,
            max_attempts=max_attempts,
        )
        logger.debug(
            f"[{family}] {endpoint} returned {len(page.records)} records "
            f"(cursor: {'yes' if page.next_cursor else 'no'})"
        )
        return page

    async def fetch_metadata(
        self,
        family: FamilyName,
        endpoint: str,
        params: Optional[Mapping[str, Any]] = None,
        max_attempts: Optional[int] = None,
    ) -> List[CanonicalRecord]:
        """Fetch one listing and return just its records."""
        page = await self.fetch_page(family, endpoint, params, max_attempts=max_attempts)
        return list(page.records)
