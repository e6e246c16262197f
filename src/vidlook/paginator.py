"""
Category and search pagination on top of the query cache.

get_page serves a prefix of the cached records, fetching at most one new page
when the cache cannot satisfy the request. get_more_page hands out the next
slice of records the caller has not seen yet.
"""

import logging
import math
from typing import Dict, Iterable, List, Optional

from .cache import QueryCache, QueryCacheEntry
from .config import APP_NAME
from .constants import FeedConstants, NetworkConstants
from .exceptions import VidLookError
from .fetch_engine import FetchEngine
from .models import CanonicalRecord, FamilyName, MetadataPage, QueryKey
from .providers import RequestSpec

logger = logging.getLogger(APP_NAME + ".paginator")


class Paginator:
    """Serves paged record slices for category and search queries."""

    def __init__(
        self,
        engine: FetchEngine,
        cache: QueryCache,
        family: FamilyName = FamilyName.PRIMARY,
        region: str = NetworkConstants.DEFAULT_REGION,
        search_page_size: int = FeedConstants.DEFAULT_MORE_COUNT,
    ):
        self.engine = engine
        self.cache = cache
        self.family_name = family
        self.family = engine.tracker_for(family).family
        self.region = region
        # Only used to estimate the next page number when no counter exists
        self.search_page_size = search_page_size

    # --- Request planning ---

    def _next_page_number(self, entry: QueryCacheEntry) -> int:
        if entry.pages_fetched:
            return entry.pages_fetched + 1
        if entry.records:
            return math.ceil(len(entry.records) / self.search_page_size) + 1
        return 1

    def _request_for(self, key: QueryKey, entry: QueryCacheEntry) -> RequestSpec:
        if key.is_search:
            cursor = entry.cursor if self.family.supports_cursor else None
            return self.family.search_request(
                key.value, page=self._next_page_number(entry), cursor=cursor
            )
        return self.family.category_request(key.value, self.region)

    def _is_exhausted(
        self, key: QueryKey, page: MetadataPage, added: List[CanonicalRecord]
    ) -> bool:
        if not key.is_search and not self.family.paginates_category(key.value):
            return True
        if self.family.supports_cursor:
            return page.next_cursor is None
        return not added

    async def _fetch_next(self, key: QueryKey) -> List[CanonicalRecord]:
        """Fetch one more page for `key`, merge it and update the bookkeeping."""
        entry = self.cache.get_or_create(key)
        spec = self._request_for(key, entry)
        page = await self.engine.fetch_page(self.family_name, spec.endpoint, spec.params)

        if (
            not key.is_search
            and page.is_empty
            and entry.pages_fetched == 0
            and not self.family.is_default_category(key.value)
        ):
            logger.warning(
                f"No videos found for category {key.value}, using default listing"
            )
            spec = self.family.default_category_request(self.region)
            page = await self.engine.fetch_page(
                self.family_name, spec.endpoint, spec.params
            )

        # The entry may have been replaced while the request was in flight
        entry = self.cache.get_or_create(key)
        added = entry.extend_unique(page.records)
        entry.pages_fetched += 1
        entry.cursor = page.next_cursor
        entry.exhausted = self._is_exhausted(key, page, added)
        self.cache.mark_refreshed(key)

        logger.debug(
            f"{key}: +{len(added)} records (total {len(entry)}, "
            f"page {entry.pages_fetched}, exhausted={entry.exhausted})"
        )
        return added

    # --- Public API ---

    async def get_page(
        self, key: QueryKey, desired_count: int, force_refresh: bool = False
    ) -> List[CanonicalRecord]:
        """
        Return up to `desired_count` records for `key`.

        Raises:
            VidLookError: the fetch engine could not reach any provider
        """
        if desired_count < 0:
            raise ValueError("desired_count cannot be negative")

        if force_refresh or self.cache.is_stale(key):
            entry = self.cache.reset(key)
        else:
            entry = self.cache.get_or_create(key)

        if len(entry) >= desired_count or (entry.was_fetched and entry.exhausted):
            self.cache.record_lookup(hit=True)
        else:
            self.cache.record_lookup(hit=False)
            await self._fetch_next(key)
            entry = self.cache.get_or_create(key)

        result = entry.records[:desired_count]
        entry.delivered = max(entry.delivered, len(result))
        return result

    async def get_more_page(
        self, key: QueryKey, increment_count: int
    ) -> List[CanonicalRecord]:
        """
        Return up to `increment_count` records the caller has not received yet.

        Never raises on provider failure or exhaustion; both yield [].
        """
        entry = self.cache.get(key)
        if entry is None or not entry.was_fetched:
            try:
                return await self.get_page(key, increment_count)
            except VidLookError as e:
                logger.error(f"Error fetching more results for {key}: {e}")
                return []

        if len(entry) - entry.delivered < increment_count:
            if entry.exhausted:
                logger.info(f"No more videos to fetch for {key}")
            else:
                try:
                    await self._fetch_next(key)
                except VidLookError as e:
                    logger.error(f"Error fetching more results for {key}: {e}")
                entry = self.cache.get_or_create(key)

        suffix = entry.records[entry.delivered : entry.delivered + increment_count]
        entry.delivered += len(suffix)
        return suffix

    def reset(self, key: QueryKey) -> None:
        self.cache.reset(key)

    async def preload(
        self,
        categories: Optional[Iterable[str]] = None,
        count: int = FeedConstants.PRELOAD_COUNT,
    ) -> Dict[str, int]:
        """Warm the cache for `categories`; returns records loaded per category."""
        loaded: Dict[str, int] = {}
        for category in categories or FeedConstants.PRELOAD_CATEGORIES:
            try:
                records = await self.get_page(
                    QueryKey.category(category), count, force_refresh=True
                )
                loaded[category] = len(records)
                logger.info(f"Preloaded {len(records)} {category} videos")
            except VidLookError as e:
                logger.error(f"Error preloading {category} videos: {e}")
                loaded[category] = 0
        return loaded
