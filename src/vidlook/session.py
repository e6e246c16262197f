"""
Session context for VidLook.

A VideoSession wires every engine component together for one session and is
the API callers use. Nothing is shared between sessions: each one has its
own HTTP client, provider cursors, cache and metrics.

Usage:
    async with VideoSession.create() as session:
        videos = (await session.fetch_videos_by_category("Music")).unwrap_or([])
        stream = await session.resolve_stream(videos[0].id)
"""

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

import httpx

from .cache import QueryCache
from .config import APP_NAME, EngineSettings, load_settings
from .constants import FeedConstants
from .debounce import LatestQueryGate
from .exceptions import TerminalResolutionError, VidLookError
from .fetch_engine import FetchEngine
from .models import CanonicalRecord, FamilyName, QueryKey, StreamManifest
from .paginator import Paginator
from .performance import PerformanceMonitor
from .provider_tracker import ProviderTracker, build_endpoints
from .providers import default_families
from .relay import RelayConfig
from .resilience import RetryConfig
from .result import Result, safe_await
from .stream_resolver import StreamResolver
from .transport import ProviderTransport, default_headers

logger = logging.getLogger(APP_NAME + ".session")

RecordsResult = Result[List[CanonicalRecord], VidLookError]
StreamResult = Result[StreamManifest, TerminalResolutionError]


class VideoSession:
    """Owns the engine components of one session and exposes the caller API."""

    def __init__(
        self,
        settings: EngineSettings,
        client: httpx.AsyncClient,
        owns_client: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Wire the engine for one session.

        Args:
            settings: Configuration snapshot
            client: HTTP client every provider request goes through
            owns_client: Close `client` when the session closes
            clock: Monotonic time source for cache freshness
        """
        self.settings = settings
        self.client = client
        self._owns_client = owns_client
        self._closed = False

        self.monitor = PerformanceMonitor()
        self.relay = RelayConfig.from_settings(settings)
        self.transport = ProviderTransport(client, relay=self.relay, monitor=self.monitor)
        self.families = default_families(
            settings.primary_api_prefix, settings.secondary_api_prefix
        )

        self.primary_endpoints = build_endpoints(
            settings.primary_instances, FamilyName.PRIMARY
        )
        self.secondary_endpoints = build_endpoints(
            settings.secondary_instances, FamilyName.SECONDARY
        )
        if not self.primary_endpoints and not self.secondary_endpoints:
            raise ValueError("At least one provider instance must be configured")

        self.trackers: Dict[FamilyName, ProviderTracker] = {}
        for name, endpoints in (
            (FamilyName.PRIMARY, self.primary_endpoints),
            (FamilyName.SECONDARY, self.secondary_endpoints),
        ):
            if endpoints:
                self.trackers[name] = ProviderTracker(
                    endpoints,
                    self.families[name],
                    self.transport,
                    probe_timeout=settings.probe_timeout,
                    enable_fallback=settings.enable_fallback,
                    probe_all=settings.probe_all,
                )

        self.engine = FetchEngine(
            self.trackers,
            self.transport,
            retry_config=RetryConfig.from_settings(settings),
            request_timeout=settings.request_timeout,
            enable_fallback=settings.enable_fallback,
        )
        self.cache = QueryCache(settings.cache_freshness_seconds, clock=clock)
        metadata_family = (
            FamilyName.PRIMARY if self.primary_endpoints else FamilyName.SECONDARY
        )
        self.paginator = Paginator(
            self.engine,
            self.cache,
            family=metadata_family,
            region=settings.default_region,
        )
        self.resolver = StreamResolver(
            self.transport,
            self.primary_endpoints,
            self.secondary_endpoints,
            self.families,
            detail_timeout=settings.detail_timeout,
        )
        self.search_gate = LatestQueryGate(
            self._run_debounced_search, delay=settings.debounce_seconds
        )
        logger.debug(
            f"Session ready: metadata family {metadata_family}, "
            f"{len(self.resolver.chain())} providers in the stream chain"
        )

    @classmethod
    def create(
        cls,
        settings: Optional[EngineSettings] = None,
        client: Optional[httpx.AsyncClient] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> "VideoSession":
        """
        Build a session, creating its HTTP client unless one is given.

        Args:
            settings: Configuration snapshot (read from the config file if None)
            client: Existing client; the caller stays responsible for closing it
            transport: httpx transport for a newly created client
            clock: Monotonic time source for cache freshness
        """
        settings = settings or load_settings()
        owns_client = client is None
        if client is None:
            client = httpx.AsyncClient(
                headers=default_headers(settings.user_agent),
                timeout=settings.request_timeout,
                follow_redirects=True,
                transport=transport,
            )
        return cls(settings, client, owns_client=owns_client, clock=clock)

    async def __aenter__(self) -> "VideoSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._closed:
            return
        self._closed = True
        self.search_gate.cancel()
        if self._owns_client:
            await self.client.aclose()
        logger.debug("Session closed")

    @property
    def categories(self) -> List[str]:
        return list(FeedConstants.CATEGORY_NAMES)

    async def _records(
        self, description: str, func, *args, **kwargs
    ) -> RecordsResult:
        result = await safe_await(func, *args, catch=(VidLookError,), **kwargs)
        if result.is_err():
            error = result.unwrap_err()
            logger.error(f"Error {description}: {error}")
        return result

    # --- Categories ---

    async def fetch_videos_by_category(
        self, category: str, count: Optional[int] = None, reset_cache: bool = False
    ) -> RecordsResult:
        """Up to `count` records for a category; `reset_cache` forces a refetch."""
        count = self.settings.category_count if count is None else count
        return await self._records(
            f"fetching videos for category {category}",
            self.paginator.get_page,
            QueryKey.category(category),
            count,
            force_refresh=reset_cache,
        )

    async def fetch_more_videos(
        self, category: str, count: int = FeedConstants.DEFAULT_MORE_COUNT
    ) -> RecordsResult:
        """The next records of a category listing; [] once exhausted."""
        return Result.Ok(
            await self.paginator.get_more_page(QueryKey.category(category), count)
        )

    # --- Search ---

    async def search_videos(
        self, query: str, count: Optional[int] = None
    ) -> RecordsResult:
        """Up to `count` search results; a blank query returns Ok([])."""
        query = (query or "").strip()
        if not query:
            return Result.Ok([])
        count = self.settings.search_default_count if count is None else count
        return await self._records(
            f"searching videos for '{query}'",
            self.paginator.get_page,
            QueryKey.search(query),
            count,
        )

    async def fetch_more_search_results(
        self, query: str, count: int = FeedConstants.DEFAULT_MORE_COUNT
    ) -> RecordsResult:
        query = (query or "").strip()
        if not query:
            return Result.Ok([])
        return Result.Ok(await self.paginator.get_more_page(QueryKey.search(query), count))

    async def _run_debounced_search(
        self,
        query: str,
        count: Optional[int],
        callback: Optional[Callable[[List[CanonicalRecord]], Any]],
    ) -> List[CanonicalRecord]:
        records = (await self.search_videos(query, count)).unwrap_or([])
        if callback is not None:
            callback(records)
        return records

    def debounced_search(
        self,
        query: str,
        count: Optional[int] = None,
        callback: Optional[Callable[[List[CanonicalRecord]], Any]] = None,
    ) -> asyncio.Task:
        """
        Search after the debounce delay unless a newer query arrives first.

        Returns the scheduled task; it is cancelled if superseded, otherwise it
        resolves to the records passed to `callback`.
        """
        return self.search_gate.submit(query, count, callback)

    # --- Streams ---

    async def resolve_stream(self, video_id: str) -> StreamResult:
        """Resolve playable URLs; Err(TerminalResolutionError) if no provider can."""
        result = await safe_await(
            self.resolver.resolve_stream, video_id, catch=(TerminalResolutionError,)
        )
        if result.is_err():
            logger.error(f"Stream unavailable for {video_id}: {result.unwrap_err()}")
        return result

    # --- Maintenance ---

    async def preload_common_categories(self) -> Dict[str, int]:
        return await self.paginator.preload(
            FeedConstants.PRELOAD_CATEGORIES, FeedConstants.PRELOAD_COUNT
        )

    def clear_cache(self) -> int:
        return self.cache.clear()

    def cache_stats(self) -> Dict[str, Any]:
        return self.cache.stats()

    def performance_stats(self) -> Dict[str, Any]:
        return {
            "metadata_requests": self.engine.request_count,
            "metrics": self.monitor.get_all_stats(),
            "providers": {
                str(name): str(tracker.current) for name, tracker in self.trackers.items()
            },
        }
