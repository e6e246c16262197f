"""
Stream resolution fallback chain.

Resolves playable URLs for one video by asking every primary provider in
list order, then every secondary provider, and giving up with a single
TerminalResolutionError when none of them returns a usable manifest.
"""

import logging
from typing import List, Mapping, Sequence

from pydantic import ValidationError

from .config import APP_NAME
from .constants import NetworkConstants
from .exceptions import (
    TerminalResolutionError,
    UnusableManifestError,
    VidLookError,
)
from .models import FamilyName, ProviderEndpoint, StreamManifest
from .providers import ProviderFamily
from .transport import ProviderTransport

logger = logging.getLogger(APP_NAME + ".stream_resolver")


class StreamResolver:
    """Walks primary then secondary providers until one yields a manifest."""

    def __init__(
        self,
        transport: ProviderTransport,
        primary_endpoints: Sequence[ProviderEndpoint],
        secondary_endpoints: Sequence[ProviderEndpoint],
        families: Mapping[FamilyName, ProviderFamily],
        detail_timeout: float = NetworkConstants.DEFAULT_DETAIL_TIMEOUT,
    ):
        self.transport = transport
        self.primary_endpoints = tuple(primary_endpoints)
        self.secondary_endpoints = tuple(secondary_endpoints)
        self.families = dict(families)
        self.detail_timeout = detail_timeout

    def chain(self) -> List[ProviderEndpoint]:
        """Every endpoint in the order they are attempted."""
        return list(self.primary_endpoints) + list(self.secondary_endpoints)

    async def _resolve_from(
        self, endpoint: ProviderEndpoint, video_id: str
    ) -> StreamManifest:
        family = self.families[endpoint.family]
        url = family.build_request(endpoint.base_url, family.detail_path(video_id))
        logger.debug(f"Trying to fetch video {video_id} from {endpoint}")
        payload = await self.transport.get_json(
            url,
            self.detail_timeout,
            provider=endpoint.base_url,
            operation="stream_resolution",
        )
        try:
            return family.translate_manifest(video_id, payload, endpoint.base_url)
        except ValidationError as e:
            raise UnusableManifestError(
                f"Invalid manifest from {endpoint}: {e.error_count()} errors",
                url=url,
                provider=endpoint.base_url,
            ) from e

    async def resolve_stream(self, video_id: str) -> StreamManifest:
        """
        Resolve playable URLs for `video_id`.

        Returns:
            StreamManifest: the first usable manifest in chain order

        Raises:
            ValueError: if video_id is blank
            TerminalResolutionError: every provider failed
        """
        video_id = (video_id or "").strip()
        if not video_id:
            raise ValueError("video_id cannot be empty")

        failures: List[VidLookError] = []
        for index, endpoint in enumerate(self.chain()):
            if index == len(self.primary_endpoints) and self.primary_endpoints:
                logger.info(
                    f"All {FamilyName.PRIMARY} providers failed for {video_id}, "
                    f"trying {FamilyName.SECONDARY} providers"
                )
            try:
                manifest = await self._resolve_from(endpoint, video_id)
            except VidLookError as e:
                logger.warning(f"Failed to fetch {video_id} from {endpoint}: {e}")
                if e.provider is None:
                    e.provider = endpoint.base_url
                failures.append(e)
                continue

            logger.info(
                f"Successfully loaded video data from {endpoint} "
                f"({len(manifest.qualities)} qualities)"
            )
            return manifest

        logger.error(
            f"Failed to fetch video details for {video_id} from any provider "
            f"({len(failures)} attempts)"
        )
        raise TerminalResolutionError(
            f"Failed to fetch video details for {video_id} from any provider",
            failures=failures,
        )
