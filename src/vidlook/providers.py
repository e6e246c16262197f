"""
Provider families.

Each family knows how to build requests for its schema and how to translate
its listing and detail payloads. The engine only talks to families through
the ProviderFamily interface, so adding a mirror of an existing schema needs
no code changes.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import quote, urlencode

from pydantic import ValidationError

from .config import APP_NAME
from .constants import FeedConstants, ProviderDefaults
from .exceptions import MalformedResponseError, UnusableManifestError
from .models import FamilyName, QualityLabel, StreamFormat, StreamManifest

logger = logging.getLogger(APP_NAME + ".providers")

_RESOLUTION_PATTERN = re.compile(r"(\d{3,4})p")


@dataclass(frozen=True)
class RequestSpec:
    """A logical endpoint plus its query parameters."""

    endpoint: str
    params: Dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ListingPage:
    """Raw items of a listing response and the continuation token, if any."""

    items: List[Mapping[str, Any]]
    next_cursor: Optional[str] = None


def ensure_absolute_url(url: str, base_url: Optional[str] = None) -> str:
    """
    Make a provider URL absolute.

    Protocol-relative URLs ("//host/path") get an https: scheme; host-relative
    paths ("/path") are joined to `base_url` when one is given.
    """
    url = url.strip()
    if url.startswith("http://") or url.startswith("https://"):
        return url
    if url.startswith("//"):
        return f"https:{url}"
    if url.startswith("/") and base_url:
        return f"{base_url.rstrip('/')}{url}"
    return f"https://{url.lstrip('/')}"


def parse_resolution(label: Any) -> int:
    """Height in pixels from labels like '720p' or '1080p60'; 0 if unknown."""
    if isinstance(label, (int, float)) and not isinstance(label, bool):
        return int(label)
    if not isinstance(label, str):
        return 0
    match = _RESOLUTION_PATTERN.search(label)
    if match:
        return int(match.group(1))
    digits = label.strip()
    return int(digits) if digits.isdigit() else 0


def build_quality_ladder(formats: List[StreamFormat]) -> Dict[QualityLabel, str]:
    """
    Map formats onto the highest/medium/low/lowest labels.

    Formats are ordered by resolution, highest first. With one format only
    `highest` is set; `lowest` needs two, `medium` three and `low` four.
    """
    ordered = sorted(formats, key=lambda f: parse_resolution(f.quality), reverse=True)
    count = len(ordered)
    ladder: Dict[QualityLabel, str] = {}
    if count == 0:
        return ladder

    ladder[QualityLabel.HIGHEST] = ordered[0].url
    if count > 1:
        ladder[QualityLabel.LOWEST] = ordered[-1].url
    if count > 2:
        ladder[QualityLabel.MEDIUM] = ordered[count // 3].url
    if count > 3:
        ladder[QualityLabel.LOW] = ordered[(2 * count) // 3].url
    return ladder


class ProviderFamily:
    """
    Request builder and response translator for one provider schema.

    Subclasses set the class attributes and implement the translate methods.
    """

    name: FamilyName
    probe_path: str = ""
    supports_cursor: bool = False
    # Category name -> request for that category's listing
    categories: Dict[str, RequestSpec] = {}

    def __init__(self, api_prefix: str = ""):
        self.api_prefix = api_prefix.rstrip("/")

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(api_prefix={self.api_prefix!r})"

    # --- Request building ---

    def build_request(
        self, base_url: str, endpoint: str, params: Optional[Mapping[str, Any]] = None
    ) -> str:
        """Absolute URL for `endpoint` on the provider at `base_url`."""
        url = f"{base_url.rstrip('/')}{self.api_prefix}/{endpoint.lstrip('/')}"
        if params:
            clean = {k: str(v) for k, v in params.items() if v is not None}
            if clean:
                url = f"{url}?{urlencode(clean)}"
        return url

    def probe_url(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}{self.api_prefix}{self.probe_path}"

    def detail_path(self, video_id: str) -> str:
        raise NotImplementedError

    def category_request(self, category: str, region: str) -> RequestSpec:
        """Request for a category listing; unmapped categories use the default."""
        spec = self.categories.get(category) or RequestSpec(
            FeedConstants.DEFAULT_ENDPOINT
        )
        return RequestSpec(spec.endpoint, {**spec.params, "region": region})

    def default_category_request(self, region: str) -> RequestSpec:
        return RequestSpec(FeedConstants.DEFAULT_ENDPOINT, {"region": region})

    def is_default_category(self, category: str) -> bool:
        """True when the category maps to the plain default listing."""
        spec = self.categories.get(category)
        return (
            spec is None
            or (spec.endpoint == FeedConstants.DEFAULT_ENDPOINT and not spec.params)
        )

    def paginates_category(self, category: str) -> bool:
        """Whether category listings can be continued past the first fetch."""
        return False

    def search_request(
        self, query: str, page: int = 1, cursor: Optional[str] = None
    ) -> RequestSpec:
        raise NotImplementedError

    # --- Response translation ---

    def translate_listing(self, payload: Any) -> ListingPage:
        raise NotImplementedError

    def translate_manifest(
        self, video_id: str, payload: Any, base_url: str
    ) -> StreamManifest:
        raise NotImplementedError

    def _require_mapping(self, payload: Any, base_url: str) -> Mapping[str, Any]:
        if not isinstance(payload, Mapping):
            raise UnusableManifestError(
                f"Detail response is a {type(payload).__name__}, expected an object",
                provider=base_url,
            )
        return payload


class InvidiousFamily(ProviderFamily):
    """Primary family: the Invidious /api/v1 schema."""

    name = FamilyName.PRIMARY
    probe_path = ProviderDefaults.PRIMARY_PROBE_PATH
    supports_cursor = False
    categories = {
        "All": RequestSpec("trending"),
        "Trending": RequestSpec("trending"),
        "Music": RequestSpec("trending", {"type": "music"}),
        "Gaming": RequestSpec("trending", {"type": "gaming"}),
        "News": RequestSpec("trending", {"type": "news"}),
        "Movies": RequestSpec("trending", {"type": "movies"}),
        "Sports": RequestSpec("trending", {"type": "sports"}),
        # No technology listing upstream
        "Technology": RequestSpec("trending"),
    }

    def __init__(self, api_prefix: str = ProviderDefaults.PRIMARY_API_PREFIX):
        super().__init__(api_prefix)

    def detail_path(self, video_id: str) -> str:
        return f"videos/{quote(video_id, safe='')}"

    def search_request(
        self, query: str, page: int = 1, cursor: Optional[str] = None
    ) -> RequestSpec:
        return RequestSpec(
            FeedConstants.SEARCH_ENDPOINT,
            {"q": query, "type": "video", "page": str(page), "sort_by": "relevance"},
        )

    def translate_listing(self, payload: Any) -> ListingPage:
        if isinstance(payload, Mapping) and isinstance(payload.get("items"), list):
            payload = payload["items"]
        if not isinstance(payload, list):
            raise MalformedResponseError(
                f"Expected a JSON array, got {type(payload).__name__}"
            )
        items = [
            item
            for item in payload
            if isinstance(item, Mapping) and item.get("type", "video") == "video"
        ]
        if len(items) != len(payload):
            logger.debug(f"Dropped {len(payload) - len(items)} non-video listing entries")
        return ListingPage(items=items, next_cursor=None)

    def translate_manifest(
        self, video_id: str, payload: Any, base_url: str
    ) -> StreamManifest:
        data = self._require_mapping(payload, base_url)

        muxed = self._collect_formats(data.get("formatStreams"), base_url)
        adaptive = self._collect_formats(data.get("adaptiveFormats"), base_url)
        hls_url = data.get("hlsUrl")

        # An HLS URL alone does not make the response usable
        if not muxed and not adaptive:
            raise UnusableManifestError(
                f"No playable formats for {video_id}", provider=base_url
            )

        # Muxed streams carry audio; adaptive video tracks are a fallback
        ladder_source = muxed or [
            fmt for fmt in adaptive if (fmt.mime_type or "").startswith("video/")
        ]
        qualities = build_quality_ladder(ladder_source)
        if hls_url:
            qualities[QualityLabel.AUTO] = ensure_absolute_url(hls_url, base_url)
        qualities[QualityLabel.DIRECT] = (muxed or adaptive)[0].url

        return StreamManifest(
            video_id=video_id,
            qualities=qualities,
            formats=muxed + adaptive,
            duration_seconds=_non_negative_int(data.get("lengthSeconds")),
            title=data.get("title"),
            author=data.get("author"),
            description=data.get("description"),
            provider=base_url,
            family=self.name,
        )

    def _collect_formats(self, raw: Any, base_url: str) -> List[StreamFormat]:
        if not isinstance(raw, list):
            return []
        formats = []
        for entry in raw:
            if not isinstance(entry, Mapping) or not entry.get("url"):
                continue
            fmt = _build_format(
                entry,
                base_url,
                quality=entry.get("resolution")
                or entry.get("qualityLabel")
                or entry.get("quality"),
                container=entry.get("container"),
                mime_type=entry.get("type"),
            )
            if fmt is not None:
                formats.append(fmt)
        return formats


class PipedFamily(ProviderFamily):
    """Secondary family: the Piped API schema."""

    name = FamilyName.SECONDARY
    probe_path = ProviderDefaults.SECONDARY_PROBE_PATH
    supports_cursor = True
    # Piped exposes only the regional trending listing
    categories = {name: RequestSpec("trending") for name in FeedConstants.CATEGORY_NAMES}

    def __init__(self, api_prefix: str = ProviderDefaults.SECONDARY_API_PREFIX):
        super().__init__(api_prefix)

    def detail_path(self, video_id: str) -> str:
        return f"streams/{quote(video_id, safe='')}"

    def search_request(
        self, query: str, page: int = 1, cursor: Optional[str] = None
    ) -> RequestSpec:
        if cursor:
            return RequestSpec(
                "nextpage/search", {"nextpage": cursor, "q": query, "filter": "videos"}
            )
        return RequestSpec(FeedConstants.SEARCH_ENDPOINT, {"q": query, "filter": "videos"})

    def translate_listing(self, payload: Any) -> ListingPage:
        next_cursor = None
        if isinstance(payload, Mapping):
            next_cursor = payload.get("nextpage") or None
            payload = payload.get("items")
        if not isinstance(payload, list):
            raise MalformedResponseError(
                f"Expected a list of items, got {type(payload).__name__}"
            )
        items = [
            item
            for item in payload
            if isinstance(item, Mapping)
            and item.get("type", "stream") in ("stream", "video")
        ]
        return ListingPage(items=items, next_cursor=next_cursor)

    def translate_manifest(
        self, video_id: str, payload: Any, base_url: str
    ) -> StreamManifest:
        data = self._require_mapping(payload, base_url)

        streams = []
        mp4_formats = []
        for entry in data.get("videoStreams") or []:
            if not isinstance(entry, Mapping) or not entry.get("url"):
                continue
            fmt = _build_format(
                entry,
                base_url,
                quality=entry.get("quality"),
                container="mp4" if _is_mp4(entry) else entry.get("format"),
                mime_type=entry.get("mimeType"),
            )
            if fmt is None:
                continue
            streams.append(fmt)
            if _is_mp4(entry):
                mp4_formats.append(fmt)
        hls_url = data.get("hls")

        if not mp4_formats and not hls_url and not streams:
            raise UnusableManifestError(
                f"No playable formats for {video_id}", provider=base_url
            )

        qualities = build_quality_ladder(mp4_formats)
        if hls_url:
            qualities[QualityLabel.AUTO] = ensure_absolute_url(hls_url, base_url)
        if streams:
            qualities[QualityLabel.DIRECT] = streams[0].url

        return StreamManifest(
            video_id=video_id,
            qualities=qualities,
            formats=mp4_formats,
            duration_seconds=_non_negative_int(data.get("duration")),
            title=data.get("title"),
            author=data.get("uploader"),
            description=data.get("description"),
            provider=base_url,
            family=self.name,
        )


def _is_mp4(entry: Mapping[str, Any]) -> bool:
    mime_type = str(entry.get("mimeType") or "").lower()
    container = str(entry.get("format") or "").lower()
    return "mp4" in mime_type or "mp4" in container or container == "mpeg_4"


def _build_format(
    entry: Mapping[str, Any], base_url: str, quality: Any = None, **fields
) -> Optional[StreamFormat]:
    """StreamFormat for one format entry, or None if its URL is unusable."""
    url = ensure_absolute_url(str(entry["url"]), base_url)
    try:
        return StreamFormat(url=url, quality=str(quality or ""), **fields)
    except ValidationError as e:
        logger.debug(f"Skipping format {url!r}: {e.error_count()} validation errors")
        return None


def _non_negative_int(value: Any) -> Optional[int]:
    try:
        number = int(value)
    except (TypeError, ValueError):
        return None
    return number if number >= 0 else None


def default_families(
    primary_prefix: str = ProviderDefaults.PRIMARY_API_PREFIX,
    secondary_prefix: str = ProviderDefaults.SECONDARY_API_PREFIX,
) -> Dict[FamilyName, ProviderFamily]:
    """One instance of each family keyed by name."""
    return {
        FamilyName.PRIMARY: InvidiousFamily(primary_prefix),
        FamilyName.SECONDARY: PipedFamily(secondary_prefix),
    }
