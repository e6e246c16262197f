"""
Application constants and configuration limits.

This module centralizes provider lists, placeholders and other magic values
so the engine modules do not carry hardcoded literals.
"""

# --- Provider Defaults ---
class ProviderDefaults:
    """Default provider mirrors for each family."""

    # Source: https://api.invidious.io/instances.json (filtered for stable instances)
    PRIMARY_INSTANCES = [
        "https://invidious.fdn.fr",
        "https://inv.riverside.rocks",
        "https://invidious.lunar.icu",
        "https://invidious.nerdvpn.de",
        "https://invidious.protokolla.fi",
        "https://invidious.private.coffee",
        "https://iv.ggtyler.dev",
        "https://yt.drgnz.club",
    ]

    SECONDARY_INSTANCES = [
        "https://pipedapi.kavin.rocks",
        "https://api.piped.privacydev.net",
        "https://piped-api.garudalinux.org",
        "https://api.piped.projectsegfau.lt",
    ]

    PRIMARY_API_PREFIX = "/api/v1"
    SECONDARY_API_PREFIX = ""

    PRIMARY_PROBE_PATH = "/stats"
    SECONDARY_PROBE_PATH = "/healthcheck"


# --- Network Constants ---
class NetworkConstants:
    """Network, timeout and retry constants."""

    MIN_RETRY_ATTEMPTS = 1
    MAX_RETRY_ATTEMPTS = 10
    DEFAULT_RETRY_ATTEMPTS = 3

    DEFAULT_RETRY_DELAY = 1.0
    MAX_RETRY_DELAY = 60.0

    # Timeouts (seconds)
    DEFAULT_REQUEST_TIMEOUT = 5.0
    DEFAULT_PROBE_TIMEOUT = 3.0
    DEFAULT_DETAIL_TIMEOUT = 8.0

    DEFAULT_REGION = "US"
    USER_AGENT = "Mozilla/5.0 (compatible; VidLook/1.0)"
    ACCEPT_HEADER = "application/json"

    # Requests slower than this are reported by the performance logger
    SLOW_REQUEST_MS = 3000


# --- Cache Constants ---
class CacheConstants:
    """Query cache constants."""

    DEFAULT_FRESHNESS_SECONDS = 15 * 60
    MIN_FRESHNESS_SECONDS = 0

    CATEGORY_PREFIX = "category_"
    SEARCH_PREFIX = "search_"


# --- Feed Constants ---
class FeedConstants:
    """Category and search defaults."""

    DEFAULT_CATEGORY_COUNT = 10
    DEFAULT_SEARCH_COUNT = 15
    DEFAULT_MORE_COUNT = 10
    PRELOAD_COUNT = 5
    DEBOUNCE_SECONDS = 0.3

    DEFAULT_ENDPOINT = "trending"
    SEARCH_ENDPOINT = "search"

    PRELOAD_CATEGORIES = ["Trending"]

    CATEGORY_NAMES = [
        "All",
        "Trending",
        "Music",
        "Gaming",
        "News",
        "Movies",
        "Sports",
        "Technology",
    ]


# --- Record Placeholders ---
class Placeholders:
    """Values substituted for fields missing from provider data."""

    TITLE = "Untitled Video"
    CHANNEL = "Unknown Channel"
    VIEWS = "0 views"
    TIMESTAMP = ""


# --- Relay Constants ---
class RelayConstants:
    """Cross-origin relay defaults."""

    DEFAULT_TIMEOUT_MS = 5000
    ALLOWED_HOSTS = [
        "yewtu.be",
        "inv.nadeko.net",
        "invidious.nerdvpn.de",
        "vid.puffyan.us",
        "invidious.fdn.fr",
        "inv.riverside.rocks",
        "invidious.slipfox.xyz",
        "invidious.snopyta.org",
        "inv.vern.cc",
        "y.com.sb",
        "pipedapi.kavin.rocks",
        "api.piped.projectsegfau.lt",
        "piped-api.garudalinux.org",
        "api.piped.privacydev.net",
    ]


# --- Application Metadata ---
class AppMetadata:
    """Application metadata constants."""

    NAME = "vidlook"
    VERSION = "1.0.0"
    DESCRIPTION = "Multi-provider video metadata and stream resolution engine."


# --- Logging Constants ---
class LoggingConstants:
    """Logging configuration constants."""

    DEFAULT_LOG_LEVEL = "INFO"
    FILE_LOG_LEVEL = "DEBUG"
    CONSOLE_LOG_LEVEL = "INFO"

    FILE_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(module)s.%(funcName)s:%(lineno)d - %(message)s"
    CONSOLE_LOG_FORMAT = "%(levelname)s: %(message)s"
    RICH_LOG_FORMAT = "%(message)s"

    MAX_LOG_SIZE = 1024 * 1024  # 1MB
    BACKUP_COUNT = 3
    LOG_FILE_NAME = "vidlook.log"
