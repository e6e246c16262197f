import configparser
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .constants import (
    CacheConstants,
    FeedConstants,
    NetworkConstants,
    ProviderDefaults,
    RelayConstants,
)

# --- Core Application Details ---
APP_NAME = "vidlook"

logger = logging.getLogger(APP_NAME + ".config")

# --- Default Configuration Values ---
DEFAULT_CONFIG: Dict[str, Dict[str, str]] = {
    "Providers": {
        "primary_instances": ",".join(ProviderDefaults.PRIMARY_INSTANCES),
        "secondary_instances": ",".join(ProviderDefaults.SECONDARY_INSTANCES),
        "primary_api_prefix": ProviderDefaults.PRIMARY_API_PREFIX,
        "secondary_api_prefix": ProviderDefaults.SECONDARY_API_PREFIX,
    },
    "Fetch": {
        "max_retries": str(NetworkConstants.DEFAULT_RETRY_ATTEMPTS),
        "request_timeout": str(NetworkConstants.DEFAULT_REQUEST_TIMEOUT),
        "probe_timeout": str(NetworkConstants.DEFAULT_PROBE_TIMEOUT),  # liveness probe
        "detail_timeout": str(NetworkConstants.DEFAULT_DETAIL_TIMEOUT),  # stream resolution
        "retry_delay": str(NetworkConstants.DEFAULT_RETRY_DELAY),
        "enable_fallback": "true",  # Rotate to another instance when one fails
        "probe_all": "false",  # Probe every instance before giving up
        "default_region": NetworkConstants.DEFAULT_REGION,
        "user_agent": NetworkConstants.USER_AGENT,
    },
    "Cache": {
        "freshness_seconds": str(CacheConstants.DEFAULT_FRESHNESS_SECONDS),
    },
    "Search": {
        "debounce_seconds": str(FeedConstants.DEBOUNCE_SECONDS),
        "default_count": str(FeedConstants.DEFAULT_SEARCH_COUNT),
        "category_count": str(FeedConstants.DEFAULT_CATEGORY_COUNT),
    },
    "Relay": {
        "enabled": "false",
        "base_url": "",  # e.g. https://app.example/api/proxy
        "timeout_ms": str(RelayConstants.DEFAULT_TIMEOUT_MS),
        "allow_fallback": "false",
        "allowed_hosts": ",".join(RelayConstants.ALLOWED_HOSTS),
    },
}


# --- Paths ---
def get_user_config_dir() -> Path:
    """Gets the platform-specific user configuration directory for the app."""
    if os.name == "nt":  # Windows
        app_data = os.getenv("APPDATA")
        if app_data:
            return Path(app_data) / APP_NAME
    else:  # Linux, macOS, etc.
        xdg_config_home = os.getenv("XDG_CONFIG_HOME")
        if xdg_config_home:
            return Path(xdg_config_home) / APP_NAME
        else:
            return Path.home() / ".config" / APP_NAME
    return Path(Path.home(), f".{APP_NAME}")  # Fallback


USER_CONFIG_DIR = get_user_config_dir()
CONFIG_FILE_PATH = USER_CONFIG_DIR / "config.ini"

# --- Config Loading and Management ---
config_parser = configparser.ConfigParser()


def _apply_defaults(parser: configparser.ConfigParser) -> None:
    for section, options in DEFAULT_CONFIG.items():
        if section not in parser:
            parser.add_section(section)
        for key, value in options.items():
            if not parser.has_option(section, key):
                parser.set(section, key, str(value))


_apply_defaults(config_parser)


def create_default_config_file(path: Optional[Path] = None) -> bool:
    """Creates the config.ini file with default values if it doesn't exist.

    Returns:
        True if file was created, False if it already existed
    """
    target = path or CONFIG_FILE_PATH
    if target.exists():
        return False

    temp_parser = configparser.ConfigParser()
    for section, options in DEFAULT_CONFIG.items():
        temp_parser[section] = {}
        for key, value in options.items():
            temp_parser[section][key] = str(value)

    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with open(target, "w", encoding="utf-8") as configfile:
            temp_parser.write(configfile)
        logger.info(f"Created default configuration file at {target}")
        return True
    except OSError as e:
        logger.error(f"Could not write default config file: {e}", exc_info=True)
        return False


def load_config(path: Optional[Path] = None) -> None:
    """Loads configuration from file, falling back to defaults."""
    global config_parser

    target = path or CONFIG_FILE_PATH
    parser = configparser.ConfigParser()
    try:
        if target.exists():
            parser.read(target, encoding="utf-8")
            logger.debug(f"Loaded configuration from {target}")
        else:
            logger.debug(f"No config file at {target}, using defaults")
    except configparser.Error as e:
        logger.error(
            f"Could not parse config file {target}: {e}. Using defaults.",
            exc_info=True,
        )
        parser = configparser.ConfigParser()

    _apply_defaults(parser)
    config_parser = parser


def _split_list(raw: str) -> List[str]:
    """Split a comma or newline separated option into a clean list."""
    items = []
    for chunk in raw.replace("\n", ",").split(","):
        chunk = chunk.strip()
        if chunk:
            items.append(chunk)
    return items


# --- Accessor Functions for Configuration Values ---


def get_primary_instances() -> List[str]:
    """Get the primary (Invidious) provider base URLs."""
    return _split_list(
        config_parser.get(
            "Providers",
            "primary_instances",
            fallback=DEFAULT_CONFIG["Providers"]["primary_instances"],
        )
    )


def get_secondary_instances() -> List[str]:
    """Get the secondary (Piped) provider base URLs."""
    return _split_list(
        config_parser.get(
            "Providers",
            "secondary_instances",
            fallback=DEFAULT_CONFIG["Providers"]["secondary_instances"],
        )
    )


def get_primary_api_prefix() -> str:
    return config_parser.get(
        "Providers",
        "primary_api_prefix",
        fallback=DEFAULT_CONFIG["Providers"]["primary_api_prefix"],
    )


def get_secondary_api_prefix() -> str:
    return config_parser.get(
        "Providers",
        "secondary_api_prefix",
        fallback=DEFAULT_CONFIG["Providers"]["secondary_api_prefix"],
    )


def get_max_retries() -> int:
    """Get the maximum number of attempts for a metadata request."""
    return config_parser.getint(
        "Fetch", "max_retries", fallback=int(DEFAULT_CONFIG["Fetch"]["max_retries"])
    )


def get_request_timeout() -> float:
    """Get the per-attempt request timeout in seconds."""
    return config_parser.getfloat(
        "Fetch",
        "request_timeout",
        fallback=float(DEFAULT_CONFIG["Fetch"]["request_timeout"]),
    )


def get_probe_timeout() -> float:
    """Get the liveness probe timeout in seconds."""
    return config_parser.getfloat(
        "Fetch",
        "probe_timeout",
        fallback=float(DEFAULT_CONFIG["Fetch"]["probe_timeout"]),
    )


def get_detail_timeout() -> float:
    """Get the timeout for stream detail requests in seconds."""
    return config_parser.getfloat(
        "Fetch",
        "detail_timeout",
        fallback=float(DEFAULT_CONFIG["Fetch"]["detail_timeout"]),
    )


def get_retry_delay() -> float:
    """Get the fixed delay between metadata attempts in seconds."""
    return config_parser.getfloat(
        "Fetch", "retry_delay", fallback=float(DEFAULT_CONFIG["Fetch"]["retry_delay"])
    )


def get_enable_fallback() -> bool:
    """Get whether failing instances are rotated out."""
    return config_parser.getboolean(
        "Fetch",
        "enable_fallback",
        fallback=DEFAULT_CONFIG["Fetch"]["enable_fallback"].lower() == "true",
    )


def get_probe_all() -> bool:
    """Get whether the tracker probes every instance before giving up."""
    return config_parser.getboolean(
        "Fetch",
        "probe_all",
        fallback=DEFAULT_CONFIG["Fetch"]["probe_all"].lower() == "true",
    )


def get_default_region() -> str:
    return config_parser.get(
        "Fetch", "default_region", fallback=DEFAULT_CONFIG["Fetch"]["default_region"]
    )


def get_user_agent() -> str:
    return config_parser.get(
        "Fetch", "user_agent", fallback=DEFAULT_CONFIG["Fetch"]["user_agent"]
    )


# --- Cache Configuration Accessor Functions ---
def get_cache_freshness_seconds() -> float:
    """Get the maximum age of a cache entry in seconds."""
    return config_parser.getfloat(
        "Cache",
        "freshness_seconds",
        fallback=float(DEFAULT_CONFIG["Cache"]["freshness_seconds"]),
    )


# --- Search Configuration Accessor Functions ---
def get_debounce_seconds() -> float:
    return config_parser.getfloat(
        "Search",
        "debounce_seconds",
        fallback=float(DEFAULT_CONFIG["Search"]["debounce_seconds"]),
    )


def get_search_default_count() -> int:
    return config_parser.getint(
        "Search",
        "default_count",
        fallback=int(DEFAULT_CONFIG["Search"]["default_count"]),
    )


def get_category_count() -> int:
    return config_parser.getint(
        "Search",
        "category_count",
        fallback=int(DEFAULT_CONFIG["Search"]["category_count"]),
    )


# --- Relay Configuration Accessor Functions ---
def get_relay_enabled() -> bool:
    """Get whether provider requests are routed through the relay."""
    return config_parser.getboolean(
        "Relay",
        "enabled",
        fallback=DEFAULT_CONFIG["Relay"]["enabled"].lower() == "true",
    )


def get_relay_base_url() -> str:
    return config_parser.get(
        "Relay", "base_url", fallback=DEFAULT_CONFIG["Relay"]["base_url"]
    )


def get_relay_timeout_ms() -> int:
    return config_parser.getint(
        "Relay", "timeout_ms", fallback=int(DEFAULT_CONFIG["Relay"]["timeout_ms"])
    )


def get_relay_allow_fallback() -> bool:
    return config_parser.getboolean(
        "Relay",
        "allow_fallback",
        fallback=DEFAULT_CONFIG["Relay"]["allow_fallback"].lower() == "true",
    )


def get_relay_allowed_hosts() -> List[str]:
    return _split_list(
        config_parser.get(
            "Relay", "allowed_hosts", fallback=DEFAULT_CONFIG["Relay"]["allowed_hosts"]
        )
    )


# --- Settings Snapshot ---


@dataclass(frozen=True)
class EngineSettings:
    """Configuration values read once at startup and injected into a session."""

    primary_instances: Tuple[str, ...] = tuple(ProviderDefaults.PRIMARY_INSTANCES)
    secondary_instances: Tuple[str, ...] = tuple(ProviderDefaults.SECONDARY_INSTANCES)
    primary_api_prefix: str = ProviderDefaults.PRIMARY_API_PREFIX
    secondary_api_prefix: str = ProviderDefaults.SECONDARY_API_PREFIX
    max_retries: int = NetworkConstants.DEFAULT_RETRY_ATTEMPTS
    request_timeout: float = NetworkConstants.DEFAULT_REQUEST_TIMEOUT
    probe_timeout: float = NetworkConstants.DEFAULT_PROBE_TIMEOUT
    detail_timeout: float = NetworkConstants.DEFAULT_DETAIL_TIMEOUT
    retry_delay: float = NetworkConstants.DEFAULT_RETRY_DELAY
    enable_fallback: bool = True
    probe_all: bool = False
    default_region: str = NetworkConstants.DEFAULT_REGION
    user_agent: str = NetworkConstants.USER_AGENT
    cache_freshness_seconds: float = CacheConstants.DEFAULT_FRESHNESS_SECONDS
    debounce_seconds: float = FeedConstants.DEBOUNCE_SECONDS
    search_default_count: int = FeedConstants.DEFAULT_SEARCH_COUNT
    category_count: int = FeedConstants.DEFAULT_CATEGORY_COUNT
    relay_enabled: bool = False
    relay_base_url: str = ""
    relay_timeout_ms: int = RelayConstants.DEFAULT_TIMEOUT_MS
    relay_allow_fallback: bool = False
    relay_allowed_hosts: Tuple[str, ...] = field(
        default_factory=lambda: tuple(RelayConstants.ALLOWED_HOSTS)
    )


def load_settings(path: Optional[Path] = None) -> EngineSettings:
    """Read the configuration file once and snapshot it into EngineSettings."""
    load_config(path)
    settings = EngineSettings(
        primary_instances=tuple(get_primary_instances()),
        secondary_instances=tuple(get_secondary_instances()),
        primary_api_prefix=get_primary_api_prefix(),
        secondary_api_prefix=get_secondary_api_prefix(),
        max_retries=get_max_retries(),
        request_timeout=get_request_timeout(),
        probe_timeout=get_probe_timeout(),
        detail_timeout=get_detail_timeout(),
        retry_delay=get_retry_delay(),
        enable_fallback=get_enable_fallback(),
        probe_all=get_probe_all(),
        default_region=get_default_region(),
        user_agent=get_user_agent(),
        cache_freshness_seconds=get_cache_freshness_seconds(),
        debounce_seconds=get_debounce_seconds(),
        search_default_count=get_search_default_count(),
        category_count=get_category_count(),
        relay_enabled=get_relay_enabled(),
        relay_base_url=get_relay_base_url(),
        relay_timeout_ms=get_relay_timeout_ms(),
        relay_allow_fallback=get_relay_allow_fallback(),
        relay_allowed_hosts=tuple(get_relay_allowed_hosts()),
    )
    logger.debug(
        f"Settings loaded: {len(settings.primary_instances)} primary, "
        f"{len(settings.secondary_instances)} secondary instances"
    )
    return settings
