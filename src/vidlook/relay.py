"""
Cross-origin relay support.

When a relay is configured every provider request is sent to the relay with
the real target passed as a query parameter. The relay only forwards to
allow-listed hosts, so targets are checked here before a request is made.
"""

import logging
from dataclasses import dataclass, field
from typing import Optional, Tuple
from urllib.parse import urlencode, urlparse, urlunparse

import validators

from .config import APP_NAME, EngineSettings
from .constants import RelayConstants
from .exceptions import RelayRejectedError
from .logging_config import SecurityLogger

logger = logging.getLogger(APP_NAME + ".relay")


@dataclass(frozen=True)
class RelayConfig:
    """Where the relay lives and which hosts it accepts."""

    base_url: str
    timeout_ms: int = RelayConstants.DEFAULT_TIMEOUT_MS
    allow_fallback: bool = False
    allowed_hosts: Tuple[str, ...] = field(
        default_factory=lambda: tuple(RelayConstants.ALLOWED_HOSTS)
    )

    @classmethod
    def from_settings(cls, settings: EngineSettings) -> Optional["RelayConfig"]:
        """Build a relay config, or None when the relay is disabled."""
        if not settings.relay_enabled:
            return None
        if not settings.relay_base_url:
            logger.warning("Relay enabled but no base_url configured; relay disabled")
            return None
        return cls(
            base_url=settings.relay_base_url,
            timeout_ms=settings.relay_timeout_ms,
            allow_fallback=settings.relay_allow_fallback,
            allowed_hosts=tuple(host.lower() for host in settings.relay_allowed_hosts),
        )

    def is_allowed(self, host: str) -> bool:
        return host.lower() in {allowed.lower() for allowed in self.allowed_hosts}

    def wrap(self, target: str, timeout_ms: Optional[int] = None) -> str:
        """
        Rewrite `target` into a relay request URL.

        Raises:
            RelayRejectedError: if the target is not an absolute URL or its
                host is not on the allow-list
        """
        parsed = urlparse(target)
        # The query string is forwarded untouched, only the location is validated
        location = urlunparse((parsed.scheme, parsed.netloc, parsed.path, "", "", ""))
        if not validators.url(location):
            SecurityLogger().log_validation_failure(
                "relay_target", target, "not an absolute URL"
            )
            raise RelayRejectedError(f"Invalid relay target: {target}", url=target)

        host = (parsed.hostname or "").lower()
        if not self.is_allowed(host):
            SecurityLogger().log_relay_rejection(host, target)
            raise RelayRejectedError(
                f"Host '{host}' is not allowed by the relay",
                url=target,
                status_code=403,
            )

        params = {
            "url": target,
            "timeout": str(timeout_ms if timeout_ms is not None else self.timeout_ms),
        }
        if self.allow_fallback:
            params["fallback"] = "true"
        separator = "&" if "?" in self.base_url else "?"
        return f"{self.base_url}{separator}{urlencode(params)}"
