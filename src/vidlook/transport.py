"""
HTTP transport for provider requests.

All network access goes through ProviderTransport. It applies the timeout,
optionally routes through the relay, records timings and translates every
httpx failure into the VidLookError hierarchy so nothing raw escapes.
"""

import asyncio
import logging
from typing import Any, Dict, Optional

import httpx

from .config import APP_NAME
from .constants import NetworkConstants
from .exceptions import ProviderTimeoutError, VidLookError, categorize_http_error
from .logging_config import PerformanceLogger
from .performance import PerformanceMonitor, measure_time
from .relay import RelayConfig

logger = logging.getLogger(APP_NAME + ".transport")


def default_headers(user_agent: str = NetworkConstants.USER_AGENT) -> Dict[str, str]:
    return {"User-Agent": user_agent, "Accept": NetworkConstants.ACCEPT_HEADER}


class ProviderTransport:
    """Issues JSON GET requests against providers on a shared AsyncClient."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        relay: Optional[RelayConfig] = None,
        monitor: Optional[PerformanceMonitor] = None,
        slow_threshold_ms: float = NetworkConstants.SLOW_REQUEST_MS,
    ):
        self.client = client
        self.relay = relay
        self.monitor = monitor
        self.slow_threshold_ms = slow_threshold_ms
        self.perf_logger = PerformanceLogger("transport")

    def _target(self, url: str, timeout: float) -> str:
        if self.relay is None:
            return url
        return self.relay.wrap(url, timeout_ms=int(timeout * 1000))

    async def _send(self, url: str, timeout: float) -> httpx.Response:
        target = self._target(url, timeout)
        response = await asyncio.wait_for(
            self.client.get(target, timeout=timeout), timeout=timeout
        )
        response.raise_for_status()
        return response

    async def get_json(
        self,
        url: str,
        timeout: float,
        provider: Optional[str] = None,
        operation: str = "provider_request",
    ) -> Any:
        """
        Fetch `url` and decode its JSON body.

        Raises:
            TransportError: network failure, timeout or invalid JSON
            UpstreamStatusError: non-2xx response
            RelayRejectedError: relay refuses the target host
        """
        loop = asyncio.get_running_loop()
        started = loop.time()
        try:
            with measure_time(self.monitor, operation):
                response = await self._send(url, timeout)
                return response.json()
        except VidLookError:
            raise
        except asyncio.TimeoutError as e:
            raise ProviderTimeoutError(
                f"Request exceeded {timeout:.1f}s", url=url, provider=provider
            ) from e
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            error = categorize_http_error(e, url=url, provider=provider)
            logger.debug(f"Request to {url} failed: {error}")
            raise error from e
        finally:
            self.perf_logger.log_slow_request(
                url, (loop.time() - started) * 1000, self.slow_threshold_ms
            )

    async def probe(self, url: str, timeout: float) -> bool:
        """Liveness check: True when `url` answers with a 2xx status in time."""
        try:
            with measure_time(self.monitor, "provider_probe"):
                await self._send(url, timeout)
            return True
        except (
            httpx.HTTPError, httpx.InvalidURL, asyncio.TimeoutError, VidLookError
        ) as e:
            logger.debug(f"Probe of {url} failed: {e.__class__.__name__}: {e}")
            return False
