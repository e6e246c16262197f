"""
VidLook Custom Exceptions Module

This module defines the exception hierarchy used by the fetch engine, the
stream resolver and the relay, plus the translation of raw httpx failures
into that hierarchy.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)


class VidLookError(Exception):
    """
    Base exception class for all engine errors.

    Carries enough context (the URL and provider involved) to be logged in a
    structured way via to_dict().
    """

    def __init__(
        self,
        message: str,
        url: Optional[str] = None,
        provider: Optional[str] = None,
        status_code: Optional[int] = None,
    ):
        """
        Initialize VidLookError.

        Args:
            message: Human-readable error message
            url: The request URL that caused the error (if applicable)
            provider: Base URL of the provider involved
            status_code: HTTP status code returned by the provider
        """
        super().__init__(message)
        self.message = message
        self.url = url
        self.provider = provider
        self.status_code = status_code

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for structured logging/debugging."""
        return {
            "error_type": self.__class__.__name__,
            "message": str(self),
            "url": self.url,
            "provider": self.provider,
            "status_code": self.status_code,
        }


class TransportError(VidLookError):
    """
    Exception raised when a provider cannot be reached.

    This includes cases where:
    - DNS resolution or connection fails
    - The connection is reset mid-response
    - The response body is not usable JSON
    """

    def __init__(self, message: str = "Network connectivity issue", **kwargs):
        super().__init__(message, **kwargs)


class ProviderTimeoutError(TransportError):
    """Exception raised when a provider request exceeds its timeout."""

    def __init__(self, message: str = "Provider request timed out", **kwargs):
        super().__init__(message, **kwargs)


class MalformedResponseError(TransportError):
    """Exception raised when a provider returns a body that is not valid JSON."""

    def __init__(self, message: str = "Malformed provider response", **kwargs):
        super().__init__(message, **kwargs)


class UpstreamStatusError(VidLookError):
    """Exception raised when a provider answers with a non-2xx status."""

    def __init__(self, message: str = "Provider returned an error status", **kwargs):
        super().__init__(message, **kwargs)


class EmptyResultError(VidLookError):
    """
    Exception raised when a well-formed response holds no results.

    Only raised when the caller asked for results to be required; it is never
    retried since another attempt would return the same empty answer.
    """

    def __init__(self, message: str = "Provider returned no results", **kwargs):
        super().__init__(message, **kwargs)


class UnusableManifestError(VidLookError):
    """Exception raised when a detail payload carries no playable format."""

    def __init__(self, message: str = "No playable formats in response", **kwargs):
        super().__init__(message, **kwargs)


class TerminalResolutionError(VidLookError):
    """
    Exception raised when every provider failed to resolve a stream.

    The per-provider failures are kept in `failures` in the order they were
    attempted.
    """

    def __init__(
        self,
        message: str = "Unable to load video from any provider",
        failures: Optional[List[VidLookError]] = None,
        **kwargs,
    ):
        super().__init__(message, **kwargs)
        self.failures = list(failures or [])

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["failures"] = [failure.to_dict() for failure in self.failures]
        return data


class RelayRejectedError(VidLookError):
    """Exception raised when a target host is not on the relay allow-list."""

    def __init__(self, message: str = "Target host not allowed by relay", **kwargs):
        super().__init__(message, **kwargs)


def categorize_http_error(
    exc: Exception, url: Optional[str] = None, provider: Optional[str] = None
) -> VidLookError:
    """
    Translate an httpx (or JSON decoding) exception into a VidLookError.

    Args:
        exc: The exception raised while talking to the provider
        url: The request URL
        provider: Base URL of the provider

    Returns:
        VidLookError: Appropriate exception subclass based on the failure
    """
    if isinstance(exc, VidLookError):
        return exc

    if isinstance(exc, httpx.TimeoutException):
        return ProviderTimeoutError(
            f"Request timed out: {exc.__class__.__name__}", url=url, provider=provider
        )

    if isinstance(exc, httpx.HTTPStatusError):
        status = exc.response.status_code
        return UpstreamStatusError(
            f"HTTP error! status: {status}",
            url=url,
            provider=provider,
            status_code=status,
        )

    if isinstance(exc, ValueError):
        # json.JSONDecodeError is a ValueError subclass
        return MalformedResponseError(
            f"Invalid JSON in response: {exc}", url=url, provider=provider
        )

    if isinstance(exc, httpx.InvalidURL):
        return TransportError(
            f"Invalid request URL: {exc}", url=url, provider=provider
        )

    if isinstance(exc, httpx.HTTPError):
        return TransportError(
            f"Network error: {exc.__class__.__name__}: {exc}",
            url=url,
            provider=provider,
        )

    return TransportError(
        f"Unexpected transport failure: {exc}", url=url, provider=provider
    )
