"""
VidLook: multi-provider video metadata and stream resolution engine.
"""

from .config import EngineSettings, load_settings
from .constants import AppMetadata
from .exceptions import (
    EmptyResultError,
    MalformedResponseError,
    ProviderTimeoutError,
    RelayRejectedError,
    TerminalResolutionError,
    TransportError,
    UnusableManifestError,
    UpstreamStatusError,
    VidLookError,
)
from .models import (
    CanonicalRecord,
    FamilyName,
    QualityLabel,
    QueryKey,
    StreamManifest,
)
from .result import Result
from .session import VideoSession

__version__ = AppMetadata.VERSION

__all__ = [
    "CanonicalRecord",
    "EmptyResultError",
    "EngineSettings",
    "FamilyName",
    "MalformedResponseError",
    "ProviderTimeoutError",
    "QualityLabel",
    "QueryKey",
    "RelayRejectedError",
    "Result",
    "StreamManifest",
    "TerminalResolutionError",
    "TransportError",
    "UnusableManifestError",
    "UpstreamStatusError",
    "VidLookError",
    "VideoSession",
    "load_settings",
]
