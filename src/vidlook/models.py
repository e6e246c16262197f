"""
Data models for VidLook.

This module defines the core data structures shared by the engine using
Pydantic for validation and immutability.
"""

from enum import Enum
from typing import Dict, List, Optional
from urllib.parse import urlparse

import validators
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import CacheConstants, Placeholders


class FamilyName(str, Enum):
    """Provider families; each shares one request/response schema."""

    PRIMARY = "invidious"
    SECONDARY = "piped"

    def __str__(self) -> str:
        return self.value


class QueryKind(str, Enum):
    """Kind of query a cache entry belongs to."""

    CATEGORY = "category"
    SEARCH = "search"

    def __str__(self) -> str:
        return self.value


class QualityLabel(str, Enum):
    """Labels of a resolved stream manifest."""

    HIGHEST = "highest"
    MEDIUM = "medium"
    LOW = "low"
    LOWEST = "lowest"
    AUTO = "auto"
    DIRECT = "direct"

    def __str__(self) -> str:
        return self.value


def is_absolute_url(url: str) -> bool:
    """True when `url` carries an http(s) scheme and a host."""
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class ProviderEndpoint(BaseModel):
    """One provider instance: an absolute base URL and its family."""

    model_config = ConfigDict(frozen=True, str_strip_whitespace=True, extra="forbid")

    base_url: str = Field(..., min_length=1, description="Absolute base URL")
    family: FamilyName = Field(..., description="Schema family of the provider")

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate the base URL and drop any trailing slash."""
        url = v.strip().rstrip("/")
        if not validators.url(url):
            raise ValueError(f"Invalid provider URL: {v}")
        return url

    @property
    def host(self) -> str:
        return urlparse(self.base_url).netloc

    def __str__(self) -> str:
        return self.base_url


class CanonicalRecord(BaseModel):
    """The normalized video metadata record handed to callers."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    id: str = Field(..., min_length=1, description="Opaque video identifier")
    title: str = Field(default=Placeholders.TITLE)
    channel: str = Field(default=Placeholders.CHANNEL, description="Author label")
    views: str = Field(default=Placeholders.VIEWS, description="Formatted view count")
    timestamp: str = Field(default=Placeholders.TIMESTAMP, description="Age display")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        return v.strip() or Placeholders.TITLE

    @field_validator("channel")
    @classmethod
    def validate_channel(cls, v: str) -> str:
        return v.strip() or Placeholders.CHANNEL

    @field_validator("views")
    @classmethod
    def validate_views(cls, v: str) -> str:
        return v or Placeholders.VIEWS

    def to_dict(self) -> Dict[str, str]:
        return self.model_dump(mode="json")


class QueryKey(BaseModel):
    """Cache key for a category listing or a search query."""

    model_config = ConfigDict(frozen=True)

    kind: QueryKind
    value: str

    @classmethod
    def category(cls, name: str) -> "QueryKey":
        return cls(kind=QueryKind.CATEGORY, value=name)

    @classmethod
    def search(cls, query: str) -> "QueryKey":
        return cls(kind=QueryKind.SEARCH, value=query)

    @property
    def is_search(self) -> bool:
        return self.kind is QueryKind.SEARCH

    def __str__(self) -> str:
        prefix = (
            CacheConstants.SEARCH_PREFIX
            if self.is_search
            else CacheConstants.CATEGORY_PREFIX
        )
        return f"{prefix}{self.value}"


class MetadataPage(BaseModel):
    """One page of normalized records plus the provider's continuation token."""

    model_config = ConfigDict(frozen=True)

    records: List[CanonicalRecord] = Field(default_factory=list)
    next_cursor: Optional[str] = None

    @property
    def is_empty(self) -> bool:
        return not self.records


class StreamFormat(BaseModel):
    """A single playable format advertised by a provider."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    url: str = Field(..., min_length=1)
    quality: str = Field(default="", description="Provider quality label, e.g. 720p")
    container: Optional[str] = None
    mime_type: Optional[str] = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not is_absolute_url(v):
            raise ValueError(f"Format URL must be absolute: {v}")
        return v


class StreamManifest(BaseModel):
    """Resolved quality-to-URL mapping for one video."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    video_id: str = Field(..., min_length=1)
    qualities: Dict[QualityLabel, str] = Field(...)
    formats: List[StreamFormat] = Field(default_factory=list)
    duration_seconds: Optional[int] = Field(default=None, ge=0)
    title: Optional[str] = None
    author: Optional[str] = None
    description: Optional[str] = None
    provider: str = Field(..., description="Base URL of the provider that served it")
    family: FamilyName

    @field_validator("qualities")
    @classmethod
    def validate_qualities(cls, v: Dict[QualityLabel, str]) -> Dict[QualityLabel, str]:
        """Require at least one mapping and only absolute URLs."""
        if not v:
            raise ValueError("Manifest must contain at least one quality")
        for label, url in v.items():
            if not is_absolute_url(url):
                raise ValueError(f"URL for '{label}' is not absolute: {url}")
        return v

    @model_validator(mode="after")
    def validate_provider(self) -> "StreamManifest":
        if not is_absolute_url(self.provider):
            raise ValueError(f"Provider must be an absolute URL: {self.provider}")
        return self

    def url_for(self, label: QualityLabel) -> Optional[str]:
        return self.qualities.get(label)

    def best_url(self) -> str:
        """The preferred URL: adaptive HLS first, then the highest format."""
        for label in (
            QualityLabel.AUTO,
            QualityLabel.HIGHEST,
            QualityLabel.DIRECT,
            QualityLabel.MEDIUM,
            QualityLabel.LOW,
            QualityLabel.LOWEST,
        ):
            if label in self.qualities:
                return self.qualities[label]
        # validate_qualities guarantees at least one entry
        return next(iter(self.qualities.values()))
