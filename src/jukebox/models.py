"""Canonical Pydantic models shared across all jukebox modules.

The models fall into three groups:

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`CacheConfig`, :class:`RequestConfig`, :class:`OutputConfig` and
    the root :class:`ClientConfig`.

**Cache models** -- values held by the TTL cache store:
    :class:`CacheEntry`.

**Wire models** -- shapes exchanged with the API:
    :class:`Options` (optional query parameters), :class:`ErrorDetail` and
    :class:`ErrorEnvelope` (the error payload of a failed response).
"""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field

BASE_ADDRESS = "https://api.spotify.com/v1/"
"""Default API base address. Relative request paths are joined onto it."""


# --- Configuration ---


class CacheConfig(BaseModel):
    """Response cache settings stored in :class:`ClientConfig`."""

    enabled: bool = Field(default=True, description="Enable response caching")
    default_ttl_seconds: float = Field(
        default=1200, description="Store-wide lifetime for entries set without a ttl"
    )
    sweep_interval_seconds: float = Field(
        default=180, description="Seconds between background sweeps of expired entries (0 disables)"
    )
    directory: Optional[str] = Field(
        default=None, description="Cache directory; a private temporary directory when unset"
    )
    validator_only_ttl_seconds: Optional[float] = Field(
        default=None,
        description="Lifetime given to responses that carry an ETag but no max-age/Expires. "
        "Unset keeps such responses out of the cache.",
    )


class RequestConfig(BaseModel):
    """Default HTTP request settings applied to every API call."""

    timeout: float = Field(default=30, description="Per-request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify SSL certificates")
    auto_retry: bool = Field(
        default=False, description="Wait and retry on 429 (and 202 for writes)"
    )
    default_retry_after_seconds: float = Field(
        default=5, description="Wait used when Retry-After is missing or unparsable"
    )
    coalesce_requests: bool = Field(
        default=True, description="Share one network call between concurrent identical GETs"
    )


class OutputConfig(BaseModel):
    """Default output format preferences."""

    format: str = Field(
        default="auto", description="Output format: auto, json, plain, rich"
    )


class ClientConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/jukebox/config.json``.

    Loaded and saved by :func:`~jukebox.config.load_config` and
    :func:`~jukebox.config.save_config`. See
    :func:`~jukebox.config.resolve_config` for the precedence chain.
    """

    base_url: str = Field(default=BASE_ADDRESS, description="API base address")
    token_source: Optional[str] = Field(
        default=None, description="Bearer token source: env:VAR or file:/path"
    )
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)


# --- Cache ---


class CacheEntry(BaseModel):
    """A cached successful GET response.

    ``key`` is the full request URL, query string included. ``etag`` is
    empty when the response carried no validator, in which case the entry is
    served without contacting the server until it expires.
    """

    model_config = ConfigDict(frozen=True)

    key: str
    etag: str = ""
    body: bytes = b""
    ttl: float = 0


# --- Wire ---


class Options(BaseModel):
    """Optional query parameters accepted by many API calls.

    Only fields that are set end up in the query string.
    """

    country: Optional[str] = Field(
        default=None, description="ISO 3166-1 alpha-2 country code"
    )
    limit: Optional[int] = Field(default=None, description="Maximum number of items")
    offset: Optional[int] = Field(default=None, description="Index of the first item")
    timerange: Optional[str] = Field(
        default=None, description="Time range for affinity calls: short, medium, long"
    )

    def to_params(self) -> dict[str, Any]:
        """Return the set fields as query parameters, sorted by name."""
        data = self.model_dump(exclude_none=True)
        return {key: data[key] for key in sorted(data)}


class ErrorDetail(BaseModel):
    """The ``error`` object of an API error payload."""

    message: str = ""
    status: int = 0


class ErrorEnvelope(BaseModel):
    """An API error payload: ``{"error": {"message": ..., "status": ...}}``."""

    error: ErrorDetail = Field(default_factory=ErrorDetail)
