"""Catalog metadata provider contracts, payloads and error taxonomy.

The queue engine depends on this protocol only. Concrete providers (the HTTP
video catalog and the in-memory fake) translate their source into the shared
`TrackDetails` payload and raise the errors declared here.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Protocol

TrackId = str

THUMBNAIL_PREFERENCE = ("maxres", "high", "medium", "default")


class CatalogError(Exception):
    """Base error for catalog lookups (playlist or single track)."""

    kind = "catalog"

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ConfigurationError(CatalogError):
    """Provider cannot run at all, e.g. missing credentials."""

    kind = "configuration"


class CatalogRequestError(CatalogError):
    """Transport-level failure talking to the catalog (DNS, timeout, reset)."""

    kind = "network"


class TrackUnavailableError(CatalogError):
    """Track is gone from the catalog or the lookup returned no item."""

    kind = "unavailable"


class MissingThumbnailError(CatalogError):
    """Track exists but carries no cover image of any known size."""

    kind = "no_thumbnail"


class MalformedResponseError(CatalogError):
    """Catalog answered with a payload that does not match the expected shape."""

    kind = "malformed"


@dataclass(frozen=True)
class TrackDetails:
    """Immutable display metadata for one catalog track."""

    artist: str
    title: str
    cover_image_url: str
    localized_title: str

    def __post_init__(self) -> None:
        if not self.cover_image_url:
            raise MissingThumbnailError("No thumbnail available")


class CatalogProvider(Protocol):
    """Catalog operations consumed by the validation cache and the engine."""

    async def fetch_playlist_items(self, playlist_id: str) -> list[TrackId]: ...

    async def fetch_track_details(self, track_id: TrackId) -> TrackDetails: ...


def split_artist_title(full_title: str) -> tuple[str, str]:
    """Split `"Artist - Title"`; titles without a separator keep the full text."""
    artist, _sep, rest = full_title.partition(" - ")
    return artist, rest or full_title


def clean_title(value: str) -> str:
    """Strip bracketed segments such as `(Official Video)` and squeeze spaces."""
    stripped = re.sub(r"[\(\[\{].*?[\)\]\}]", "", value)
    return re.sub(r"\s+", " ", stripped).strip()


def pick_thumbnail(thumbnails: Mapping[str, Any] | None) -> str | None:
    """Return the best available thumbnail URL, largest size first."""
    if not thumbnails:
        return None
    for size in THUMBNAIL_PREFERENCE:
        entry = thumbnails.get(size)
        if isinstance(entry, Mapping):
            url = entry.get("url")
            if isinstance(url, str) and url:
                return url
    return None


def parse_track_snippet(
    snippet: Mapping[str, Any], *, clean_titles: bool = False
) -> TrackDetails:
    """Build `TrackDetails` from a catalog snippet object.

    Raises `MalformedResponseError` when no usable title is present and
    `MissingThumbnailError` when no thumbnail size carries a URL.
    """
    full_title = snippet.get("title")
    if not isinstance(full_title, str) or not full_title.strip():
        raise MalformedResponseError("Track has no usable title")
    if clean_titles:
        full_title = clean_title(full_title) or full_title
    artist, title = split_artist_title(full_title)
    cover = pick_thumbnail(snippet.get("thumbnails"))
    if cover is None:
        raise MissingThumbnailError("No thumbnail available")
    localized = snippet.get("localized")
    localized_title = full_title
    if isinstance(localized, Mapping):
        value = localized.get("title")
        if isinstance(value, str) and value:
            localized_title = (clean_title(value) or value) if clean_titles else value
    return TrackDetails(
        artist=artist,
        title=title,
        cover_image_url=cover,
        localized_title=localized_title,
    )
