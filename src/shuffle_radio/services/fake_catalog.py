"""In-memory catalog provider for deterministic testing and offline sessions."""

from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping

from shuffle_radio.services.catalog_provider import (
    CatalogError,
    MissingThumbnailError,
    TrackDetails,
    TrackId,
    TrackUnavailableError,
)


class FakeCatalog:
    """Serves canned playlists and track details, recording every lookup."""

    def __init__(
        self,
        playlists: Mapping[str, Iterable[TrackId]] | None = None,
        *,
        details: Mapping[TrackId, TrackDetails] | None = None,
        unavailable: Iterable[TrackId] = (),
        missing_thumbnail: Iterable[TrackId] = (),
        latency_s: float = 0.0,
    ) -> None:
        self._playlists = {key: list(ids) for key, ids in (playlists or {}).items()}
        self._details = dict(details or {})
        self.unavailable: set[TrackId] = set(unavailable)
        self.missing_thumbnail: set[TrackId] = set(missing_thumbnail)
        self.latency_s = latency_s
        self.playlist_calls: list[str] = []
        self.detail_calls: list[TrackId] = []

    async def fetch_playlist_items(self, playlist_id: str) -> list[TrackId]:
        self.playlist_calls.append(playlist_id)
        await self._delay()
        ids = self._playlists.get(playlist_id)
        if ids is None:
            raise CatalogError(f"Playlist {playlist_id} not found", status_code=404)
        if not ids:
            raise CatalogError("No videos found in playlist")
        return list(ids)

    async def fetch_track_details(self, track_id: TrackId) -> TrackDetails:
        self.detail_calls.append(track_id)
        await self._delay()
        if track_id in self.unavailable:
            raise TrackUnavailableError(f"Video {track_id} is no longer available")
        if track_id in self.missing_thumbnail:
            raise MissingThumbnailError("No thumbnail available")
        details = self._details.get(track_id)
        if details is not None:
            return details
        return TrackDetails(
            artist=f"Artist {track_id}",
            title=f"Title {track_id}",
            cover_image_url=f"https://img.example/{track_id}.jpg",
            localized_title=f"Artist {track_id} - Title {track_id}",
        )

    async def _delay(self) -> None:
        if self.latency_s > 0:
            await asyncio.sleep(self.latency_s)
        else:
            await asyncio.sleep(0)
