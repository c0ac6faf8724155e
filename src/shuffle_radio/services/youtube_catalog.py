"""Video-hosting catalog provider backed by the Data API v3 over `requests`.

HTTP calls are blocking, so every request is offloaded through `run_blocking`
and the event loop keeps serving queue transitions meanwhile.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import requests

from shuffle_radio.runtime_config import DEFAULT_BASE_URL, CatalogConfig
from shuffle_radio.services.catalog_provider import (
    CatalogError,
    CatalogRequestError,
    ConfigurationError,
    MalformedResponseError,
    TrackDetails,
    TrackId,
    TrackUnavailableError,
    parse_track_snippet,
)
from shuffle_radio.utils.async_utils import run_blocking

logger = logging.getLogger(__name__)

REJECTED_CREDENTIAL_STATUSES = frozenset({401, 403})


class YouTubeCatalog:
    """Fetches playlist ids and per-track details from the video catalog."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        max_results: int = 50,
        max_pages: int = 1,
        timeout_s: float = 10.0,
        clean_titles: bool = False,
        session: requests.Session | None = None,
    ) -> None:
        if not api_key:
            raise ConfigurationError("Catalog API key is required")
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._max_results = max(1, min(50, int(max_results)))
        self._max_pages = max(1, int(max_pages))
        self._timeout_s = timeout_s
        self._clean_titles = clean_titles
        self._session = session or requests.Session()

    @classmethod
    def from_config(
        cls, config: CatalogConfig, *, clean_titles: bool = False
    ) -> YouTubeCatalog:
        return cls(
            config.api_key,
            base_url=config.base_url,
            max_results=config.max_results,
            max_pages=config.max_pages,
            timeout_s=config.request_timeout_s,
            clean_titles=clean_titles,
        )

    async def fetch_playlist_items(self, playlist_id: str) -> list[TrackId]:
        """Return playlist video ids in catalog order (shuffling is the engine's job)."""
        if not playlist_id:
            raise CatalogError("Playlist id is required")
        video_ids: list[TrackId] = []
        page_token: str | None = None
        for _page in range(self._max_pages):
            params: dict[str, Any] = {
                "part": "snippet",
                "playlistId": playlist_id,
                "maxResults": self._max_results,
            }
            if page_token:
                params["pageToken"] = page_token
            data = await run_blocking(self._get_json, "playlistItems", params)
            items = data.get("items")
            if not isinstance(items, list):
                raise MalformedResponseError("Invalid playlist data received")
            video_ids.extend(_playlist_video_ids(items))
            token = data.get("nextPageToken")
            page_token = token if isinstance(token, str) and token else None
            if page_token is None:
                break
        if not video_ids:
            raise CatalogError("No videos found in playlist")
        logger.info(
            "Fetched %d track ids for playlist %s.", len(video_ids), playlist_id
        )
        return video_ids

    async def fetch_track_details(self, track_id: TrackId) -> TrackDetails:
        if not track_id:
            raise CatalogError("Invalid video ID")
        data = await run_blocking(
            self._get_json,
            "videos",
            {"part": "snippet", "id": track_id},
        )
        items = data.get("items")
        if not isinstance(items, list) or not items:
            raise TrackUnavailableError(f"Video {track_id} is no longer available")
        item = items[0]
        snippet = item.get("snippet") if isinstance(item, Mapping) else None
        if not isinstance(snippet, Mapping):
            raise MalformedResponseError("Invalid video data structure")
        return parse_track_snippet(snippet, clean_titles=self._clean_titles)

    async def check_credentials(self) -> bool:
        """Probe the API key with a minimal search request."""
        try:
            await run_blocking(
                self._get_json,
                "search",
                {"part": "snippet", "q": "test", "maxResults": 1},
            )
        except CatalogError as exc:
            logger.warning("Catalog credential check failed: %s", exc)
            return False
        return True

    def _get_json(self, endpoint: str, params: dict[str, Any]) -> dict[str, Any]:
        url = f"{self._base_url}/{endpoint}"
        query = {**params, "key": self._api_key}
        try:
            response = self._session.get(url, params=query, timeout=self._timeout_s)
        except requests.RequestException as exc:
            raise CatalogRequestError(f"Catalog request failed: {exc}") from exc
        if response.status_code in REJECTED_CREDENTIAL_STATUSES:
            raise ConfigurationError(
                f"API key rejected: {_error_message(response)}",
                status_code=response.status_code,
            )
        if not response.ok:
            raise CatalogError(
                f"API Error: {_error_message(response)}",
                status_code=response.status_code,
            )
        try:
            data = response.json()
        except ValueError as exc:
            raise MalformedResponseError("Catalog returned invalid JSON") from exc
        if not isinstance(data, dict):
            raise MalformedResponseError("Catalog returned a non-object payload")
        return data


def _playlist_video_ids(items: list[Any]) -> list[TrackId]:
    ids: list[TrackId] = []
    for item in items:
        if not isinstance(item, Mapping):
            continue
        snippet = item.get("snippet")
        resource = snippet.get("resourceId") if isinstance(snippet, Mapping) else None
        video_id = resource.get("videoId") if isinstance(resource, Mapping) else None
        if isinstance(video_id, str) and video_id:
            ids.append(video_id)
    return ids


def _error_message(response: requests.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        return f"request failed with status {response.status_code}"
    error = payload.get("error") if isinstance(payload, dict) else None
    message = error.get("message") if isinstance(error, dict) else None
    if isinstance(message, str) and message:
        return message
    return "Unknown error"
