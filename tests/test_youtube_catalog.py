"""Tests for the HTTP catalog provider using a stub session."""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
import requests

from shuffle_radio.services.catalog_provider import (
    CatalogError,
    CatalogRequestError,
    ConfigurationError,
    MalformedResponseError,
    MissingThumbnailError,
    TrackUnavailableError,
)
from shuffle_radio.services.youtube_catalog import YouTubeCatalog


def _run(coro):
    """Run async catalog scenario from sync test functions."""
    return asyncio.run(coro)


class _Response:
    def __init__(self, payload: Any, status_code: int = 200) -> None:
        self._payload = payload
        self.status_code = status_code
        self.ok = status_code < 400

    def json(self) -> Any:
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class _Session:
    """Replays queued responses and records every request."""

    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.requests: list[tuple[str, dict[str, Any], float]] = []

    def get(self, url: str, *, params: dict[str, Any], timeout: float) -> Any:
        self.requests.append((url, dict(params), timeout))
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _playlist_page(ids: list[str], next_token: str | None = None) -> _Response:
    payload: dict[str, Any] = {
        "items": [{"snippet": {"resourceId": {"videoId": vid}}} for vid in ids]
    }
    if next_token:
        payload["nextPageToken"] = next_token
    return _Response(payload)


def _video(title: str = "Band - Song", thumbnails: Any = None) -> _Response:
    snippet = {
        "title": title,
        "thumbnails": thumbnails
        if thumbnails is not None
        else {"high": {"url": "https://img.example/h.jpg"}},
    }
    return _Response({"items": [{"snippet": snippet}]})


def test_missing_api_key_is_configuration_error() -> None:
    with pytest.raises(ConfigurationError):
        YouTubeCatalog("")


def test_fetch_playlist_items_sends_key_and_parses_ids() -> None:
    session = _Session(_playlist_page(["a", "b"]))
    catalog = YouTubeCatalog(
        "secret", base_url="https://api.example/v3/", session=session
    )
    assert _run(catalog.fetch_playlist_items("PL1")) == ["a", "b"]
    url, params, timeout = session.requests[0]
    assert url == "https://api.example/v3/playlistItems"
    assert params["key"] == "secret"
    assert params["playlistId"] == "PL1"
    assert params["maxResults"] == 50
    assert timeout == 10.0


def test_fetch_playlist_items_follows_pages_up_to_limit() -> None:
    session = _Session(
        _playlist_page(["a"], next_token="t2"),
        _playlist_page(["b"], next_token="t3"),
    )
    catalog = YouTubeCatalog("k", max_pages=2, session=session)
    assert _run(catalog.fetch_playlist_items("PL1")) == ["a", "b"]
    assert session.requests[1][1]["pageToken"] == "t2"
    assert len(session.requests) == 2


def test_fetch_playlist_items_empty_and_malformed() -> None:
    catalog = YouTubeCatalog("k", session=_Session(_playlist_page([])))
    with pytest.raises(CatalogError, match="No videos found in playlist"):
        _run(catalog.fetch_playlist_items("PL1"))

    catalog = YouTubeCatalog("k", session=_Session(_Response({"kind": "x"})))
    with pytest.raises(MalformedResponseError, match="Invalid playlist data received"):
        _run(catalog.fetch_playlist_items("PL1"))


def test_http_error_carries_api_message_and_status() -> None:
    response = _Response({"error": {"message": "backendError"}}, status_code=500)
    catalog = YouTubeCatalog("k", session=_Session(response))
    with pytest.raises(CatalogError) as excinfo:
        _run(catalog.fetch_playlist_items("PL1"))
    assert not isinstance(excinfo.value, ConfigurationError)
    assert str(excinfo.value) == "API Error: backendError"
    assert excinfo.value.status_code == 500


@pytest.mark.parametrize("status_code", [401, 403])
def test_rejected_api_key_is_configuration_error(status_code: int) -> None:
    response = _Response(
        {"error": {"message": "quotaExceeded"}}, status_code=status_code
    )
    catalog = YouTubeCatalog("k", session=_Session(response))
    with pytest.raises(ConfigurationError) as excinfo:
        _run(catalog.fetch_playlist_items("PL1"))
    assert str(excinfo.value) == "API key rejected: quotaExceeded"
    assert excinfo.value.status_code == status_code


def test_transport_failure_is_request_error() -> None:
    session = _Session(requests.ConnectionError("reset"))
    catalog = YouTubeCatalog("k", session=session)
    with pytest.raises(CatalogRequestError):
        _run(catalog.fetch_track_details("v1"))


def test_invalid_json_is_malformed() -> None:
    catalog = YouTubeCatalog("k", session=_Session(_Response(ValueError("bad"))))
    with pytest.raises(MalformedResponseError):
        _run(catalog.fetch_track_details("v1"))


def test_fetch_track_details_parses_snippet() -> None:
    session = _Session(_video("Band - Song (Live)"))
    catalog = YouTubeCatalog("k", clean_titles=True, session=session)
    details = _run(catalog.fetch_track_details("v1"))
    assert details.artist == "Band"
    assert details.title == "Song"
    assert details.cover_image_url == "https://img.example/h.jpg"
    assert session.requests[0][1]["id"] == "v1"


def test_fetch_track_details_unavailable_and_no_thumbnail() -> None:
    catalog = YouTubeCatalog("k", session=_Session(_Response({"items": []})))
    with pytest.raises(TrackUnavailableError, match="Video v1 is no longer available"):
        _run(catalog.fetch_track_details("v1"))

    catalog = YouTubeCatalog("k", session=_Session(_video(thumbnails={})))
    with pytest.raises(MissingThumbnailError):
        _run(catalog.fetch_track_details("v1"))


def test_check_credentials_reports_failure_as_false() -> None:
    ok = YouTubeCatalog("k", session=_Session(_Response({"items": []})))
    denied = YouTubeCatalog(
        "k", session=_Session(_Response({"error": {}}, status_code=400))
    )
    assert _run(ok.check_credentials()) is True
    assert _run(denied.check_credentials()) is False
