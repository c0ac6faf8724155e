"""Memoizing track validation on top of a catalog provider.

Successful lookups are cached for the session; failures are logged with their
kind and collapse to `None`. Failed ids are not negatively cached, so a later
request revalidates them from scratch. Concurrent requests for the same id
share one in-flight lookup.
"""

from __future__ import annotations

import asyncio
import logging

from shuffle_radio.services.catalog_provider import (
    CatalogError,
    CatalogProvider,
    TrackId,
)
from shuffle_radio.services.queue_state import ValidatedTrack

logger = logging.getLogger(__name__)


class ValidationCache:
    """Validates track ids with bounded concurrency and request de-duplication."""

    def __init__(self, provider: CatalogProvider, *, concurrency: int = 4) -> None:
        if concurrency < 1:
            raise ValueError("concurrency must be >= 1")
        self._provider = provider
        self._semaphore = asyncio.Semaphore(concurrency)
        self._entries: dict[TrackId, ValidatedTrack] = {}
        self._in_flight: dict[TrackId, asyncio.Future[ValidatedTrack | None]] = {}
        self._failures: dict[TrackId, str] = {}

    def get(self, track_id: TrackId) -> ValidatedTrack | None:
        """Return the cached valid entry without touching the provider."""
        return self._entries.get(track_id)

    def last_failure(self, track_id: TrackId) -> str | None:
        """Return the kind of the most recent failed lookup for diagnostics."""
        return self._failures.get(track_id)

    def discard(self, track_id: TrackId) -> None:
        self._entries.pop(track_id, None)
        self._failures.pop(track_id, None)

    def clear(self) -> None:
        self._entries.clear()
        self._failures.clear()

    async def validate(self, track_id: TrackId) -> ValidatedTrack | None:
        """Validate one id; never raises for provider failures."""
        cached = self._entries.get(track_id)
        if cached is not None:
            return cached
        pending = self._in_flight.get(track_id)
        if pending is None:
            pending = asyncio.ensure_future(self._lookup(track_id))
            self._in_flight[track_id] = pending
            pending.add_done_callback(
                lambda _done, key=track_id: self._in_flight.pop(key, None)
            )
        return await asyncio.shield(pending)

    async def validate_many(self, track_ids: list[TrackId]) -> list[ValidatedTrack]:
        """Validate ids concurrently and return only the successful entries."""
        unique_ids = _unique_ids(track_ids)
        if not unique_ids:
            return []
        results = await asyncio.gather(
            *(self.validate(track_id) for track_id in unique_ids)
        )
        return [result for result in results if result is not None]

    async def _lookup(self, track_id: TrackId) -> ValidatedTrack | None:
        async with self._semaphore:
            try:
                details = await self._provider.fetch_track_details(track_id)
            except CatalogError as exc:
                self._failures[track_id] = exc.kind
                logger.warning(
                    "Track %s validation failed (%s): %s",
                    track_id,
                    exc.kind,
                    exc,
                    extra={"track_id": track_id, "failure_kind": exc.kind},
                )
                return None
            except Exception as exc:  # pragma: no cover - provider safety net
                self._failures[track_id] = "unexpected"
                logger.exception("Track %s validation crashed: %s", track_id, exc)
                return None
        validated = ValidatedTrack(id=track_id, details=details, is_valid=True)
        self._entries[track_id] = validated
        self._failures.pop(track_id, None)
        logger.debug("Track %s validated.", track_id)
        return validated


def _unique_ids(track_ids: list[TrackId]) -> list[TrackId]:
    seen: set[TrackId] = set()
    ordered: list[TrackId] = []
    for track_id in track_ids:
        if track_id in seen:
            continue
        seen.add(track_id)
        ordered.append(track_id)
    return ordered
