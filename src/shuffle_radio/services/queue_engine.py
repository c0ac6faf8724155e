"""Playback queue orchestration between UI intent and the catalog.

`PlaybackQueueEngine` is the queue authority. Every move of the current-track
pointer funnels through `transition_to`, which is single-flight: a request
arriving while another transition is in flight is dropped, not queued. Invalid
targets are retried a bounded number of hops forward through the playlist.
The upcoming list is refreshed in a background task after the visible
transition completes, so playback never waits on prefetching.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from collections.abc import Awaitable, Iterable
from contextlib import suppress
from typing import Callable

from shuffle_radio.events import ErrorReported, QueueChanged, TrackChanged
from shuffle_radio.runtime_config import EngineConfig
from shuffle_radio.services.catalog_provider import (
    CatalogError,
    CatalogProvider,
    ConfigurationError,
    TrackId,
)
from shuffle_radio.services.lookahead import select_upcoming
from shuffle_radio.services.queue_state import (
    QueueSnapshot,
    QueueState,
    Track,
    ValidatedTrack,
)
from shuffle_radio.services.validation_cache import ValidationCache

logger = logging.getLogger(__name__)

PLAYER_ERROR_MESSAGES = {
    2: "Invalid video parameter",
    5: "Network error occurred",
    100: "Video not available",
    101: "Video playback not allowed",
    150: "Video playback not allowed",
}
UNPLAYABLE_ERROR_CODES = frozenset({100, 101, 150})
GENERIC_PLAYER_ERROR = "Error loading video player"


def _format_user_error(
    *, what_failed: str, likely_cause: str, next_step: str, detail: str | None = None
) -> str:
    message = f"{what_failed}\nLikely cause: {likely_cause}\nNext step: {next_step}"
    if detail:
        message = f"{message}\nDetails: {detail}"
    return message


async def _discard_event(_event: object) -> None:
    return None


class PlaybackQueueEngine:
    """Owns the queue state and emits events to subscribers."""

    def __init__(
        self,
        *,
        provider: CatalogProvider,
        emit_event: Callable[[object], Awaitable[None]] | None = None,
        config: EngineConfig | None = None,
        shuffle_random: random.Random | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._provider = provider
        self._emit_event = emit_event or _discard_event
        self._config = config or EngineConfig()
        self._shuffle_random = shuffle_random or random.Random()
        self._clock = clock
        self._queue = QueueState(history_limit=self._config.history_limit)
        self._cache = ValidationCache(
            provider, concurrency=self._config.validation_concurrency
        )
        self._error: str | None = None
        self._flight_id = 0
        self._transition_started_at: float | None = None
        self._refresh_tasks: set[asyncio.Task[None]] = set()

    @property
    def snapshot(self) -> QueueSnapshot:
        return self._queue.snapshot(error=self._error)

    @property
    def playlist(self) -> tuple[TrackId, ...]:
        return tuple(self._queue.playlist)

    @property
    def error(self) -> str | None:
        return self._error

    async def load_playlist(self, playlist_id: str) -> None:
        """Fetch a playlist from the provider and start a session from it."""
        await self._run_initialization(self._fetch_and_initialize(playlist_id))

    async def initialize(self, raw_ids: Iterable[TrackId]) -> None:
        """Shuffle raw ids into a fresh session and prime the first validations."""
        await self._run_initialization(self._initialize(list(raw_ids)))

    async def transition_to(
        self,
        target_id: TrackId,
        is_auto_advance: bool = False,
        retry_depth: int = 0,
        *,
        record_history: bool = True,
    ) -> None:
        """Move the current track to `target_id`, or drop the call if one is in flight."""
        flight = self._begin_transition()
        if flight is None:
            logger.debug(
                "Transition to %s dropped; another transition is in flight.",
                target_id,
            )
            return
        await self._fly(
            flight,
            target_id,
            is_auto_advance=is_auto_advance,
            retry_depth=retry_depth,
            record_history=record_history,
        )

    async def advance(self, *, is_auto_advance: bool = False) -> None:
        """Step forward circularly to the next playlist entry."""
        target_id = self._queue.id_at_offset(1)
        if target_id is None:
            await self._report_empty_playlist()
            return
        await self.transition_to(target_id, is_auto_advance)

    async def go_to_previous(self) -> None:
        """Step back circularly; this is not a history rewind and records nothing."""
        target_id = self._queue.id_at_offset(-1)
        if target_id is None:
            await self._report_empty_playlist()
            return
        await self.transition_to(target_id, record_history=False)

    async def select_track(self, track_id: TrackId) -> None:
        await self.transition_to(track_id)

    async def notify_playback_ended(self) -> None:
        await self.advance(is_auto_advance=True)

    async def report_playback_error(self, code: int) -> None:
        """Handle a player error code for the current track.

        Codes meaning the track can never play purge it from the session and
        move on to the entry that takes its place. Other codes only surface
        their message.
        """
        message = PLAYER_ERROR_MESSAGES.get(code, GENERIC_PLAYER_ERROR)
        if code not in UNPLAYABLE_ERROR_CODES:
            logger.warning("Player reported error %s: %s", code, message)
            await self._report_error(message)
            await self._emit_state()
            return
        flight = self._begin_transition()
        if flight is None:
            logger.debug("Player error %s dropped; transition in flight.", code)
            return
        current_id = self._queue.current_id
        logger.warning(
            "Track %s is unplayable (code %s: %s); purging.", current_id, code, message
        )
        removed_index = (
            self._queue.index_of(current_id) if current_id is not None else None
        )
        was_last = removed_index == len(self._queue.playlist) - 1
        if current_id is not None:
            self._purge(current_id)
        if not self._queue.playlist:
            self._end_transition(flight)
            await self._report_empty_playlist()
            return
        # Removing the last entry wraps forward instead of replaying the clamped one.
        target_index = 0 if was_last else self._queue.current_index
        target_id = self._queue.playlist[target_index]
        await self._fly(
            flight,
            target_id,
            is_auto_advance=True,
            retry_depth=0,
            record_history=False,
        )

    async def dismiss_error(self) -> None:
        if self._error is None:
            return
        self._error = None
        await self._emit_state()

    async def wait_until_idle(self) -> None:
        """Wait for every outstanding upcoming-list refresh to finish."""
        while self._refresh_tasks:
            await asyncio.gather(*list(self._refresh_tasks), return_exceptions=True)

    async def shutdown(self) -> None:
        """Cancel outstanding background refreshes."""
        tasks = list(self._refresh_tasks)
        for task in tasks:
            task.cancel()
        for task in tasks:
            with suppress(asyncio.CancelledError):
                await task
        self._refresh_tasks.clear()

    async def _run_initialization(self, work: Awaitable[None]) -> None:
        try:
            await asyncio.wait_for(work, timeout=self._config.init_timeout_s)
        except asyncio.TimeoutError:
            error = CatalogError("Loading timeout - please refresh")
            await self._report_fatal(error)
            raise error from None
        except CatalogError as exc:
            await self._report_fatal(exc)
            raise

    async def _fetch_and_initialize(self, playlist_id: str) -> None:
        raw_ids = await self._provider.fetch_playlist_items(playlist_id)
        await self._initialize(raw_ids)

    async def _initialize(self, raw_ids: list[TrackId]) -> None:
        playlist = _unique_ids(raw_ids)
        if not playlist:
            raise CatalogError("No videos found in playlist")
        self._shuffle_random.shuffle(playlist)
        await self.shutdown()
        self._flight_id += 1
        self._transition_started_at = None
        self._cache.clear()
        self._queue.reset(playlist)
        self._error = None

        prime_ids = [
            playlist[0],
            *select_upcoming(
                self._queue,
                self._config.initial_prime_count - 1,
                avoid_recent=self._config.avoid_recent,
            ),
        ]
        validated = await self._cache.validate_many(prime_ids)
        self._queue.add_validated(validated)
        by_id = {entry.id: entry for entry in validated}
        current = next(
            (by_id[track_id] for track_id in prime_ids if track_id in by_id), None
        )
        if current is None:
            raise CatalogError("No valid tracks found in playlist")
        index = self._queue.index_of(current.id)
        assert index is not None
        self._queue.set_current(index, current)
        logger.info(
            "Session initialized with %d tracks; starting at %s.",
            len(playlist),
            current.id,
        )
        await self._emit_event(TrackChanged(self._queue.current_track))
        await self._refresh_upcoming()

    def _begin_transition(self) -> int | None:
        if self._queue.is_transitioning:
            started = self._transition_started_at
            stale_after = self._config.transition_stale_after_s
            if started is None or self._clock() - started < stale_after:
                return None
            logger.warning(
                "Force-clearing transition flag held for %.1fs.",
                self._clock() - started,
            )
        self._flight_id += 1
        self._queue.is_transitioning = True
        self._queue.is_loading_next = True
        self._transition_started_at = self._clock()
        return self._flight_id

    def _end_transition(self, flight: int) -> None:
        if flight != self._flight_id:
            return
        self._queue.is_transitioning = False
        self._queue.is_loading_next = False
        self._transition_started_at = None

    async def _fly(
        self,
        flight: int,
        target_id: TrackId,
        *,
        is_auto_advance: bool,
        retry_depth: int,
        record_history: bool,
    ) -> None:
        committed: Track | None = None
        failure: str | None = None
        try:
            await self._emit_state()
            validated, failure = await self._resolve_target(target_id, retry_depth)
            if validated is not None:
                committed = self._commit(flight, validated, record_history)
        finally:
            self._end_transition(flight)
        if failure is not None:
            await self._report_error(failure)
        if committed is not None:
            await self._emit_event(
                TrackChanged(committed, is_auto_advance=is_auto_advance)
            )
        await self._emit_state()
        if committed is not None:
            self._schedule_refresh()

    async def _resolve_target(
        self, target_id: TrackId, retry_depth: int
    ) -> tuple[ValidatedTrack | None, str | None]:
        candidate = target_id
        depth = retry_depth
        while True:
            index = self._queue.index_of(candidate)
            if index is None:
                logger.error("Transition target %s is not in the playlist.", candidate)
                return None, _format_user_error(
                    what_failed="Failed to load track.",
                    likely_cause="Requested track is not part of the current playlist.",
                    next_step="Pick a track from the upcoming list or reload the playlist.",
                    detail=f"track id {candidate}",
                )
            validated = self._queue.valid_track(candidate) or self._cache.get(
                candidate
            )
            if validated is None:
                validated = await self._cache.validate(candidate)
            if validated is not None:
                return validated, None
            index = self._queue.index_of(candidate)
            playlist = self._queue.playlist
            if index is None or not playlist:
                break
            next_id = playlist[(index + 1) % len(playlist)]
            if depth >= self._config.max_retries or next_id == candidate:
                break
            depth += 1
            logger.info(
                "Track %s failed validation; trying %s (retry %d/%d).",
                candidate,
                next_id,
                depth,
                self._config.max_retries,
            )
            candidate = next_id
        logger.warning(
            "Track validation failed for %s after %d retries.", candidate, depth
        )
        return None, _format_user_error(
            what_failed="Track validation failed.",
            likely_cause="The track and the entries after it could not be loaded from the catalog.",
            next_step="Skip ahead or reload the playlist.",
            detail=f"last attempted track id {candidate}",
        )

    def _commit(
        self, flight: int, validated: ValidatedTrack, record_history: bool
    ) -> Track | None:
        if flight != self._flight_id:
            logger.debug("Superseded transition to %s discarded.", validated.id)
            return None
        index = self._queue.index_of(validated.id)
        if index is None:
            return None
        outgoing = self._queue.current_id
        if record_history and outgoing is not None and outgoing != validated.id:
            self._queue.record_advance(outgoing)
        self._queue.set_current(index, validated)
        self._error = None
        logger.debug("Current track is now %s (index %d).", validated.id, index)
        return self._queue.current_track

    def _schedule_refresh(self) -> None:
        task = asyncio.create_task(self._refresh_upcoming_safely())
        self._refresh_tasks.add(task)
        task.add_done_callback(self._refresh_tasks.discard)

    async def _refresh_upcoming_safely(self) -> None:
        try:
            await self._refresh_upcoming()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            logger.exception("Deferred upcoming refresh failed: %s", exc)

    async def _refresh_upcoming(self) -> None:
        count = self._config.lookahead_count
        track_ids = select_upcoming(
            self._queue, count, avoid_recent=self._config.avoid_recent
        )
        missing = [
            track_id
            for track_id in track_ids
            if self._queue.valid_track(track_id) is None
        ]
        if missing:
            validated = await self._cache.validate_many(missing)
            # A purge may have landed while the lookups were pending.
            self._queue.add_validated(
                [
                    entry
                    for entry in validated
                    if self._queue.index_of(entry.id) is not None
                ]
            )
        self._queue.set_upcoming(track_ids, limit=count)
        await self._emit_state()

    def _purge(self, track_id: TrackId) -> None:
        self._queue.purge_track(track_id)
        self._cache.discard(track_id)

    async def _report_empty_playlist(self) -> None:
        await self._report_error(
            _format_user_error(
                what_failed="No more videos available in playlist.",
                likely_cause="Every track was removed as unplayable or the session was never loaded.",
                next_step="Reload the playlist.",
            )
        )
        await self._emit_state()

    async def _report_fatal(self, exc: CatalogError) -> None:
        if isinstance(exc, ConfigurationError):
            message = _format_user_error(
                what_failed="Catalog provider is not configured.",
                likely_cause="API credentials are missing or rejected.",
                next_step="Set the catalog API key and restart.",
                detail=str(exc),
            )
        else:
            message = _format_user_error(
                what_failed="Failed to load playlist.",
                likely_cause="Playlist is empty, unavailable, or the catalog request failed.",
                next_step="Check the playlist id and network access, then refresh.",
                detail=str(exc),
            )
        logger.error("Queue initialization failed: %s", exc)
        await self._report_error(message)
        await self._emit_state()

    async def _report_error(self, message: str) -> None:
        self._error = message
        await self._emit_event(ErrorReported(message))

    async def _emit_state(self) -> None:
        await self._emit_event(QueueChanged(self.snapshot))


def _unique_ids(track_ids: list[TrackId]) -> list[TrackId]:
    seen: set[TrackId] = set()
    ordered: list[TrackId] = []
    for track_id in track_ids:
        if not track_id or track_id in seen:
            continue
        seen.add(track_id)
        ordered.append(track_id)
    return ordered
