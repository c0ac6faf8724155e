"""Owned queue state: shuffled playlist, cursor, history and validated tracks.

`QueueState` is mutated only by `PlaybackQueueEngine`; consumers get frozen
`QueueSnapshot` copies. The mutators here keep the cursor and the denormalized
views consistent with the playlist.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field

from shuffle_radio.services.catalog_provider import TrackDetails, TrackId

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_LIMIT = 10


@dataclass(frozen=True)
class Track:
    """Denormalized view of a validated track used by the rendering layer."""

    id: TrackId
    title: str
    cover_image_url: str


@dataclass(frozen=True)
class ValidatedTrack:
    """Result of a successful catalog lookup for one track id."""

    id: TrackId
    details: TrackDetails
    is_valid: bool = True

    def to_track(self) -> Track:
        return Track(
            id=self.id,
            title=self.details.title,
            cover_image_url=self.details.cover_image_url,
        )


@dataclass(frozen=True)
class QueueSnapshot:
    """Read-only view handed to the rendering layer."""

    current_track: Track | None = None
    upcoming_tracks: tuple[Track, ...] = ()
    played_tracks: tuple[TrackId, ...] = ()
    is_loading_next: bool = False
    is_transitioning: bool = False
    error: str | None = None
    current_index: int = 0
    playlist_length: int = 0


@dataclass
class QueueState:
    """Mutable queue aggregate owned by the engine."""

    history_limit: int = DEFAULT_HISTORY_LIMIT
    playlist: list[TrackId] = field(default_factory=list)
    current_index: int = 0
    current_track: Track | None = None
    upcoming_tracks: list[Track] = field(default_factory=list)
    played_tracks: deque[TrackId] = field(init=False)
    validated_tracks: dict[TrackId, ValidatedTrack] = field(default_factory=dict)
    is_transitioning: bool = False
    is_loading_next: bool = False

    def __post_init__(self) -> None:
        if self.history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        self.played_tracks = deque(maxlen=self.history_limit)

    @property
    def current_id(self) -> TrackId | None:
        return self.current_track.id if self.current_track is not None else None

    def reset(self, playlist: list[TrackId]) -> None:
        """Install a new playlist and clear every derived view."""
        self.playlist = list(playlist)
        self.current_index = 0
        self.current_track = None
        self.upcoming_tracks = []
        self.played_tracks.clear()
        self.validated_tracks = {}
        self.is_transitioning = False
        self.is_loading_next = False

    def index_of(self, track_id: TrackId) -> int | None:
        try:
            return self.playlist.index(track_id)
        except ValueError:
            return None

    def id_at_offset(self, offset: int) -> TrackId | None:
        """Return the id `offset` steps from the cursor, wrapping circularly."""
        if not self.playlist:
            return None
        return self.playlist[(self.current_index + offset) % len(self.playlist)]

    def valid_track(self, track_id: TrackId) -> ValidatedTrack | None:
        validated = self.validated_tracks.get(track_id)
        if validated is None or not validated.is_valid:
            return None
        return validated

    def add_validated(self, tracks: list[ValidatedTrack]) -> None:
        for validated in tracks:
            if not validated.is_valid:
                continue
            self.validated_tracks.setdefault(validated.id, validated)

    def record_advance(self, from_id: TrackId) -> None:
        """Append an outgoing track id; the deque drops the oldest past the limit."""
        self.played_tracks.append(from_id)

    def set_current(self, index: int, validated: ValidatedTrack) -> None:
        if not 0 <= index < len(self.playlist):
            raise IndexError(f"queue index {index} out of range")
        if self.playlist[index] != validated.id:
            raise ValueError(
                f"track {validated.id} is not at playlist position {index}"
            )
        self.add_validated([validated])
        self.current_index = index
        self.current_track = validated.to_track()
        self.upcoming_tracks = [
            track for track in self.upcoming_tracks if track.id != validated.id
        ]

    def set_upcoming(self, track_ids: list[TrackId], *, limit: int) -> None:
        """Materialize upcoming tracks from validated ids, in the given order.

        Ids without a valid cache entry, the current track and repeats are
        skipped so the uniqueness invariants hold for any caller input.
        """
        current_id = self.current_id
        seen: set[TrackId] = set()
        upcoming: list[Track] = []
        for track_id in track_ids:
            if len(upcoming) >= limit:
                break
            if track_id == current_id or track_id in seen:
                continue
            validated = self.valid_track(track_id)
            if validated is None:
                continue
            seen.add(track_id)
            upcoming.append(validated.to_track())
        self.upcoming_tracks = upcoming

    def purge_track(self, track_id: TrackId) -> bool:
        """Remove a permanently unplayable track from every view.

        The cursor keeps pointing at the same logical track when the removed
        entry precedes it, and is clamped into bounds afterwards.
        """
        removed_index = self.index_of(track_id)
        if removed_index is None:
            return False
        del self.playlist[removed_index]
        self.validated_tracks.pop(track_id, None)
        self.upcoming_tracks = [
            track for track in self.upcoming_tracks if track.id != track_id
        ]
        if self.current_id == track_id:
            self.current_track = None
        new_index = self.current_index
        if removed_index < self.current_index:
            new_index -= 1
        self.current_index = max(0, min(new_index, len(self.playlist) - 1))
        logger.info(
            "Purged track %s from playlist (%d remaining).",
            track_id,
            len(self.playlist),
        )
        return True

    def snapshot(self, *, error: str | None = None) -> QueueSnapshot:
        return QueueSnapshot(
            current_track=self.current_track,
            upcoming_tracks=tuple(self.upcoming_tracks),
            played_tracks=tuple(self.played_tracks),
            is_loading_next=self.is_loading_next,
            is_transitioning=self.is_transitioning,
            error=error,
            current_index=self.current_index,
            playlist_length=len(self.playlist),
        )
