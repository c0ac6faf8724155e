"""Upcoming-track selection that avoids recent repeats.

Pure with respect to `QueueState`: it reads the cursor, playlist and history
and returns ids; validating them and writing the results back is the engine's
job.
"""

from __future__ import annotations

from shuffle_radio.services.catalog_provider import TrackId
from shuffle_radio.services.queue_state import QueueState

DEFAULT_LOOKAHEAD = 3
DEFAULT_AVOID_RECENT = 5


def select_upcoming(
    queue: QueueState,
    count: int = DEFAULT_LOOKAHEAD,
    *,
    avoid_recent: int = DEFAULT_AVOID_RECENT,
) -> list[TrackId]:
    """Pick up to `count` unique ids to prefetch after the current track.

    First pass walks forward from the cursor, wrapping once, skipping the
    current track and the last `avoid_recent` played ids. If that leaves
    slots open, a second pass from position 0 admits recently played ids but
    never the current track or a duplicate.
    """
    playlist = queue.playlist
    if not playlist or count <= 0:
        return []
    size = len(playlist)
    current_id = queue.current_id or playlist[queue.current_index % size]
    recent = list(queue.played_tracks)[-avoid_recent:] if avoid_recent > 0 else []
    avoid = {current_id, *recent}

    selected: list[TrackId] = []
    chosen: set[TrackId] = set()
    for step in range(1, size + 1):
        track_id = playlist[(queue.current_index + step) % size]
        if track_id in avoid or track_id in chosen:
            continue
        selected.append(track_id)
        chosen.add(track_id)
        if len(selected) >= count:
            return selected

    for track_id in playlist:
        if track_id == current_id or track_id in chosen:
            continue
        selected.append(track_id)
        chosen.add(track_id)
        if len(selected) >= count:
            break
    return selected
