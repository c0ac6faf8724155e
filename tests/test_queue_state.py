"""Tests for queue state mutators and snapshots."""

from __future__ import annotations

import pytest

from shuffle_radio.services.catalog_provider import TrackDetails
from shuffle_radio.services.queue_state import QueueState, ValidatedTrack


def _validated(track_id: str) -> ValidatedTrack:
    return ValidatedTrack(
        id=track_id,
        details=TrackDetails(
            artist="Artist",
            title=f"Title {track_id}",
            cover_image_url=f"https://img.example/{track_id}.jpg",
            localized_title=f"Artist - Title {track_id}",
        ),
    )


def _queue(ids: list[str], *, current: int = 0, history_limit: int = 10) -> QueueState:
    queue = QueueState(history_limit=history_limit)
    queue.reset(ids)
    queue.set_current(current, _validated(ids[current]))
    return queue


def test_id_at_offset_wraps_in_both_directions() -> None:
    queue = _queue(["A", "B", "C"], current=0)
    assert queue.id_at_offset(1) == "B"
    assert queue.id_at_offset(-1) == "C"
    assert queue.id_at_offset(3) == "A"


def test_id_at_offset_on_empty_playlist_is_none() -> None:
    queue = QueueState()
    assert queue.id_at_offset(1) is None


def test_played_history_is_bounded_and_drops_oldest() -> None:
    queue = _queue(["A", "B"], history_limit=3)
    for track_id in ["A", "B", "C", "D"]:
        queue.record_advance(track_id)
    assert list(queue.played_tracks) == ["B", "C", "D"]


def test_set_current_rejects_mismatched_position() -> None:
    queue = _queue(["A", "B", "C"])
    with pytest.raises(ValueError):
        queue.set_current(2, _validated("B"))
    with pytest.raises(IndexError):
        queue.set_current(5, _validated("B"))


def test_set_current_removes_new_current_from_upcoming() -> None:
    queue = _queue(["A", "B", "C"])
    queue.add_validated([_validated("B"), _validated("C")])
    queue.set_upcoming(["B", "C"], limit=3)
    queue.set_current(1, _validated("B"))
    assert [track.id for track in queue.upcoming_tracks] == ["C"]


def test_set_upcoming_skips_current_duplicates_and_unvalidated() -> None:
    queue = _queue(["A", "B", "C", "D"])
    queue.add_validated([_validated("B"), _validated("D")])
    queue.set_upcoming(["A", "B", "B", "C", "D"], limit=3)
    assert [track.id for track in queue.upcoming_tracks] == ["B", "D"]


def test_set_upcoming_honors_limit() -> None:
    queue = _queue(["A", "B", "C", "D", "E"])
    queue.add_validated([_validated(track_id) for track_id in "BCDE"])
    queue.set_upcoming(list("BCDE"), limit=2)
    assert [track.id for track in queue.upcoming_tracks] == ["B", "C"]


def test_purge_before_cursor_keeps_same_logical_track() -> None:
    queue = _queue(["A", "B", "C", "D"], current=2)
    assert queue.purge_track("A") is True
    assert queue.playlist == ["B", "C", "D"]
    assert queue.current_index == 1
    assert queue.current_id == "C"


def test_purge_current_clears_track_and_clamps_cursor() -> None:
    queue = _queue(["A", "B", "C"], current=2)
    queue.purge_track("C")
    assert queue.current_track is None
    assert queue.current_index == 1
    assert "C" not in queue.validated_tracks


def test_purge_removes_upcoming_entry_and_unknown_is_noop() -> None:
    queue = _queue(["A", "B", "C"])
    queue.add_validated([_validated("B"), _validated("C")])
    queue.set_upcoming(["B", "C"], limit=3)
    queue.purge_track("B")
    assert [track.id for track in queue.upcoming_tracks] == ["C"]
    assert queue.purge_track("missing") is False


def test_snapshot_is_immutable_copy() -> None:
    queue = _queue(["A", "B"])
    queue.record_advance("B")
    snapshot = queue.snapshot(error="boom")
    queue.record_advance("A")
    assert snapshot.played_tracks == ("B",)
    assert snapshot.error == "boom"
    assert snapshot.playlist_length == 2
    assert snapshot.current_track is not None
    assert snapshot.current_track.title == "Title A"
