"""Event models emitted by the queue engine to its collaborators.

The rendering layer listens for `QueueChanged`/`TrackChanged`; the
error-display collaborator listens for `ErrorReported`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from shuffle_radio.services.queue_state import QueueSnapshot, Track


@dataclass(frozen=True)
class QueueChanged:
    """Emitted after any visible queue mutation."""

    snapshot: QueueSnapshot


@dataclass(frozen=True)
class TrackChanged:
    """Emitted when the current track pointer moves to a new validated track."""

    track: Track | None
    is_auto_advance: bool = False


@dataclass(frozen=True)
class ErrorReported:
    """User-facing error message for the error banner."""

    message: str
