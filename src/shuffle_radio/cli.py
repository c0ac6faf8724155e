"""Command-line interface for shuffle-radio.

Runs a headless listening session: loads and shuffles a playlist, optionally
skips ahead a few tracks, then prints the now-playing snapshot.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.text import Text

from . import __version__
from .events import ErrorReported
from .logging_utils import setup_logging
from .paths import log_dir
from .runtime_config import EngineConfig, load_catalog_config, resolve_log_level
from .services.catalog_provider import CatalogError, CatalogProvider, ConfigurationError
from .services.fake_catalog import FakeCatalog
from .services.queue_engine import PlaybackQueueEngine
from .services.queue_state import QueueSnapshot
from .services.youtube_catalog import YouTubeCatalog
from .version import build_help_epilog

DEMO_PLAYLIST_ID = "demo"
DEMO_TRACK_COUNT = 12


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shuffle-radio",
        description="Shuffled playlist radio with a validated lookahead queue.",
        epilog=build_help_epilog(),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable verbose output")
    parser.add_argument(
        "--quiet", action="store_true", help="Only show warnings and errors"
    )
    parser.add_argument("--log-file", help="Write logs to a file path")
    parser.add_argument(
        "--provider",
        choices=("youtube", "fake"),
        default="youtube",
        help="Catalog provider to use (youtube or fake).",
    )
    parser.add_argument(
        "--playlist-id",
        help="Playlist to load (defaults to SHUFFLE_RADIO_PLAYLIST_ID or built-in).",
    )
    parser.add_argument(
        "--advance",
        type=int,
        default=0,
        metavar="N",
        help="Skip forward N tracks before printing the queue.",
    )
    parser.add_argument(
        "--clean-titles",
        action="store_true",
        help="Strip bracketed annotations such as (Official Video) from titles.",
    )
    return parser


def build_demo_catalog() -> FakeCatalog:
    """Offline catalog with one permanently unavailable track."""
    track_ids = [f"demo-{index:02d}" for index in range(1, DEMO_TRACK_COUNT + 1)]
    return FakeCatalog({DEMO_PLAYLIST_ID: track_ids}, unavailable={track_ids[4]})


def render_snapshot(snapshot: QueueSnapshot) -> Text:
    """Render the now-playing view as styled terminal text."""
    text = Text()
    text.append("Now playing: ", style="bold")
    if snapshot.current_track is None:
        text.append("nothing", style="dim")
    else:
        text.append(snapshot.current_track.title, style="bold cyan")
        text.append(f" [{snapshot.current_track.id}]", style="dim")
    text.append(
        f"\nPosition {snapshot.current_index + 1}/{snapshot.playlist_length}\n"
    )
    text.append("Up next:\n", style="bold")
    if not snapshot.upcoming_tracks:
        text.append("  (none)\n", style="dim")
    for number, track in enumerate(snapshot.upcoming_tracks, start=1):
        text.append(f"  {number}. {track.title}")
        text.append(f" [{track.id}]\n", style="dim")
    if snapshot.played_tracks:
        text.append("Recently played: ", style="bold")
        text.append(", ".join(reversed(snapshot.played_tracks)) + "\n", style="dim")
    if snapshot.error:
        text.append(snapshot.error.splitlines()[0], style="bold red")
        text.append("\n")
    return text


async def run_session(
    provider: CatalogProvider,
    playlist_id: str,
    *,
    advance: int = 0,
    config: EngineConfig | None = None,
) -> QueueSnapshot:
    """Load a playlist, skip forward `advance` times and return the final view."""
    logger = logging.getLogger(__name__)

    async def on_event(event: object) -> None:
        if isinstance(event, ErrorReported):
            logger.warning("Session error: %s", event.message.splitlines()[0])

    engine = PlaybackQueueEngine(provider=provider, emit_event=on_event, config=config)
    try:
        await engine.load_playlist(playlist_id)
        await engine.wait_until_idle()
        for _ in range(max(0, advance)):
            await engine.advance()
            await engine.wait_until_idle()
        return engine.snapshot
    finally:
        await engine.shutdown()


def main() -> int:
    parser = build_parser()
    args = parser.parse_args()
    logger = logging.getLogger(__name__)
    try:
        level = resolve_log_level(verbose=args.verbose, quiet=args.quiet)
        setup_logging(
            log_dir=log_dir(),
            level=level,
            log_file=Path(args.log_file) if args.log_file else None,
        )
        logger.info("Starting shuffle-radio CLI (provider=%s)", args.provider)
        engine_config = EngineConfig(clean_titles=args.clean_titles)
        provider: CatalogProvider
        if args.provider == "fake":
            provider = build_demo_catalog()
            playlist_id = args.playlist_id or DEMO_PLAYLIST_ID
        else:
            catalog_config = load_catalog_config(playlist_id=args.playlist_id)
            provider = YouTubeCatalog.from_config(
                catalog_config, clean_titles=engine_config.clean_titles
            )
            playlist_id = catalog_config.playlist_id
        snapshot = asyncio.run(
            run_session(
                provider, playlist_id, advance=args.advance, config=engine_config
            )
        )
        Console().print(render_snapshot(snapshot))
        return 0
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    except CatalogError as exc:
        logger.error("Catalog error: %s", exc)
        print(f"Could not start session: {exc}", file=sys.stderr)
        return 1
    except Exception as exc:  # pragma: no cover - top-level safety net
        logger.exception("Unhandled error: %s", exc)
        print("Unexpected error. Re-run with --verbose for details.", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
