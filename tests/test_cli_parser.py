"""Tests for CLI argparse configuration and headless sessions."""

from __future__ import annotations

import asyncio

import shuffle_radio.cli as cli_module
from shuffle_radio.cli import (
    DEMO_PLAYLIST_ID,
    build_demo_catalog,
    build_parser,
    main,
    render_snapshot,
    run_session,
)
from shuffle_radio.runtime_config import API_KEY_ENV
from shuffle_radio.services.fake_catalog import FakeCatalog
from shuffle_radio.version import PROJECT_URL, __version__


def _stub_logging(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(cli_module, "setup_logging", lambda **_kwargs: None)
    monkeypatch.setattr(cli_module, "log_dir", lambda: tmp_path / "logs")


def test_cli_parser_defaults_provider_to_youtube() -> None:
    args = build_parser().parse_args([])
    assert args.provider == "youtube"
    assert args.advance == 0
    assert args.playlist_id is None
    assert args.clean_titles is False


def test_cli_parser_accepts_session_options() -> None:
    args = build_parser().parse_args(
        ["--provider", "fake", "--playlist-id", "PL1", "--advance", "3"]
    )
    assert args.provider == "fake"
    assert args.playlist_id == "PL1"
    assert args.advance == 3


def test_cli_help_includes_project_metadata() -> None:
    help_text = build_parser().format_help()
    assert f"Project URL: {PROJECT_URL}" in help_text
    assert "Platform: " in help_text
    assert f"Version: {__version__}" in help_text


def test_run_session_skips_unavailable_demo_track() -> None:
    catalog = build_demo_catalog()
    snapshot = asyncio.run(run_session(catalog, DEMO_PLAYLIST_ID, advance=11))
    assert snapshot.current_track is not None
    assert snapshot.playlist_length == 12
    assert len(snapshot.played_tracks) == 10
    assert "demo-05" not in {track.id for track in snapshot.upcoming_tracks}


def test_render_snapshot_lists_current_and_upcoming() -> None:
    catalog = FakeCatalog({"p": ["a", "b", "c"]})
    snapshot = asyncio.run(run_session(catalog, "p", advance=1))
    rendered = render_snapshot(snapshot).plain
    assert "Now playing: " in rendered
    assert f"Position {snapshot.current_index + 1}/3" in rendered
    assert "Up next:" in rendered
    assert "Recently played: " in rendered


def test_main_without_api_key_exits_with_configuration_error(
    monkeypatch, tmp_path, capsys
) -> None:
    monkeypatch.delenv(API_KEY_ENV, raising=False)
    _stub_logging(monkeypatch, tmp_path)
    monkeypatch.setattr(
        "sys.argv", ["shuffle-radio", "--log-file", str(tmp_path / "cli.log")]
    )
    assert main() == 2
    assert "Configuration error" in capsys.readouterr().err


def test_main_with_fake_provider_prints_now_playing(
    monkeypatch, tmp_path, capsys
) -> None:
    _stub_logging(monkeypatch, tmp_path)
    monkeypatch.setattr(
        "sys.argv",
        [
            "shuffle-radio",
            "--provider",
            "fake",
            "--advance",
            "2",
            "--quiet",
            "--log-file",
            str(tmp_path / "cli.log"),
        ],
    )
    assert main() == 0
    assert "Now playing: " in capsys.readouterr().out
