"""Runtime configuration normalization helpers.

These helpers keep CLI flag and environment interpretation deterministic
across entrypoints. Environment variables take precedence over defaults.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from shuffle_radio.services.catalog_provider import ConfigurationError

API_KEY_ENV = "SHUFFLE_RADIO_API_KEY"
PLAYLIST_ID_ENV = "SHUFFLE_RADIO_PLAYLIST_ID"
BASE_URL_ENV = "SHUFFLE_RADIO_API_BASE_URL"
DEFAULT_PLAYLIST_ID = "PLBtA_Wr4VtP-sZG5YoACVreBvhdLw1LKx"
DEFAULT_BASE_URL = "https://www.googleapis.com/youtube/v3"


@dataclass(frozen=True)
class EngineConfig:
    """Queue engine tunables."""

    lookahead_count: int = 3
    history_limit: int = 10
    avoid_recent: int = 5
    max_retries: int = 3
    initial_prime_count: int = 4
    validation_concurrency: int = 4
    transition_stale_after_s: float = 10.0
    init_timeout_s: float = 15.0
    clean_titles: bool = False

    def __post_init__(self) -> None:
        if self.lookahead_count < 0:
            raise ValueError("lookahead_count must be >= 0")
        if self.history_limit < 1:
            raise ValueError("history_limit must be >= 1")
        if self.avoid_recent < 0:
            raise ValueError("avoid_recent must be >= 0")
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.initial_prime_count < 1:
            raise ValueError("initial_prime_count must be >= 1")
        if self.validation_concurrency < 1:
            raise ValueError("validation_concurrency must be >= 1")
        if self.transition_stale_after_s <= 0:
            raise ValueError("transition_stale_after_s must be > 0")
        if self.init_timeout_s <= 0:
            raise ValueError("init_timeout_s must be > 0")


@dataclass(frozen=True)
class CatalogConfig:
    """Connection settings for the HTTP catalog provider."""

    api_key: str
    playlist_id: str = DEFAULT_PLAYLIST_ID
    base_url: str = DEFAULT_BASE_URL
    max_results: int = 50
    max_pages: int = 1
    request_timeout_s: float = 10.0


def load_catalog_config(
    environ: Mapping[str, str] | None = None,
    *,
    playlist_id: str | None = None,
) -> CatalogConfig:
    """Resolve catalog settings from the environment.

    An explicit `playlist_id` argument wins over the environment, which wins
    over the built-in default. A missing API key is a fatal configuration error.
    """
    env = os.environ if environ is None else environ
    api_key = env.get(API_KEY_ENV, "").strip()
    if not api_key:
        raise ConfigurationError(
            f"Catalog API key not configured (set {API_KEY_ENV})"
        )
    resolved_playlist = (
        (playlist_id or "").strip()
        or env.get(PLAYLIST_ID_ENV, "").strip()
        or DEFAULT_PLAYLIST_ID
    )
    base_url = env.get(BASE_URL_ENV, "").strip() or DEFAULT_BASE_URL
    return CatalogConfig(
        api_key=api_key,
        playlist_id=resolved_playlist,
        base_url=base_url,
    )


def resolve_log_level(*, verbose: bool, quiet: bool) -> str:
    """Resolve effective log level from CLI flags.

    Precedence is deterministic: --quiet overrides --verbose.
    """
    if quiet:
        return "WARNING"
    if verbose:
        return "DEBUG"
    return "INFO"
