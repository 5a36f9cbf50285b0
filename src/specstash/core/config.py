"""
Configuration for the artifact store.

Values come from SPECSTASH_* environment variables. Sizes accept a plain
byte count or a K/M/G suffix; durations accept a plain millisecond count
or an ms/s/m/h/d suffix. Invalid values are logged and replaced by the
defaults below.
"""

import logging
import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

APP_SUBPATH = Path("specstash") / "spec-editor"

# Max 2 MB per asset
DEFAULT_MAX_ASSET_BYTES = 2 * 1024 * 1024

# Max 10 MB of attachments per session
DEFAULT_MAX_TOTAL_ATTACHMENT_BYTES = 10 * 1024 * 1024

DEFAULT_MAX_ASSETS_PER_SESSION = 20

DEFAULT_MAX_DRAFT_CHARS = 50_000

# 24 hours for unsubmitted or never-completed sets
DEFAULT_ORPHAN_WINDOW_MS = 24 * 60 * 60 * 1000

# 5 minute grace period after completion
DEFAULT_COMPLETED_WINDOW_MS = 5 * 60 * 1000

DEFAULT_DRAFT_MAX_AGE_MS = 24 * 60 * 60 * 1000

_SIZE_MULTIPLIERS = {
    "K": 1024,
    "M": 1024 * 1024,
    "G": 1024 * 1024 * 1024,
}

# Longest suffix first so "ms" is not read as "s"
_DURATION_MULTIPLIERS = {
    "MS": 1,
    "S": 1000,
    "M": 60 * 1000,
    "H": 60 * 60 * 1000,
    "D": 24 * 60 * 60 * 1000,
}


def default_primary_root() -> Path:
    """Return the default primary storage root under the user's home."""
    return Path.home() / ".specstash" / "spec-editor"


def default_draft_store_path() -> Path:
    return Path.home() / ".specstash" / "drafts.json"


def default_fallback_root() -> Path:
    """Return the fallback root under the system temporary directory."""
    return Path(tempfile.gettempdir()) / APP_SUBPATH


def parse_size(value: str) -> int:
    """
    Parse a byte size with an optional K, M or G suffix.

    Raises:
        ValueError: If the value is not a non-negative size
    """
    value = value.strip().upper()
    if value.endswith("B") and value[:-1][-1:] in _SIZE_MULTIPLIERS:
        value = value[:-1]

    for suffix, multiplier in _SIZE_MULTIPLIERS.items():
        if value.endswith(suffix):
            size = int(value[:-1]) * multiplier
            break
    else:
        size = int(value)

    if size < 0:
        raise ValueError(f"negative size: {value}")
    return size


def parse_duration_ms(value: str) -> int:
    """
    Parse a duration into milliseconds.

    Accepts a plain millisecond count or one of the suffixes
    ms, s, m, h, d (case-insensitive).

    Raises:
        ValueError: If the value is not a non-negative duration
    """
    value = value.strip().upper()

    for suffix, multiplier in _DURATION_MULTIPLIERS.items():
        if value.endswith(suffix):
            duration = int(value[: -len(suffix)]) * multiplier
            break
    else:
        duration = int(value)

    if duration < 0:
        raise ValueError(f"negative duration: {value}")
    return duration


def _env_size(name: str, default: int) -> int:
    env_value = os.getenv(name, "")
    if not env_value:
        return default
    try:
        return parse_size(env_value)
    except ValueError as e:
        logger.warning(
            f"Invalid {name} value: {env_value}, using default",
            extra={"error": str(e)},
        )
        return default


def _env_duration(name: str, default: int) -> int:
    env_value = os.getenv(name, "")
    if not env_value:
        return default
    try:
        return parse_duration_ms(env_value)
    except ValueError as e:
        logger.warning(
            f"Invalid {name} value: {env_value}, using default",
            extra={"error": str(e)},
        )
        return default


def _env_int(name: str, default: int) -> int:
    env_value = os.getenv(name, "")
    if not env_value:
        return default
    try:
        value = int(env_value)
        if value < 0:
            raise ValueError(f"negative count: {value}")
        return value
    except ValueError as e:
        logger.warning(
            f"Invalid {name} value: {env_value}, using default",
            extra={"error": str(e)},
        )
        return default


class StashConfig(BaseModel):
    """Storage locations, size limits and expiry windows."""

    primary_root: Path = Field(
        default_factory=default_primary_root,
        description="Preferred storage root for artifact sets",
    )
    fallback_root: Path = Field(
        default_factory=default_fallback_root,
        description="Root used when the primary root is not writable",
    )
    draft_store_path: Path = Field(
        default_factory=default_draft_store_path,
        description="Key-value file holding editor drafts",
    )
    max_asset_bytes: int = Field(
        default=DEFAULT_MAX_ASSET_BYTES, ge=0, description="Single asset byte limit"
    )
    max_total_attachment_bytes: int = Field(
        default=DEFAULT_MAX_TOTAL_ATTACHMENT_BYTES,
        ge=0,
        description="Combined attachment byte limit per session",
    )
    max_assets_per_session: int = Field(
        default=DEFAULT_MAX_ASSETS_PER_SESSION, ge=0, description="Attachment count limit"
    )
    max_draft_chars: int = Field(
        default=DEFAULT_MAX_DRAFT_CHARS, ge=0, description="Draft content length limit"
    )
    orphan_window_ms: int = Field(
        default=DEFAULT_ORPHAN_WINDOW_MS,
        ge=0,
        description="Lifetime of a set that has not been completed",
    )
    completed_window_ms: int = Field(
        default=DEFAULT_COMPLETED_WINDOW_MS,
        ge=0,
        description="Grace period for a completed set",
    )
    draft_max_age_ms: int = Field(
        default=DEFAULT_DRAFT_MAX_AGE_MS,
        ge=0,
        description="Age after which a draft is swept",
    )

    @classmethod
    def from_env(cls) -> "StashConfig":
        """Build a configuration from SPECSTASH_* environment variables."""
        values: dict[str, object] = {
            "max_asset_bytes": _env_size(
                "SPECSTASH_MAX_ASSET_SIZE", DEFAULT_MAX_ASSET_BYTES
            ),
            "max_total_attachment_bytes": _env_size(
                "SPECSTASH_MAX_TOTAL_SIZE", DEFAULT_MAX_TOTAL_ATTACHMENT_BYTES
            ),
            "max_assets_per_session": _env_int(
                "SPECSTASH_MAX_ASSETS", DEFAULT_MAX_ASSETS_PER_SESSION
            ),
            "orphan_window_ms": _env_duration(
                "SPECSTASH_ORPHAN_WINDOW", DEFAULT_ORPHAN_WINDOW_MS
            ),
            "completed_window_ms": _env_duration(
                "SPECSTASH_COMPLETED_WINDOW", DEFAULT_COMPLETED_WINDOW_MS
            ),
            "draft_max_age_ms": _env_duration(
                "SPECSTASH_DRAFT_MAX_AGE", DEFAULT_DRAFT_MAX_AGE_MS
            ),
        }

        root = os.getenv("SPECSTASH_ROOT")
        if root:
            values["primary_root"] = Path(root).expanduser()
        fallback = os.getenv("SPECSTASH_FALLBACK_ROOT")
        if fallback:
            values["fallback_root"] = Path(fallback).expanduser()
        draft_store = os.getenv("SPECSTASH_DRAFT_STORE")
        if draft_store:
            values["draft_store_path"] = Path(draft_store).expanduser()

        return cls(**values)
