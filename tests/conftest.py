"""Pytest configuration and fixtures."""

import base64
import tempfile
from pathlib import Path
from typing import Generator

import pytest

from specstash.artifacts import (
    ArtifactLifecycle,
    AssetStore,
    ExpiryPolicy,
    GarbageCollector,
    ManifestStore,
)
from specstash.artifacts.models import now_ms
from specstash.core.config import StashConfig
from specstash.storage import StorageLocator

ORPHAN_WINDOW_MS = 24 * 60 * 60 * 1000
COMPLETED_WINDOW_MS = 5 * 60 * 1000


def make_data_uri(payload: bytes, image_format: str = "png") -> str:
    """Encode bytes the way the editing surface sends attachments."""
    return f"data:image/{image_format};base64,{base64.b64encode(payload).decode('ascii')}"


class FakeClock:
    """Settable epoch-millisecond clock."""

    def __init__(self, start: int | None = None):
        self.now = start if start is not None else now_ms()

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def primary_root(temp_dir: Path) -> Path:
    return temp_dir / "primary"


@pytest.fixture
def fallback_root(temp_dir: Path) -> Path:
    return temp_dir / "fallback"


@pytest.fixture
def stash_config(temp_dir: Path, primary_root: Path, fallback_root: Path) -> StashConfig:
    """Configuration with every path under the temporary directory."""
    return StashConfig(
        primary_root=primary_root,
        fallback_root=fallback_root,
        draft_store_path=temp_dir / "drafts.json",
    )


@pytest.fixture
def locator(primary_root: Path, fallback_root: Path) -> StorageLocator:
    return StorageLocator(primary_root, fallback_root)


@pytest.fixture
def manifest_store(locator: StorageLocator) -> ManifestStore:
    return ManifestStore(locator)


@pytest.fixture
def policy() -> ExpiryPolicy:
    return ExpiryPolicy(
        orphan_window_ms=ORPHAN_WINDOW_MS,
        completed_window_ms=COMPLETED_WINDOW_MS,
    )


@pytest.fixture
def asset_store(locator: StorageLocator) -> AssetStore:
    return AssetStore(locator)


@pytest.fixture
def lifecycle(
    locator: StorageLocator,
    manifest_store: ManifestStore,
    policy: ExpiryPolicy,
    clock: FakeClock,
) -> ArtifactLifecycle:
    return ArtifactLifecycle(locator, manifest_store, policy=policy, clock=clock)


@pytest.fixture
def collector(
    locator: StorageLocator,
    manifest_store: ManifestStore,
    policy: ExpiryPolicy,
    clock: FakeClock,
) -> GarbageCollector:
    return GarbageCollector(locator, manifest_store, policy=policy, clock=clock)


@pytest.fixture
def png_data_uri() -> str:
    return make_data_uri(b"\x89PNG\r\n\x1a\n" + b"\x00" * 64, "png")
