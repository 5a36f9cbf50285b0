"""Tests for manifest models and persistence."""

import json
import shutil
from pathlib import Path

import pytest

from specstash.artifacts import (
    ArtifactSetRecord,
    ArtifactSetStatus,
    Manifest,
    ManifestStore,
)
from specstash.artifacts.models import MANIFEST_VERSION
from specstash.storage import StorageLocator


def _record(set_id: str, root: Path, status: ArtifactSetStatus = ArtifactSetStatus.ACTIVE) -> ArtifactSetRecord:
    return ArtifactSetRecord(
        set_id=set_id,
        session_id="session-1",
        document_path=str(root / set_id / "spec.md"),
        asset_paths={"img-1": str(root / set_id / "images" / "img-1.png")},
        created_at=1_000,
        expires_at=2_000,
        status=status,
    )


class TestArtifactSetRecord:
    """Tests for ArtifactSetRecord."""

    def test_wire_names(self, temp_dir: Path) -> None:
        data = _record("set-1", temp_dir).model_dump(by_alias=True, mode="json")

        assert data["id"] == "set-1"
        assert data["sessionId"] == "session-1"
        assert data["markdownFilePath"].endswith("spec.md")
        assert data["imageFilePaths"] == {"img-1": str(temp_dir / "set-1" / "images" / "img-1.png")}
        assert data["createdAt"] == 1_000
        assert data["expiresAt"] == 2_000
        assert data["status"] == "active"

    def test_unknown_status_reads_as_orphaned(self) -> None:
        record = ArtifactSetRecord.model_validate(
            {
                "id": "x",
                "sessionId": "s",
                "markdownFilePath": "/tmp/x/spec.md",
                "createdAt": 0,
                "expiresAt": 1,
                "status": "mystery",
            }
        )
        assert record.status == ArtifactSetStatus.ORPHANED

    def test_expiry_boundary(self, temp_dir: Path) -> None:
        record = _record("set-1", temp_dir)
        assert not record.is_expired(1_999)
        assert record.is_expired(2_000)

    def test_set_dir(self, temp_dir: Path) -> None:
        assert _record("set-1", temp_dir).set_dir == temp_dir / "set-1"


class TestManifestStore:
    """Tests for ManifestStore."""

    @pytest.mark.asyncio
    async def test_missing_manifest_reads_empty(self, manifest_store: ManifestStore) -> None:
        manifest = await manifest_store.read()

        assert manifest.version == MANIFEST_VERSION
        assert manifest.files == {}
        assert manifest.last_cleanup == 0

    @pytest.mark.asyncio
    async def test_corrupt_manifest_reads_empty(
        self, manifest_store: ManifestStore, primary_root: Path
    ) -> None:
        primary_root.mkdir(parents=True)
        (primary_root / "manifest.json").write_text("{ this is not json")

        manifest = await manifest_store.read()

        assert manifest.files == {}

    @pytest.mark.asyncio
    async def test_wrong_shape_reads_empty(
        self, manifest_store: ManifestStore, primary_root: Path
    ) -> None:
        primary_root.mkdir(parents=True)
        (primary_root / "manifest.json").write_text(json.dumps({"files": [1, 2, 3]}))

        manifest = await manifest_store.read()

        assert manifest.files == {}

    @pytest.mark.asyncio
    async def test_round_trip(self, manifest_store: ManifestStore, primary_root: Path) -> None:
        records = {
            "set-1": _record("set-1", primary_root),
            "set-2": _record("set-2", primary_root, ArtifactSetStatus.COMPLETED),
        }
        await manifest_store.write(Manifest(files=records, last_cleanup=42))

        manifest = await manifest_store.read()

        assert manifest.files == records
        assert manifest.last_cleanup == 42

    @pytest.mark.asyncio
    async def test_file_format(self, manifest_store: ManifestStore, primary_root: Path) -> None:
        await manifest_store.write(Manifest(files={"set-1": _record("set-1", primary_root)}))

        data = json.loads((primary_root / "manifest.json").read_text())

        assert set(data) == {"version", "files", "lastCleanup"}
        assert data["version"] == "1.0"
        assert data["files"]["set-1"]["status"] == "active"
        assert not (primary_root / "manifest.json.tmp").exists()

    @pytest.mark.asyncio
    async def test_write_is_last_writer_wins(
        self, manifest_store: ManifestStore, primary_root: Path
    ) -> None:
        await manifest_store.write(Manifest(files={"set-1": _record("set-1", primary_root)}))
        await manifest_store.write(Manifest(files={"set-2": _record("set-2", primary_root)}))

        manifest = await manifest_store.read()

        assert list(manifest.files) == ["set-2"]


class TestManifestStoreRoots:
    """Tests for ManifestStore under primary and fallback roots."""

    @pytest.mark.asyncio
    async def test_fresh_store_reads_fallback_manifest(
        self, temp_dir: Path, fallback_root: Path
    ) -> None:
        """A store that has not resolved anything yet still finds the fallback manifest."""
        blocker = temp_dir / "blocker"
        blocker.write_text("x")
        first = ManifestStore(StorageLocator(blocker / "root", fallback_root))
        await first.write(Manifest(last_cleanup=42))

        second = ManifestStore(StorageLocator(blocker / "root", fallback_root))
        manifest = await second.read()

        assert manifest.last_cleanup == 42

    @pytest.mark.asyncio
    async def test_failed_write_moves_to_fallback(
        self, primary_root: Path, fallback_root: Path
    ) -> None:
        """A write failure under the cached root triggers a fresh resolution."""
        locator = StorageLocator(primary_root, fallback_root)
        store = ManifestStore(locator)
        await locator.resolve_root()
        shutil.rmtree(primary_root)
        primary_root.write_text("no longer a directory")

        with pytest.raises(OSError):
            await store.write(Manifest())
        await store.write(Manifest(last_cleanup=7))

        assert locator.using_fallback is True
        data = json.loads((fallback_root / "manifest.json").read_text())
        assert data["lastCleanup"] == 7
