"""
Artifact set lifecycle management.

Handles bundling a session's assets into an artifact set, rendering the
composite document, status transitions and the expiry policy the
collector applies.

Directory layout under the active root:
- <root>/<set_id>/spec.md
- <root>/<set_id>/images/<asset_id>.<format>
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from specstash.artifacts.assets import IMAGES_DIR
from specstash.artifacts.manifest import ManifestStore
from specstash.artifacts.models import (
    ArtifactSetRecord,
    ArtifactSetStatus,
    AttachedAsset,
    generate_id,
    now_ms,
)
from specstash.core.config import DEFAULT_COMPLETED_WINDOW_MS, DEFAULT_ORPHAN_WINDOW_MS
from specstash.storage.filesystem import FileSystem, LocalFileSystem
from specstash.storage.locator import StorageLocator

logger = logging.getLogger(__name__)

DOCUMENT_FILE = "spec.md"
ATTACHMENTS_HEADING = "## Attached Images"

Clock = Callable[[], int]


@dataclass(frozen=True)
class ExpiryPolicy:
    """Per-status expiry windows, in milliseconds."""

    orphan_window_ms: int = DEFAULT_ORPHAN_WINDOW_MS
    completed_window_ms: int = DEFAULT_COMPLETED_WINDOW_MS

    def initial_expiry(self, now: int) -> int:
        return now + self.orphan_window_ms

    def completed_expiry(self, now: int) -> int:
        return now + self.completed_window_ms

    def is_collectible(self, record: ArtifactSetRecord, now: int) -> bool:
        """
        Decide whether a record should be removed at ``now``.

        Completed records have their deadline reset on completion, so the
        deadline check covers them; legacy ``orphaned`` records are also
        collected once older than the orphan window.
        """
        if record.is_expired(now):
            return True
        return (
            record.status == ArtifactSetStatus.ORPHANED
            and record.age_ms(now) > self.orphan_window_ms
        )


def render_document(
    text: str,
    assets: Iterable[AttachedAsset],
    asset_paths: dict[str, str],
) -> str:
    """
    Append the attachments section to the document text.

    Only assets present in ``asset_paths`` are referenced; the heading is
    written whenever assets were supplied, even if none of them survived.
    """
    assets = list(assets)
    document = text

    if assets:
        document += f"\n\n{ATTACHMENTS_HEADING}\n\n"
        for asset in assets:
            path = asset_paths.get(asset.asset_id)
            if path:
                document += f"![{asset.original_name}]({path})\n\n"

    return document


class ArtifactLifecycle:
    """
    Creates artifact sets and moves them through their statuses.

    State machine:
        active --(submit)--> submitted --(complete)--> completed

    Transitions on unknown records, and transitions that would not move a
    record forward, are silent no-ops that leave the manifest untouched.
    """

    _TRANSITIONS = {
        ArtifactSetStatus.SUBMITTED: {ArtifactSetStatus.ACTIVE},
        ArtifactSetStatus.COMPLETED: {ArtifactSetStatus.ACTIVE, ArtifactSetStatus.SUBMITTED},
    }

    def __init__(
        self,
        locator: StorageLocator,
        manifest_store: ManifestStore | None = None,
        fs: FileSystem | None = None,
        policy: ExpiryPolicy | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize lifecycle manager.

        Args:
            locator: StorageLocator resolving the active root
            manifest_store: ManifestStore instance (default: built from locator)
            fs: Filesystem capability (default: local disk)
            policy: Expiry windows
            clock: Callable returning epoch milliseconds
        """
        self._locator = locator
        self._fs = fs or LocalFileSystem()
        self._manifest = manifest_store or ManifestStore(locator, self._fs)
        self._policy = policy or ExpiryPolicy()
        self._clock = clock or now_ms

    async def _copy_assets(
        self, images_dir: Path, assets: list[AttachedAsset]
    ) -> dict[str, str]:
        """Copy each asset into the set; failures are logged and skipped."""
        copied: dict[str, str] = {}
        for asset in assets:
            destination = images_dir / asset.file_name
            try:
                await self._fs.copy(Path(asset.file_path), destination)
            except OSError as e:
                logger.error(f"Failed to copy image {asset.asset_id}: {e}")
                continue
            copied[asset.asset_id] = str(destination)
        return copied

    async def _discard(self, set_dir: Path) -> None:
        try:
            await self._fs.delete(set_dir, recursive=True)
        except OSError as e:
            logger.warning(f"Could not remove incomplete artifact set {set_dir}: {e}")

    async def create_set(
        self,
        session_id: str,
        composite_text: str,
        assets: Iterable[AttachedAsset] = (),
    ) -> ArtifactSetRecord:
        """
        Bundle a session's text and assets into a new artifact set.

        Args:
            session_id: Session that owns the assets
            composite_text: Document body
            assets: Assets to copy into the set

        Returns:
            The manifest record, listing only the assets actually copied

        Raises:
            OSError: If the set directory, document or manifest cannot be
                written. The partially built directory is removed first.
        """
        assets = list(assets)
        root, _ = await self._locator.resolve_root()

        set_id = generate_id()
        set_dir = root / set_id
        try:
            await self._fs.mkdir(set_dir, recursive=True)
        except OSError:
            self._locator.invalidate()
            raise

        try:
            asset_paths: dict[str, str] = {}
            if assets:
                images_dir = set_dir / IMAGES_DIR
                await self._fs.mkdir(images_dir, recursive=True)
                asset_paths = await self._copy_assets(images_dir, assets)

            document_path = set_dir / DOCUMENT_FILE
            document = render_document(composite_text, assets, asset_paths)
            await self._fs.write(document_path, document.encode("utf-8"))

            now = self._clock()
            record = ArtifactSetRecord(
                set_id=set_id,
                session_id=session_id,
                document_path=str(document_path),
                asset_paths=asset_paths,
                created_at=now,
                expires_at=self._policy.initial_expiry(now),
                status=ArtifactSetStatus.ACTIVE,
            )

            manifest = await self._manifest.read()
            manifest.files[set_id] = record
            await self._manifest.write(manifest)
        except OSError:
            await self._discard(set_dir)
            self._locator.invalidate()
            raise

        skipped = len(assets) - len(asset_paths)
        if skipped:
            logger.warning(f"Artifact set {set_id} created without {skipped} missing asset(s)")
        logger.info(
            f"Created artifact set {set_id} for session {session_id} "
            f"with {len(asset_paths)} asset(s)"
        )
        return record

    async def _transition(self, set_id: str, status: ArtifactSetStatus) -> None:
        manifest = await self._manifest.read()
        record = manifest.files.get(set_id)
        if record is None:
            logger.debug(f"Ignoring {status.value} transition for unknown set {set_id}")
            return
        if record.status not in self._TRANSITIONS[status]:
            logger.debug(
                f"Ignoring {status.value} transition for set {set_id} in {record.status.value}"
            )
            return

        record.status = status
        if status == ArtifactSetStatus.COMPLETED:
            record.expires_at = self._policy.completed_expiry(self._clock())

        try:
            await self._manifest.write(manifest)
        except OSError as e:
            logger.warning(f"Could not persist {status.value} status for set {set_id}: {e}")
            return
        logger.info(f"Artifact set {set_id} marked {status.value}")

    async def mark_submitted(self, set_id: str) -> None:
        """Mark a set as handed to the external process."""
        await self._transition(set_id, ArtifactSetStatus.SUBMITTED)

    async def mark_completed(self, set_id: str) -> None:
        """Mark a set as completed and shorten its expiry to the completed window."""
        await self._transition(set_id, ArtifactSetStatus.COMPLETED)

    async def get_set(self, set_id: str) -> ArtifactSetRecord | None:
        manifest = await self._manifest.read()
        return manifest.files.get(set_id)

    async def list_sets(self) -> list[ArtifactSetRecord]:
        manifest = await self._manifest.read()
        return sorted(manifest.files.values(), key=lambda r: r.created_at)

    async def get_document_path(self, set_id: str) -> str | None:
        record = await self.get_set(set_id)
        return record.document_path if record else None

    async def render_document(
        self,
        set_id: str,
        text: str,
        assets: Iterable[AttachedAsset],
    ) -> str:
        """
        Render the composite document for a set without writing it.

        Unknown sets render with no asset references.
        """
        record = await self.get_set(set_id)
        asset_paths = record.asset_paths if record else {}
        return render_document(text, assets, asset_paths)
