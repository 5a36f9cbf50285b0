"""
Garbage collection of artifact sets.

Two passes:
- ``sweep`` walks the manifest and removes sets whose deadline has passed.
- ``reconcile`` walks the storage root and removes stale directories the
  manifest no longer knows about (after manifest loss or a clobbered
  cross-process write).
"""

import logging
from pathlib import Path
from typing import Iterable

from specstash.artifacts.lifecycle import DOCUMENT_FILE, Clock, ExpiryPolicy
from specstash.artifacts.manifest import ManifestStore
from specstash.artifacts.models import ArtifactSetRecord, is_safe_id, now_ms
from specstash.storage.filesystem import FileSystem, LocalFileSystem
from specstash.storage.locator import StorageLocator

logger = logging.getLogger(__name__)


class GarbageCollector:
    """
    Removes expired artifact sets.

    Safe to run at startup, repeatedly, and alongside creation of other
    sets: a sweep reads the manifest exactly once, so a set created while
    it runs survives until the next sweep.
    """

    def __init__(
        self,
        locator: StorageLocator,
        manifest_store: ManifestStore | None = None,
        fs: FileSystem | None = None,
        policy: ExpiryPolicy | None = None,
        clock: Clock | None = None,
    ):
        self._locator = locator
        self._fs = fs or LocalFileSystem()
        self._manifest = manifest_store or ManifestStore(locator, self._fs)
        self._policy = policy or ExpiryPolicy()
        self._clock = clock or now_ms

    def _set_dir(self, set_id: str, record: ArtifactSetRecord) -> Path | None:
        """
        Directory to delete for a record, or None if there is none to trust.

        The stored document path is followed only when it has the shape the
        lifecycle writes (``<absolute root>/<set_id>/spec.md``); otherwise the
        set is looked up under the active root.
        """
        if not is_safe_id(set_id):
            logger.warning(f"Not deleting directory for unsafe set ID {set_id!r}")
            return None

        document = Path(record.document_path) if record.document_path else None
        if (
            document is not None
            and document.is_absolute()
            and document.name == DOCUMENT_FILE
            and document.parent.name == set_id
        ):
            return document.parent
        return self._locator.active_root / set_id

    async def _delete_dir(self, path: Path) -> None:
        try:
            await self._fs.delete(path, recursive=True)
        except OSError as e:
            logger.debug(f"Directory {path} not removed: {e}")

    async def sweep(self) -> list[str]:
        """
        Remove every collectible set from disk and from the manifest.

        Directory deletion is attempted first and its failure ignored; the
        manifest entry is removed regardless so no record gets stuck.

        Returns:
            IDs of the removed sets
        """
        now = self._clock()
        removed: list[str] = []

        try:
            manifest = await self._manifest.read()

            for set_id, record in list(manifest.files.items()):
                if not self._policy.is_collectible(record, now):
                    continue

                set_dir = self._set_dir(set_id, record)
                if set_dir is not None:
                    await self._delete_dir(set_dir)
                del manifest.files[set_id]
                removed.append(set_id)

            if removed:
                manifest.last_cleanup = now
                await self._manifest.write(manifest)
                logger.info(f"Collected {len(removed)} expired artifact set(s)")

            return removed
        except Exception as e:
            logger.error(f"Failed to clean up expired artifact sets: {e}")
            return []

    async def reconcile(self, keep: Iterable[str] = ()) -> list[str]:
        """
        Remove stale directories under the active root that the manifest does not reference.

        A directory is removed only when it is not a manifest entry, not
        named in ``keep`` (live session IDs) and was last modified longer
        ago than the orphan window.

        Args:
            keep: Directory names that must survive (active sessions)

        Returns:
            Names of the removed directories
        """
        now = self._clock()
        keep_names = set(keep)
        removed: list[str] = []

        root, _ = await self._locator.resolve_root()
        manifest = await self._manifest.read()
        referenced = {root / set_id for set_id in manifest.files}
        for set_id, record in manifest.files.items():
            set_dir = self._set_dir(set_id, record)
            if set_dir is not None:
                referenced.add(set_dir)

        try:
            entries = await self._fs.list_dir(root)
        except OSError as e:
            logger.warning(f"Could not scan storage root {root}: {e}")
            return []

        for entry in entries:
            if entry.name in keep_names or entry in referenced:
                continue
            try:
                if not await self._fs.is_dir(entry):
                    continue
                age = now - await self._fs.modified_ms(entry)
            except OSError as e:
                logger.debug(f"Skipping {entry} during scan: {e}")
                continue
            if age <= self._policy.orphan_window_ms:
                continue

            await self._delete_dir(entry)
            removed.append(entry.name)

        if removed:
            logger.info(f"Removed {len(removed)} unreferenced director(ies) from {root}")
        return removed
