"""
ArtifactStash - wiring of the artifact store components.

Builds the locator, manifest store, lifecycle, collector, asset store and
draft manager from one StashConfig, runs the startup collection pass and
hands out editor sessions that share a single manifest lock.
"""

import asyncio
import logging
from dataclasses import dataclass, field

from specstash.artifacts.assets import AssetStore
from specstash.artifacts.collector import GarbageCollector
from specstash.artifacts.lifecycle import ArtifactLifecycle, Clock, ExpiryPolicy
from specstash.artifacts.manifest import ManifestStore
from specstash.artifacts.models import now_ms
from specstash.core.config import StashConfig
from specstash.drafts.manager import DraftManager
from specstash.session.editor import EditorSession, Submitter
from specstash.storage.filesystem import FileSystem, LocalFileSystem
from specstash.storage.keyvalue import JsonFileKeyValueStore, KeyValueStore
from specstash.storage.locator import StorageLocator

logger = logging.getLogger(__name__)


@dataclass
class SweepReport:
    """Outcome of a collection pass."""

    removed_sets: list[str] = field(default_factory=list)
    removed_drafts: list[str] = field(default_factory=list)
    removed_directories: list[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.removed_sets) + len(self.removed_drafts) + len(self.removed_directories)


class ArtifactStash:
    """Entry point owning every artifact store component for one process."""

    def __init__(
        self,
        config: StashConfig | None = None,
        fs: FileSystem | None = None,
        kv_store: KeyValueStore | None = None,
        clock: Clock | None = None,
    ):
        """
        Initialize the stash.

        Args:
            config: Configuration (default: read from the environment)
            fs: Filesystem capability (default: local disk)
            kv_store: Draft storage (default: JSON file at config.draft_store_path)
            clock: Callable returning epoch milliseconds
        """
        self.config = config or StashConfig.from_env()
        self._fs = fs or LocalFileSystem()
        self._clock = clock or now_ms
        self._lock = asyncio.Lock()
        self._sessions: dict[str, EditorSession] = {}

        policy = ExpiryPolicy(
            orphan_window_ms=self.config.orphan_window_ms,
            completed_window_ms=self.config.completed_window_ms,
        )
        self.locator = StorageLocator(
            self.config.primary_root, self.config.fallback_root, self._fs
        )
        self.manifest_store = ManifestStore(self.locator, self._fs)
        self.lifecycle = ArtifactLifecycle(
            self.locator, self.manifest_store, self._fs, policy, self._clock
        )
        self.collector = GarbageCollector(
            self.locator, self.manifest_store, self._fs, policy, self._clock
        )
        self.assets = AssetStore(self.locator, self._fs, self.config.max_asset_bytes)
        self.drafts = DraftManager(
            kv_store or JsonFileKeyValueStore(self.config.draft_store_path),
            max_age_ms=self.config.draft_max_age_ms,
            max_chars=self.config.max_draft_chars,
            clock=self._clock,
        )

    @property
    def sessions(self) -> list[EditorSession]:
        return list(self._sessions.values())

    async def startup(self) -> SweepReport:
        """Resolve the storage root and run the process-start collection."""
        root, using_fallback = await self.locator.resolve_root()
        logger.info(f"Artifact storage root: {root} (fallback: {using_fallback})")
        return await self.sweep(include_drafts=True)

    async def sweep(self, include_drafts: bool = False) -> SweepReport:
        report = SweepReport()
        async with self._lock:
            report.removed_sets = await self.collector.sweep()
        if include_drafts:
            report.removed_drafts = await self.drafts.sweep()
        return report

    async def reconcile(self) -> SweepReport:
        """Scan the storage root for directories the manifest has lost track of."""
        async with self._lock:
            removed = await self.collector.reconcile(keep=self._sessions.keys())
        return SweepReport(removed_directories=removed)

    async def mark_completed(self, set_id: str) -> None:
        async with self._lock:
            await self.lifecycle.mark_completed(set_id)

    def open_session(
        self,
        session_id: str | None = None,
        submitter: Submitter | None = None,
    ) -> EditorSession:
        """Start an editor session; it is forgotten again when closed."""
        session = EditorSession(
            self.assets,
            self.lifecycle,
            drafts=self.drafts,
            submitter=submitter,
            session_id=session_id,
            max_assets=self.config.max_assets_per_session,
            max_total_bytes=self.config.max_total_attachment_bytes,
            lock=self._lock,
            on_close=lambda s: self._sessions.pop(s.session_id, None),
        )
        self._sessions[session.session_id] = session
        logger.info(f"Starting new session: {session.session_id}")
        return session
