"""
Storage root resolution.

Resolves the directory every artifact set, working asset and the manifest
live under. The primary root is preferred; when it cannot be created or
written, the locator switches to a fallback root under the system
temporary directory and keeps using it.
"""

import logging
from pathlib import Path

from specstash.storage.filesystem import FileSystem, LocalFileSystem

logger = logging.getLogger(__name__)


class StorageLocator:
    """
    Resolves and caches the active storage root.

    The first ``resolve_root`` call runs the write test and caches the
    result. Callers that see a write fail under the cached root call
    ``invalidate`` so the next resolution starts again at the primary root.
    Resolution never raises: if the fallback cannot be verified either, it
    is still returned and the first real write reports the failure.
    """

    WRITE_TEST_FILE = ".write-test"

    def __init__(
        self,
        primary_root: Path,
        fallback_root: Path,
        fs: FileSystem | None = None,
    ):
        """
        Initialize the locator.

        Args:
            primary_root: Preferred storage root
            fallback_root: Root used when the primary is not writable
            fs: Filesystem capability (default: local disk)
        """
        self._primary_root = Path(primary_root).absolute()
        self._fallback_root = Path(fallback_root).absolute()
        self._fs = fs or LocalFileSystem()
        self._active_root: Path | None = None
        self._using_fallback = False

    @property
    def primary_root(self) -> Path:
        return self._primary_root

    @property
    def fallback_root(self) -> Path:
        return self._fallback_root

    @property
    def active_root(self) -> Path:
        """The cached root, or the primary root when nothing is cached."""
        return self._active_root or self._primary_root

    @property
    def using_fallback(self) -> bool:
        return self._using_fallback

    async def _verify(self, root: Path) -> bool:
        """Create the root and check that a marker file can be written and removed."""
        marker = root / self.WRITE_TEST_FILE
        try:
            await self._fs.mkdir(root, recursive=True)
            await self._fs.write(marker, b"test")
            await self._fs.delete(marker)
            return True
        except OSError as e:
            logger.debug(f"Storage root {root} failed write test: {e}")
            return False

    async def resolve_root(self) -> tuple[Path, bool]:
        """
        Resolve the writable storage root.

        Returns:
            Tuple of (active root, whether the fallback is in use)
        """
        if self._active_root is not None:
            return self._active_root, self._using_fallback

        if await self._verify(self._primary_root):
            if self._using_fallback:
                logger.info(f"Primary storage root is writable again: {self._primary_root}")
            self._active_root = self._primary_root
            self._using_fallback = False
            return self._active_root, False

        if not self._using_fallback:
            logger.warning(
                f"Primary storage root not writable, falling back to {self._fallback_root}"
            )
        if not await self._verify(self._fallback_root):
            logger.error(
                f"Fallback storage root {self._fallback_root} is not writable either; "
                "writes will fail until storage becomes available"
            )
        self._active_root = self._fallback_root
        self._using_fallback = True
        return self._active_root, True

    def invalidate(self) -> None:
        """Drop the cached root so the next resolution starts at the primary."""
        self._active_root = None
