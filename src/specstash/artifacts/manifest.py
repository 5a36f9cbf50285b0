"""
Manifest persistence.

The manifest is a single JSON document at ``<root>/manifest.json``. It is
always read and written in full; there are no partial updates, so the
worst outcome of two interleaved writers is that the last one wins.
"""

import json
import logging

from pydantic import ValidationError

from specstash.artifacts.models import Manifest
from specstash.storage.filesystem import FileSystem, LocalFileSystem
from specstash.storage.locator import StorageLocator

logger = logging.getLogger(__name__)


class ManifestStore:
    """
    Reads and writes the manifest under the active storage root.

    ``read`` never raises: a missing, unreadable or malformed manifest is
    returned as a fresh empty one. Callers are expected to serialize
    read-modify-write sequences within a process.
    """

    MANIFEST_FILE = "manifest.json"

    def __init__(self, locator: StorageLocator, fs: FileSystem | None = None):
        self._locator = locator
        self._fs = fs or LocalFileSystem()

    async def read(self) -> Manifest:
        """Load the manifest, treating any failure as an empty manifest."""
        root, _ = await self._locator.resolve_root()
        path = root / self.MANIFEST_FILE
        try:
            raw = await self._fs.read(path)
        except FileNotFoundError:
            return Manifest()
        except OSError as e:
            logger.warning(f"Could not read manifest {path}: {e}")
            return Manifest()

        try:
            data = json.loads(raw.decode("utf-8"))
            return Manifest.model_validate(data)
        except (UnicodeDecodeError, json.JSONDecodeError, ValidationError) as e:
            logger.warning(f"Ignoring corrupt manifest {path}: {e}")
            return Manifest()

    async def write(self, manifest: Manifest) -> None:
        """
        Overwrite the manifest in full.

        The document is written to a temporary sibling and renamed over the
        manifest so a reader never sees a half-written file. A failed write
        invalidates the cached storage root.

        Raises:
            OSError: If the storage root cannot be written
        """
        root, _ = await self._locator.resolve_root()
        path = root / self.MANIFEST_FILE
        temp_path = root / f"{self.MANIFEST_FILE}.tmp"
        content = manifest.to_json().encode("utf-8")

        try:
            await self._fs.mkdir(root, recursive=True)
            await self._fs.write(temp_path, content)
            await self._fs.replace(temp_path, path)
        except OSError:
            try:
                await self._fs.delete(temp_path)
            except OSError:
                pass
            self._locator.invalidate()
            raise
