"""
Working-copy storage for attached assets.

Assets arrive as ``data:image/<format>;base64,<payload>`` strings and are
written to ``<root>/<session_id>/images/<asset_id>.<format>`` where they
stay until the session is submitted or closed.
"""

import base64
import binascii
import logging
import re
from pathlib import Path, PurePath

from specstash.artifacts.models import (
    AssetFormat,
    AttachedAsset,
    generate_id,
    is_safe_id,
    now_ms,
)
from specstash.core.config import DEFAULT_MAX_ASSET_BYTES
from specstash.core.exceptions import AssetTooLargeError, InvalidAssetEncodingError
from specstash.storage.filesystem import FileSystem, LocalFileSystem
from specstash.storage.locator import StorageLocator

logger = logging.getLogger(__name__)

DATA_URI_PATTERN = re.compile(r"^data:image/(\w+);base64,(.+)$", re.DOTALL)

IMAGES_DIR = "images"

_EXTENSION_FORMATS = {
    ".png": AssetFormat.PNG,
    ".jpg": AssetFormat.JPG,
    ".jpeg": AssetFormat.JPG,
    ".gif": AssetFormat.GIF,
    ".webp": AssetFormat.WEBP,
}


def format_for(name: str) -> AssetFormat:
    """Derive the asset format from a filename; unknown extensions map to PNG."""
    return _EXTENSION_FORMATS.get(PurePath(name).suffix.lower(), AssetFormat.PNG)


def decode_data_uri(data_uri: str) -> bytes:
    """
    Decode an encoded asset string.

    Raises:
        InvalidAssetEncodingError: If the string is not a base64 image data URI
    """
    match = DATA_URI_PATTERN.match(data_uri)
    if not match:
        raise InvalidAssetEncodingError("Invalid image data URI")

    try:
        return base64.b64decode(match.group(2), validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidAssetEncodingError(
            "Invalid image data URI", details={"error": str(e)}
        ) from e


class AssetStore:
    """
    Persists and discards the per-session working copies of assets.

    Validation happens before any directory or file is created, so a
    rejected asset leaves no trace on disk.
    """

    def __init__(
        self,
        locator: StorageLocator,
        fs: FileSystem | None = None,
        max_asset_bytes: int = DEFAULT_MAX_ASSET_BYTES,
    ):
        self._locator = locator
        self._fs = fs or LocalFileSystem()
        self._max_asset_bytes = max_asset_bytes

    @property
    def max_asset_bytes(self) -> int:
        return self._max_asset_bytes

    def session_dir(self, session_id: str) -> Path:
        """
        Working directory of a session under the active root.

        Raises:
            ValueError: If the session ID would escape the storage root
        """
        if not is_safe_id(session_id):
            raise ValueError(f"Invalid session ID: {session_id!r}")
        return self._locator.active_root / session_id

    def images_dir(self, session_id: str) -> Path:
        return self.session_dir(session_id) / IMAGES_DIR

    async def save_asset(self, session_id: str, name: str, data_uri: str) -> AttachedAsset:
        """
        Validate and write one asset for a session.

        Args:
            session_id: Owning session
            name: Original filename, used for the format tag and display
            data_uri: Encoded asset

        Returns:
            The AttachedAsset describing the working copy

        Raises:
            InvalidAssetEncodingError: Malformed encoded input
            AssetTooLargeError: Decoded size above the configured limit
            OSError: The working copy could not be written
        """
        payload = decode_data_uri(data_uri)

        if len(payload) > self._max_asset_bytes:
            limit_mb = self._max_asset_bytes / (1024 * 1024)
            raise AssetTooLargeError(
                f"Image exceeds {limit_mb:g}MB limit",
                size_bytes=len(payload),
                limit_bytes=self._max_asset_bytes,
                asset_name=name,
            )

        await self._locator.resolve_root()
        images_dir = self.images_dir(session_id)
        asset_format = format_for(name)
        asset_id = generate_id()
        file_path = images_dir / f"{asset_id}.{asset_format.value}"

        try:
            await self._fs.mkdir(images_dir, recursive=True)
            await self._fs.write(file_path, payload)
        except OSError:
            self._locator.invalidate()
            raise

        logger.debug(f"Saved asset {asset_id} ({name}, {len(payload)} bytes) for {session_id}")

        return AttachedAsset(
            asset_id=asset_id,
            session_id=session_id,
            original_name=name,
            format=asset_format,
            size=len(payload),
            file_path=str(file_path),
            added_at=now_ms(),
            thumbnail_data_uri=data_uri,
        )

    async def delete_asset(self, file_path: str | Path) -> None:
        """Delete a working copy; a missing file is not an error."""
        try:
            await self._fs.delete(Path(file_path))
        except OSError as e:
            logger.debug(f"Asset {file_path} already gone: {e}")

    async def cleanup_session(self, session_id: str) -> None:
        """Remove a session's working directory and everything in it."""
        await self._locator.resolve_root()
        try:
            await self._fs.delete(self.session_dir(session_id), recursive=True)
        except OSError as e:
            logger.debug(f"Session directory for {session_id} not removed: {e}")
