"""
Filesystem capability consumed by the artifact store.

Every operation is a coroutine against an absolute path and may fail with
``OSError``. The local implementation runs the blocking calls in a worker
thread so the event loop is never held up by disk I/O.
"""

import asyncio
import os
import shutil
from pathlib import Path
from typing import Protocol, runtime_checkable


@runtime_checkable
class FileSystem(Protocol):
    """Narrow async file I/O interface."""

    async def exists(self, path: Path) -> bool: ...

    async def read(self, path: Path) -> bytes: ...

    async def write(self, path: Path, data: bytes) -> None: ...

    async def mkdir(self, path: Path, recursive: bool = True) -> None: ...

    async def copy(self, source: Path, destination: Path) -> None: ...

    async def delete(self, path: Path, recursive: bool = False) -> None: ...

    async def replace(self, source: Path, destination: Path) -> None: ...

    async def list_dir(self, path: Path) -> list[Path]: ...

    async def is_dir(self, path: Path) -> bool: ...

    async def modified_ms(self, path: Path) -> int: ...


class LocalFileSystem:
    """FileSystem backed by the local disk."""

    async def exists(self, path: Path) -> bool:
        return await asyncio.to_thread(path.exists)

    async def read(self, path: Path) -> bytes:
        return await asyncio.to_thread(path.read_bytes)

    async def write(self, path: Path, data: bytes) -> None:
        await asyncio.to_thread(path.write_bytes, data)

    async def mkdir(self, path: Path, recursive: bool = True) -> None:
        await asyncio.to_thread(path.mkdir, parents=recursive, exist_ok=True)

    async def copy(self, source: Path, destination: Path) -> None:
        await asyncio.to_thread(shutil.copyfile, source, destination)

    async def delete(self, path: Path, recursive: bool = False) -> None:
        """
        Delete a file or directory.

        Raises:
            FileNotFoundError: If the path does not exist
            OSError: If a non-empty directory is deleted without ``recursive``
        """
        await asyncio.to_thread(self._delete_sync, path, recursive)

    async def replace(self, source: Path, destination: Path) -> None:
        await asyncio.to_thread(os.replace, source, destination)

    async def list_dir(self, path: Path) -> list[Path]:
        return await asyncio.to_thread(lambda: sorted(path.iterdir()))

    async def is_dir(self, path: Path) -> bool:
        return await asyncio.to_thread(path.is_dir)

    async def modified_ms(self, path: Path) -> int:
        stat = await asyncio.to_thread(path.stat)
        return int(stat.st_mtime * 1000)

    @staticmethod
    def _delete_sync(path: Path, recursive: bool) -> None:
        if path.is_dir() and not path.is_symlink():
            if recursive:
                shutil.rmtree(path)
            else:
                path.rmdir()
        else:
            path.unlink()
