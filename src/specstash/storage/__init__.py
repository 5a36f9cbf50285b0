"""
SpecStash Storage Module.

Filesystem and key-value capabilities, and storage root resolution.
"""

from .filesystem import FileSystem, LocalFileSystem
from .keyvalue import JsonFileKeyValueStore, KeyValueStore
from .locator import StorageLocator

__all__ = [
    "FileSystem",
    "LocalFileSystem",
    "KeyValueStore",
    "JsonFileKeyValueStore",
    "StorageLocator",
]
