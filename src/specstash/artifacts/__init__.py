"""
SpecStash Artifacts Module.

Provides working-asset storage, artifact set creation and status
tracking, the manifest, and garbage collection of expired sets.
"""

from .models import (
    ArtifactSetRecord,
    ArtifactSetStatus,
    AssetFormat,
    AttachedAsset,
    Manifest,
)
from .manifest import ManifestStore
from .assets import AssetStore, decode_data_uri, format_for
from .lifecycle import ArtifactLifecycle, ExpiryPolicy, render_document
from .collector import GarbageCollector

__all__ = [
    # Models
    "ArtifactSetRecord",
    "ArtifactSetStatus",
    "AssetFormat",
    "AttachedAsset",
    "Manifest",
    # Storage
    "ManifestStore",
    "AssetStore",
    "decode_data_uri",
    "format_for",
    # Lifecycle
    "ArtifactLifecycle",
    "ExpiryPolicy",
    "render_document",
    "GarbageCollector",
]
