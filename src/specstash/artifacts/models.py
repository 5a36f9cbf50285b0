"""
Pydantic models for attached assets, artifact sets and the manifest.

Field names are snake_case in Python and camelCase on disk, so manifests
written by earlier versions of the editor load unchanged. All timestamps
are integer epoch milliseconds.
"""

import time
import uuid
from enum import Enum
from pathlib import Path, PurePath

from pydantic import BaseModel, ConfigDict, Field, field_validator

MANIFEST_VERSION = "1.0"


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def generate_id() -> str:
    """Generate a unique, time-prefixed identifier for sets and assets."""
    return f"{now_ms()}-{uuid.uuid4().hex[:7]}"


def is_safe_id(value: str) -> bool:
    """
    Check that an identifier can name a directory directly under a storage root.

    Rejects empty values, ``.`` and ``..``, absolute paths and anything
    containing a path separator.
    """
    if not value or value in (".", ".."):
        return False
    if "/" in value or "\\" in value:
        return False
    return PurePath(value).name == value and not PurePath(value).is_absolute()


class AssetFormat(Enum):
    """Image formats accepted as attachments."""

    PNG = "png"
    JPG = "jpg"
    GIF = "gif"
    WEBP = "webp"


class ArtifactSetStatus(Enum):
    """
    Stored lifecycle status of an artifact set.

    ``ORPHANED`` is only ever read from legacy manifests. Expiry is derived
    from ``expires_at`` at collection time and never stored.
    """

    ACTIVE = "active"
    SUBMITTED = "submitted"
    COMPLETED = "completed"
    ORPHANED = "orphaned"


class AttachedAsset(BaseModel):
    """A binary attachment owned by an editor session until it is bundled."""

    model_config = ConfigDict(populate_by_name=True)

    asset_id: str = Field(alias="id", description="Unique asset ID")
    session_id: str = Field(alias="sessionId", description="Owning session ID")
    original_name: str = Field(alias="originalName", description="Filename given by the user")
    format: AssetFormat = Field(description="Image format derived from the filename")
    size: int = Field(ge=0, description="Decoded size in bytes")
    file_path: str = Field(alias="filePath", description="Absolute path of the working copy")
    added_at: int = Field(alias="addedAt", default_factory=now_ms)
    thumbnail_data_uri: str = Field(
        alias="thumbnailDataUri",
        default="",
        description="Encoded form kept for preview in the editing surface",
    )

    @property
    def file_name(self) -> str:
        """Name of the asset inside an images directory."""
        return f"{self.asset_id}.{self.format.value}"


class ArtifactSetRecord(BaseModel):
    """Manifest record of one artifact set."""

    model_config = ConfigDict(populate_by_name=True)

    set_id: str = Field(alias="id", description="Unique artifact set ID")
    session_id: str = Field(alias="sessionId", description="Session that produced the set")
    document_path: str = Field(
        alias="markdownFilePath", description="Absolute path of the composite document"
    )
    asset_paths: dict[str, str] = Field(
        alias="imageFilePaths",
        default_factory=dict,
        description="asset_id -> absolute path of the bundled copy",
    )
    created_at: int = Field(alias="createdAt")
    expires_at: int = Field(alias="expiresAt")
    status: ArtifactSetStatus = Field(default=ArtifactSetStatus.ACTIVE)

    @field_validator("status", mode="before")
    @classmethod
    def validate_status(cls, v):
        """Convert string to ArtifactSetStatus; unknown values age out as orphans."""
        if isinstance(v, str):
            try:
                return ArtifactSetStatus(v)
            except ValueError:
                return ArtifactSetStatus.ORPHANED
        return v

    @property
    def set_dir(self) -> Path:
        """Directory holding the document and its images."""
        return Path(self.document_path).parent

    def age_ms(self, now: int) -> int:
        return now - self.created_at

    def is_expired(self, now: int) -> bool:
        """Derived expiry: the deadline has been reached."""
        return now >= self.expires_at


class Manifest(BaseModel):
    """Durable index of every artifact set under a storage root."""

    model_config = ConfigDict(populate_by_name=True)

    version: str = MANIFEST_VERSION
    files: dict[str, ArtifactSetRecord] = Field(
        default_factory=dict, description="set_id -> record"
    )
    last_cleanup: int = Field(
        alias="lastCleanup", default=0, description="Epoch ms of the last collection pass"
    )

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True, indent=2)
