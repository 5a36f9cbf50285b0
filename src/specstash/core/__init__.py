"""
SpecStash Core Module.

Provides the exception hierarchy and configuration shared by all components.
"""

__all__ = [
    "StashConfig",
    # Exceptions
    "SpecStashError",
    "AssetValidationError",
    "AssetTooLargeError",
    "InvalidAssetEncodingError",
    "AttachmentLimitError",
    "DraftTooLargeError",
    "SessionError",
]

from specstash.core.config import StashConfig
from specstash.core.exceptions import (
    AssetTooLargeError,
    AssetValidationError,
    AttachmentLimitError,
    DraftTooLargeError,
    InvalidAssetEncodingError,
    SessionError,
    SpecStashError,
)
