"""
SpecStash Exception Hierarchy.

Defines the exceptions raised to callers of the artifact store. Transient
I/O failures are not represented here: they surface as ``OSError`` from
the filesystem capability and are absorbed where the lifecycle treats
them as best-effort.
"""

from typing import Any


class SpecStashError(Exception):
    """
    Base exception for all SpecStash errors.

    All custom exceptions inherit from this class, allowing
    generic catch blocks and consistent error handling.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        """
        Initialize a SpecStashError.

        Args:
            message: Human-readable error message
            details: Optional structured data for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details."""
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base} ({details_str})"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class AssetValidationError(SpecStashError):
    """
    Raised when an attached asset is rejected before anything is written.

    Covers:
    - Oversized assets
    - Malformed encoded-asset input
    - Per-session attachment limits
    """

    def __init__(
        self,
        message: str,
        *,
        asset_name: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if asset_name:
            details["asset_name"] = asset_name

        super().__init__(message, details=details)
        self.asset_name = asset_name


class AssetTooLargeError(AssetValidationError):
    """Raised when a single asset exceeds the configured byte limit."""

    def __init__(
        self,
        message: str,
        *,
        size_bytes: int,
        limit_bytes: int,
        **kwargs,
    ):
        """
        Initialize an AssetTooLargeError.

        Args:
            message: Human-readable error message
            size_bytes: Decoded size of the rejected asset
            limit_bytes: Configured maximum size
            **kwargs: Additional arguments passed to AssetValidationError
        """
        details = kwargs.pop("details", {}) or {}
        details["size_bytes"] = size_bytes
        details["limit_bytes"] = limit_bytes
        kwargs["details"] = details

        super().__init__(message, **kwargs)
        self.size_bytes = size_bytes
        self.limit_bytes = limit_bytes


class InvalidAssetEncodingError(AssetValidationError):
    """Raised when an asset is not a ``data:image/<format>;base64,`` string."""


class AttachmentLimitError(AssetValidationError):
    """
    Raised when a session would exceed its attachment budget.

    Either the number of attached assets or their combined size.
    """

    def __init__(
        self,
        message: str,
        *,
        limit: int,
        current: int,
        **kwargs,
    ):
        details = kwargs.pop("details", {}) or {}
        details["limit"] = limit
        details["current"] = current
        kwargs["details"] = details

        super().__init__(message, **kwargs)
        self.limit = limit
        self.current = current


class DraftTooLargeError(SpecStashError):
    """Raised when draft content exceeds the configured character limit."""

    def __init__(
        self,
        message: str,
        *,
        session_id: str,
        length: int,
        limit: int,
    ):
        super().__init__(
            message,
            details={"session_id": session_id, "length": length, "limit": limit},
        )
        self.session_id = session_id
        self.length = length
        self.limit = limit


class SessionError(SpecStashError):
    """
    Errors in editor session handling.

    Raised when:
    - The session has already been closed
    - A submission has no content
    """

    def __init__(
        self,
        message: str,
        *,
        session_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if session_id:
            details["session_id"] = session_id

        super().__init__(message, details=details)
        self.session_id = session_id
