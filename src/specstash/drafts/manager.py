"""
Draft Manager - session-scoped persistence of in-progress text.

Drafts are stored in key-value storage under ``specEditor.draft.<session_id>``
and swept once they have not been saved for longer than the draft max age.
"""

import logging
from typing import Callable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from specstash.artifacts.models import now_ms
from specstash.core.config import DEFAULT_DRAFT_MAX_AGE_MS, DEFAULT_MAX_DRAFT_CHARS
from specstash.core.exceptions import DraftTooLargeError
from specstash.storage.keyvalue import KeyValueStore

logger = logging.getLogger(__name__)


class Draft(BaseModel):
    """Unsaved editor content for one session."""

    model_config = ConfigDict(populate_by_name=True)

    session_id: str = Field(alias="sessionId")
    content: str = ""
    cursor_position: int = Field(alias="cursorPosition", default=0, ge=0)
    last_saved: int = Field(alias="lastSaved", default_factory=now_ms)


class DraftManager:
    """Saves, restores and expires drafts."""

    DRAFT_KEY_PREFIX = "specEditor.draft."

    def __init__(
        self,
        store: KeyValueStore,
        max_age_ms: int = DEFAULT_DRAFT_MAX_AGE_MS,
        max_chars: int = DEFAULT_MAX_DRAFT_CHARS,
        clock: Callable[[], int] | None = None,
    ):
        self._store = store
        self._max_age_ms = max_age_ms
        self._max_chars = max_chars
        self._clock = clock or now_ms

    def _get_draft_key(self, session_id: str) -> str:
        return f"{self.DRAFT_KEY_PREFIX}{session_id}"

    async def save_draft(self, draft: Draft) -> None:
        """
        Persist a draft.

        Raises:
            DraftTooLargeError: If the content exceeds the character limit
        """
        if len(draft.content) > self._max_chars:
            raise DraftTooLargeError(
                f"Draft exceeds {self._max_chars} characters",
                session_id=draft.session_id,
                length=len(draft.content),
                limit=self._max_chars,
            )
        await self._store.update(
            self._get_draft_key(draft.session_id),
            draft.model_dump(by_alias=True),
        )

    async def load_draft(self, session_id: str) -> Draft | None:
        """Load a draft; an unreadable entry is treated as absent."""
        data = await self._store.get(self._get_draft_key(session_id))
        if data is None:
            return None
        try:
            return Draft.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Ignoring malformed draft for session {session_id}: {e}")
            return None

    async def delete_draft(self, session_id: str) -> None:
        await self._store.update(self._get_draft_key(session_id), None)

    async def list_session_ids(self) -> list[str]:
        """Get all session IDs that have a stored draft."""
        keys = await self._store.keys()
        prefix = self.DRAFT_KEY_PREFIX
        return [key[len(prefix):] for key in keys if key.startswith(prefix)]

    async def sweep(self) -> list[str]:
        """
        Delete drafts not saved within the max age.

        Malformed entries are removed as well, since nothing can restore them.

        Returns:
            Session IDs whose drafts were removed
        """
        now = self._clock()
        cleaned: list[str] = []

        for session_id in await self.list_session_ids():
            draft = await self.load_draft(session_id)
            if draft is not None and now - draft.last_saved <= self._max_age_ms:
                continue
            await self.delete_draft(session_id)
            cleaned.append(session_id)

        if cleaned:
            logger.info(f"Removed {len(cleaned)} stale draft(s)")
        return cleaned
