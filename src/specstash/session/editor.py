"""
Editor session context.

An EditorSession owns the assets attached while a document is being
written. On submission the assets are copied into an artifact set, which
owns the copies from then on, and the session's working directory is
removed.
"""

import asyncio
import contextlib
import logging
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable

from specstash.artifacts.assets import AssetStore, decode_data_uri
from specstash.artifacts.lifecycle import ArtifactLifecycle, render_document
from specstash.artifacts.models import (
    ArtifactSetRecord,
    AttachedAsset,
    generate_id,
    is_safe_id,
    now_ms,
)
from specstash.core.config import (
    DEFAULT_MAX_ASSETS_PER_SESSION,
    DEFAULT_MAX_TOTAL_ATTACHMENT_BYTES,
)
from specstash.core.exceptions import AttachmentLimitError, SessionError, SpecStashError
from specstash.drafts.manager import Draft, DraftManager
from specstash.session.messages import (
    AttachImageMessage,
    CancelMessage,
    EditorMessage,
    EditorReply,
    ErrorReply,
    ImageRemovedReply,
    ImageSavedReply,
    LoadTemplateMessage,
    PreviewContentReply,
    PreviewMessage,
    RemoveImageMessage,
    SubmissionCompleteReply,
    SubmissionStartedReply,
    SubmitMessage,
    TemplateLoadedReply,
)

logger = logging.getLogger(__name__)

# Receives the rendered document and the record of the set it was built from
Submitter = Callable[[str, ArtifactSetRecord], Awaitable[None]]


class EditorSession:
    """
    Explicit per-session context for attaching assets and submitting.

    Mutating calls into the artifact lifecycle are made under ``lock`` when
    one is given, so sessions sharing a lock never write the manifest
    concurrently.
    """

    def __init__(
        self,
        asset_store: AssetStore,
        lifecycle: ArtifactLifecycle,
        drafts: DraftManager | None = None,
        submitter: Submitter | None = None,
        session_id: str | None = None,
        max_assets: int = DEFAULT_MAX_ASSETS_PER_SESSION,
        max_total_bytes: int = DEFAULT_MAX_TOTAL_ATTACHMENT_BYTES,
        lock: asyncio.Lock | None = None,
        on_close: Callable[["EditorSession"], None] | None = None,
    ):
        session_id = session_id or generate_id()
        if not is_safe_id(session_id):
            raise SessionError(f"Invalid session ID: {session_id!r}")
        self.session_id = session_id
        self.created_at = now_ms()
        self._assets = asset_store
        self._lifecycle = lifecycle
        self._drafts = drafts
        self._submitter = submitter
        self._max_assets = max_assets
        self._max_total_bytes = max_total_bytes
        self._lock = lock
        self._on_close = on_close
        self._attached: dict[str, AttachedAsset] = {}
        self._draft_content = ""
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def attached(self) -> list[AttachedAsset]:
        return list(self._attached.values())

    @property
    def attached_bytes(self) -> int:
        return sum(asset.size for asset in self._attached.values())

    @contextlib.asynccontextmanager
    async def _serialized(self) -> AsyncIterator[None]:
        if self._lock is None:
            yield
        else:
            async with self._lock:
                yield

    def _ensure_open(self) -> None:
        if self._closed:
            raise SessionError("No active session", session_id=self.session_id)

    async def attach(self, name: str, data_uri: str) -> AttachedAsset:
        """
        Validate and store an asset for this session.

        Raises:
            SessionError: The session is closed
            InvalidAssetEncodingError: Malformed encoded input
            AssetTooLargeError: Single asset above the size limit
            AttachmentLimitError: Count or combined size limit reached
        """
        self._ensure_open()

        if len(self._attached) >= self._max_assets:
            raise AttachmentLimitError(
                f"Cannot attach more than {self._max_assets} images",
                limit=self._max_assets,
                current=len(self._attached),
                asset_name=name,
            )

        size = len(decode_data_uri(data_uri))
        if self.attached_bytes + size > self._max_total_bytes:
            limit_mb = self._max_total_bytes / (1024 * 1024)
            raise AttachmentLimitError(
                f"Attachments exceed {limit_mb:g}MB total limit",
                limit=self._max_total_bytes,
                current=self.attached_bytes,
                asset_name=name,
            )

        asset = await self._assets.save_asset(self.session_id, name, data_uri)
        self._attached[asset.asset_id] = asset
        logger.info(f"Image saved: {asset.asset_id} ({name}) for session {self.session_id}")
        return asset

    async def remove(self, asset_id: str) -> bool:
        """Detach and delete an asset. Returns False if it was not attached."""
        asset = self._attached.pop(asset_id, None)
        if asset is None:
            return False
        await self._assets.delete_asset(asset.file_path)
        logger.info(f"Image removed: {asset_id} from session {self.session_id}")
        return True

    async def render_preview(self, content: str | None = None) -> str:
        """Render the document as it would be submitted, using working copies."""
        text = self._draft_content if content is None else content
        assets = self.attached
        paths = {asset.asset_id: asset.file_path for asset in assets}

        return render_document(text, assets, paths)

    async def submit(
        self,
        content: str,
        asset_ids: list[str] | None = None,
        submitter: Submitter | None = None,
    ) -> ArtifactSetRecord:
        """
        Bundle the content and selected assets into an artifact set and hand it off.

        Unknown asset IDs are ignored. If the submitter fails the set stays
        ``active`` and ages out through the orphan window.

        Raises:
            SessionError: Closed session or empty content
            OSError: The artifact set could not be written
        """
        self._ensure_open()
        if not content.strip():
            raise SessionError("Spec content cannot be empty", session_id=self.session_id)

        ids = list(self._attached) if asset_ids is None else asset_ids
        assets = [self._attached[i] for i in ids if i in self._attached]
        logger.info(f"Submitting session {self.session_id} with {len(assets)} image(s)")

        async with self._serialized():
            record = await self._lifecycle.create_set(self.session_id, content, assets)

        document = await self._lifecycle.render_document(record.set_id, content, assets)

        submitter = submitter or self._submitter
        if submitter is not None:
            await submitter(document, record)

        async with self._serialized():
            await self._lifecycle.mark_submitted(record.set_id)

        # The set owns its copies now
        await self._assets.cleanup_session(self.session_id)
        self._attached.clear()
        if self._drafts is not None:
            await self._drafts.delete_draft(self.session_id)

        return record

    async def save_draft(self, content: str, cursor_position: int = 0) -> Draft | None:
        """Remember the current text; persisted when a draft manager is configured."""
        self._ensure_open()
        self._draft_content = content
        if self._drafts is None:
            return None
        draft = Draft(
            session_id=self.session_id,
            content=content,
            cursor_position=cursor_position,
            last_saved=now_ms(),
        )
        await self._drafts.save_draft(draft)
        return draft

    async def restore_draft(self) -> Draft | None:
        if self._drafts is None:
            return None
        draft = await self._drafts.load_draft(self.session_id)
        if draft is not None:
            self._draft_content = draft.content
        return draft

    async def close(self) -> None:
        """Discard the working directory of unsubmitted assets."""
        if self._closed:
            return
        self._closed = True
        await self._assets.cleanup_session(self.session_id)
        self._attached.clear()
        if self._on_close is not None:
            self._on_close(self)
        logger.info(f"Session {self.session_id} closed")

    async def handle(self, message: EditorMessage) -> list[EditorReply]:
        """Dispatch one message from the editing surface and collect the replies."""
        logger.debug(f"Session {self.session_id} received message: {message.type}")

        if isinstance(message, SubmitMessage):
            return await self._handle_submit(message)
        if isinstance(message, AttachImageMessage):
            return await self._handle_attach(message)
        if isinstance(message, RemoveImageMessage):
            if await self.remove(message.image_id):
                return [ImageRemovedReply(image_id=message.image_id)]
            return []
        if isinstance(message, LoadTemplateMessage):
            return await self._handle_load_template(message)
        if isinstance(message, PreviewMessage):
            return [PreviewContentReply(markdown=await self.render_preview())]
        if isinstance(message, CancelMessage):
            await self.close()
            return []
        raise TypeError(f"Unhandled editor message: {message!r}")

    async def _handle_submit(self, message: SubmitMessage) -> list[EditorReply]:
        try:
            self._ensure_open()
            if not message.content.strip():
                raise SessionError("Spec content cannot be empty", session_id=self.session_id)
        except SessionError as e:
            return [ErrorReply(message=e.message)]

        replies: list[EditorReply] = [SubmissionStartedReply()]
        try:
            await self.submit(message.content, message.images)
        except Exception as e:
            # Submitter failures are reported to the editing surface
            logger.error(f"Submit error in session {self.session_id}: {e}")
            replies.append(ErrorReply(message=f"Failed to submit spec: {e}"))
            return replies

        replies.append(SubmissionCompleteReply())
        return replies

    async def _handle_attach(self, message: AttachImageMessage) -> list[EditorReply]:
        try:
            asset = await self.attach(message.name, message.data_uri)
        except SpecStashError as e:
            logger.warning(f"Image attach rejected in session {self.session_id}: {e}")
            return [ErrorReply(message=f"Failed to attach image: {e.message}")]
        except OSError as e:
            logger.error(f"Image attach error in session {self.session_id}: {e}")
            return [ErrorReply(message=f"Failed to attach image: {e}")]

        return [
            ImageSavedReply(
                image_id=asset.asset_id,
                thumbnail_uri=asset.thumbnail_data_uri,
                original_name=asset.original_name,
            )
        ]

    async def _handle_load_template(self, message: LoadTemplateMessage) -> list[EditorReply]:
        path = Path(message.spec_path)
        try:
            text = await asyncio.to_thread(path.read_text, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            logger.error(f"Template load error for {path}: {e}")
            return [ErrorReply(message=f"Failed to load template: {e}")]

        self._draft_content = text
        logger.info(f"Template loaded: {path}")
        return [TemplateLoadedReply(content=text)]
