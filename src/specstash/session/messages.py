"""
Messages exchanged with the editing surface.

Both directions are tagged unions discriminated on ``type``; field names
on the wire are camelCase.
"""

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter


class _Message(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)


# Editing surface -> session


class SubmitMessage(_Message):
    type: Literal["submit"] = "submit"
    content: str
    images: list[str] = Field(default_factory=list, description="Attached asset IDs")


class PreviewMessage(_Message):
    type: Literal["preview"] = "preview"


class AttachImageMessage(_Message):
    type: Literal["attachImage"] = "attachImage"
    name: str
    size: int = Field(default=0, ge=0, description="Size reported by the client")
    data_uri: str = Field(alias="dataUri")


class RemoveImageMessage(_Message):
    type: Literal["removeImage"] = "removeImage"
    image_id: str = Field(alias="imageId")


class LoadTemplateMessage(_Message):
    type: Literal["loadTemplate"] = "loadTemplate"
    spec_path: str = Field(alias="specPath")


class CancelMessage(_Message):
    type: Literal["cancel"] = "cancel"


EditorMessage = Annotated[
    Union[
        SubmitMessage,
        PreviewMessage,
        AttachImageMessage,
        RemoveImageMessage,
        LoadTemplateMessage,
        CancelMessage,
    ],
    Field(discriminator="type"),
]


# Session -> editing surface


class ImageSavedReply(_Message):
    type: Literal["imageSaved"] = "imageSaved"
    image_id: str = Field(alias="imageId")
    thumbnail_uri: str = Field(alias="thumbnailUri")
    original_name: str = Field(alias="originalName")


class ImageRemovedReply(_Message):
    type: Literal["imageRemoved"] = "imageRemoved"
    image_id: str = Field(alias="imageId")


class TemplateLoadedReply(_Message):
    type: Literal["templateLoaded"] = "templateLoaded"
    content: str


class PreviewContentReply(_Message):
    type: Literal["previewContent"] = "previewContent"
    markdown: str


class SubmissionStartedReply(_Message):
    type: Literal["submissionStarted"] = "submissionStarted"


class SubmissionCompleteReply(_Message):
    type: Literal["submissionComplete"] = "submissionComplete"


class ErrorReply(_Message):
    type: Literal["error"] = "error"
    message: str


EditorReply = Annotated[
    Union[
        ImageSavedReply,
        ImageRemovedReply,
        TemplateLoadedReply,
        PreviewContentReply,
        SubmissionStartedReply,
        SubmissionCompleteReply,
        ErrorReply,
    ],
    Field(discriminator="type"),
]

_message_adapter: TypeAdapter[EditorMessage] = TypeAdapter(EditorMessage)
_reply_adapter: TypeAdapter[EditorReply] = TypeAdapter(EditorReply)


def parse_message(data: dict[str, Any]) -> EditorMessage:
    """
    Parse a raw message from the editing surface.

    Raises:
        pydantic.ValidationError: Unknown ``type`` or missing fields
    """
    return _message_adapter.validate_python(data)


def parse_reply(data: dict[str, Any]) -> EditorReply:
    return _reply_adapter.validate_python(data)
