"""
SpecStash Session Module.

Provides the editor session context and the message protocol spoken with
the editing surface.
"""

from .editor import EditorSession, Submitter
from .messages import EditorMessage, EditorReply, parse_message, parse_reply

__all__ = [
    "EditorSession",
    "Submitter",
    "EditorMessage",
    "EditorReply",
    "parse_message",
    "parse_reply",
]
