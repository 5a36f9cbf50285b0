"""
SpecStash Drafts Module.

Provides key-value persistence of in-progress editor content.
"""

__all__ = ["Draft", "DraftManager"]

from specstash.drafts.manager import Draft, DraftManager
