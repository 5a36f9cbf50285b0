"""
SpecStash - Temporary artifact lifecycle manager.

Keeps the text and attached images of interactive authoring sessions on
disk across editing, submission and disposal, and garbage-collects them
according to per-status expiry windows.
"""

__version__ = "0.1.0"

# The facade is importable as: from specstash.stash import ArtifactStash

__all__ = []
