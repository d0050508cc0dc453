"""Session-store glue around the transform pipeline."""

from nmdbridge.submission.payload_builder import (
    build_and_save_patch_request,
    build_payload,
)
from nmdbridge.submission.store import InMemoryStore, KeyValueStore

__all__ = ["InMemoryStore", "KeyValueStore", "build_and_save_patch_request", "build_payload"]
