"""Context detection and multi-level context management."""

from .detection import ContextDetector, DetectionOptions, WorkspaceMarker, infer_context_level
from .manager import ContextManager
from .projector import ContextProjector, estimate_token_count
from .store import ContextStore

__all__ = [
    "ContextDetector",
    "ContextManager",
    "ContextProjector",
    "ContextStore",
    "DetectionOptions",
    "WorkspaceMarker",
    "estimate_token_count",
    "infer_context_level",
]
