"""Processing layer - Note post-processing."""

from .cleanup import CleanupConfig, CleanupStats, NoteCleanup

__all__ = [
    "CleanupConfig",
    "CleanupStats",
    "NoteCleanup",
]
