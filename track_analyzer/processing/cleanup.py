"""Note cleanup - filter and order notes of one stem.

- Short note removal (spurious detections)
- Ghost note removal (low velocity)
- Polyphony cap (drop lowest-confidence overlapping notes)
- Time ordering
"""

from dataclasses import dataclass
from typing import List, Optional, Tuple, Union

from ..core import Note


@dataclass
class CleanupConfig:
    """Configuration for note cleanup operations.

    Attributes:
        min_duration: Minimum note duration in seconds (default: 0.06)
        min_velocity: Minimum velocity to keep, 0-1 (default: 0.0)
        max_polyphony: Maximum simultaneous notes, 0 = no limit (default: 4)
    """

    min_duration: float = 0.06
    min_velocity: float = 0.0
    max_polyphony: int = 4


@dataclass
class CleanupStats:
    """Statistics from cleanup operations."""

    original_count: int = 0
    final_count: int = 0
    removed_short_notes: int = 0
    removed_ghost_notes: int = 0
    removed_polyphony: int = 0

    @property
    def total_removed(self) -> int:
        """Total notes removed."""
        return self.original_count - self.final_count


class NoteCleanup:
    """Clean up notes detected in a single stem."""

    def __init__(self, config: Optional[CleanupConfig] = None):
        self.config = config or CleanupConfig()

    def cleanup(
        self,
        notes: List[Note],
        return_stats: bool = False,
    ) -> Union[List[Note], Tuple[List[Note], CleanupStats]]:
        """Apply all cleanup operations.

        Args:
            notes: Notes of one stem, in any order
            return_stats: Whether to return cleanup statistics

        Returns:
            Notes sorted by start time, optionally with statistics
        """
        stats = CleanupStats(original_count=len(notes))

        kept = self.remove_short_notes(notes)
        stats.removed_short_notes = len(notes) - len(kept)

        count_before = len(kept)
        kept = self.remove_ghost_notes(kept)
        stats.removed_ghost_notes = count_before - len(kept)

        count_before = len(kept)
        kept = self.limit_polyphony(kept)
        stats.removed_polyphony = count_before - len(kept)

        kept = self.sort(kept)
        stats.final_count = len(kept)

        if return_stats:
            return kept, stats
        return kept

    def remove_short_notes(self, notes: List[Note]) -> List[Note]:
        """Remove notes shorter than the minimum duration."""
        return [n for n in notes if n.duration >= self.config.min_duration]

    def remove_ghost_notes(self, notes: List[Note]) -> List[Note]:
        """Remove notes with very low velocity (ghost notes)."""
        return [n for n in notes if n.velocity >= self.config.min_velocity]

    def limit_polyphony(
        self,
        notes: List[Note],
        max_polyphony: Optional[int] = None,
    ) -> List[Note]:
        """Enforce a maximum number of simultaneously sounding notes.

        Notes are visited in start order. When a note would exceed the cap,
        the lowest-confidence note among it and the currently sounding notes
        is dropped.

        Args:
            notes: List of notes
            max_polyphony: Cap override (default: from config)

        Returns:
            Sorted notes that never exceed the cap
        """
        cap = self.config.max_polyphony if max_polyphony is None else max_polyphony
        ordered = self.sort(notes)
        if cap <= 0:
            return ordered

        kept: List[Note] = []
        sounding: List[Note] = []
        for note in sorted(ordered, key=lambda n: (n.start_time, -n.confidence, n.pitch)):
            sounding = [s for s in sounding if s.end_time > note.start_time]
            if len(sounding) < cap:
                sounding.append(note)
                kept.append(note)
                continue

            weakest = min(sounding, key=lambda n: (n.confidence, n.start_time))
            if note.confidence > weakest.confidence:
                sounding.remove(weakest)
                kept.remove(weakest)
                sounding.append(note)
                kept.append(note)

        return self.sort(kept)

    @staticmethod
    def sort(notes: List[Note]) -> List[Note]:
        """Sort by start time, then pitch."""
        return sorted(notes, key=lambda n: (n.start_time, n.pitch))
