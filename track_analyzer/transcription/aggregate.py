"""Assemble per-stem events into the AnalyzedTracks record."""

from typing import Mapping, Optional, Sequence

from ..core import AnalyzedTracks, DrumTrack, Hit, InstrumentCategory, InstrumentTrack, Note


class TrackAggregator:
    """
    Collects the five note lists and the hit list into one record.

    Events are only sorted; no merging or deduplication happens across
    stems. Missing categories become empty tracks.
    """

    def aggregate(
        self,
        notes: Mapping[InstrumentCategory, Sequence[Note]],
        hits: Optional[Sequence[Hit]] = None,
    ) -> AnalyzedTracks:
        """
        Build the final record.

        Args:
            notes: Notes per melodic category
            hits: Drum hits

        Returns:
            AnalyzedTracks with time-sorted tracks
        """
        tracks = {
            category.value: InstrumentTrack(
                notes=tuple(sorted(notes.get(category, ()), key=lambda n: (n.start_time, n.pitch)))
            )
            for category in InstrumentCategory.melodic_categories()
        }
        drum_hits = tuple(sorted(hits or (), key=lambda h: (h.time, h.type.value)))
        return AnalyzedTracks(drums=DrumTrack(hits=drum_hits), **tracks)

    def reaggregate(self, tracks: AnalyzedTracks) -> AnalyzedTracks:
        """Aggregate the events of an existing record again."""
        notes = {c: t.notes for c, t in tracks.melodic_tracks.items()}
        return self.aggregate(notes, tracks.drums.hits)
