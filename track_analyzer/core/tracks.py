"""Instrument categories and the AnalyzedTracks result record."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Tuple, Union

from .note import Hit, Note


class InstrumentCategory(Enum):
    """The fixed set of stems produced by one separation."""
    VOCALS = "vocals"
    BASS = "bass"
    KEYS = "keys"
    GUITAR = "guitar"
    OTHER = "other"
    DRUMS = "drums"

    @classmethod
    def all_categories(cls) -> List["InstrumentCategory"]:
        """All six categories in output order."""
        return [cls.VOCALS, cls.BASS, cls.KEYS, cls.GUITAR, cls.OTHER, cls.DRUMS]

    @classmethod
    def melodic_categories(cls) -> List["InstrumentCategory"]:
        """Categories transcribed into pitched notes."""
        return [cls.VOCALS, cls.BASS, cls.KEYS, cls.GUITAR, cls.OTHER]

    @property
    def is_melodic(self) -> bool:
        return self is not InstrumentCategory.DRUMS


@dataclass(frozen=True)
class InstrumentTrack:
    """Notes of one melodic stem, time-sorted."""
    notes: Tuple[Note, ...] = ()

    def __len__(self) -> int:
        return len(self.notes)


@dataclass(frozen=True)
class DrumTrack:
    """Hits of the percussive stem, time-sorted."""
    hits: Tuple[Hit, ...] = ()

    def __len__(self) -> int:
        return len(self.hits)


@dataclass(frozen=True)
class AnalyzedTracks:
    """
    Final per-instrument transcription.

    This is the only object handed to rendering and export collaborators.
    Consumers may rely on events within one track being time-sorted, nothing
    more.
    """

    vocals: InstrumentTrack = field(default_factory=InstrumentTrack)
    bass: InstrumentTrack = field(default_factory=InstrumentTrack)
    keys: InstrumentTrack = field(default_factory=InstrumentTrack)
    guitar: InstrumentTrack = field(default_factory=InstrumentTrack)
    other: InstrumentTrack = field(default_factory=InstrumentTrack)
    drums: DrumTrack = field(default_factory=DrumTrack)

    @classmethod
    def empty(cls) -> "AnalyzedTracks":
        return cls()

    def track(self, category: InstrumentCategory) -> Union[InstrumentTrack, DrumTrack]:
        """Get the track of a category."""
        return getattr(self, category.value)

    @property
    def melodic_tracks(self) -> Dict[InstrumentCategory, InstrumentTrack]:
        return {c: self.track(c) for c in InstrumentCategory.melodic_categories()}

    @property
    def total_notes(self) -> int:
        return sum(len(t) for t in self.melodic_tracks.values())

    @property
    def is_empty(self) -> bool:
        return self.total_notes == 0 and len(self.drums) == 0

    def summary(self) -> Dict[str, int]:
        """Event count per category."""
        return {c.value: len(self.track(c)) for c in InstrumentCategory.all_categories()}

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation using the consumer field names."""
        result: Dict[str, Any] = {
            c.value: {"notes": [n.to_dict() for n in t.notes]}
            for c, t in self.melodic_tracks.items()
        }
        result["drums"] = {"hits": [h.to_dict() for h in self.drums.hits]}
        return result
