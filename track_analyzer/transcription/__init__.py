"""Transcription layer - Event detection per stem and pipeline assembly.

- Note detection for harmonic stems
- Hit detection for the percussive stem
- Aggregation into AnalyzedTracks
- The multitrack pipeline tying everything together
"""

from .base import Transcriber
from .melodic import StemNoteTranscriber
from .drums import DrumTranscriber
from .aggregate import TrackAggregator
from .pipeline import (
    CancellationToken,
    MultiTrackTranscriber,
    StageEvent,
    analyze_audio_to_tracks,
)

__all__ = [
    "Transcriber",
    "StemNoteTranscriber",
    "DrumTranscriber",
    "TrackAggregator",
    "CancellationToken",
    "MultiTrackTranscriber",
    "StageEvent",
    "analyze_audio_to_tracks",
]
