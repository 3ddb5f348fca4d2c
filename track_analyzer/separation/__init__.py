"""Source separation - harmonic/percussive split and instrument routing.

Produces six stems (vocals, bass, keys, guitar, other, drums) from one
mixture so each can be transcribed independently.
"""

from .hpss import HarmonicPercussiveSplitter
from .instrument_classifier import InstrumentRouter, PitchSegment, Routing
from .separator import SeparatedStems, SourceSeparator, Stem

__all__ = [
    "HarmonicPercussiveSplitter",
    "InstrumentRouter",
    "PitchSegment",
    "Routing",
    "SeparatedStems",
    "SourceSeparator",
    "Stem",
]
