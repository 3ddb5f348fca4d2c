"""Analysis layer - Low-level signal analysis on frames.

- Pitch detection (YIN over pre-framed audio)
- Onset detection (spectral flux, adaptive threshold)
- Segment timbre features
"""

from .features import FeatureExtractor
from .onset import OnsetDetector
from .pitch import PitchAnalyzer, PitchTrack

__all__ = [
    "FeatureExtractor",
    "OnsetDetector",
    "PitchAnalyzer",
    "PitchTrack",
]
