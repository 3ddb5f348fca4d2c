"""Track Analyzer - Audio to Multitrack Transcription.

Architecture Layers:
    1. core/          - Event types, track containers, config and errors
    2. input/         - PCM buffer validation and framing
    3. analysis/      - Low-level signal analysis (pitch, onsets, features)
    4. separation/    - Harmonic/percussive split and instrument routing
    5. processing/    - Note post-processing (cleanup, polyphony cap)
    6. transcription/ - Per-stem event detection and pipeline assembly
"""

__version__ = "0.1.0"

# Core types
from .core import (
    AnalyzedTracks,
    Hit,
    HitType,
    InstrumentCategory,
    Note,
    TranscriptionConfig,
    load_config,
    TrackAnalyzerError,
    InputError,
    ConfigError,
    TranscriptionCancelled,
    SeparationDegenerate,
)

# Input layer
from .input import PCMBuffer, Preprocessor, AudioFrames

# Analysis layer
from .analysis import PitchAnalyzer, OnsetDetector, FeatureExtractor

# Separation layer
from .separation import SourceSeparator, SeparatedStems, Stem

# Processing layer
from .processing import NoteCleanup

# Transcription layer
from .transcription import (
    StemNoteTranscriber,
    DrumTranscriber,
    TrackAggregator,
    MultiTrackTranscriber,
    CancellationToken,
    StageEvent,
    analyze_audio_to_tracks,
)

__all__ = [
    # Core
    "AnalyzedTracks",
    "Hit",
    "HitType",
    "InstrumentCategory",
    "Note",
    "TranscriptionConfig",
    "load_config",
    "TrackAnalyzerError",
    "InputError",
    "ConfigError",
    "TranscriptionCancelled",
    "SeparationDegenerate",
    # Input
    "PCMBuffer",
    "Preprocessor",
    "AudioFrames",
    # Analysis
    "PitchAnalyzer",
    "OnsetDetector",
    "FeatureExtractor",
    # Separation
    "SourceSeparator",
    "SeparatedStems",
    "Stem",
    # Processing
    "NoteCleanup",
    # Transcription
    "StemNoteTranscriber",
    "DrumTranscriber",
    "TrackAggregator",
    "MultiTrackTranscriber",
    "CancellationToken",
    "StageEvent",
    "analyze_audio_to_tracks",
]
