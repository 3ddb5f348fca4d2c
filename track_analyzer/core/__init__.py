"""Core types, constants and configuration for Track Analyzer."""

from .note import Note, Hit, HitType
from .tracks import AnalyzedTracks, DrumTrack, InstrumentCategory, InstrumentTrack
from .errors import (
    TrackAnalyzerError,
    InputError,
    ConfigError,
    TranscriptionCancelled,
    SeparationDegenerate,
)
from .config import (
    TranscriptionConfig,
    PreprocessConfig,
    SeparationConfig,
    PitchConfig,
    OnsetConfig,
    NoteConfig,
    DrumConfig,
    load_config,
)
from .constants import PITCH_NAMES, DEFAULT_SR, DEFAULT_HOP_LENGTH, DEFAULT_FRAME_LENGTH

__all__ = [
    "Note",
    "Hit",
    "HitType",
    "AnalyzedTracks",
    "DrumTrack",
    "InstrumentCategory",
    "InstrumentTrack",
    "TrackAnalyzerError",
    "InputError",
    "ConfigError",
    "TranscriptionCancelled",
    "SeparationDegenerate",
    "TranscriptionConfig",
    "PreprocessConfig",
    "SeparationConfig",
    "PitchConfig",
    "OnsetConfig",
    "NoteConfig",
    "DrumConfig",
    "load_config",
    "PITCH_NAMES",
    "DEFAULT_SR",
    "DEFAULT_HOP_LENGTH",
    "DEFAULT_FRAME_LENGTH",
]
