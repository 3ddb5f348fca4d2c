"""Note and Hit data classes - the units of multitrack transcription."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

import numpy as np

from .constants import PITCH_NAMES


@dataclass(frozen=True)
class Note:
    """A pitched musical event detected in a melodic stem."""

    pitch: int  # MIDI pitch (0-127)
    start_time: float  # seconds
    duration: float  # seconds, always > 0
    velocity: float = 0.5  # 0-1
    confidence: float = 1.0  # 0-1

    def __post_init__(self):
        if self.duration <= 0:
            raise ValueError(f"Note duration must be positive, got {self.duration}")

    @property
    def end_time(self) -> float:
        """Note end in seconds."""
        return self.start_time + self.duration

    @property
    def pitch_name(self) -> str:
        """Get note name (e.g., 'C4', 'A#3')."""
        octave = (self.pitch // 12) - 1
        return f"{PITCH_NAMES[self.pitch % 12]}{octave}"

    def overlaps(self, other: "Note") -> bool:
        return self.start_time < other.end_time and other.start_time < self.end_time

    def to_dict(self) -> Dict[str, Any]:
        return {
            "pitch": self.pitch,
            "startTime": self.start_time,
            "duration": self.duration,
            "velocity": self.velocity,
            "confidence": self.confidence,
        }

    @staticmethod
    def freq_to_midi(freq: float) -> int:
        """Convert frequency (Hz) to MIDI pitch."""
        if freq <= 0:
            return 0
        return int(round(69 + 12 * np.log2(freq / 440.0)))

    @staticmethod
    def midi_to_freq(midi: float) -> float:
        """Convert MIDI pitch to frequency (Hz)."""
        return 440.0 * (2 ** ((midi - 69) / 12.0))


class HitType(Enum):
    """Drum hit classes."""
    KICK = "kick"
    SNARE = "snare"
    HIHAT = "hihat"
    OTHER = "other"


@dataclass(frozen=True)
class Hit:
    """A percussive event detected in the drums stem."""

    type: HitType
    time: float  # seconds
    velocity: float = 0.5  # 0-1
    confidence: float = 1.0  # 0-1

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "time": self.time,
            "velocity": self.velocity,
            "confidence": self.confidence,
        }
