"""Instrument routing for harmonic content.

Assigns each frame of the harmonic component to one melodic instrument
category. Frames are grouped into pitch-continuous segments from a YIN first
pass, and each segment is routed with fixed frequency-range priors:

- vocals: fundamental in the vocal range with strong level fluctuation
- bass: fundamental below the bass cutoff
- guitar: mid-range fundamental with a fast energy decay, or a partial
  envelope that falls off slowly across the harmonics
- keys: mid-range fundamental that sustains with a steep partial envelope
- other: everything else, including unvoiced frames

This is a heuristic classifier, not a trained model. Keys and guitar in
particular are often confused. Bass is decided by frequency alone.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

import numpy as np

from ..analysis import FeatureExtractor, PitchAnalyzer, PitchTrack
from ..core import InstrumentCategory, PitchConfig, SeparationConfig
from ..input import AudioFrames

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PitchSegment:
    """A run of voiced frames with a continuous fundamental."""

    start: int  # first frame
    end: int  # one past the last frame
    f0: float  # median fundamental (Hz)
    confidence: float  # mean pitch confidence
    modulation: float  # robust level fluctuation around the trend (dB)
    decay: float  # level decay rate (dB/s), positive when decaying
    partial_slope: Optional[float] = None  # dB per harmonic across the first partials
    category: InstrumentCategory = InstrumentCategory.OTHER

    @property
    def n_frames(self) -> int:
        return self.end - self.start


@dataclass(frozen=True)
class Routing:
    """Per-frame category labels and the segments they came from."""

    labels: Tuple[InstrumentCategory, ...]
    segments: Tuple[PitchSegment, ...]

    def frames_for(self, category: InstrumentCategory) -> np.ndarray:
        """Boolean frame mask for a category."""
        return np.array([label is category for label in self.labels], dtype=bool)


class InstrumentRouter:
    """Route harmonic frames to melodic stems."""

    def __init__(
        self,
        config: Optional[SeparationConfig] = None,
        pitch_config: Optional[PitchConfig] = None,
    ):
        self.config = config or SeparationConfig()
        self.pitch_analyzer = PitchAnalyzer(pitch_config)

    def route(self, harmonic: AudioFrames) -> Routing:
        """
        Label every frame of the harmonic component.

        Args:
            harmonic: Harmonic component frames

        Returns:
            Routing with one label per frame
        """
        track = self.pitch_analyzer.analyze(harmonic)
        frame_rate = harmonic.sample_rate / harmonic.hop_length
        magnitude = harmonic.magnitude()
        freqs = harmonic.fft_frequencies()

        labels = [InstrumentCategory.OTHER] * harmonic.n_frames
        segments = []
        for start, end in self.find_segments(track):
            segment = self.describe(track, start, end, frame_rate, magnitude, freqs)
            segments.append(segment)
            labels[start:end] = [segment.category] * (end - start)

        logger.debug(
            "Routed %d segments: %s",
            len(segments),
            ", ".join(f"{s.category.value}@{s.f0:.0f}Hz" for s in segments) or "none",
        )
        return Routing(labels=tuple(labels), segments=tuple(segments))

    def find_segments(self, track: PitchTrack) -> List[Tuple[int, int]]:
        """Split voiced frames at unvoiced gaps and pitch jumps."""
        midi = track.midi
        bounds = []
        start = None
        for t in range(len(track)):
            if not track.voiced[t]:
                if start is not None:
                    bounds.append((start, t))
                    start = None
                continue
            if start is None:
                start = t
            elif abs(midi[t] - midi[t - 1]) > self.config.segment_jump_semitones:
                bounds.append((start, t))
                start = t
        if start is not None:
            bounds.append((start, len(track)))
        return bounds

    def describe(
        self,
        track: PitchTrack,
        start: int,
        end: int,
        frame_rate: float,
        magnitude: Optional[np.ndarray] = None,
        freqs: Optional[np.ndarray] = None,
    ) -> PitchSegment:
        """Measure a segment and assign its category.

        The partial envelope is only measured when the harmonic magnitude
        spectrum and its bin frequencies are given.
        """
        f0 = float(np.median(track.f0[start:end]))
        confidence = float(np.mean(track.confidence[start:end]))
        modulation, decay = self._level_shape(track.rms[start:end], frame_rate)
        partial_slope = None
        if magnitude is not None and freqs is not None:
            partial_slope = self._partial_slope(
                magnitude[:, start:end].mean(axis=1), freqs, f0, self.config.partial_count
            )

        segment = PitchSegment(
            start=start,
            end=end,
            f0=f0,
            confidence=confidence,
            modulation=modulation,
            decay=decay,
            partial_slope=partial_slope,
        )
        return replace(segment, category=self.classify(segment))

    def classify(self, segment: PitchSegment) -> InstrumentCategory:
        """Apply the frequency-range priors to one segment."""
        cfg = self.config
        if segment.n_frames < cfg.min_segment_frames:
            return InstrumentCategory.OTHER
        if segment.confidence < cfg.route_confidence_floor:
            return InstrumentCategory.OTHER

        if (
            cfg.vocal_min_hz <= segment.f0 <= cfg.vocal_max_hz
            and segment.modulation >= cfg.vocal_min_modulation
        ):
            return InstrumentCategory.VOCALS
        if segment.f0 < cfg.bass_cutoff_hz:
            return InstrumentCategory.BASS
        if segment.f0 <= cfg.keys_max_hz:
            if segment.decay >= cfg.guitar_min_decay_db_per_s:
                return InstrumentCategory.GUITAR
            if (
                cfg.guitar_min_partial_slope_db is not None
                and segment.partial_slope is not None
                and segment.partial_slope >= cfg.guitar_min_partial_slope_db
            ):
                return InstrumentCategory.GUITAR
            return InstrumentCategory.KEYS
        return InstrumentCategory.OTHER

    @staticmethod
    def _level_shape(rms: np.ndarray, frame_rate: float) -> Tuple[float, float]:
        """
        Level decay rate and fluctuation of a segment.

        Returns:
            Tuple of (robust std of dB level around its linear trend,
            decay in dB per second)
        """
        if len(rms) < 3:
            return 0.0, 0.0
        db = FeatureExtractor.level_db(rms)
        t = np.arange(len(db)) / frame_rate
        slope, intercept = np.polyfit(t, db, 1)
        residual = db - (slope * t + intercept)
        mad = np.median(np.abs(residual - np.median(residual)))
        return float(1.4826 * mad), float(-slope)

    @staticmethod
    def _partial_slope(
        spectrum: np.ndarray,
        freqs: np.ndarray,
        f0: float,
        n_partials: int,
    ) -> Optional[float]:
        """
        Fitted level change in dB from one harmonic to the next.

        Each partial k*f0 below Nyquist is read as the largest magnitude
        within one bin of its nearest bin. Fewer than two partials give None.
        """
        if f0 <= 0:
            return None
        ks = [k for k in range(1, n_partials + 1) if k * f0 < freqs[-1]]
        if len(ks) < 2:
            return None
        levels = []
        for k in ks:
            b = int(np.argmin(np.abs(freqs - k * f0)))
            levels.append(float(np.max(spectrum[max(0, b - 1):b + 2])))
        db = 20.0 * np.log10(np.maximum(levels, 1e-10))
        slope, _ = np.polyfit(np.array(ks, dtype=float), db, 1)
        return float(slope)
