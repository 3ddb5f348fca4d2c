"""Note detection for harmonic stems: YIN pitch, spectral-flux onsets,
and note segmentation with a polyphony cap."""

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

import numpy as np
from scipy.signal import find_peaks

from .base import Transcriber
from ..analysis import FeatureExtractor, OnsetDetector, PitchAnalyzer, PitchTrack
from ..core import Note, NoteConfig, OnsetConfig, PitchConfig
from ..core.constants import MIDI_MAX, MIDI_MIN
from ..input import AudioFrames
from ..processing import CleanupConfig, NoteCleanup

logger = logging.getLogger(__name__)

# (fractional MIDI pitch, confidence, from the YIN estimate)
Candidate = Tuple[float, float, bool]


@dataclass
class _ActiveNote:
    """A note being tracked across frames."""

    start: int
    last: int
    primary: bool
    pitches: List[float] = field(default_factory=list)
    confidences: List[float] = field(default_factory=list)

    @property
    def pitch(self) -> float:
        return float(np.median(self.pitches))

    def extend(self, frame: int, pitch: float, confidence: float) -> None:
        self.last = frame
        self.pitches.append(pitch)
        self.confidences.append(confidence)


class StemNoteTranscriber(Transcriber):
    """
    Converts a harmonic stem into Notes.

    A note starts at each onset or when the pitch moves more than the
    tolerance away from the running note's median pitch. It ends at the next
    onset, or when the pitch stays unvoiced longer than the grace period.

    Besides the YIN pitch, prominent spectral peaks that are not harmonics of
    an accepted pitch become extra candidates, up to the polyphony cap.
    """

    def __init__(
        self,
        pitch_config: Optional[PitchConfig] = None,
        onset_config: Optional[OnsetConfig] = None,
        note_config: Optional[NoteConfig] = None,
    ):
        """
        Initialize StemNoteTranscriber.

        Args:
            pitch_config: YIN settings
            onset_config: Onset picking settings
            note_config: Segmentation, polyphony and velocity settings
        """
        self.pitch_config = pitch_config or PitchConfig()
        self.note_config = note_config or NoteConfig()
        self.pitch_analyzer = PitchAnalyzer(self.pitch_config)
        self.onset_detector = OnsetDetector(onset_config)
        self.cleanup = NoteCleanup(CleanupConfig(
            min_duration=self.note_config.min_note_duration,
            min_velocity=self.note_config.min_velocity,
            max_polyphony=self.note_config.max_polyphony,
        ))

    def transcribe(self, frames: AudioFrames) -> List[Note]:
        """
        Transcribe a harmonic stem to notes.

        Args:
            frames: Stem frames

        Returns:
            Notes sorted by start time
        """
        if frames.n_frames == 0 or np.max(frames.rms()) < self.pitch_config.silence_rms:
            return []

        track = self.pitch_analyzer.analyze(frames)
        if not np.any(track.voiced):
            return []

        magnitude = frames.magnitude()
        onsets = self.onset_detector.detect(magnitude)
        candidates = self._candidates(track, magnitude, frames)

        raw = self._segment(track, candidates, onsets, frames)
        notes, stats = self.cleanup.cleanup(raw, return_stats=True)
        logger.debug(
            "Detected %d notes (%d onsets, %d raw, %d short, %d over polyphony)",
            len(notes), len(onsets), stats.original_count,
            stats.removed_short_notes, stats.removed_polyphony,
        )
        return notes

    def _candidates(
        self,
        track: PitchTrack,
        magnitude: np.ndarray,
        frames: AudioFrames,
    ) -> List[List[Candidate]]:
        """Pitch candidates per frame, strongest first, at most the cap."""
        cfg = self.note_config
        midi = track.midi
        freqs = frames.fft_frequencies()
        use_extra = cfg.enable_polyphony and cfg.max_polyphony > 1

        result: List[List[Candidate]] = []
        for t in range(len(track)):
            if not track.voiced[t]:
                result.append([])
                continue
            frame_cands: List[Candidate] = [(float(midi[t]), float(track.confidence[t]), True)]
            if use_extra:
                frame_cands.extend(
                    self._extra_candidates(
                        magnitude[:, t], freqs, float(track.f0[t]), float(track.confidence[t])
                    )
                )
            frame_cands.sort(key=lambda c: -c[1])
            result.append(frame_cands[:cfg.max_polyphony])
        return result

    def _extra_candidates(
        self,
        column: np.ndarray,
        freqs: np.ndarray,
        f0: float,
        confidence: float,
    ) -> List[Candidate]:
        """Spectral peaks not explained as harmonics of accepted pitches."""
        cfg = self.note_config
        peak_max = float(np.max(column))
        if peak_max <= 0:
            return []

        peaks, props = find_peaks(column, height=cfg.poly_peak_ratio * peak_max)
        order = np.argsort(-props["peak_heights"], kind="stable")

        accepted = [f0]
        extras: List[Candidate] = []
        for idx in order:
            if len(extras) >= cfg.max_polyphony - 1:
                break
            freq = self._interpolate_peak(column, freqs, int(peaks[idx]))
            if freq < cfg.poly_min_hz or freq > self.pitch_config.fmax:
                continue
            if self._is_harmonic(freq, accepted):
                continue
            accepted.append(freq)
            strength = float(props["peak_heights"][idx]) / peak_max
            extras.append((
                float(PitchAnalyzer.f0_to_midi(np.array([freq]))[0]),
                confidence * cfg.poly_confidence_scale * strength,
                False,
            ))
        return extras

    def _is_harmonic(self, freq: float, fundamentals: List[float]) -> bool:
        cfg = self.note_config
        for base in fundamentals:
            k = int(round(freq / base))
            if 1 <= k <= cfg.poly_max_harmonic:
                cents = 1200.0 * abs(np.log2(freq / (k * base)))
                if cents <= cfg.poly_tolerance_cents:
                    return True
        return False

    @staticmethod
    def _interpolate_peak(column: np.ndarray, freqs: np.ndarray, k: int) -> float:
        """Parabolic interpolation of a spectral peak's frequency."""
        if 0 < k < len(column) - 1:
            left, mid, right = column[k - 1], column[k], column[k + 1]
            denom = left - 2 * mid + right
            if denom < 0:
                offset = 0.5 * (left - right) / denom
                return float(freqs[k] + offset * (freqs[1] - freqs[0]))
        return float(freqs[k])

    def _segment(
        self,
        track: PitchTrack,
        candidates: List[List[Candidate]],
        onsets: np.ndarray,
        frames: AudioFrames,
    ) -> List[Note]:
        """Group per-frame candidates into notes."""
        cfg = self.note_config
        frame_rate = frames.sample_rate / frames.hop_length
        grace = int(round(cfg.grace_period * frame_rate))
        onset_frames = set(int(o) for o in onsets)
        times = frames.times()
        level_db = FeatureExtractor.level_db(track.rms)

        def finish(active: _ActiveNote) -> Note:
            end = active.last + 1
            return Note(
                pitch=int(np.clip(round(active.pitch), MIDI_MIN, MIDI_MAX)),
                start_time=float(times[active.start]),
                duration=(end - active.start) / frame_rate,
                velocity=self._velocity(level_db[active.start:end]),
                confidence=float(np.clip(np.mean(active.confidences), 0.0, 1.0)),
            )

        notes: List[Note] = []
        active: List[_ActiveNote] = []

        for t, frame_cands in enumerate(candidates):
            if t in onset_frames:
                notes.extend(finish(a) for a in active)
                active = []

            matched = set()
            for pitch, confidence, primary in frame_cands:
                note = self._match(active, pitch, primary, matched)
                if note is not None:
                    if primary and not note.primary:
                        # The running melody jumped onto a sustained extra note
                        old = next((a for a in active if a.primary), None)
                        if old is not None:
                            active.remove(old)
                            notes.append(finish(old))
                        note.primary = True
                    note.extend(t, pitch, confidence)
                    matched.add(id(note))
                    continue

                if primary:
                    # Pitch discontinuity ends the running melody note
                    old = next((a for a in active if a.primary), None)
                    if old is not None:
                        active.remove(old)
                        notes.append(finish(old))

                if len(active) >= cfg.max_polyphony:
                    # At the cap the least confident unmatched voice gives way
                    idle = [a for a in active if id(a) not in matched]
                    weakest = min(idle, key=lambda a: np.mean(a.confidences), default=None)
                    if weakest is not None and confidence > np.mean(weakest.confidences):
                        active.remove(weakest)
                        notes.append(finish(weakest))

                if len(active) < cfg.max_polyphony:
                    new = _ActiveNote(start=t, last=t, primary=primary)
                    new.extend(t, pitch, confidence)
                    active.append(new)
                    matched.add(id(new))

            for a in list(active):
                if t - a.last > grace:
                    active.remove(a)
                    notes.append(finish(a))

        notes.extend(finish(a) for a in active)
        return notes

    def _match(
        self,
        active: List[_ActiveNote],
        pitch: float,
        primary: bool,
        matched: set,
    ) -> Optional[_ActiveNote]:
        """Closest unmatched active note within the pitch tolerance."""
        tolerance = self.note_config.pitch_tolerance
        pool = [a for a in active if id(a) not in matched]
        if primary:
            # Prefer continuing the melody voice
            melody = [a for a in pool if a.primary]
            if melody and abs(melody[0].pitch - pitch) <= tolerance:
                return melody[0]
        else:
            pool = [a for a in pool if not a.primary]

        best = None
        best_distance = tolerance
        for a in pool:
            distance = abs(a.pitch - pitch)
            if distance <= best_distance:
                best, best_distance = a, distance
        return best

    def _velocity(self, level_db: np.ndarray) -> float:
        """Map mean frame level (dBFS) onto 0-1."""
        if len(level_db) == 0:
            return 0.0
        range_db = self.note_config.velocity_range_db
        return float(np.clip((np.mean(level_db) + range_db) / range_db, 0.0, 1.0))
