"""Configuration for the transcription pipeline.

Every heuristic threshold used by the pipeline lives here so it can be tuned
without touching the algorithms. The defaults are the values the test suite
pins; they are reasonable starting points, not ground truth.
"""

import json
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .constants import (
    DEFAULT_FMAX,
    DEFAULT_FMIN,
    DEFAULT_FRAME_LENGTH,
    DEFAULT_HOP_LENGTH,
    DEFAULT_SR,
    DEFAULT_WINDOW,
    SILENCE_RMS,
    VELOCITY_RANGE_DB,
)
from .errors import ConfigError


@dataclass
class PreprocessConfig:
    """Framing of the analysis signal.

    Attributes:
        sample_rate: Analysis sample rate in Hz
        frame_length: Samples per frame (also the FFT size)
        hop_length: Samples between frame starts
        window: Tapering window name understood by librosa
        res_type: librosa resampling filter
    """

    sample_rate: int = DEFAULT_SR
    frame_length: int = DEFAULT_FRAME_LENGTH
    hop_length: int = DEFAULT_HOP_LENGTH
    window: str = DEFAULT_WINDOW
    res_type: str = "soxr_hq"


@dataclass
class PitchConfig:
    """YIN fundamental frequency estimation.

    Attributes:
        fmin: Lowest detectable fundamental (Hz)
        fmax: Highest detectable fundamental (Hz)
        trough_threshold: Absolute threshold on the normalized difference
        voicing_threshold: Minimum confidence for a frame to count as voiced
        silence_rms: Frames quieter than this are unvoiced
        chunk_frames: Frames processed per block (bounds memory)
    """

    fmin: float = DEFAULT_FMIN
    fmax: float = DEFAULT_FMAX
    trough_threshold: float = 0.1
    voicing_threshold: float = 0.7
    silence_rms: float = SILENCE_RMS
    chunk_frames: int = 256


@dataclass
class OnsetConfig:
    """Spectral-flux onset picking.

    Attributes:
        window_frames: Half-width of the adaptive threshold window
        threshold_k: Standard deviations above the local mean
        min_strength: Absolute flux floor
        relative_floor: Flux floor as a fraction of the maximum flux
        min_gap_frames: Minimum distance between two onsets
    """

    window_frames: int = 10
    threshold_k: float = 1.5
    min_strength: float = 1.0
    relative_floor: float = 0.05
    min_gap_frames: int = 2


@dataclass
class SeparationConfig:
    """Harmonic/percussive split and instrument routing priors.

    Attributes:
        harmonic_kernel: Median filter length across time (frames)
        percussive_kernel: Median filter length across frequency (bins)
        mask_power: Exponent of the soft mask
        bass_cutoff_hz: Segments with a lower fundamental route to bass
        vocal_min_hz: Lower edge of the vocal range
        vocal_max_hz: Upper edge of the vocal range
        vocal_min_modulation: Minimum level fluctuation (dB) around the decay trend
        keys_max_hz: Upper edge of the keys/guitar range
        guitar_min_decay_db_per_s: Energy decay above which keys become guitar
        guitar_min_partial_slope_db: Partial envelope slope (dB per harmonic) at or
            above which keys become guitar; None disables the cue
        partial_count: Harmonics measured for the partial envelope
        route_confidence_floor: Segments below this mean confidence go to other
        min_segment_frames: Shorter segments go to other
        segment_jump_semitones: Frame-to-frame jump that splits a segment
        chunk_frames: Frames per median-filter block (bounds memory)
    """

    harmonic_kernel: int = 17
    percussive_kernel: int = 17
    mask_power: float = 2.0
    bass_cutoff_hz: float = 250.0
    vocal_min_hz: float = 150.0
    vocal_max_hz: float = 1100.0
    vocal_min_modulation: float = 3.0
    keys_max_hz: float = 2000.0
    guitar_min_decay_db_per_s: float = 12.0
    guitar_min_partial_slope_db: Optional[float] = -4.0
    partial_count: int = 8
    route_confidence_floor: float = 0.7
    min_segment_frames: int = 3
    segment_jump_semitones: float = 1.0
    chunk_frames: int = 512


@dataclass
class NoteConfig:
    """Note segmentation for melodic stems.

    Attributes:
        min_note_duration: Shorter notes are discarded (seconds)
        pitch_tolerance: Semitone distance that starts a new note
        grace_period: Unvoiced time a note survives (seconds)
        max_polyphony: Simultaneous notes allowed per stem
        enable_polyphony: Take extra pitch candidates from spectral peaks
        poly_peak_ratio: Minimum peak height relative to the frame maximum
        poly_min_hz: Lowest frequency considered for extra candidates
        poly_max_harmonic: Highest harmonic number explained by a pitch
        poly_tolerance_cents: Harmonic match tolerance
        poly_confidence_scale: Confidence scale of extra candidates
        velocity_range_db: Level range mapped onto velocity 0-1
        min_velocity: Quieter notes are discarded
    """

    min_note_duration: float = 0.06
    pitch_tolerance: float = 1.0
    grace_period: float = 0.05
    max_polyphony: int = 4
    enable_polyphony: bool = True
    poly_peak_ratio: float = 0.3
    poly_min_hz: float = 200.0
    poly_max_harmonic: int = 16
    poly_tolerance_cents: float = 50.0
    poly_confidence_scale: float = 0.8
    velocity_range_db: float = VELOCITY_RANGE_DB
    min_velocity: float = 0.0


@dataclass
class DrumConfig:
    """Transient classification thresholds for the percussive stem.

    Attributes:
        onset: Onset picking settings for the percussive stem
        feature_window: Analysis window centred on a transient (seconds)
        low_band_hz: Upper edge of the low band
        high_band_hz: Lower edge of the high band
        kick_max_centroid: Kicks have a centroid below this (Hz)
        kick_min_low_ratio: Kicks carry at least this share of low-band energy
        snare_min_centroid: Snares have a centroid above this (Hz)
        snare_min_flatness: Minimum mid-band spectral flatness of snares
        hihat_min_centroid: Hi-hats have a centroid above this (Hz)
        hihat_min_zcr: Hi-hats cross zero at least this often
        min_hit_gap: Hits closer than this are merged (seconds)
        dynamic_range_db: Level range mapped onto velocity 0-1
        min_mixture_ratio: A transient's percussive RMS must reach this share
            of the mixture RMS over the same frames
    """

    onset: OnsetConfig = field(default_factory=OnsetConfig)
    feature_window: float = 0.05
    low_band_hz: float = 150.0
    high_band_hz: float = 5000.0
    kick_max_centroid: float = 500.0
    kick_min_low_ratio: float = 0.4
    snare_min_centroid: float = 500.0
    snare_min_flatness: float = 0.1
    hihat_min_centroid: float = 5000.0
    hihat_min_zcr: float = 0.2
    min_hit_gap: float = 0.03
    dynamic_range_db: float = VELOCITY_RANGE_DB
    min_mixture_ratio: float = 0.2


@dataclass
class TranscriptionConfig:
    """Complete pipeline configuration."""

    preprocess: PreprocessConfig = field(default_factory=PreprocessConfig)
    separation: SeparationConfig = field(default_factory=SeparationConfig)
    pitch: PitchConfig = field(default_factory=PitchConfig)
    onset: OnsetConfig = field(default_factory=OnsetConfig)
    notes: NoteConfig = field(default_factory=NoteConfig)
    drums: DrumConfig = field(default_factory=DrumConfig)
    max_workers: int = 6

    def validate(self) -> "TranscriptionConfig":
        """Check value ranges, raising ConfigError on the first problem."""
        try:
            self._check_ranges()
        except TypeError as e:
            raise ConfigError(f"Invalid config value type: {e}") from e
        return self

    def _check_ranges(self) -> None:
        pre = self.preprocess
        if pre.sample_rate <= 0:
            raise ConfigError("preprocess.sample_rate must be positive")
        if pre.frame_length <= 0 or pre.hop_length <= 0:
            raise ConfigError("preprocess frame_length and hop_length must be positive")
        if pre.hop_length > pre.frame_length:
            raise ConfigError("preprocess.hop_length cannot exceed frame_length")
        nyquist = pre.sample_rate / 2

        pitch = self.pitch
        if not 0 < pitch.fmin < pitch.fmax:
            raise ConfigError("pitch.fmin must be positive and below pitch.fmax")
        if pitch.fmax >= nyquist:
            raise ConfigError("pitch.fmax must be below the Nyquist frequency")
        if pre.sample_rate / pitch.fmin >= pre.frame_length:
            raise ConfigError("pitch.fmin is too low for the frame length")
        if not 0 < pitch.voicing_threshold <= 1:
            raise ConfigError("pitch.voicing_threshold must be in (0, 1]")

        for name in ("harmonic_kernel", "percussive_kernel", "min_segment_frames"):
            if getattr(self.separation, name) < 1:
                raise ConfigError(f"separation.{name} must be at least 1")
        if self.separation.partial_count < 2:
            raise ConfigError("separation.partial_count must be at least 2")

        for prefix, onset in (("onset", self.onset), ("drums.onset", self.drums.onset)):
            if onset.window_frames < 0:
                raise ConfigError(f"{prefix}.window_frames cannot be negative")
            if onset.threshold_k < 0 or onset.min_strength < 0:
                raise ConfigError(f"{prefix} threshold_k and min_strength cannot be negative")
            if not 0 <= onset.relative_floor <= 1:
                raise ConfigError(f"{prefix}.relative_floor must be in [0, 1]")
            if onset.min_gap_frames < 1:
                raise ConfigError(f"{prefix}.min_gap_frames must be at least 1")

        notes = self.notes
        if notes.max_polyphony < 1:
            raise ConfigError("notes.max_polyphony must be at least 1")
        if notes.min_note_duration <= 0:
            raise ConfigError("notes.min_note_duration must be positive")
        if notes.pitch_tolerance <= 0 or notes.grace_period < 0:
            raise ConfigError("notes.pitch_tolerance must be positive and grace_period non-negative")
        if not 0 < notes.poly_peak_ratio <= 1:
            raise ConfigError("notes.poly_peak_ratio must be in (0, 1]")

        drums = self.drums
        if drums.feature_window <= 0:
            raise ConfigError("drums.feature_window must be positive")
        if not 0 < drums.low_band_hz < drums.high_band_hz < nyquist:
            raise ConfigError("drums band edges must satisfy 0 < low_band_hz < high_band_hz < Nyquist")
        for name in ("kick_max_centroid", "snare_min_centroid", "hihat_min_centroid", "dynamic_range_db"):
            if getattr(drums, name) <= 0:
                raise ConfigError(f"drums.{name} must be positive")
        if drums.min_hit_gap < 0:
            raise ConfigError("drums.min_hit_gap cannot be negative")
        if not 0 <= drums.min_mixture_ratio <= 1:
            raise ConfigError("drums.min_mixture_ratio must be in [0, 1]")

        if self.max_workers < 1:
            raise ConfigError("max_workers must be at least 1")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TranscriptionConfig":
        """Build a config from nested dictionaries, rejecting unknown keys."""
        return _build(cls, data, "").validate()


def _build(config_cls, data: Dict[str, Any], prefix: str):
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a mapping for '{prefix or 'config'}'")

    known = {f.name: f for f in fields(config_cls)}
    unknown = set(data) - set(known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {', '.join(sorted(prefix + k for k in unknown))}")

    kwargs = {}
    for name, value in data.items():
        default = getattr(config_cls(), name)
        if hasattr(default, "__dataclass_fields__"):
            kwargs[name] = _build(type(default), value, f"{prefix}{name}.")
        else:
            kwargs[name] = _check_type(value, default, known[name].type, prefix + name)
    return config_cls(**kwargs)


def _check_type(value, default, annotation, key: str):
    """Reject JSON values whose type does not match the field default."""
    if value is None and type(None) in getattr(annotation, "__args__", ()):
        return value
    if isinstance(default, bool):
        ok = isinstance(value, bool)
    elif isinstance(default, int):
        ok = isinstance(value, int) and not isinstance(value, bool)
    elif isinstance(default, float):
        ok = isinstance(value, (int, float)) and not isinstance(value, bool)
    elif isinstance(default, str):
        ok = isinstance(value, str)
    else:
        ok = True
    if not ok:
        raise ConfigError(f"{key} must be of type {type(default).__name__}, got {value!r}")
    return value


def load_config(path: Union[str, Path]) -> TranscriptionConfig:
    """Load a JSON configuration file."""
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    return TranscriptionConfig.from_dict(data)
