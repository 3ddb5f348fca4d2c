"""Preprocessing: PCM buffer to analysis-ready frames."""

import logging
from dataclasses import dataclass
from typing import Optional

import librosa
import numpy as np

from ..core import PreprocessConfig
from .buffer import PCMBuffer

logger = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class AudioFrames:
    """
    Immutable sequence of overlapping, windowed mono frames.

    Frame t covers samples [t * hop_length, t * hop_length + frame_length) of
    the analysis signal. Event timestamps refer to frame centres.
    """

    frames: np.ndarray  # [n_frames, frame_length], read-only
    sample_rate: int
    hop_length: int
    window_name: str
    duration: float  # seconds of real (unpadded) input

    @property
    def n_frames(self) -> int:
        return self.frames.shape[0]

    @property
    def frame_length(self) -> int:
        return self.frames.shape[1]

    @property
    def window(self) -> np.ndarray:
        return librosa.filters.get_window(self.window_name, self.frame_length, fftbins=True)

    def spectrum(self) -> np.ndarray:
        """Complex short-time spectrum [freq_bins, n_frames]."""
        return np.fft.rfft(self.frames, axis=1).T

    def magnitude(self) -> np.ndarray:
        """Magnitude spectrum [freq_bins, n_frames]."""
        return np.abs(self.spectrum())

    def fft_frequencies(self) -> np.ndarray:
        return librosa.fft_frequencies(sr=self.sample_rate, n_fft=self.frame_length)

    def rms(self) -> np.ndarray:
        """Per-frame RMS, compensated for the analysis window."""
        window_power = float(np.mean(self.window ** 2)) or 1.0
        return np.sqrt(np.mean(self.frames ** 2, axis=1) / window_power)

    def times(self) -> np.ndarray:
        """Centre time of each frame in seconds."""
        starts = np.arange(self.n_frames) * self.hop_length
        return (starts + self.frame_length / 2) / self.sample_rate

    def to_signal(self) -> np.ndarray:
        """Reconstruct the time-domain signal by weighted overlap-add."""
        length = (self.n_frames - 1) * self.hop_length + self.frame_length
        return librosa.istft(
            self.spectrum(),
            hop_length=self.hop_length,
            n_fft=self.frame_length,
            window=self.window_name,
            center=False,
            length=length,
        )

    def with_frames(self, frames: np.ndarray) -> "AudioFrames":
        """New frame sequence with the same geometry (used to build stems)."""
        if frames.shape != self.frames.shape:
            raise ValueError(f"Frame shape {frames.shape} does not match {self.frames.shape}")
        return make_frames(frames, self.sample_rate, self.hop_length, self.window_name, self.duration)


def make_frames(
    frames: np.ndarray,
    sample_rate: int,
    hop_length: int,
    window_name: str,
    duration: float,
) -> AudioFrames:
    """Wrap an array as read-only AudioFrames."""
    frames = np.array(frames, dtype=np.float64, copy=True)
    frames.setflags(write=False)
    return AudioFrames(
        frames=frames,
        sample_rate=sample_rate,
        hop_length=hop_length,
        window_name=window_name,
        duration=duration,
    )


class Preprocessor:
    """Downmix, resample and frame a PCM buffer."""

    def __init__(self, config: Optional[PreprocessConfig] = None):
        self.config = config or PreprocessConfig()

    def process(self, buffer: PCMBuffer) -> AudioFrames:
        """
        Convert a PCM buffer into windowed analysis frames.

        Input shorter than one window is zero-padded to exactly one frame; an
        all-zero buffer gives a silent but valid frame sequence.

        Args:
            buffer: Validated PCM buffer

        Returns:
            AudioFrames at the analysis sample rate
        """
        cfg = self.config
        audio = self.resample(buffer.to_mono(), buffer.sample_rate)
        audio = self.pad(audio)

        frames = librosa.util.frame(
            audio, frame_length=cfg.frame_length, hop_length=cfg.hop_length, axis=0
        )
        window = librosa.filters.get_window(cfg.window, cfg.frame_length, fftbins=True)

        logger.debug(
            "Framed %.2fs of audio into %d frames (%d Hz -> %d Hz)",
            buffer.duration, frames.shape[0], buffer.sample_rate, cfg.sample_rate,
        )
        return make_frames(
            frames * window,
            cfg.sample_rate,
            cfg.hop_length,
            cfg.window,
            buffer.duration,
        )

    def resample(self, audio: np.ndarray, sample_rate: int) -> np.ndarray:
        """Band-limited resampling to the analysis rate."""
        audio = np.asarray(audio, dtype=np.float64)
        if sample_rate == self.config.sample_rate or len(audio) == 0:
            return audio
        return librosa.resample(
            audio,
            orig_sr=sample_rate,
            target_sr=self.config.sample_rate,
            res_type=self.config.res_type,
        )

    def pad(self, audio: np.ndarray) -> np.ndarray:
        """Zero-pad the tail so it fills a whole frame."""
        frame_length = self.config.frame_length
        hop_length = self.config.hop_length
        n = len(audio)
        if n <= frame_length:
            target = frame_length
        else:
            target = frame_length + int(np.ceil((n - frame_length) / hop_length)) * hop_length
        return np.pad(audio, (0, target - n))
