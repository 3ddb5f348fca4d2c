"""YIN fundamental frequency estimation over pre-framed audio."""

from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np

from ..core import PitchConfig
from ..input import AudioFrames


@dataclass(frozen=True, eq=False)
class PitchTrack:
    """Per-frame pitch estimates."""

    f0: np.ndarray  # Hz, NaN where unvoiced
    confidence: np.ndarray  # 0-1
    voiced: np.ndarray  # bool
    rms: np.ndarray  # window-compensated frame RMS

    def __len__(self) -> int:
        return len(self.f0)

    @property
    def midi(self) -> np.ndarray:
        """Fractional MIDI pitch, NaN where unvoiced."""
        return PitchAnalyzer.f0_to_midi(self.f0)


class PitchAnalyzer:
    """
    YIN-family pitch detector.

    Minimizes the cumulative-mean-normalized difference function over
    candidate lags. Confidence is 1 minus the normalized difference at the
    chosen lag, so a perfectly periodic frame scores 1.
    """

    def __init__(self, config: Optional[PitchConfig] = None):
        self.config = config or PitchConfig()

    def analyze(self, frames: AudioFrames) -> PitchTrack:
        """
        Estimate pitch and confidence for every frame.

        Args:
            frames: Windowed analysis frames

        Returns:
            PitchTrack aligned with the frames
        """
        cfg = self.config
        sr = frames.sample_rate
        min_lag, max_lag = self.lag_range(sr, frames.frame_length)

        n = frames.n_frames
        f0 = np.full(n, np.nan)
        confidence = np.zeros(n)
        chunk = max(1, cfg.chunk_frames)

        for start in range(0, n, chunk):
            block = frames.frames[start:start + chunk]
            dprime = self.cumulative_mean_normalized_difference(block, max_lag)
            for i in range(block.shape[0]):
                tau, conf = self._pick_lag(dprime[i], min_lag, max_lag)
                f0[start + i] = sr / tau
                confidence[start + i] = conf

        rms = frames.rms()
        voiced = (confidence >= cfg.voicing_threshold) & (rms >= cfg.silence_rms)
        f0 = np.where(voiced, f0, np.nan)
        confidence = np.where(rms >= cfg.silence_rms, confidence, 0.0)

        return PitchTrack(f0=f0, confidence=confidence, voiced=voiced, rms=rms)

    def lag_range(self, sample_rate: int, frame_length: int) -> Tuple[int, int]:
        """Smallest and largest candidate lag in samples."""
        min_lag = max(2, int(np.floor(sample_rate / self.config.fmax)))
        max_lag = int(np.ceil(sample_rate / self.config.fmin))
        max_lag = min(max_lag, frame_length // 2)
        return min_lag, max(max_lag, min_lag + 2)

    @staticmethod
    def cumulative_mean_normalized_difference(frames: np.ndarray, max_lag: int) -> np.ndarray:
        """
        YIN difference function d'(tau) for tau in [0, max_lag].

        The difference d(tau) = e(0) + e(tau) - 2 r(tau) is computed from an FFT
        cross-correlation against the first (frame_length - max_lag) samples.
        """
        frame_length = frames.shape[1]
        width = frame_length - max_lag
        n_fft = int(2 ** np.ceil(np.log2(frame_length + width)))

        full = np.fft.rfft(frames, n_fft, axis=1)
        head = np.fft.rfft(frames[:, :width], n_fft, axis=1)
        corr = np.fft.irfft(full * np.conj(head), n_fft, axis=1)[:, :max_lag + 1]

        energy = np.concatenate(
            [np.zeros((frames.shape[0], 1)), np.cumsum(frames ** 2, axis=1)], axis=1
        )
        lags = np.arange(max_lag + 1)
        shifted = energy[:, lags + width] - energy[:, lags]
        diff = np.maximum(energy[:, [width]] + shifted - 2 * corr, 0.0)

        cumulative = np.cumsum(diff[:, 1:], axis=1)
        dprime = np.ones_like(diff)
        with np.errstate(divide="ignore", invalid="ignore"):
            normalized = diff[:, 1:] * lags[1:] / cumulative
        dprime[:, 1:] = np.where(cumulative > 0, normalized, 1.0)
        return dprime

    def _pick_lag(self, dprime: np.ndarray, min_lag: int, max_lag: int) -> Tuple[float, float]:
        """First trough under the absolute threshold, else the global minimum."""
        search = dprime[min_lag:max_lag + 1]
        below = np.flatnonzero(search < self.config.trough_threshold)
        if below.size:
            k = int(below[0])
            while k + 1 < len(search) and search[k + 1] < search[k]:
                k += 1
        else:
            k = int(np.argmin(search))

        tau = k + min_lag
        confidence = float(np.clip(1.0 - dprime[tau], 0.0, 1.0))

        # Parabolic interpolation around the trough
        refined = float(tau)
        if min_lag < tau < max_lag:
            left, mid, right = dprime[tau - 1], dprime[tau], dprime[tau + 1]
            denom = left - 2 * mid + right
            if denom > 0:
                refined = tau + 0.5 * (left - right) / denom
        return refined, confidence

    @staticmethod
    def f0_to_midi(f0: np.ndarray) -> np.ndarray:
        """Convert f0 array to fractional MIDI pitches."""
        with np.errstate(divide="ignore", invalid="ignore"):
            midi = 69 + 12 * np.log2(np.asarray(f0, dtype=float) / 440.0)
        return np.where(np.isfinite(midi), midi, np.nan)
