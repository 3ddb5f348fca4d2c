"""Spectral features of short audio segments."""

from typing import Dict

import librosa
import numpy as np


class FeatureExtractor:
    """Extracts timbre features used to classify drum transients."""

    def __init__(
        self,
        sr: int = 22050,
        low_band_hz: float = 150.0,
        high_band_hz: float = 5000.0,
    ):
        """
        Initialize FeatureExtractor.

        Args:
            sr: Sample rate
            low_band_hz: Upper edge of the low band
            high_band_hz: Lower edge of the high band
        """
        self.sr = sr
        self.low_band_hz = low_band_hz
        self.high_band_hz = high_band_hz

    def segment_features(self, segment: np.ndarray) -> Dict[str, float]:
        """
        Compute features of a short segment.

        Returns a dict with spectral_centroid (Hz), zero_crossing_rate
        (crossings per sample), flatness (mid-band spectral flatness),
        low_ratio and high_ratio (share of power below low_band_hz / above
        high_band_hz) and energy (mean power).
        """
        segment = np.asarray(segment, dtype=float)
        if len(segment) % 2:
            segment = segment[:-1]

        energy = float(np.mean(segment ** 2)) if len(segment) else 0.0
        if len(segment) < 4 or energy <= 0:
            return {
                "spectral_centroid": 0.0,
                "zero_crossing_rate": 0.0,
                "flatness": 0.0,
                "low_ratio": 0.0,
                "high_ratio": 0.0,
                "energy": 0.0,
            }

        n_fft = len(segment)
        window = librosa.filters.get_window("hann", n_fft, fftbins=True)
        magnitude = np.abs(np.fft.rfft(segment * window))[:, np.newaxis]
        freqs = librosa.fft_frequencies(sr=self.sr, n_fft=n_fft)

        centroid = librosa.feature.spectral_centroid(S=magnitude, sr=self.sr, freq=freqs)
        zcr = np.mean(librosa.zero_crossings(segment, pad=False))

        power = magnitude[:, 0] ** 2
        total = float(np.sum(power)) or 1.0
        low_ratio = float(np.sum(power[freqs < self.low_band_hz])) / total
        high_ratio = float(np.sum(power[freqs >= self.high_band_hz])) / total

        mid = (freqs >= self.low_band_hz) & (freqs < self.high_band_hz)
        flatness = 0.0
        if np.any(mid):
            flatness = float(librosa.feature.spectral_flatness(S=magnitude[mid])[0, 0])

        return {
            "spectral_centroid": float(centroid[0, 0]),
            "zero_crossing_rate": float(zcr),
            "flatness": flatness,
            "low_ratio": low_ratio,
            "high_ratio": high_ratio,
            "energy": energy,
        }

    @staticmethod
    def level_db(rms: np.ndarray) -> np.ndarray:
        """RMS to dB full scale, floored at -120 dB."""
        return 20.0 * np.log10(np.maximum(np.asarray(rms, dtype=float), 1e-6))
