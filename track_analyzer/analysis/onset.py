"""Spectral-flux onset detection with an adaptive threshold."""

from typing import Optional

import numpy as np
from scipy.ndimage import uniform_filter1d
from scipy.signal import find_peaks

from ..core import OnsetConfig


class OnsetDetector:
    """
    Detect onsets as peaks of the spectral-flux novelty curve.

    A frame is an onset when its flux is a local maximum, exceeds the local
    mean plus k standard deviations over a sliding window, and clears an
    absolute/relative floor.
    """

    def __init__(self, config: Optional[OnsetConfig] = None):
        self.config = config or OnsetConfig()

    @staticmethod
    def spectral_flux(magnitude: np.ndarray) -> np.ndarray:
        """
        Sum of positive bin-wise magnitude increases per frame.

        The frame before the first is treated as silence, so a sound present
        from the very start produces an onset at frame 0.

        Args:
            magnitude: Magnitude spectrum [freq_bins, n_frames]

        Returns:
            Novelty curve of length n_frames
        """
        if magnitude.shape[1] == 0:
            return np.zeros(0)
        previous = np.concatenate([np.zeros((magnitude.shape[0], 1)), magnitude[:, :-1]], axis=1)
        return np.sum(np.maximum(magnitude - previous, 0.0), axis=0)

    def adaptive_threshold(self, flux: np.ndarray) -> np.ndarray:
        """Local mean + k * local standard deviation (zero padded)."""
        size = 2 * self.config.window_frames + 1
        mean = uniform_filter1d(flux, size=size, mode="constant", cval=0.0)
        mean_sq = uniform_filter1d(flux ** 2, size=size, mode="constant", cval=0.0)
        std = np.sqrt(np.maximum(mean_sq - mean ** 2, 0.0))
        return mean + self.config.threshold_k * std

    def detect(self, magnitude: np.ndarray) -> np.ndarray:
        """
        Detect onset frames.

        Args:
            magnitude: Magnitude spectrum [freq_bins, n_frames]

        Returns:
            Sorted array of onset frame indices
        """
        flux = self.spectral_flux(magnitude)
        return self.pick(flux)

    def pick(self, flux: np.ndarray) -> np.ndarray:
        """Pick onset frames from a novelty curve."""
        if len(flux) == 0 or not np.any(flux > 0):
            return np.zeros(0, dtype=int)

        cfg = self.config
        floor = max(cfg.min_strength, cfg.relative_floor * float(np.max(flux)))
        threshold = self.adaptive_threshold(flux)

        # Pad so maxima at the edges are found too
        padded = np.concatenate([[0.0], flux, [0.0]])
        peaks, _ = find_peaks(padded, distance=max(1, cfg.min_gap_frames))
        peaks = peaks - 1

        keep = (flux[peaks] > threshold[peaks]) & (flux[peaks] >= floor)
        return peaks[keep].astype(int)
