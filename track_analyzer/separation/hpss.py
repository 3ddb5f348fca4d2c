"""Harmonic/percussive soft masking of a magnitude spectrogram."""

import logging
import warnings
from typing import Optional, Tuple

import librosa
import numpy as np
from scipy.ndimage import median_filter

from ..core import SeparationConfig, SeparationDegenerate

logger = logging.getLogger(__name__)


def sanitize(values: np.ndarray, name: str) -> np.ndarray:
    """Clamp NaN, infinite and negative energy to zero."""
    bad = ~np.isfinite(values) | (values < 0)
    if np.any(bad):
        warnings.warn(
            f"Clamped {int(np.sum(bad))} degenerate values in {name}",
            SeparationDegenerate,
        )
        values = np.where(bad, 0.0, values)
    return values


class HarmonicPercussiveSplitter:
    """
    Median-filtering HPSS.

    Harmonic content is smooth along time, percussive content is smooth along
    frequency. The two filtered references are turned into complementary soft
    masks, so harmonic + percussive magnitude equals the input exactly.
    """

    def __init__(self, config: Optional[SeparationConfig] = None):
        self.config = config or SeparationConfig()

    def masks(self, magnitude: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """
        Compute harmonic and percussive masks.

        Args:
            magnitude: Magnitude spectrum [freq_bins, n_frames]

        Returns:
            Tuple of (harmonic_mask, percussive_mask), values in [0, 1]
            summing to 1 per bin
        """
        magnitude = sanitize(np.asarray(magnitude, dtype=float), "magnitude spectrum")
        n_frames = magnitude.shape[1]
        harmonic_mask = np.empty_like(magnitude)

        chunk = max(1, self.config.chunk_frames)
        halo = self.config.harmonic_kernel // 2
        for start in range(0, n_frames, chunk):
            stop = min(start + chunk, n_frames)
            lo = max(0, start - halo)
            hi = min(n_frames, stop + halo)
            block = magnitude[:, lo:hi]
            harmonic, percussive = self._filter(block)
            mask = librosa.util.softmask(
                harmonic, percussive, power=self.config.mask_power, split_zeros=True
            )
            harmonic_mask[:, start:stop] = mask[:, start - lo:stop - lo]

        harmonic_mask = np.clip(harmonic_mask, 0.0, 1.0)
        return harmonic_mask, 1.0 - harmonic_mask

    def _filter(self, magnitude: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        harmonic = median_filter(magnitude, size=(1, self.config.harmonic_kernel), mode="reflect")
        percussive = median_filter(magnitude, size=(self.config.percussive_kernel, 1), mode="reflect")
        return (
            sanitize(harmonic, "harmonic reference"),
            sanitize(percussive, "percussive reference"),
        )
