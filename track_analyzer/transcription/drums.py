"""Drum transient detection and classification on the percussive stem."""

import logging
from typing import Dict, List, Optional, Tuple

import numpy as np

from .base import Transcriber
from ..analysis import FeatureExtractor, OnsetDetector
from ..core import DrumConfig, Hit, HitType
from ..core.constants import SILENCE_RMS
from ..input import AudioFrames

logger = logging.getLogger(__name__)


class DrumTranscriber(Transcriber):
    """
    Converts the percussive stem into Hits.

    Transients are found with the same spectral-flux detector used for notes.
    Each one is classified from features of a short window centred on its
    peak sample:

    - kick: low spectral centroid, most energy in the low band
    - hihat: high centroid, high zero-crossing rate
    - snare: mid centroid, noise-like (flat) mid-band spectrum
    - other: anything else

    Transients quieter than min_mixture_ratio of the mixture are HPSS leakage
    and produce no hit.
    """

    def __init__(
        self,
        config: Optional[DrumConfig] = None,
        silence_rms: float = SILENCE_RMS,
    ):
        self.config = config or DrumConfig()
        self.silence_rms = silence_rms
        self.onset_detector = OnsetDetector(self.config.onset)

    def transcribe(
        self,
        frames: AudioFrames,
        reference_rms: Optional[np.ndarray] = None,
    ) -> List[Hit]:
        """
        Detect and classify drum hits.

        Args:
            frames: Percussive stem frames
            reference_rms: Per-frame RMS of the full mixture. When given, a
                transient must reach min_mixture_ratio of the mixture level
                and velocity is measured against the mixture's loudest frame.

        Returns:
            Hits sorted by time
        """
        cfg = self.config
        rms = frames.rms()
        if len(rms) == 0 or np.max(rms) < self.silence_rms:
            return []

        onsets = self.onset_detector.detect(frames.magnitude())
        if len(onsets) == 0:
            return []

        signal = frames.to_signal()
        # Samples past the real input are zero padding
        n_audio = min(len(signal), int(round(frames.duration * frames.sample_rate)))
        extractor = FeatureExtractor(
            sr=frames.sample_rate,
            low_band_hz=cfg.low_band_hz,
            high_band_hz=cfg.high_band_hz,
        )

        level_db = FeatureExtractor.level_db(rms)
        top = float(np.max(level_db))
        if reference_rms is not None and len(reference_rms):
            top = max(top, float(np.max(FeatureExtractor.level_db(reference_rms))))
        floor = max(float(np.percentile(level_db, 10)), top - cfg.dynamic_range_db)
        half = max(2, int(round(cfg.feature_window * frames.sample_rate / 2)))

        hits = []
        for t in onsets:
            lo = int(t) * frames.hop_length
            hi = min(lo + frames.frame_length, n_audio)
            if hi <= lo:
                continue
            peak = lo + int(np.argmax(np.abs(signal[lo:hi])))

            peak_rms = float(np.max(rms[t:t + 3]))
            if peak_rms < self.silence_rms:
                continue
            if reference_rms is not None:
                mixture_rms = float(np.max(reference_rms[t:t + 3], initial=0.0))
                if peak_rms < cfg.min_mixture_ratio * mixture_rms:
                    continue

            segment = signal[max(0, peak - half):min(peak + half, n_audio)]
            hit_type, confidence = self.classify(extractor.segment_features(segment))

            peak_db = float(FeatureExtractor.level_db(np.array([peak_rms]))[0])
            if top > floor:
                velocity = float(np.clip((peak_db - floor) / (top - floor), 0.0, 1.0))
            else:
                velocity = 1.0

            hits.append(Hit(
                type=hit_type,
                time=peak / frames.sample_rate,
                velocity=velocity,
                confidence=confidence,
            ))

        hits = self._deduplicate(hits)
        logger.debug("Detected %d drum hits from %d transients", len(hits), len(onsets))
        return hits

    def classify(self, features: Dict[str, float]) -> Tuple[HitType, float]:
        """
        Assign a hit type from segment features.

        Confidence is 0.5 at a decision threshold and grows to 1.0 as the
        features move a full threshold-width past it.

        Returns:
            Tuple of (hit type, confidence)
        """
        if features["energy"] <= 0:
            return HitType.OTHER, 0.0

        rules = self._margins(features)
        for hit_type, margins in rules:
            if all(m >= 0 for m in margins):
                return hit_type, 0.5 + 0.5 * min(1.0, min(margins))

        # Distance to the closest rule, measured by its worst failing feature
        shortfall = min(max(-m for m in margins if m < 0) for _, margins in rules)
        return HitType.OTHER, 0.5 + 0.5 * min(1.0, shortfall)

    def _margins(self, features: Dict[str, float]) -> List[Tuple[HitType, List[float]]]:
        cfg = self.config
        centroid = features["spectral_centroid"]

        def above(value: float, threshold: float) -> float:
            return (value - threshold) / threshold

        def below(value: float, threshold: float) -> float:
            return (threshold - value) / threshold

        return [
            (HitType.KICK, [
                below(centroid, cfg.kick_max_centroid),
                above(features["low_ratio"], cfg.kick_min_low_ratio),
            ]),
            (HitType.HIHAT, [
                above(centroid, cfg.hihat_min_centroid),
                above(features["zero_crossing_rate"], cfg.hihat_min_zcr),
            ]),
            (HitType.SNARE, [
                above(centroid, cfg.snare_min_centroid),
                below(centroid, cfg.hihat_min_centroid),
                above(features["flatness"], cfg.snare_min_flatness),
            ]),
        ]

    def _deduplicate(self, hits: List[Hit]) -> List[Hit]:
        """Merge hits closer than min_hit_gap, keeping the louder one."""
        result: List[Hit] = []
        for hit in sorted(hits, key=lambda h: (h.time, h.type.value)):
            if result and hit.time - result[-1].time < self.config.min_hit_gap:
                if hit.velocity > result[-1].velocity:
                    result[-1] = hit
                continue
            result.append(hit)
        return result
