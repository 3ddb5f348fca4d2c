"""Multitrack transcription pipeline.

Pipeline:
1. Preprocess the PCM buffer into analysis frames
2. Separate frames into six stems
3. Transcribe each harmonic stem to notes and the percussive stem to hits
   (independent tasks on a thread pool)
4. Aggregate everything into AnalyzedTracks
"""

import logging
import threading
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Sequence, Union

import numpy as np

from .aggregate import TrackAggregator
from .drums import DrumTranscriber
from .melodic import StemNoteTranscriber
from ..core import (
    AnalyzedTracks,
    InstrumentCategory,
    TranscriptionCancelled,
    TranscriptionConfig,
)
from ..input import PCMBuffer, Preprocessor
from ..separation import SourceSeparator, Stem

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative cancellation flag, checked at stage boundaries."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def check(self, stage: str) -> None:
        """Raise TranscriptionCancelled if cancellation was requested."""
        if self.cancelled:
            raise TranscriptionCancelled(f"Transcription cancelled before stage '{stage}'")


@dataclass(frozen=True)
class StageEvent:
    """Progress report yielded after each pipeline stage."""

    stage: str
    completed: int
    total: int
    result: Optional[AnalyzedTracks] = None

    @property
    def fraction(self) -> float:
        return self.completed / self.total if self.total else 1.0

    @property
    def is_final(self) -> bool:
        return self.result is not None


class MultiTrackTranscriber:
    """
    Transcriber for mixed recordings.

    Separates the mixture into stems, then transcribes each stem
    independently: YIN/onset note detection for vocals, bass, keys, guitar
    and other, transient classification for drums.

    Usage:
        transcriber = MultiTrackTranscriber()
        tracks = transcriber.transcribe(PCMBuffer.create(samples, 44100, 2))
        bass_notes = tracks.bass.notes

        # Interleave with an interactive host
        for event in transcriber.iter_stages(buffer):
            show_progress(event.fraction)
    """

    # preprocess, separate, six stem analyses, aggregate
    TOTAL_STAGES = 9

    def __init__(
        self,
        config: Optional[TranscriptionConfig] = None,
        max_workers: Optional[int] = None,
    ):
        """
        Initialize MultiTrackTranscriber.

        Args:
            config: Pipeline configuration (validated here)
            max_workers: Threads for stem analysis (default: from config)
        """
        self.config = (config or TranscriptionConfig()).validate()
        self.max_workers = max_workers or self.config.max_workers

        self.preprocessor = Preprocessor(self.config.preprocess)
        self.separator = SourceSeparator(self.config.separation, self.config.pitch)
        self.note_transcriber = StemNoteTranscriber(
            self.config.pitch, self.config.onset, self.config.notes
        )
        self.drum_transcriber = DrumTranscriber(
            self.config.drums, silence_rms=self.config.pitch.silence_rms
        )
        self.aggregator = TrackAggregator()

    def transcribe(
        self,
        buffer: PCMBuffer,
        cancel_token: Optional[CancellationToken] = None,
    ) -> AnalyzedTracks:
        """
        Run the whole pipeline.

        Args:
            buffer: Validated PCM buffer
            cancel_token: Optional cooperative cancellation flag

        Returns:
            AnalyzedTracks

        Raises:
            TranscriptionCancelled: If cancelled at a stage boundary
        """
        result = None
        for event in self.iter_stages(buffer, cancel_token):
            result = event.result
        return result

    def iter_stages(
        self,
        buffer: PCMBuffer,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Iterator[StageEvent]:
        """
        Run the pipeline, yielding control after every stage.

        The last event carries the result. Closing the generator early
        abandons the run; nothing is persisted.
        """
        token = cancel_token or CancellationToken()
        total = self.TOTAL_STAGES
        start_time = time.time()

        if buffer.is_empty:
            logger.info("Empty input, returning empty tracks")
            yield StageEvent("aggregate", total, total, AnalyzedTracks.empty())
            return

        token.check("preprocess")
        logger.info("Preprocessing %.2fs of audio", buffer.duration)
        frames = self.preprocessor.process(buffer)
        yield StageEvent("preprocess", 1, total)

        token.check("separate")
        logger.info("Separating %d frames into stems", frames.n_frames)
        separated = self.separator.separate(frames)
        yield StageEvent("separate", 2, total)

        token.check("analyze")
        mixture_rms = frames.rms()
        notes: Dict[InstrumentCategory, List] = {}
        hits: List = []
        completed = 2

        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            futures = {
                pool.submit(self._analyze_stem, stem, mixture_rms): stem.category
                for stem in separated.stems.values()
            }
            try:
                for future in as_completed(futures):
                    category = futures[future]
                    events = future.result()
                    if category is InstrumentCategory.DRUMS:
                        hits = events
                    else:
                        notes[category] = events
                    completed += 1
                    logger.debug("Stem %s: %d events", category.value, len(events))
                    yield StageEvent(f"analyze:{category.value}", completed, total)
                    token.check("analyze")
            except BaseException:
                for future in futures:
                    future.cancel()
                raise

        token.check("aggregate")
        tracks = self.aggregator.aggregate(notes, hits)
        logger.info(
            "Transcribed %d notes and %d hits in %.2fs",
            tracks.total_notes, len(tracks.drums), time.time() - start_time,
        )
        yield StageEvent("aggregate", total, total, tracks)

    def _analyze_stem(self, stem: Stem, mixture_rms: Optional[np.ndarray] = None) -> List:
        if stem.category is InstrumentCategory.DRUMS:
            return self.drum_transcriber.transcribe(stem.frames, reference_rms=mixture_rms)
        return self.note_transcriber.transcribe(stem.frames)


def analyze_audio_to_tracks(
    samples: Union[np.ndarray, Sequence[float]],
    sample_rate: int,
    channels: Optional[int] = None,
    config: Optional[TranscriptionConfig] = None,
    cancel_token: Optional[CancellationToken] = None,
) -> AnalyzedTracks:
    """
    Transcribe a decoded sample buffer into per-instrument tracks.

    Args:
        samples: Mono, interleaved or (channels, n) samples in [-1, 1]
        sample_rate: Sample rate in Hz
        channels: Channel count (inferred when omitted)
        config: Pipeline configuration
        cancel_token: Optional cooperative cancellation flag

    Returns:
        AnalyzedTracks

    Raises:
        InputError: If the buffer is malformed
    """
    buffer = PCMBuffer.create(samples, sample_rate, channels)
    return MultiTrackTranscriber(config).transcribe(buffer, cancel_token)
