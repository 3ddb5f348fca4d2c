"""PCM input buffer and its validation."""

from dataclasses import dataclass
from typing import Optional, Sequence, Union

import numpy as np

from ..core import InputError


@dataclass(frozen=True)
class PCMBuffer:
    """
    A decoded sample buffer as handed over by the audio-decoding collaborator.

    `samples` is stored as a read-only float array shaped (channels, n).
    Use `PCMBuffer.create` to build one from mono, interleaved or
    channel-major data; it validates everything and raises InputError.
    """

    samples: np.ndarray
    sample_rate: int

    @property
    def channels(self) -> int:
        return self.samples.shape[0]

    @property
    def n_samples(self) -> int:
        return self.samples.shape[1]

    @property
    def duration(self) -> float:
        """Duration in seconds."""
        return self.n_samples / self.sample_rate

    @property
    def is_empty(self) -> bool:
        return self.n_samples == 0

    def to_mono(self) -> np.ndarray:
        """Downmix by averaging channels."""
        return np.mean(self.samples, axis=0)

    @classmethod
    def create(
        cls,
        samples: Union[np.ndarray, Sequence[float]],
        sample_rate: int,
        channels: Optional[int] = None,
    ) -> "PCMBuffer":
        """
        Validate and normalize a raw sample buffer.

        Args:
            samples: 1-D mono or interleaved samples, or a 2-D
                (channels, n) array
            sample_rate: Sample rate in Hz
            channels: Channel count; inferred from the array when omitted

        Returns:
            PCMBuffer with samples shaped (channels, n)

        Raises:
            InputError: If the buffer is malformed
        """
        if isinstance(sample_rate, bool) or not isinstance(sample_rate, (int, np.integer)):
            raise InputError(f"Sample rate must be an integer, got {sample_rate!r}")
        if sample_rate <= 0:
            raise InputError(f"Sample rate must be positive, got {sample_rate}")

        try:
            data = np.asarray(samples, dtype=np.float64)
        except (TypeError, ValueError) as e:
            raise InputError(f"Samples are not numeric: {e}") from e

        if data.ndim == 1:
            n_channels = 1 if channels is None else channels
            _check_channels(n_channels)
            if data.size % n_channels != 0:
                raise InputError(
                    f"{data.size} interleaved samples do not divide into {n_channels} channels"
                )
            data = data.reshape(-1, n_channels).T
        elif data.ndim == 2:
            _check_channels(data.shape[0])
            if channels is not None and channels != data.shape[0]:
                raise InputError(
                    f"Channel count {channels} does not match array with {data.shape[0]} rows"
                )
        else:
            raise InputError(f"Samples must be 1-D or 2-D, got {data.ndim} dimensions")

        if not np.all(np.isfinite(data)):
            raise InputError("Samples contain NaN or infinite values")

        data = np.array(data, order="C")
        data.setflags(write=False)
        return cls(samples=data, sample_rate=int(sample_rate))


def _check_channels(channels) -> None:
    if isinstance(channels, bool) or not isinstance(channels, (int, np.integer)):
        raise InputError(f"Channel count must be an integer, got {channels!r}")
    if channels < 1:
        raise InputError(f"Channel count must be at least 1, got {channels}")
    if channels > 2:
        raise InputError(f"Only mono and stereo input is supported, got {channels} channels")
