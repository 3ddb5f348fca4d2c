"""Input layer - PCM buffer validation and framing.

Decoding files or remote sources into samples is left to the caller; this
layer starts from a decoded buffer.
"""

from .buffer import PCMBuffer
from .preprocess import AudioFrames, Preprocessor, make_frames

__all__ = [
    "PCMBuffer",
    "AudioFrames",
    "Preprocessor",
    "make_frames",
]
