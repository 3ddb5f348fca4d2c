"""Base classes for transcription."""

from abc import ABC, abstractmethod
from typing import List, Union

from ..core import Hit, Note
from ..input import AudioFrames


class Transcriber(ABC):
    """Abstract base class for per-stem transcription."""

    @abstractmethod
    def transcribe(self, frames: AudioFrames) -> List[Union[Note, Hit]]:
        """
        Transcribe one stem's frames into events.

        Args:
            frames: Windowed analysis frames of a single stem

        Returns:
            Events sorted by time
        """
        pass
