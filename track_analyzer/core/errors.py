"""Exception and warning types raised by the transcription core."""


class TrackAnalyzerError(Exception):
    """Base class for track analyzer errors."""


class InputError(TrackAnalyzerError, ValueError):
    """The PCM buffer is malformed; nothing downstream runs."""


class ConfigError(TrackAnalyzerError, ValueError):
    """A configuration value or key is invalid."""


class TranscriptionCancelled(TrackAnalyzerError):
    """A cancellation request was honored at a stage boundary."""


class SeparationDegenerate(RuntimeWarning):
    """Separation produced NaN or negative energy that was clamped to zero."""
