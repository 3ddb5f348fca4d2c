"""Global constants for Track Analyzer."""

# Pitch names
PITCH_NAMES = ["C", "C#", "D", "D#", "E", "F", "F#", "G", "G#", "A", "A#", "B"]

# Audio processing defaults
DEFAULT_SR = 22050
DEFAULT_FRAME_LENGTH = 2048
DEFAULT_HOP_LENGTH = 512
DEFAULT_WINDOW = "hann"

# Pitch search range (Hz)
DEFAULT_FMIN = 40.0  # just below E1
DEFAULT_FMAX = 2000.0

# Level mapping
SILENCE_RMS = 1e-4
VELOCITY_RANGE_DB = 60.0

# MIDI ranges
MIDI_MIN = 0
MIDI_MAX = 127
