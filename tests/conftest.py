"""Shared synthetic-audio fixtures."""

import numpy as np
import pytest
from scipy.signal import butter, sosfilt

from track_analyzer.core import DEFAULT_SR


def tone(freq, duration=1.0, sr=DEFAULT_SR, amplitude=0.5, fade=0.01):
    """Sine tone with short raised-cosine fades at both ends."""
    t = np.arange(int(sr * duration)) / sr
    signal = amplitude * np.sin(2 * np.pi * freq * t)
    n_fade = int(sr * fade)
    if n_fade:
        ramp = 0.5 - 0.5 * np.cos(np.linspace(0, np.pi, n_fade))
        signal[:n_fade] *= ramp
        signal[-n_fade:] *= ramp[::-1]
    return signal


def kick(sr=DEFAULT_SR, duration=0.3):
    t = np.arange(int(sr * duration)) / sr
    return 0.8 * np.sin(2 * np.pi * 60 * t) * np.exp(-t / 0.08)


def hihat(rng, sr=DEFAULT_SR, duration=0.1):
    n = int(sr * duration)
    sos = butter(4, 7000, btype="highpass", fs=sr, output="sos")
    noise = sosfilt(sos, rng.standard_normal(n))
    noise *= np.exp(-np.arange(n) / (sr * 0.03))
    return 0.5 * noise / np.max(np.abs(noise))


def snare(rng, sr=DEFAULT_SR, duration=0.2):
    n = int(sr * duration)
    t = np.arange(n) / sr
    sos = butter(4, 4000, btype="lowpass", fs=sr, output="sos")
    noise = sosfilt(sos, rng.standard_normal(n))
    noise = 0.4 * noise / np.std(noise)
    body = 0.3 * np.sin(2 * np.pi * 180 * t)
    signal = (noise + body) * np.exp(-t / 0.1)
    return 0.6 * signal / np.max(np.abs(signal))


def place(events, duration, sr=DEFAULT_SR):
    """Mix (time, signal) pairs into a silent buffer."""
    out = np.zeros(int(sr * duration))
    for time, signal in events:
        start = int(time * sr)
        stop = min(len(out), start + len(signal))
        out[start:stop] += signal[:stop - start]
    return out


@pytest.fixture
def sample_rate():
    return DEFAULT_SR


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def sine_440(sample_rate):
    return tone(440.0, duration=1.0, sr=sample_rate)


@pytest.fixture
def bass_82(sample_rate):
    return tone(82.41, duration=2.0, sr=sample_rate)


@pytest.fixture
def drum_pattern(rng, sample_rate):
    """Kick at 0.2s, hihat at 0.7s, snare at 1.2s."""
    return place(
        [
            (0.2, kick(sample_rate)),
            (0.7, hihat(rng, sample_rate)),
            (1.2, snare(rng, sample_rate)),
        ],
        duration=1.6,
        sr=sample_rate,
    )
