"""Shared fixtures for band power analysis tests."""

from pathlib import Path
from typing import Callable, Iterable, Union

import numpy as np
import pytest
import soundfile as sf

from bandstat.core.engine import BandPowerEngine
from bandstat.core.models import SampleStream


SAMPLE_RATE = 48000


# ---------------------------------------------------------------------------
# Signal generators
# ---------------------------------------------------------------------------


def sine(
    frequency: float,
    duration: float = 5.0,
    sample_rate: int = SAMPLE_RATE,
    amplitude: float = 0.5,
) -> np.ndarray:
    t = np.arange(int(duration * sample_rate)) / sample_rate
    return amplitude * np.sin(2.0 * np.pi * frequency * t)


def mix(
    frequencies: Iterable[float],
    duration: float = 5.0,
    sample_rate: int = SAMPLE_RATE,
    amplitude: float = 0.25,
) -> np.ndarray:
    return sum(sine(f, duration, sample_rate, amplitude) for f in frequencies)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def make_stream() -> Callable[..., SampleStream]:
    """Factory: tone (Hz), tone list or raw array -> SampleStream."""

    def _make(
        source: Union[float, Iterable[float], np.ndarray],
        duration: float = 5.0,
        sample_rate: int = SAMPLE_RATE,
        channels: int = 1,
        name: str = "test",
    ) -> SampleStream:
        if isinstance(source, np.ndarray):
            signal = source
        elif isinstance(source, (int, float)):
            signal = sine(source, duration, sample_rate)
        else:
            signal = mix(source, duration, sample_rate)
        samples = np.repeat(signal.reshape(-1, 1), channels, axis=1)
        return SampleStream(samples, sample_rate, channels, name)

    return _make


@pytest.fixture
def noise() -> np.ndarray:
    """Three seconds of deterministic white noise at 48 kHz."""
    rng = np.random.default_rng(1234)
    return 0.1 * rng.standard_normal(3 * SAMPLE_RATE)


@pytest.fixture
def engine():
    """Engine with default settings, shut down after the test."""
    with BandPowerEngine(max_workers=2) as eng:
        yield eng


@pytest.fixture
def write_wav(tmp_path) -> Callable[..., Path]:
    """Factory: write a signal to a WAV file under tmp_path."""

    def _write(
        name: str,
        signal: np.ndarray,
        sample_rate: int = SAMPLE_RATE,
        **kwargs,
    ):
        path = tmp_path / name
        sf.write(str(path), signal, sample_rate, **kwargs)
        return path

    return _write


@pytest.fixture
def sine_wave() -> Callable[..., np.ndarray]:
    """The sine generator, for tests that build signals by hand."""
    return sine
