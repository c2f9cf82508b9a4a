"""
Pytest configuration and shared fixtures.

This module provides:
- Common fixtures for signatures and synthetic audio
- Helper functions for test data creation
- Constants used across tests
"""
import os

os.environ.setdefault("MPLBACKEND", "Agg")

import io
from pathlib import Path

import numpy as np
import pytest
from scipy.io import wavfile

from shazam_signature.signature import FrequencyBand, FrequencyPeak, Signature

# Test constants
TEST_SAMPLE_RATE = 16000
STEP_SIZE = 128
# 3.1 s rounded up to whole 128-sample steps
FULL_SIGNATURE_SAMPLES = 388 * STEP_SIZE
BURST_FREQUENCY = 1000.78  # Hz, just above bin 128
BURST_CENTER = 16500  # samples
INT16_FULL_SCALE = 32768.0


def create_silence(num_samples):
    return np.zeros(num_samples, dtype=np.int16)


def create_tone_burst(
    total_samples=3 * TEST_SAMPLE_RATE,
    center=BURST_CENTER,
    length=1000,
    frequency=BURST_FREQUENCY,
    amplitude=0.5,
    sample_rate=TEST_SAMPLE_RATE,
):
    """
    Silence with one short sine burst.

    Args:
        total_samples: Length of the returned signal
        center: Sample index of the burst centre
        length: Burst length in samples
        frequency: Tone frequency in Hz
        amplitude: Amplitude (0.0 to 1.0)
        sample_rate: Sample rate in Hz

    Returns:
        int16 array of audio samples
    """
    samples = np.zeros(total_samples, dtype=np.float64)
    start = center - length // 2
    t = np.arange(length) / sample_rate
    samples[start:start + length] = np.sin(2 * np.pi * frequency * t)
    return (samples * amplitude * INT16_FULL_SCALE).astype(np.int16)


def create_noise(num_samples, amplitude=0.3, seed=0):
    rng = np.random.default_rng(seed)
    noise = rng.uniform(-1.0, 1.0, num_samples) * amplitude * INT16_FULL_SCALE
    return noise.astype(np.int16)


def wav_bytes(samples, sample_rate=TEST_SAMPLE_RATE):
    """Encode int16 samples as an in-memory WAV file."""
    buf = io.BytesIO()
    wavfile.write(buf, sample_rate, np.asarray(samples, dtype=np.int16))
    return buf.getvalue()


def peak_tuples(signature):
    return {
        band: [peak.as_tuple() for peak in peaks]
        for band, peaks in signature.peaks_by_band.items()
    }


@pytest.fixture
def sample_signature():
    """Signature with peaks in every band, large pass gaps and one empty band."""
    sr = TEST_SAMPLE_RATE
    signature = Signature(sample_rate_hz=sr, number_samples=49664)
    signature.peaks_by_band = {
        FrequencyBand.BAND_250_520: [
            FrequencyPeak(3, 5120, 2100, sr),
            FrequencyPeak(3, 5300, 3900, sr),
            FrequencyPeak(257, 6000, 4000, sr),  # delta 254
            FrequencyPeak(600, 6100, 4200, sr),  # delta 343
        ],
        FrequencyBand.BAND_520_1450: [
            FrequencyPeak(0, 7000, 8192, sr),
            FrequencyPeak(255, 7100, 9000, sr),  # delta exactly 255
        ],
        FrequencyBand.BAND_1450_3500: [],
        FrequencyBand.BAND_3500_5500: [
            FrequencyPeak(100000, 65535, 45000, sr),
        ],
    }
    return signature


@pytest.fixture
def tone_burst():
    return create_tone_burst()


@pytest.fixture
def wav_file(tmp_path):
    """Temporary WAV file holding a tone burst."""
    path = tmp_path / "burst.wav"
    path.write_bytes(wav_bytes(create_tone_burst()))
    return path
