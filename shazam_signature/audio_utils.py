import logging

import librosa
import numpy as np

from shazam_signature.config import AudioConfig as Config
from shazam_signature.logging_config import setup_logger

logger = setup_logger(__name__, level=logging.INFO)


def load_audio(filepath, sr=Config.SAMPLE_RATE):
    """
    Load audio file and convert to mono at target sample rate.

    Args:
        filepath: Path to audio file (wav, mp3, etc.)
        sr: Target sample rate

    Returns:
        audio: float32 numpy array in [-1.0, 1.0]
        sr: sample rate
    """
    audio, sr = librosa.load(filepath, sr=sr, mono=True)
    logger.info(f"✓ Loaded with librosa: {filepath}")

    duration = len(audio) / sr
    logger.info(f"  Duration: {duration:.2f} seconds")
    logger.info(f"  Sample rate: {sr} Hz")
    logger.info(f"  Samples: {len(audio)}")

    return audio, sr


def to_pcm16(audio):
    """
    Convert float audio to signed 16-bit PCM.

    Args:
        audio: Float samples nominally in [-1.0, 1.0]

    Returns:
        samples: int16 numpy array (out-of-range values are clipped)
    """
    scaled = np.asarray(audio, dtype=np.float64) * Config.PCM_FULL_SCALE
    return np.clip(np.round(scaled), -32768, 32767).astype(np.int16)


def load_pcm16(filepath):
    """Load an audio file as 16 kHz mono int16 samples ready for the generator."""
    audio, sr = load_audio(filepath)
    return to_pcm16(audio), sr
