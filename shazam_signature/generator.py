"""
Streaming signature generator.

Samples are consumed in steps of 128. Every step appends one power
spectrum (2048-point Hanning-windowed FFT) to a 256-frame history,
spreads it in frequency then in time, and once enough history exists
runs peak recognition on the frame 46 steps behind.
"""

import logging

import numpy as np
from scipy.signal import windows

from shazam_signature.config import (
    AudioConfig,
    GeneratorConfig,
    RecognitionConfig,
    WireConfig,
)
from shazam_signature.errors import PeakVariationError, UnsupportedSampleRateError
from shazam_signature.logging_config import setup_logger
from shazam_signature.ring_buffer import RingBuffer
from shazam_signature.signature import FrequencyPeak, Signature, band_for_frequency

logger = setup_logger(__name__, level=logging.INFO)

# Symmetric 2050-point Hann window without its two zero endpoints
HANNING_WINDOW = windows.hann(GeneratorConfig.WINDOW_SIZE + 2, sym=True)[1:-1]

RECOGNITION_BINS = np.arange(RecognitionConfig.FIRST_BIN, RecognitionConfig.LAST_BIN + 1)


def power_spectrum(excerpt):
    """
    Windowed power spectrum of one 2048-sample excerpt.

    Args:
        excerpt: 2048 PCM samples in chronological order

    Returns:
        power: 1025 bins of |X|^2 / 2^17, floored at 1e-10
    """
    spectrum = np.fft.rfft(HANNING_WINDOW * np.asarray(excerpt, dtype=np.float64))
    power = (spectrum.real**2 + spectrum.imag**2) / GeneratorConfig.POWER_SCALE
    return np.maximum(power, GeneratorConfig.POWER_FLOOR)


def spread_frequency(frame):
    """3-bin running max; the last two bins keep their own value."""
    spread = frame.copy()
    width = RecognitionConfig.FREQ_SPREAD_WIDTH
    count = len(frame) - width + 1
    for shift in range(1, width):
        np.maximum(spread[:count], frame[shift:shift + count], out=spread[:count])
    return spread


def magnitude_code(power):
    """Log-scaled magnitude used by peak records."""
    return (
        np.log(max(RecognitionConfig.MIN_PEAK_POWER, power))
        * RecognitionConfig.MAGNITUDE_SCALE
        + RecognitionConfig.MAGNITUDE_OFFSET
    )


class SignatureGenerator:
    """
    Turns a stream of 16-bit mono PCM samples into signatures.

    Not thread-safe: one instance per recognition attempt.
    """

    def __init__(
        self,
        sample_rate_hz=AudioConfig.SAMPLE_RATE,
        max_time_seconds=GeneratorConfig.MAX_TIME_SECONDS,
        max_peaks=GeneratorConfig.MAX_PEAKS,
        strict=RecognitionConfig.STRICT_PEAK_VARIATION,
    ):
        """
        Args:
            sample_rate_hz: Rate of the fed samples (one of the wire rates)
            max_time_seconds: Signature duration limit
            max_peaks: Signature peak count limit
            strict: Raise PeakVariationError on a flat peak instead of skipping it
        """
        if sample_rate_hz not in WireConfig.SAMPLE_RATE_IDS:
            raise UnsupportedSampleRateError(f"Unsupported sample rate: {sample_rate_hz} Hz")

        self.sample_rate_hz = sample_rate_hz
        self.max_time_seconds = max_time_seconds
        self.max_peaks = max_peaks
        self.strict = strict

        self._pending = np.zeros(0, dtype=np.int16)
        self._cursor = 0
        self.samples_processed = 0

        self.reset()

    def reset(self):
        """Start a fresh signature with empty history."""
        self.next_signature = Signature(sample_rate_hz=self.sample_rate_hz)

        self.samples_ring = RingBuffer(GeneratorConfig.WINDOW_SIZE, 0, dtype=np.int16)
        empty_frame = np.zeros(GeneratorConfig.SPECTRUM_BINS)
        self.fft_outputs = RingBuffer(GeneratorConfig.FFT_HISTORY, empty_frame)
        self.spread_outputs = RingBuffer(GeneratorConfig.FFT_HISTORY, empty_frame)

    @property
    def pending_samples(self):
        """Number of fed samples not yet processed."""
        return len(self._pending) - self._cursor

    def feed_input(self, samples):
        """
        Queue signed 16-bit mono PCM samples; nothing is processed yet.

        Raises:
            TypeError: if the samples are not integers (convert float audio
                with audio_utils.to_pcm16 first)
        """
        samples = np.asarray(samples)
        if samples.size and not np.issubdtype(samples.dtype, np.integer):
            raise TypeError(f"Expected integer PCM samples, got {samples.dtype}")
        samples = samples.astype(np.int16).ravel()
        self._pending = np.concatenate([self._pending[self._cursor:], samples])
        self._cursor = 0
        logger.debug(f"Fed {len(samples)} samples, {self.pending_samples} pending")

    def is_full(self):
        signature = self.next_signature
        return (
            signature.number_samples / signature.sample_rate_hz >= self.max_time_seconds
            or signature.num_peaks >= self.max_peaks
        )

    def get_next_signature(self):
        """
        Process pending samples until the signature is full or input runs out.

        Returns:
            signature: Completed Signature, or None when fewer than 128
                samples are pending (nothing is consumed in that case)

        Raises:
            PeakVariationError: in strict mode; the generator is reset first
        """
        step = GeneratorConfig.STEP_SIZE

        if self.pending_samples < step:
            logger.debug(f"Only {self.pending_samples} samples pending, need {step}")
            return None

        try:
            while self.pending_samples >= step and not self.is_full():
                chunk = self._pending[self._cursor:self._cursor + step]
                self._cursor += step
                self.samples_processed += step
                self.process_input(chunk)
        except PeakVariationError:
            logger.error(
                f"Peak recognition failed after {self.next_signature.number_samples} "
                f"samples, discarding signature"
            )
            self.reset()
            raise

        signature = self.next_signature
        self.reset()

        logger.debug(
            f"Signature ready: {signature.number_samples} samples, "
            f"{signature.num_peaks} peaks, {self.pending_samples} samples left"
        )
        return signature

    def process_input(self, samples):
        """Run one 128-sample step through the whole pipeline."""
        self.next_signature.number_samples += len(samples)
        self.do_fft(samples)
        self.do_peak_spreading()
        if self.spread_outputs.num_written >= RecognitionConfig.MIN_SPREAD_FRAMES:
            self.do_peak_recognition()

    def do_fft(self, samples):
        self.samples_ring.extend(samples)
        self.fft_outputs.append(power_spectrum(self.samples_ring.latest()))

    def do_peak_spreading(self):
        spread = spread_frequency(self.fft_outputs.get(1))

        # Each older frame takes the running max, so spreading carries forward
        running = spread
        for offset in RecognitionConfig.TIME_SPREAD_OFFSETS:
            former = self.spread_outputs.relative(offset)
            np.maximum(running, former, out=former)
            running = former

        self.spread_outputs.append(spread)

    def do_peak_recognition(self):
        fft_frame = self.fft_outputs.get(RecognitionConfig.RAW_FRAME_LAG)
        spread_frame = self.spread_outputs.get(RecognitionConfig.SPREAD_FRAME_LAG)

        bins = RECOGNITION_BINS
        power = fft_frame[bins]

        candidates = (power >= RecognitionConfig.MIN_PEAK_POWER) & (
            power >= spread_frame[bins - 1]
        )

        freq_neighbors = np.max(
            [spread_frame[bins + offset] for offset in RecognitionConfig.FREQ_NEIGHBOR_OFFSETS],
            axis=0,
        )
        time_neighbors = np.max(
            [
                self.spread_outputs.relative(offset)[bins - 1]
                for offset in RecognitionConfig.TIME_NEIGHBOR_OFFSETS
            ],
            axis=0,
        )
        candidates &= power > np.maximum(freq_neighbors, time_neighbors)

        fft_pass_number = self.spread_outputs.num_written - RecognitionConfig.RAW_FRAME_LAG

        for bin_position in bins[candidates]:
            self._record_peak(fft_frame, int(bin_position), fft_pass_number)

    def _record_peak(self, fft_frame, bin_position, fft_pass_number):
        peak_magnitude = magnitude_code(fft_frame[bin_position])
        magnitude_before = magnitude_code(fft_frame[bin_position - 1])
        magnitude_after = magnitude_code(fft_frame[bin_position + 1])

        variation_1 = peak_magnitude * 2 - magnitude_before - magnitude_after
        if variation_1 <= 0:
            if self.strict:
                raise PeakVariationError(
                    f"Non-positive peak variation {variation_1} at bin {bin_position}"
                )
            return

        variation_2 = (
            (magnitude_after - magnitude_before)
            * RecognitionConfig.VARIATION_SCALE
            / variation_1
        )
        corrected_bin = int(bin_position * RecognitionConfig.BIN_SUBDIVISIONS + variation_2)

        peak = FrequencyPeak(
            fft_pass_number=fft_pass_number,
            peak_magnitude=int(peak_magnitude),
            corrected_peak_frequency_bin=corrected_bin,
            sample_rate_hz=self.sample_rate_hz,
        )

        band = band_for_frequency(peak.get_frequency_hz())
        if band is None:
            return

        self.next_signature.add_peak(band, peak)
