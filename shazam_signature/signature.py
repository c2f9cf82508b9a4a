"""
Signature data model: frequency bands, peaks and the aggregate signature.
"""

from dataclasses import dataclass, field
from enum import IntEnum
from math import exp, sqrt
from typing import Dict, List, Optional

from shazam_signature.config import GeneratorConfig, RecognitionConfig


class FrequencyBand(IntEnum):
    """Frequency ranges used to bucket peaks; values are wire band indices."""

    BELOW_250 = -1  # never stored
    BAND_250_520 = 0
    BAND_520_1450 = 1
    BAND_1450_3500 = 2
    BAND_3500_5500 = 3

    @property
    def label(self) -> str:
        return self.name.replace("BAND_", "").lower()


def band_for_frequency(frequency_hz: float) -> Optional[FrequencyBand]:
    """
    Classify a corrected peak frequency.

    Returns None for frequencies that are not stored: at or below 250 Hz,
    or above 5500 Hz.
    """
    if frequency_hz <= 250:
        return None
    if frequency_hz < 520:
        return FrequencyBand.BAND_250_520
    if frequency_hz < 1450:
        return FrequencyBand.BAND_520_1450
    if frequency_hz < 3500:
        return FrequencyBand.BAND_1450_3500
    if frequency_hz <= 5500:
        return FrequencyBand.BAND_3500_5500
    return None


@dataclass(frozen=True)
class FrequencyPeak:
    """A single spectral peak observed at one FFT pass."""

    fft_pass_number: int
    peak_magnitude: int
    corrected_peak_frequency_bin: int
    sample_rate_hz: int

    def get_frequency_hz(self) -> float:
        """Sub-bin corrected frequency in Hz."""
        return self.corrected_peak_frequency_bin * (
            self.sample_rate_hz / 2 / 1024 / RecognitionConfig.BIN_SUBDIVISIONS
        )

    def get_amplitude_pcm(self) -> float:
        """Amplitude in 16-bit PCM units, recovered from the log magnitude."""
        return (
            sqrt(
                exp(
                    (self.peak_magnitude - RecognitionConfig.MAGNITUDE_OFFSET)
                    / RecognitionConfig.MAGNITUDE_SCALE
                )
                * GeneratorConfig.POWER_SCALE
                / 2
            )
            / 1024
        )

    def get_seconds(self) -> float:
        """Time of the FFT pass from the start of the signature."""
        return self.fft_pass_number * GeneratorConfig.STEP_SIZE / self.sample_rate_hz

    def as_tuple(self):
        return (
            self.fft_pass_number,
            self.peak_magnitude,
            self.corrected_peak_frequency_bin,
        )


@dataclass
class Signature:
    """
    Peak-based audio signature.

    Owned by a SignatureGenerator while it accumulates, then handed to the
    caller. Peaks are kept per band in detection order.
    """

    sample_rate_hz: int
    number_samples: int = 0
    peaks_by_band: Dict[FrequencyBand, List[FrequencyPeak]] = field(
        default_factory=dict
    )

    @property
    def num_peaks(self) -> int:
        return sum(len(peaks) for peaks in self.peaks_by_band.values())

    @property
    def seconds(self) -> float:
        return self.number_samples / self.sample_rate_hz

    @property
    def sample_ms(self) -> int:
        return int(self.number_samples / self.sample_rate_hz * 1000)

    def add_peak(self, band: FrequencyBand, peak: FrequencyPeak) -> None:
        self.peaks_by_band.setdefault(band, []).append(peak)

    def to_dict(self) -> dict:
        """JSON-friendly view with derived values prefixed by underscores."""
        return {
            "sample_rate_hz": self.sample_rate_hz,
            "number_samples": self.number_samples,
            "_seconds": self.seconds,
            "frequency_band_to_peaks": {
                band.label: [
                    {
                        "fft_pass_number": peak.fft_pass_number,
                        "peak_magnitude": peak.peak_magnitude,
                        "corrected_peak_frequency_bin": peak.corrected_peak_frequency_bin,
                        "_frequency_hz": peak.get_frequency_hz(),
                        "_amplitude_pcm": peak.get_amplitude_pcm(),
                        "_seconds": peak.get_seconds(),
                    }
                    for peak in peaks
                ]
                for band, peaks in sorted(self.peaks_by_band.items())
            },
        }

