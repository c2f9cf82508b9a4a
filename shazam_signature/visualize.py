import matplotlib.pyplot as plt
import numpy as np

from shazam_signature.signature import FrequencyBand

BAND_COLORS = {
    FrequencyBand.BAND_250_520: "tab:blue",
    FrequencyBand.BAND_520_1450: "tab:green",
    FrequencyBand.BAND_1450_3500: "tab:orange",
    FrequencyBand.BAND_3500_5500: "tab:red",
}


def visualize_signature(signature, save_path=None, title=None):
    """
    Plot the signature's peaks as a constellation map.
    Each band gets its own colour; marker size follows PCM amplitude.

    Args:
        signature: Signature instance
        save_path: Optional path to save figure (shown interactively otherwise)
        title: Optional plot title

    Returns:
        fig: matplotlib Figure
    """
    fig, ax = plt.subplots(figsize=(14, 6))

    for band, peaks in sorted(signature.peaks_by_band.items()):
        if not peaks:
            continue

        times = [peak.get_seconds() for peak in peaks]
        freqs = [peak.get_frequency_hz() for peak in peaks]
        amplitudes = np.array([peak.get_amplitude_pcm() for peak in peaks])

        # Scale marker area into a readable range
        sizes = 10 + 60 * amplitudes / max(amplitudes.max(), 1e-9)

        ax.scatter(
            times,
            freqs,
            s=sizes,
            color=BAND_COLORS.get(band, "gray"),
            alpha=0.7,
            label=f"{band.label} Hz ({len(peaks)})",
        )

    for boundary in (250, 520, 1450, 3500, 5500):
        ax.axhline(boundary, color="gray", linestyle="--", linewidth=0.5, alpha=0.5)

    ax.set_xlim(0, max(signature.seconds, 0.1))
    ax.set_ylim(0, 6000)
    ax.set_xlabel("Time (s)")
    ax.set_ylabel("Frequency (Hz)")
    ax.set_title(
        title
        or f"Signature Peaks ({signature.num_peaks} peaks, {signature.seconds:.2f}s)"
    )
    ax.grid(True, alpha=0.3)
    if signature.num_peaks:
        ax.legend(loc="upper right")

    plt.tight_layout()

    if save_path:
        plt.savefig(save_path, dpi=150, bbox_inches="tight")
        print(f"✓ Saved visualization to {save_path}")
    else:
        plt.show()

    return fig
