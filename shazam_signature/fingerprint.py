import logging

from shazam_signature.audio_utils import load_pcm16
from shazam_signature.codec import encode_to_uri
from shazam_signature.config import AudioConfig, GeneratorConfig
from shazam_signature.generator import SignatureGenerator
from shazam_signature.logging_config import setup_logger
from shazam_signature.signature import FrequencyBand

logger = setup_logger(__name__, level=logging.INFO)


def iter_signatures(
    samples,
    sample_rate_hz=AudioConfig.SAMPLE_RATE,
    max_time_seconds=GeneratorConfig.MAX_TIME_SECONDS,
    max_peaks=GeneratorConfig.MAX_PEAKS,
):
    """
    Cut a PCM recording into consecutive signatures.

    Args:
        samples: int16 mono samples
        sample_rate_hz: Sample rate of `samples`
        max_time_seconds: Duration limit per signature
        max_peaks: Peak limit per signature

    Yields:
        (offset_seconds, signature): start time of each signature in the
        recording, and the signature itself
    """
    generator = SignatureGenerator(
        sample_rate_hz=sample_rate_hz,
        max_time_seconds=max_time_seconds,
        max_peaks=max_peaks,
    )
    generator.feed_input(samples)

    while True:
        offset = generator.samples_processed / sample_rate_hz
        signature = generator.get_next_signature()
        if signature is None:
            return
        yield offset, signature


def summarize_signature(signature):
    """
    Peak counts per band and duration of a signature.

    Returns:
        summary: Dict with seconds, num_peaks and a per-band count
    """
    return {
        "seconds": signature.seconds,
        "num_peaks": signature.num_peaks,
        "peaks_per_band": {
            band.label: len(signature.peaks_by_band.get(band, []))
            for band in FrequencyBand
            if band >= 0
        },
    }


def fingerprint_audio(audio_path, visualize=False, save_plot=None, **generator_options):
    """
    Complete pipeline: load audio → generate signatures.

    Args:
        audio_path: Path to audio file
        visualize: Whether to plot the first signature
        save_plot: Path to save visualization
        **generator_options: Forwarded to iter_signatures

    Returns:
        signatures: List of (offset_seconds, Signature) tuples
        metadata: Dict with additional info
    """
    logger.info(f"\n{'='*60}")
    logger.info(f"Generating Signatures")
    logger.info(f"{'='*60}")

    logger.info("\n[1/2] Loading audio...")
    samples, sr = load_pcm16(audio_path)

    logger.info("\n[2/2] Extracting signatures...")
    signatures = list(iter_signatures(samples, sample_rate_hz=sr, **generator_options))

    for offset, signature in signatures:
        summary = summarize_signature(signature)
        logger.info(
            f"  @{offset:6.2f}s  {summary['seconds']:.2f}s  "
            f"{summary['num_peaks']} peaks  {summary['peaks_per_band']}"
        )

    if visualize and signatures:
        from shazam_signature.visualize import visualize_signature

        logger.info("\n[Visualizing] Generating signature peak plot...")
        visualize_signature(signatures[0][1], save_path=save_plot)

    duration = len(samples) / sr
    metadata = {
        "duration": duration,
        "num_samples": len(samples),
        "num_signatures": len(signatures),
        "num_peaks": sum(signature.num_peaks for _, signature in signatures),
    }

    logger.info(f"\n{'='*60}")
    logger.info(f"✓ Signature generation complete!")
    logger.info(f"  File: {audio_path}")
    logger.info(f"  Duration: {metadata['duration']:.2f}s")
    logger.info(f"  Signatures: {metadata['num_signatures']}")
    logger.info(f"  Peaks: {metadata['num_peaks']}")
    logger.info(f"{'='*60}\n")

    return signatures, metadata


if __name__ == "__main__":
    """
    Generate signatures for a sample audio file and print the first URI.
    """

    AUDIO_FILE = "./data/queries/sample1.wav"
    SAVE_PLOT = "signature_peaks.png"

    signatures, metadata = fingerprint_audio(
        AUDIO_FILE, visualize=True, save_plot=SAVE_PLOT
    )
    if signatures:
        print(encode_to_uri(signatures[0][1]))
