"""
Binary signature codec.

Layout (little-endian):
    48-byte header, 8-byte inner TLV header, then one TLV record per band
    (tag, length, peak records, zero padding to 4 bytes).

Peak records: one delta byte followed by u16 magnitude and u16 bin, or
0xFF followed by an absolute i32 FFT pass number.
"""

import base64
import binascii
import logging
import struct
from dataclasses import dataclass

from shazam_signature.config import WireConfig
from shazam_signature.crc import crc32
from shazam_signature.errors import (
    ChecksumMismatchError,
    InvalidHeaderError,
    InvalidUriError,
    MalformedSignatureError,
    UnsupportedSampleRateError,
)
from shazam_signature.logging_config import setup_logger
from shazam_signature.signature import FrequencyBand, FrequencyPeak, Signature

logger = setup_logger(__name__, level=logging.INFO)

# Byte offset of every meaningful u32 header field; the rest is zero
HEADER_FIELD_OFFSETS = {
    "magic1": 0,
    "crc32": 4,
    "size_minus_header": 8,
    "magic2": 12,
    "sample_rate_id": 28,
    "samples_plus_scaled_rate": 40,
    "magic3": 44,
}

CRC_OFFSET = HEADER_FIELD_OFFSETS["crc32"]
CHECKSUMMED_FROM = CRC_OFFSET + 4

SAMPLE_RATES_BY_ID = {
    rate_id: rate for rate, rate_id in WireConfig.SAMPLE_RATE_IDS.items()
}

VALID_BANDS = tuple(band for band in FrequencyBand if band >= 0)

_U32 = struct.Struct("<I")
_I32 = struct.Struct("<i")
_TLV = struct.Struct("<II")
_PEAK = struct.Struct("<BHH")


def scaled_sample_rate(sample_rate_hz):
    """Integer part of sample_rate * 0.24 added to the stored sample count."""
    return int(sample_rate_hz * WireConfig.SAMPLE_COUNT_RATE_FACTOR)


@dataclass
class RawHeader:
    """The 48-byte signature header, read and written field by field."""

    magic1: int = WireConfig.MAGIC1
    crc32: int = 0
    size_minus_header: int = 0
    magic2: int = WireConfig.MAGIC2
    sample_rate_id: int = 0
    samples_plus_scaled_rate: int = 0
    magic3: int = WireConfig.MAGIC3

    @classmethod
    def from_bytes(cls, data):
        if len(data) < WireConfig.HEADER_SIZE:
            raise InvalidHeaderError(
                f"Signature is {len(data)} bytes, header needs {WireConfig.HEADER_SIZE}"
            )
        values = {
            name: _U32.unpack_from(data, offset)[0]
            for name, offset in HEADER_FIELD_OFFSETS.items()
        }
        return cls(**values)

    def to_bytes(self):
        buf = bytearray(WireConfig.HEADER_SIZE)
        for name, offset in HEADER_FIELD_OFFSETS.items():
            _U32.pack_into(buf, offset, getattr(self, name))
        return buf


def _padding(length):
    return -length % 4


def _encode_band_peaks(peaks):
    """Serialize one band's peaks as delta records with absolute resyncs."""
    payload = bytearray()
    fft_pass = 0

    for peak in peaks:
        delta = peak.fft_pass_number - fft_pass
        if delta >= WireConfig.ABSOLUTE_PASS_MARKER or delta < 0:
            payload.append(WireConfig.ABSOLUTE_PASS_MARKER)
            payload += _I32.pack(peak.fft_pass_number)
            fft_pass = peak.fft_pass_number
            delta = 0

        try:
            payload += _PEAK.pack(
                delta, peak.peak_magnitude, peak.corrected_peak_frequency_bin
            )
        except struct.error as e:
            raise MalformedSignatureError(f"Peak does not fit the wire format: {peak}") from e
        fft_pass = peak.fft_pass_number

    return payload


def _decode_band_peaks(payload, sample_rate_hz):
    peaks = []
    fft_pass = 0
    position = 0

    try:
        while position < len(payload):
            offset = payload[position]
            position += 1

            if offset == WireConfig.ABSOLUTE_PASS_MARKER:
                fft_pass = _I32.unpack_from(payload, position)[0]
                position += _I32.size
                continue

            fft_pass += offset
            magnitude, frequency_bin = struct.unpack_from("<HH", payload, position)
            position += 4
            peaks.append(FrequencyPeak(fft_pass, magnitude, frequency_bin, sample_rate_hz))
    except struct.error as e:
        raise MalformedSignatureError("Truncated peak record") from e

    return peaks


def encode_signature(signature):
    """
    Encode a Signature into its binary wire format.

    Bands are written in ascending band order; every band present in the
    signature gets a record, even when it holds no peaks.

    Args:
        signature: Signature instance

    Returns:
        data: bytes
    """
    try:
        sample_rate_id = WireConfig.SAMPLE_RATE_IDS[signature.sample_rate_hz]
    except KeyError:
        raise UnsupportedSampleRateError(
            f"Unsupported sample rate: {signature.sample_rate_hz} Hz"
        ) from None

    contents = bytearray()
    for band, peaks in sorted(signature.peaks_by_band.items()):
        if band not in VALID_BANDS:
            raise MalformedSignatureError(f"Band {band!r} cannot be encoded")

        payload = _encode_band_peaks(peaks)
        contents += _TLV.pack(WireConfig.BAND_TAG_BASE + int(band), len(payload))
        contents += payload
        contents += bytes(_padding(len(payload)))

    size_minus_header = len(contents) + WireConfig.CONTENTS_HEADER_SIZE

    header = RawHeader(
        size_minus_header=size_minus_header,
        sample_rate_id=sample_rate_id,
        samples_plus_scaled_rate=signature.number_samples
        + scaled_sample_rate(signature.sample_rate_hz),
    )

    data = header.to_bytes()
    data += _TLV.pack(WireConfig.CONTENTS_TAG, size_minus_header)
    data += contents

    # Checksum covers the fully assembled buffer after the crc field
    _U32.pack_into(data, CRC_OFFSET, crc32(data[CHECKSUMMED_FROM:]))

    logger.debug(
        f"Encoded signature: {len(data)} bytes, {signature.num_peaks} peaks, "
        f"{signature.number_samples} samples"
    )
    return bytes(data)


def decode_signature(data):
    """
    Decode a binary signature.

    Args:
        data: bytes from encode_signature or the recognition service

    Returns:
        signature: Signature instance

    Raises:
        InvalidHeaderError: short buffer, bad magic or size mismatch
        ChecksumMismatchError: CRC-32 does not match
        UnsupportedSampleRateError: unknown sample-rate id
        MalformedSignatureError: bad band tag or truncated records
    """
    data = bytes(data)
    header = RawHeader.from_bytes(data)

    if header.magic1 != WireConfig.MAGIC1 or header.magic2 != WireConfig.MAGIC2:
        logger.warning(
            f"Rejecting signature with magics {header.magic1:#010x}/{header.magic2:#010x}"
        )
        raise InvalidHeaderError("Invalid header magic")

    checksum = crc32(data[CHECKSUMMED_FROM:])
    if checksum != header.crc32:
        logger.warning(f"CRC mismatch: stored {header.crc32:#010x}, computed {checksum:#010x}")
        raise ChecksumMismatchError("CRC-32 mismatch")

    if header.size_minus_header != len(data) - WireConfig.HEADER_SIZE:
        raise InvalidHeaderError(
            f"Header size {header.size_minus_header} does not match "
            f"payload size {len(data) - WireConfig.HEADER_SIZE}"
        )

    sample_rate_hz = SAMPLE_RATES_BY_ID.get(header.sample_rate_id)
    if sample_rate_hz is None:
        raise UnsupportedSampleRateError(
            f"Unknown sample rate id: {header.sample_rate_id:#010x}"
        )

    signature = Signature(
        sample_rate_hz=sample_rate_hz,
        number_samples=header.samples_plus_scaled_rate
        - scaled_sample_rate(sample_rate_hz),
    )

    position = WireConfig.HEADER_SIZE + WireConfig.CONTENTS_HEADER_SIZE
    if position > len(data):
        raise MalformedSignatureError("Missing contents header")

    while position < len(data):
        if position + _TLV.size > len(data):
            raise MalformedSignatureError("Truncated band record header")

        band_tag, length = _TLV.unpack_from(data, position)
        position += _TLV.size

        band_index = band_tag - WireConfig.BAND_TAG_BASE
        if band_index not in VALID_BANDS:
            raise MalformedSignatureError(f"Unknown band tag: {band_tag:#010x}")

        if position + length > len(data):
            raise MalformedSignatureError("Truncated band payload")

        payload = data[position:position + length]
        position += length + _padding(length)

        signature.peaks_by_band[FrequencyBand(band_index)] = _decode_band_peaks(
            payload, sample_rate_hz
        )

    logger.debug(
        f"Decoded signature: {sample_rate_hz} Hz, {signature.number_samples} samples, "
        f"{signature.num_peaks} peaks"
    )
    return signature


def encode_to_uri(signature):
    """Encode a Signature as a base64 data URI."""
    encoded = base64.b64encode(encode_signature(signature)).decode("ascii")
    return WireConfig.DATA_URI_PREFIX + encoded


def decode_from_uri(uri):
    """Decode a Signature from its base64 data URI."""
    if not isinstance(uri, str) or not uri.startswith(WireConfig.DATA_URI_PREFIX):
        raise InvalidUriError("Not a signature data URI")

    try:
        data = base64.b64decode(uri[len(WireConfig.DATA_URI_PREFIX):], validate=True)
    except binascii.Error as e:
        raise InvalidUriError(f"Invalid base64 payload: {e}") from e

    return decode_signature(data)
