"""
Tests for shazam_signature.codec.

Tests the binary wire format including:
- Round trips
- Header fields and checksum
- Rejection of corrupted buffers
- Data URI wrapping
"""
import base64
import struct
import zlib

import pytest

from shazam_signature.codec import (
    RawHeader,
    decode_from_uri,
    decode_signature,
    encode_signature,
    encode_to_uri,
    scaled_sample_rate,
)
from shazam_signature.config import WireConfig
from shazam_signature.errors import (
    ChecksumMismatchError,
    InvalidHeaderError,
    InvalidUriError,
    MalformedSignatureError,
    SignatureError,
    UnsupportedSampleRateError,
)
from shazam_signature.signature import FrequencyBand, FrequencyPeak, Signature

from conftest import peak_tuples

SR = 16000


def u32(data, offset):
    return struct.unpack_from("<I", data, offset)[0]


def reseal(data):
    """Recompute the CRC after a deliberate edit."""
    data = bytearray(data)
    struct.pack_into("<I", data, 4, zlib.crc32(bytes(data[8:])))
    return bytes(data)


def build_raw(contents, sample_rate_id=3 << 27, number_samples=0):
    """Assemble a signature buffer around hand-written band records."""
    size = len(contents) + 8
    header = RawHeader(
        size_minus_header=size,
        sample_rate_id=sample_rate_id,
        samples_plus_scaled_rate=number_samples + 3840,
    )
    data = bytes(header.to_bytes()) + struct.pack("<II", 0x40000000, size) + contents
    return reseal(data)


def band_record(band_index, payload):
    padding = b"\x00" * (-len(payload) % 4)
    return struct.pack("<II", 0x60030040 + band_index, len(payload)) + payload + padding


class TestRoundTrip:
    """decode(encode(s)) reproduces the signature."""

    def test_round_trip(self, sample_signature):
        decoded = decode_signature(encode_signature(sample_signature))

        assert decoded.sample_rate_hz == sample_signature.sample_rate_hz
        assert decoded.number_samples == sample_signature.number_samples
        assert peak_tuples(decoded) == peak_tuples(sample_signature)

    def test_empty_signature(self):
        signature = Signature(sample_rate_hz=SR, number_samples=128)
        data = encode_signature(signature)

        assert len(data) == 56
        decoded = decode_signature(data)
        assert decoded.number_samples == 128
        assert decoded.peaks_by_band == {}

    @pytest.mark.parametrize("sample_rate", [8000, 11025, 16000, 32000, 44100, 48000])
    def test_all_sample_rates(self, sample_rate):
        signature = Signature(sample_rate_hz=sample_rate, number_samples=12345)
        signature.add_peak(
            FrequencyBand.BAND_520_1450, FrequencyPeak(7, 6000, 9000, sample_rate)
        )
        decoded = decode_signature(encode_signature(signature))

        assert decoded.sample_rate_hz == sample_rate
        assert decoded.number_samples == 12345
        peak = decoded.peaks_by_band[FrequencyBand.BAND_520_1450][0]
        assert peak.sample_rate_hz == sample_rate

    def test_decoded_peaks_carry_sample_rate(self, sample_signature):
        decoded = decode_signature(encode_signature(sample_signature))
        for peaks in decoded.peaks_by_band.values():
            assert all(peak.sample_rate_hz == SR for peak in peaks)

    def test_encoding_is_deterministic(self, sample_signature):
        shuffled = Signature(
            sample_rate_hz=SR,
            number_samples=sample_signature.number_samples,
            peaks_by_band=dict(reversed(list(sample_signature.peaks_by_band.items()))),
        )
        assert encode_signature(shuffled) == encode_signature(sample_signature)


class TestEncodedLayout:
    """Fields of the encoded buffer."""

    def test_header_fields(self, sample_signature):
        data = encode_signature(sample_signature)

        assert u32(data, 0) == 0xCAFE2580
        assert u32(data, 8) == len(data) - 48
        assert u32(data, 12) == 0x94119C00
        assert data[16:28] == bytes(12)
        assert u32(data, 28) == 3 << 27
        assert data[32:40] == bytes(8)
        assert u32(data, 40) == 49664 + 3840
        assert u32(data, 44) == (15 << 19) + 0x40000

    def test_contents_header(self, sample_signature):
        data = encode_signature(sample_signature)
        assert u32(data, 48) == 0x40000000
        assert u32(data, 52) == len(data) - 48

    def test_checksum(self, sample_signature):
        data = encode_signature(sample_signature)
        assert u32(data, 4) == zlib.crc32(data[8:])

    def test_four_byte_alignment(self, sample_signature):
        assert len(encode_signature(sample_signature)) % 4 == 0

    def test_band_order_and_tags(self, sample_signature):
        data = encode_signature(sample_signature)
        position = 56
        tags = []
        while position < len(data):
            tag, length = struct.unpack_from("<II", data, position)
            tags.append(tag)
            position += 8 + length + (-length % 4)
        assert tags == [0x60030040, 0x60030041, 0x60030042, 0x60030043]

    def test_absolute_marker_on_large_delta(self):
        """A delta of 255 switches to an absolute pass number."""
        signature = Signature(sample_rate_hz=SR)
        signature.peaks_by_band[FrequencyBand.BAND_250_520] = [
            FrequencyPeak(10, 6000, 3000, SR),
            FrequencyPeak(265, 6001, 3001, SR),
        ]
        data = encode_signature(signature)

        length = u32(data, 60)
        payload = data[64:64 + length]
        assert payload == (
            struct.pack("<BHH", 10, 6000, 3000)
            + b"\xff"
            + struct.pack("<i", 265)
            + struct.pack("<BHH", 0, 6001, 3001)
        )

    def test_no_marker_below_255(self):
        signature = Signature(sample_rate_hz=SR)
        signature.peaks_by_band[FrequencyBand.BAND_250_520] = [
            FrequencyPeak(10, 6000, 3000, SR),
            FrequencyPeak(264, 6001, 3001, SR),
        ]
        data = encode_signature(signature)
        assert u32(data, 60) == 10

    def test_scaled_sample_rate(self):
        assert scaled_sample_rate(16000) == 3840
        assert scaled_sample_rate(44100) == 10584
        assert scaled_sample_rate(11025) == 2646


class TestEncodeErrors:
    """Signatures that cannot be represented on the wire."""

    def test_unsupported_sample_rate(self):
        with pytest.raises(UnsupportedSampleRateError):
            encode_signature(Signature(sample_rate_hz=22050))

    def test_magnitude_out_of_range(self):
        signature = Signature(sample_rate_hz=SR)
        signature.add_peak(FrequencyBand.BAND_250_520, FrequencyPeak(0, 70000, 3000, SR))
        with pytest.raises(MalformedSignatureError):
            encode_signature(signature)

    def test_below_250_band_rejected(self):
        signature = Signature(sample_rate_hz=SR)
        signature.add_peak(FrequencyBand.BELOW_250, FrequencyPeak(0, 6000, 100, SR))
        with pytest.raises(MalformedSignatureError):
            encode_signature(signature)


class TestDecodeErrors:
    """Corrupted buffers are rejected."""

    def test_short_buffer(self):
        with pytest.raises(InvalidHeaderError):
            decode_signature(b"\x80\x25\xfe\xca" + bytes(20))

    @pytest.mark.parametrize("offset", [0, 3, 12, 15])
    def test_bad_magic(self, sample_signature, offset):
        """Magic corruption is reported before the checksum is checked."""
        data = bytearray(encode_signature(sample_signature))
        data[offset] ^= 0x01
        with pytest.raises(InvalidHeaderError):
            decode_signature(bytes(data))

    def test_checksum_bit_flips(self, sample_signature):
        """Flipping any bit after the crc field (outside magic2) fails the checksum."""
        data = encode_signature(sample_signature)
        for position in range(8, len(data)):
            if 12 <= position < 16:
                continue
            corrupted = bytearray(data)
            corrupted[position] ^= 1 << (position % 8)
            with pytest.raises(ChecksumMismatchError):
                decode_signature(bytes(corrupted))

    def test_stored_checksum_changed(self, sample_signature):
        data = bytearray(encode_signature(sample_signature))
        data[4] ^= 0xFF
        with pytest.raises(ChecksumMismatchError):
            decode_signature(bytes(data))

    def test_size_mismatch(self, sample_signature):
        data = bytearray(encode_signature(sample_signature))
        struct.pack_into("<I", data, 8, len(data) - 44)
        with pytest.raises(InvalidHeaderError):
            decode_signature(reseal(data))

    def test_trailing_bytes(self, sample_signature):
        data = encode_signature(sample_signature) + bytes(4)
        with pytest.raises(InvalidHeaderError):
            decode_signature(reseal(data))

    def test_unknown_sample_rate_id(self, sample_signature):
        data = bytearray(encode_signature(sample_signature))
        struct.pack_into("<I", data, 28, 7 << 27)
        with pytest.raises(UnsupportedSampleRateError):
            decode_signature(reseal(data))

    @pytest.mark.parametrize("band_index", [-1, 4, 100])
    def test_unknown_band(self, band_index):
        data = build_raw(band_record(band_index, struct.pack("<BHH", 1, 6000, 3000)))
        with pytest.raises(MalformedSignatureError):
            decode_signature(data)

    def test_truncated_peak_record(self):
        data = build_raw(band_record(0, b"\x01\x02\x03"))
        with pytest.raises(MalformedSignatureError):
            decode_signature(data)

    def test_truncated_absolute_marker(self):
        data = build_raw(band_record(0, b"\xff\x01\x00"))
        with pytest.raises(MalformedSignatureError):
            decode_signature(data)

    def test_band_length_past_end(self):
        data = build_raw(struct.pack("<II", 0x60030040, 64) + bytes(8))
        with pytest.raises(MalformedSignatureError):
            decode_signature(data)

    def test_missing_contents_header(self):
        header = RawHeader(size_minus_header=0, sample_rate_id=3 << 27)
        with pytest.raises(MalformedSignatureError):
            decode_signature(reseal(bytes(header.to_bytes())))

    def test_errors_share_base_class(self):
        assert issubclass(ChecksumMismatchError, SignatureError)
        assert issubclass(InvalidUriError, ValueError)


class TestHandWrittenRecords:
    """Decoding buffers assembled field by field."""

    def test_absolute_marker_sets_pass(self):
        payload = (
            b"\xff"
            + struct.pack("<i", 1000)
            + struct.pack("<BHH", 0, 6000, 3000)
            + struct.pack("<BHH", 5, 6100, 3100)
        )
        data = build_raw(band_record(2, payload), number_samples=4096)
        signature = decode_signature(data)

        assert signature.number_samples == 4096
        assert peak_tuples(signature) == {
            FrequencyBand.BAND_1450_3500: [(1000, 6000, 3000), (1005, 6100, 3100)]
        }

    def test_marker_only_record(self):
        data = build_raw(band_record(1, b"\xff" + struct.pack("<i", 42)))
        signature = decode_signature(data)
        assert signature.peaks_by_band == {FrequencyBand.BAND_520_1450: []}

    def test_deltas_accumulate(self):
        payload = b"".join(struct.pack("<BHH", delta, 1, 2) for delta in (3, 0, 254))
        signature = decode_signature(build_raw(band_record(0, payload)))
        passes = [peak.fft_pass_number for peak in signature.peaks_by_band[FrequencyBand.BAND_250_520]]
        assert passes == [3, 3, 257]


class TestDataUri:
    """base64 data URI wrapper."""

    def test_prefix(self, sample_signature):
        uri = encode_to_uri(sample_signature)
        assert uri.startswith("data:audio/vnd.shazam.sig;base64,")
        payload = uri[len(WireConfig.DATA_URI_PREFIX):]
        assert base64.b64decode(payload) == encode_signature(sample_signature)

    def test_round_trip(self, sample_signature):
        decoded = decode_from_uri(encode_to_uri(sample_signature))
        assert peak_tuples(decoded) == peak_tuples(sample_signature)

    def test_missing_prefix(self, sample_signature):
        payload = base64.b64encode(encode_signature(sample_signature)).decode()
        with pytest.raises(InvalidUriError):
            decode_from_uri(payload)

    def test_invalid_base64(self):
        with pytest.raises(InvalidUriError):
            decode_from_uri(WireConfig.DATA_URI_PREFIX + "not*base64")

    def test_not_a_string(self):
        with pytest.raises(InvalidUriError):
            decode_from_uri(None)

    def test_corrupt_payload_propagates(self, sample_signature):
        data = bytearray(encode_signature(sample_signature))
        data[-1] ^= 0xFF
        uri = WireConfig.DATA_URI_PREFIX + base64.b64encode(bytes(data)).decode()
        with pytest.raises(ChecksumMismatchError):
            decode_from_uri(uri)
