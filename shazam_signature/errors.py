"""Exceptions raised while decoding or generating signatures."""


class SignatureError(ValueError):
    """Base class for signatures that cannot be decoded or encoded."""


class InvalidHeaderError(SignatureError):
    """Bad magic numbers, short buffer or inconsistent size field."""


class ChecksumMismatchError(SignatureError):
    """Stored CRC-32 does not match the buffer contents."""


class UnsupportedSampleRateError(SignatureError):
    """Sample rate (or its wire id) is not one of the six known rates."""


class InvalidUriError(SignatureError):
    """Text is not a base64 signature data URI."""


class MalformedSignatureError(SignatureError):
    """Band records or peak records are truncated or carry an unknown band."""


class PeakVariationError(ArithmeticError):
    """Peak curvature was not positive during peak recognition."""
