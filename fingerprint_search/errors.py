"""Exception types raised by fingerprint_search."""


class FingerprintSearchError(Exception):
    """Base class for fingerprint_search errors."""


class DecodeError(FingerprintSearchError):
    """An image file could not be decoded where decoding is mandatory."""


class IndexFormatError(FingerprintSearchError):
    """A persisted index does not match the expected layout or version."""
