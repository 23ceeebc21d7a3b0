"""
Errors raised while resolving, packing and unpacking transaction templates.
"""


class TxFormatError(ValueError):
    """Base class for template codec errors."""


class InvalidAddress(TxFormatError):
    """An address descriptor is malformed or cannot be resolved."""


class InvalidEncoding(TxFormatError):
    """A literal value cannot be decoded or does not fit its declared type."""


class UnsupportedType(TxFormatError):
    """A typed value carries a tag the codec does not know."""


class UnsupportedDescriptor(TxFormatError):
    """An address descriptor object has an unknown shape."""


class OutOfBounds(TxFormatError):
    """An unpack read ran past the end of the buffer."""


class MissingField(TxFormatError):
    """A required key is absent from a schema, value or template."""
