"""Conversion error kinds."""


class ConversionError(Exception):
    """Base class for errors that abort the conversion of a single source."""


class SourceUnreadableError(ConversionError):
    """Raised when an event log container cannot be opened or decoded."""


class SerializationFailureError(ConversionError):
    """Raised when the output table cannot be written."""


class MalformedRecordError(Exception):
    """Raised for a single record that cannot be decoded; never fatal to the source."""
