from __future__ import annotations


class MaskerError(Exception):
    """Base class for everything credmask raises on purpose."""


class ConfigurationError(MaskerError):
    """Bad flags, template or newline value. Raised before any file is touched."""


class ReportError(MaskerError):
    """The findings report could not be read or failed validation."""


class ClassificationError(MaskerError):
    pass


class HandlerError(MaskerError):
    pass


class SpanError(HandlerError):
    pass


class SpanOutOfBoundsError(SpanError):
    pass


class OverlappingSpansError(SpanError):
    pass


class MatchNotFoundError(SpanError):
    pass


class CancelledError(MaskerError):
    """The cancel token was raised while a file was still being computed."""
