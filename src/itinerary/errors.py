from __future__ import annotations


class ItineraryError(Exception):
    """Base class for errors raised by the aggregation engine."""


class BlockParseError(ItineraryError):
    """One event block could not be parsed; the block is skipped."""


class SpecParseError(ItineraryError):
    """A view's own configuration block is malformed."""


class FilterSyntaxError(ItineraryError):
    def __init__(self, expression: str, reason: str) -> None:
        super().__init__(f"Invalid filter '{expression}': {reason}")
        self.expression = expression
        self.reason = reason


class SourceResolutionError(ItineraryError):
    def __init__(self, reference: str, message: str) -> None:
        super().__init__(message)
        self.reference = reference


class ExtractionError(ItineraryError):
    """Reading or scanning a source document failed."""

    def __init__(self, source: str, message: str) -> None:
        super().__init__(f"Could not extract events from '{source}': {message}")
        self.source = source
