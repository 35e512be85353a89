"""Custom exceptions for resume extractor."""


class ResumeExtractorError(Exception):
    """Base exception for resume extractor errors."""

    pass


class InvalidRequestError(ResumeExtractorError):
    """Raised when a request is missing data required to attempt extraction."""

    pass


class InvalidBase64Error(InvalidRequestError):
    """Raised when base64 decoding fails."""

    pass


class StrategyError(ResumeExtractorError):
    """Raised inside an extraction strategy; never escapes the fallback chain."""

    pass


class OCRServiceError(StrategyError):
    """Raised when the OCR service is unreachable or reports a failure."""

    pass


class DecodingError(StrategyError):
    """Raised when document bytes cannot be decoded as text."""

    pass


class ConverterUnavailableError(StrategyError):
    """Raised when no external document converter is installed."""

    pass
