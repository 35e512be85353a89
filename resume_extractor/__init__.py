"""Resume text extraction with format-specific fallback chains."""

__version__ = "0.1.0"

from resume_extractor.chain import FallbackChain, build_strategies
from resume_extractor.cleaner import clean_text
from resume_extractor.config import ExtractorConfig, OCRConfig
from resume_extractor.detector import DocumentDetector
from resume_extractor.exceptions import (
    ConverterUnavailableError,
    DecodingError,
    InvalidBase64Error,
    InvalidRequestError,
    OCRServiceError,
    ResumeExtractorError,
    StrategyError,
)
from resume_extractor.handler import DIAGNOSTIC_PREFIX, DocumentHandler, is_diagnostic
from resume_extractor.models import (
    DocumentFamily,
    ExtractionAttempt,
    ExtractionResult,
    QualityFlag,
    SourceDocument,
)
from resume_extractor.ocr import OCRServiceClient
from resume_extractor.parser import parse_document
from resume_extractor.quality import QualityGate
from resume_extractor.strategy import Strategy

__all__ = [
    # High-level API
    "parse_document",
    # Core classes
    "DocumentHandler",
    "DocumentDetector",
    "FallbackChain",
    "QualityGate",
    "Strategy",
    "OCRServiceClient",
    "build_strategies",
    "clean_text",
    "is_diagnostic",
    "DIAGNOSTIC_PREFIX",
    # Data models
    "SourceDocument",
    "ExtractionAttempt",
    "ExtractionResult",
    "DocumentFamily",
    "QualityFlag",
    # Configuration
    "ExtractorConfig",
    "OCRConfig",
    # Exceptions
    "ResumeExtractorError",
    "InvalidRequestError",
    "InvalidBase64Error",
    "StrategyError",
    "OCRServiceError",
    "DecodingError",
    "ConverterUnavailableError",
]
